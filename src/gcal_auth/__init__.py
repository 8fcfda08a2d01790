"""Google Calendar access for local scripts via the OAuth installed-app flow."""

__version__ = "0.1.0"
