"""Read-only Google Calendar client.

List calendars and events once the OAuth flow has produced an authorized client.

Usage:
    from gcal_auth.calendar import CalendarClient
    from gcal_auth.config import StorePaths
    from gcal_auth.google import AuthorizationFlow, CredentialStore

    auth = AuthorizationFlow(CredentialStore(StorePaths.from_env())).authorize()
    client = CalendarClient(auth)

    # List calendars
    calendars = client.list_calendars()

    # List events in a window
    events = client.list_events("primary", start, end)

OAuth Setup:
    1. Download OAuth credentials from Google Cloud Console
    2. Save them as google_credentials.json (or set GCAL_CREDENTIALS_PATH)
    3. Authorize: gcal-auth login
"""

from __future__ import annotations

from gcal_auth.calendar.client import (
    CalendarClient,
    CalendarSummary,
    Err,
    EventSummary,
    Ok,
)

__all__ = ["CalendarClient", "CalendarSummary", "EventSummary", "Ok", "Err"]
