"""Google OAuth authentication utilities."""

from gcal_auth.google.exceptions import (
    ApiCallError,
    ConfigMalformedError,
    ConfigNotFoundError,
    GoogleAuthError,
    PersistenceError,
    TokenExchangeError,
)
from gcal_auth.google.oauth import AuthorizationFlow, AuthorizedClient, FlowState
from gcal_auth.google.prompt import CodePrompter, ConsolePrompter
from gcal_auth.google.store import ClientIdentity, CredentialStore

__all__ = [
    "AuthorizationFlow",
    "AuthorizedClient",
    "FlowState",
    "CodePrompter",
    "ConsolePrompter",
    "ClientIdentity",
    "CredentialStore",
    "GoogleAuthError",
    "ConfigNotFoundError",
    "ConfigMalformedError",
    "PersistenceError",
    "TokenExchangeError",
    "ApiCallError",
]
