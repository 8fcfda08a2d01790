"""Google OAuth installed-application flow using Authlib.

This module provides:
- Deterministic authorization URL construction (offline access)
- Interactive code exchange through a pluggable CodePrompter
- Token persistence and reuse through CredentialStore
- Google API service creation from the resulting token

A persisted token is reused as-is. Expiry is not checked and the token is
never refreshed; once it stops working, delete it (``gcal-auth logout``) and
authorize again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from gcal_auth.google.exceptions import PersistenceError, TokenExchangeError
from gcal_auth.google.prompt import CodePrompter, ConsolePrompter
from gcal_auth.google.store import ClientIdentity, CredentialStore

logger = logging.getLogger(__name__)


# Google Calendar OAuth scopes
SCOPES = {
    "calendar": "https://www.googleapis.com/auth/calendar",
    "calendar_readonly": "https://www.googleapis.com/auth/calendar.readonly",
    "calendar_events": "https://www.googleapis.com/auth/calendar.events",
    "calendar_events_readonly": "https://www.googleapis.com/auth/calendar.events.readonly",
}

DEFAULT_SCOPES = ["calendar"]


def resolve_scopes(scopes: list[str]) -> list[str]:
    """Resolve scope names to full URLs."""
    resolved = []
    for scope in scopes:
        if scope.startswith("https://"):
            resolved.append(scope)
        elif scope in SCOPES:
            resolved.append(SCOPES[scope])
        else:
            raise ValueError(
                f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
            )
    return resolved


class FlowState(Enum):
    START = "start"
    TOKEN_CHECK = "token_check"
    INTERACTIVE_BOOTSTRAP = "interactive_bootstrap"
    READY = "ready"


@dataclass
class AuthorizedClient:
    """Client identity plus token, ready to build Google API services."""

    identity: ClientIdentity
    token: dict[str, Any]
    scopes: list[str]
    persistence_error: PersistenceError | None = field(default=None, compare=False)

    @property
    def access_token(self) -> str | None:
        # google-auth's Credentials.to_json() stores the access token as "token"
        return self.token.get("access_token") or self.token.get("token")

    def credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Only the access token is passed on, so the Google libraries never
        try to refresh it.
        """
        return GoogleCredentials(token=self.access_token, scopes=self.scopes)

    def build_service(self, service_name: str = "calendar", version: str = "v3"):
        """Build a Google API service with the current token.

        Args:
            service_name: Name of the service (e.g., 'calendar').
            version: API version (e.g., 'v3').

        Returns:
            Google API service object.
        """
        return build(service_name, version, credentials=self.credentials(), cache_discovery=False)


class AuthorizationFlow:
    """OAuth 2.0 installed-application flow for Google Calendar.

    Reuses a persisted token when there is one, otherwise asks the user to
    visit the authorization URL, exchanges the pasted code and saves the
    resulting token.

    Example:
        >>> store = CredentialStore(StorePaths.from_env())
        >>> client = AuthorizationFlow(store).authorize()
        >>> service = client.build_service("calendar", "v3")
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        store: CredentialStore,
        prompter: CodePrompter | None = None,
        scopes: list[str] | None = None,
    ):
        """Initialize the flow.

        Args:
            store: Where the client identity is read and the token is kept.
            prompter: Obtains the authorization code. Defaults to ConsolePrompter.
            scopes: Scope names (e.g., ["calendar"]) or full URLs.
        """
        self.store = store
        self.prompter = prompter or ConsolePrompter()
        self.scopes = resolve_scopes(scopes or DEFAULT_SCOPES)
        self.state = FlowState.START

    def _transition(self, state: FlowState) -> None:
        logger.debug(f"Authorization flow: {self.state.value} -> {state.value}")
        self.state = state

    def authorization_url(self, identity: ClientIdentity) -> str:
        """Build the URL the user visits to grant access.

        The URL depends only on the client identity and scopes, and asks
        for offline access so that Google issues a refresh token.
        """
        return prepare_grant_uri(
            self.AUTHORIZE_URL,
            client_id=identity.client_id,
            response_type="code",
            redirect_uri=identity.redirect_uri,
            scope=" ".join(self.scopes),
            access_type="offline",
            prompt="consent",
        )

    def exchange_code(self, identity: ClientIdentity, code: str) -> dict[str, Any]:
        """Exchange an authorization code for a token.

        Makes exactly one request to the token endpoint. There is no retry.

        Raises:
            TokenExchangeError: If the code is empty or the exchange fails.
        """
        if not code:
            raise TokenExchangeError("No authorization code provided")

        session = OAuth2Session(
            client_id=identity.client_id,
            client_secret=identity.client_secret,
            scope=" ".join(self.scopes),
            redirect_uri=identity.redirect_uri,
            token_endpoint_auth_method="client_secret_post",
        )
        try:
            token = session.fetch_token(
                self.TOKEN_URL,
                grant_type="authorization_code",
                code=code,
            )
        except (AuthlibBaseError, requests.RequestException) as e:
            raise TokenExchangeError(f"Error retrieving access token: {e}") from e
        finally:
            session.close()

        return dict(token)

    def authorize(self) -> AuthorizedClient:
        """Return an authorized client, running the interactive flow if needed.

        Raises:
            ConfigNotFoundError: If the credentials file is missing.
            ConfigMalformedError: If the credentials file is invalid.
            TokenExchangeError: If the authorization code exchange fails.
        """
        self.state = FlowState.START
        identity = self.store.load_client_identity()

        self._transition(FlowState.TOKEN_CHECK)
        token = self.store.try_load_token()
        if token is not None:
            logger.info("Using existing token")
            self._transition(FlowState.READY)
            return AuthorizedClient(identity=identity, token=token, scopes=self.scopes)

        logger.info("No existing token found, requesting new authorization...")
        self._transition(FlowState.INTERACTIVE_BOOTSTRAP)

        url = self.authorization_url(identity)
        code = self.prompter.obtain_code(url)
        token = self.exchange_code(identity, code)

        client = AuthorizedClient(identity=identity, token=token, scopes=self.scopes)
        try:
            self.store.save_token(token)
        except PersistenceError as e:
            # The token is still good for this run
            logger.error(f"Failed to save token: {e}")
            client.persistence_error = e

        self._transition(FlowState.READY)
        return client
