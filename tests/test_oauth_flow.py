"""Tests for the Google OAuth authorization flow."""

import json
from unittest.mock import ANY, patch
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.requests_client import OAuth2Session

from gcal_auth.config import StorePaths
from gcal_auth.google import (
    AuthorizationFlow,
    AuthorizedClient,
    ClientIdentity,
    ConfigMalformedError,
    ConfigNotFoundError,
    CredentialStore,
    FlowState,
    TokenExchangeError,
)
from gcal_auth.google.oauth import SCOPES, resolve_scopes

CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"

NEW_TOKEN = {
    "access_token": "ya29.new-access-token",
    "refresh_token": "1//new-refresh-token",
    "expires_in": 3599,
    "expires_at": 1893456000,
    "scope": CALENDAR_SCOPE,
    "token_type": "Bearer",
}


class FakePrompter:
    """Returns a canned code and records the URLs it was shown."""

    def __init__(self, code="test-auth-code"):
        self.code = code
        self.urls = []

    def obtain_code(self, url):
        self.urls.append(url)
        return self.code


@pytest.fixture
def mock_credentials(tmp_path):
    """Create a mock credentials file."""
    creds = {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "redirect_uris": ["http://localhost"],
        }
    }
    creds_path = tmp_path / "google_credentials.json"
    with open(creds_path, "w") as f:
        json.dump(creds, f)
    return creds_path


@pytest.fixture
def mock_token(tmp_path):
    """Create an expired mock token file."""
    token = {
        "access_token": "ya29.old-access-token",
        "refresh_token": "1//old-refresh-token",
        "expires_at": 946684800,
        "scope": CALENDAR_SCOPE,
        "token_type": "Bearer",
    }
    token_path = tmp_path / "token.json"
    with open(token_path, "w") as f:
        json.dump(token, f)
    return token_path


@pytest.fixture
def store(mock_credentials, tmp_path):
    return CredentialStore(StorePaths(mock_credentials, tmp_path / "token.json"))


@pytest.fixture
def prompter():
    return FakePrompter()


@pytest.fixture
def mock_fetch():
    with patch.object(OAuth2Session, "fetch_token", return_value=dict(NEW_TOKEN)) as m:
        yield m


class TestScopes:
    """Test scope resolution."""

    def test_available_scopes(self):
        """Should have calendar scopes defined."""
        assert SCOPES["calendar"] == CALENDAR_SCOPE
        assert "calendar_readonly" in SCOPES

    def test_full_url_scopes_accepted(self):
        """Should accept full scope URLs."""
        url = "https://www.googleapis.com/auth/calendar.events"
        assert resolve_scopes(["calendar", url]) == [CALENDAR_SCOPE, url]

    def test_unknown_scope_raises(self, store):
        """Should raise error for unknown scope names."""
        with pytest.raises(ValueError, match="Unknown scope"):
            AuthorizationFlow(store, scopes=["unknown_scope"])

    def test_default_scope_is_calendar(self, store):
        """Should request the calendar scope by default."""
        assert AuthorizationFlow(store).scopes == [CALENDAR_SCOPE]


class TestAuthorizationUrl:
    """Test authorization URL construction."""

    def test_url_embeds_identity_scope_and_offline_access(self, store):
        """Should embed client id, redirect URI and scope, and request offline access."""
        identity = ClientIdentity(client_id="X", client_secret="secret", redirect_uri="R")
        url = AuthorizationFlow(store).authorization_url(identity)

        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert parsed.netloc == "accounts.google.com"
        assert params["client_id"] == ["X"]
        assert params["redirect_uri"] == ["R"]
        assert params["scope"] == [CALENDAR_SCOPE]
        assert params["response_type"] == ["code"]
        assert params["access_type"] == ["offline"]

    def test_url_is_deterministic(self, store):
        """Should produce the same URL for the same identity and scopes."""
        identity = ClientIdentity(client_id="X", client_secret="secret", redirect_uri="R")
        flow = AuthorizationFlow(store)
        assert flow.authorization_url(identity) == flow.authorization_url(identity)
        assert "state" not in parse_qs(urlparse(flow.authorization_url(identity)).query)

    def test_url_never_contains_secret(self, store):
        """Should not leak the client secret into the URL."""
        identity = ClientIdentity(client_id="X", client_secret="top-secret", redirect_uri="R")
        assert "top-secret" not in AuthorizationFlow(store).authorization_url(identity)


class TestAuthorize:
    """Test the authorize() state machine."""

    def test_no_token_runs_interactive_bootstrap(self, store, prompter, mock_fetch):
        """Should prompt, exchange the code and save the token when none exists."""
        flow = AuthorizationFlow(store, prompter=prompter)
        client = flow.authorize()

        assert len(prompter.urls) == 1
        assert "client_id=test-client-id.apps.googleusercontent.com" in prompter.urls[0]
        mock_fetch.assert_called_once_with(
            AuthorizationFlow.TOKEN_URL,
            grant_type="authorization_code",
            code="test-auth-code",
        )
        assert client.token == NEW_TOKEN
        assert client.persistence_error is None
        assert store.try_load_token() == NEW_TOKEN
        assert flow.state is FlowState.READY

    def test_existing_token_is_reused(self, mock_credentials, mock_token, prompter, mock_fetch):
        """Should reuse an expired token without prompting or exchanging."""
        store = CredentialStore(StorePaths(mock_credentials, mock_token))
        flow = AuthorizationFlow(store, prompter=prompter)
        client = flow.authorize()

        assert prompter.urls == []
        mock_fetch.assert_not_called()
        assert client.access_token == "ya29.old-access-token"
        assert flow.state is FlowState.READY

    def test_unparseable_token_triggers_bootstrap(self, store, prompter, mock_fetch):
        """Should treat a corrupt token file as absent."""
        store.token_path.write_text("{corrupt")
        client = AuthorizationFlow(store, prompter=prompter).authorize()

        assert len(prompter.urls) == 1
        assert client.token == NEW_TOKEN

    def test_missing_config_aborts(self, tmp_path, prompter, mock_fetch):
        """Should propagate ConfigNotFoundError before any prompt or network call."""
        store = CredentialStore(StorePaths(tmp_path / "missing.json", tmp_path / "token.json"))
        flow = AuthorizationFlow(store, prompter=prompter)

        with pytest.raises(ConfigNotFoundError):
            flow.authorize()
        assert prompter.urls == []
        mock_fetch.assert_not_called()
        assert flow.state is FlowState.START

    def test_malformed_config_aborts(self, tmp_path, mock_token, prompter, mock_fetch):
        """Should propagate ConfigMalformedError even when a token exists."""
        path = tmp_path / "google_credentials.json"
        path.write_text("{'installed': ")
        store = CredentialStore(StorePaths(path, mock_token))

        with pytest.raises(ConfigMalformedError):
            AuthorizationFlow(store, prompter=prompter).authorize()
        assert prompter.urls == []
        mock_fetch.assert_not_called()

    def test_exchange_oauth_error(self, store, prompter):
        """Should raise TokenExchangeError when Google rejects the code."""
        error = OAuthError(error="invalid_grant", description="Bad Request")
        with patch.object(OAuth2Session, "fetch_token", side_effect=error) as mock_fetch:
            flow = AuthorizationFlow(store, prompter=prompter)
            with pytest.raises(TokenExchangeError, match="invalid_grant"):
                flow.authorize()

        mock_fetch.assert_called_once()
        assert not store.token_path.exists()
        assert flow.state is FlowState.INTERACTIVE_BOOTSTRAP

    def test_exchange_network_error(self, store, prompter):
        """Should raise TokenExchangeError on transport failures, without retrying."""
        error = requests.ConnectionError("connection refused")
        with patch.object(OAuth2Session, "fetch_token", side_effect=error) as mock_fetch:
            with pytest.raises(TokenExchangeError) as exc_info:
                AuthorizationFlow(store, prompter=prompter).authorize()

        assert mock_fetch.call_count == 1
        assert len(prompter.urls) == 1
        assert exc_info.value.__cause__ is error

    def test_empty_code_fails_without_request(self, store, mock_fetch):
        """Should fail on an empty code without calling the token endpoint."""
        flow = AuthorizationFlow(store, prompter=FakePrompter(code=""))
        with pytest.raises(TokenExchangeError, match="No authorization code"):
            flow.authorize()
        mock_fetch.assert_not_called()

    def test_persistence_failure_keeps_token(self, mock_credentials, tmp_path, prompter, mock_fetch):
        """Should return a usable client and report the error when saving fails."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = CredentialStore(StorePaths(mock_credentials, blocker / "token.json"))

        flow = AuthorizationFlow(store, prompter=prompter)
        client = flow.authorize()

        assert client.token == NEW_TOKEN
        assert client.persistence_error is not None
        assert client.persistence_error.path == str(blocker / "token.json")
        assert flow.state is FlowState.READY


class TestAuthorizedClient:
    """Test the authorized client handle."""

    @pytest.fixture
    def identity(self):
        return ClientIdentity(client_id="X", client_secret="secret", redirect_uri="R")

    def test_credentials_carry_access_token_only(self, identity):
        """Should not hand refresh details to google-auth."""
        client = AuthorizedClient(identity, dict(NEW_TOKEN), [CALENDAR_SCOPE])
        creds = client.credentials()

        assert creds.token == "ya29.new-access-token"
        assert creds.refresh_token is None
        assert creds.expiry is None

    def test_google_format_token(self, identity):
        """Should read the access token from google-auth's 'token' key."""
        client = AuthorizedClient(identity, {"token": "abc"}, [CALENDAR_SCOPE])
        assert client.access_token == "abc"

    def test_build_service(self, identity):
        """Should build the calendar v3 service with the client's credentials."""
        client = AuthorizedClient(identity, dict(NEW_TOKEN), [CALENDAR_SCOPE])
        with patch("gcal_auth.google.oauth.build") as mock_build:
            service = client.build_service()

        mock_build.assert_called_once_with(
            "calendar", "v3", credentials=ANY, cache_discovery=False
        )
        assert service is mock_build.return_value
