"""Storage for the OAuth client identity and the persisted token.

The client identity comes from the credentials JSON downloaded from
Google Cloud Console and is never written back. The token is whatever the
token endpoint returned; it is stored and loaded verbatim.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from gcal_auth.config import StorePaths
from gcal_auth.google.exceptions import (
    ConfigMalformedError,
    ConfigNotFoundError,
    PersistenceError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientIdentity:
    """Registered OAuth client: id, secret and redirect target."""

    client_id: str
    client_secret: str
    redirect_uri: str


class CredentialStore:
    """File-backed access to the client identity and the OAuth token.

    Example:
        >>> store = CredentialStore(StorePaths.from_env())
        >>> identity = store.load_client_identity()
        >>> token = store.try_load_token()
    """

    def __init__(self, paths: StorePaths):
        self.paths = paths

    @property
    def config_path(self):
        return self.paths.config_path

    @property
    def token_path(self):
        return self.paths.token_path

    def load_client_identity(self) -> ClientIdentity:
        """Load the OAuth client identity from the credentials file.

        Returns:
            ClientIdentity built from the ``installed`` (or ``web``) section.

        Raises:
            ConfigNotFoundError: If the credentials file does not exist.
            ConfigMalformedError: If the file is not valid credentials JSON.
        """
        path = str(self.config_path)
        if not self.config_path.exists():
            raise ConfigNotFoundError(path)

        try:
            with open(self.config_path) as f:
                creds = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigMalformedError(path, f"invalid JSON: {e}") from e
        except OSError as e:
            raise ConfigNotFoundError(path) from e

        if not isinstance(creds, dict):
            raise ConfigMalformedError(path, "expected a JSON object")

        # Handle both installed and web app credential formats
        if "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            raise ConfigMalformedError(path, "expected 'installed' or 'web' key")

        if not isinstance(app_creds, dict):
            raise ConfigMalformedError(path, "client section must be an object")

        missing = [key for key in ("client_id", "client_secret") if not app_creds.get(key)]
        if missing:
            raise ConfigMalformedError(path, f"missing {', '.join(missing)}")

        redirect_uris = app_creds.get("redirect_uris")
        if not isinstance(redirect_uris, list) or not redirect_uris:
            raise ConfigMalformedError(path, "redirect_uris must be a non-empty list")

        return ClientIdentity(
            client_id=app_creds["client_id"],
            client_secret=app_creds["client_secret"],
            redirect_uri=redirect_uris[0],
        )

    def try_load_token(self) -> dict[str, Any] | None:
        """Load the persisted token, if there is a usable one.

        A missing or unparseable token file is not an error; it means the
        caller has to authorize again.

        Returns:
            The token dict exactly as it was saved, or None.
        """
        if not self.token_path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.token_path) as f:
                token = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load token from {self.token_path}: {e}")
            return None

        if not isinstance(token, dict):
            logger.warning(f"Ignoring token file {self.token_path}: not a JSON object")
            return None

        logger.info(f"Loaded token from {self.token_path}")
        return token

    def save_token(self, token: dict[str, Any]) -> None:
        """Write the token to disk, replacing any previous one.

        Raises:
            PersistenceError: If the token cannot be serialized or written.
        """
        path = str(self.token_path)
        try:
            payload = json.dumps(dict(token), indent=2)
        except (TypeError, ValueError) as e:
            raise PersistenceError(path, f"token is not JSON serializable: {e}") from e

        # Replace atomically; the previous token survives a failed write
        tmp_path = self.token_path.with_name(self.token_path.name + ".tmp")
        try:
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                f.write(payload)
            os.replace(tmp_path, self.token_path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise PersistenceError(path, str(e)) from e

        logger.info(f"Token stored to {self.token_path}")

    def delete_token(self) -> bool:
        """Remove the persisted token.

        Returns:
            True if a token file was removed, False if there was none.

        Raises:
            PersistenceError: If the file exists but cannot be removed.
        """
        if not self.token_path.exists():
            logger.warning("No token to delete")
            return False

        try:
            self.token_path.unlink()
        except OSError as e:
            raise PersistenceError(str(self.token_path), str(e)) from e

        logger.info(f"Deleted token {self.token_path}")
        return True

    def token_info(self) -> dict[str, Any]:
        """Describe the persisted token without validating or refreshing it.

        Returns:
            Dictionary with status, scopes, refresh-token presence and the
            expiry recorded in the token (if any).
        """
        token = self.try_load_token()
        if token is None:
            return {"status": "no_token"}

        expires = "unknown"
        expires_at = token.get("expires_at")
        if isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool):
            try:
                expires = datetime.fromtimestamp(expires_at, tz=timezone.utc).isoformat()
            except (OverflowError, OSError, ValueError):
                logger.warning(f"Token has an unusable expires_at: {expires_at!r}")

        scope = token.get("scope") or token.get("scopes") or ""
        if isinstance(scope, str):
            scopes = scope.split()
        elif isinstance(scope, list):
            scopes = [str(s) for s in scope]
        else:
            scopes = []

        return {
            "status": "present",
            "scopes": scopes,
            "expires_at": expires,
            "has_refresh_token": bool(token.get("refresh_token")),
        }
