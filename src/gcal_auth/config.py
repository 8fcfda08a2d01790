"""Credential file locations.

Two files are involved:
    google_credentials.json - OAuth client credentials (downloaded from Google Cloud Console)
    token.json              - OAuth token written after the first authorization

Both paths can be overridden with GCAL_CREDENTIALS_PATH and GCAL_TOKEN_PATH.
A .env file in the working directory is loaded on import, so those variables
can live there instead of the shell environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_CREDENTIALS_PATH = "google_credentials.json"
DEFAULT_TOKEN_PATH = "token.json"

CREDENTIALS_ENV_VAR = "GCAL_CREDENTIALS_PATH"
TOKEN_ENV_VAR = "GCAL_TOKEN_PATH"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]

            # Only set if not already in environment (env vars take precedence)
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


@dataclass(frozen=True)
class StorePaths:
    """Where the client configuration is read from and the token is kept."""

    config_path: Path
    token_path: Path

    @classmethod
    def from_env(
        cls,
        config_path: str | Path | None = None,
        token_path: str | Path | None = None,
    ) -> StorePaths:
        """Resolve paths from explicit arguments, then environment, then defaults.

        Args:
            config_path: Explicit credentials file path (wins over the environment).
            token_path: Explicit token file path (wins over the environment).

        Returns:
            StorePaths with ``~`` expanded.
        """
        config = config_path or os.environ.get(CREDENTIALS_ENV_VAR) or DEFAULT_CREDENTIALS_PATH
        token = token_path or os.environ.get(TOKEN_ENV_VAR) or DEFAULT_TOKEN_PATH
        return cls(
            config_path=Path(config).expanduser(),
            token_path=Path(token).expanduser(),
        )


def get_credential_status(paths: StorePaths) -> dict:
    """Get status of the configured credential files.

    Returns:
        Dictionary with credential status.
    """
    return {
        "env_file": ENV_FILE.exists(),
        "credentials_path": str(paths.config_path),
        "credentials": paths.config_path.exists(),
        "token_path": str(paths.token_path),
        "token": paths.token_path.exists(),
    }


# Auto-load .env from the working directory on import
_loaded = _load_env_file(ENV_FILE)
