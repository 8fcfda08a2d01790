"""Google authentication exceptions."""


class GoogleAuthError(Exception):
    """Base exception for Google authentication errors."""

    pass


class ConfigNotFoundError(GoogleAuthError):
    """Raised when the OAuth client configuration file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download OAuth credentials from Google Cloud Console."
        )


class ConfigMalformedError(GoogleAuthError):
    """Raised when the OAuth client configuration file cannot be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid credentials file {path}: {reason}")


class PersistenceError(GoogleAuthError):
    """Raised when the token file cannot be written or removed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not persist token to {path}: {reason}")


class TokenExchangeError(GoogleAuthError):
    """Raised when an authorization code cannot be exchanged for a token."""

    pass


class ApiCallError(GoogleAuthError):
    """Raised (or returned) when a Google API request fails."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
