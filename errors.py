"""Error types for getlogs."""


class GetlogsError(Exception):
    """Base class for all errors reported to the user."""


class ConfigError(GetlogsError):
    """Missing or invalid configuration."""


class ApiError(GetlogsError):
    """A Jira request failed; status_code is None when no response arrived."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is None or f"HTTP {self.status_code}" in message:
            return message
        return f"{message} (HTTP {self.status_code})"


class AuthError(ApiError):
    """No usable credentials, or the server rejected them."""


class NetworkError(ApiError):
    """Connection failure, timeout or unexpected HTTP status."""


class NotFoundError(NetworkError):
    """The issue key does not exist on the server."""


class ExtractError(GetlogsError):
    """An archive is corrupt or cannot be read."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class IoError(GetlogsError):
    """Filesystem failure while reading or writing local files."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
