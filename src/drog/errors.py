"""Exception classes raised by drog.

Every error is fatal for a single invocation: the CLI prints the message
and exits with a non-zero status. Nothing is retried.
"""

from typing import Optional


class DrogError(Exception):
    """Base class for all drog errors."""


class ConfigError(DrogError):
    """Raised when a configuration file cannot be used.

    This typically occurs when:
    - The OAuth client secrets file is missing or unreadable
    - The client secrets file is not valid JSON or lacks a client section
    - The optional YAML settings file is malformed

    To resolve: download OAuth client credentials from the Google Cloud
    Console and save them at the configured path.
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message)


class AuthError(DrogError):
    """Raised when an OAuth2 credential cannot be obtained or refreshed.

    This typically occurs when:
    - The authorization code could not be read from the terminal
    - The authorization code was rejected by Google
    - The cached refresh token was revoked or the scopes changed
    """

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(message)


class FileError(DrogError):
    """Raised when a source file cannot be opened for reading."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message)


class InvalidExtensionError(DrogError):
    """Raised when piped input is given an extension that cannot be streamed."""

    def __init__(self, message: str, extension: Optional[str] = None) -> None:
        self.extension = extension
        super().__init__(message)


class FetchError(DrogError):
    """Raised when a web page cannot be fetched.

    This typically occurs when:
    - The URL is malformed or uses an unsupported scheme
    - The host cannot be reached
    - The server answers with an HTTP error status
    """

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message)


class UploadError(DrogError):
    """Raised when Google Drive rejects or fails the create-and-convert call.

    This typically occurs when:
    - Storage quota is exceeded
    - The credential lacks permission for the requested scope
    - Network issues during upload
    """

    def __init__(
        self, message: str, title: Optional[str] = None, status_code: Optional[int] = None
    ) -> None:
        self.title = title
        self.status_code = status_code
        super().__init__(message)


class PromptCancelledError(DrogError):
    """Raised when an interactive prompt is aborted by the user."""
