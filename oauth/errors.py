"""Error types raised by the AppKit auth client"""

from typing import Any, Optional


class AppKitError(Exception):
    """Base error carrying a human message and a machine-readable code

    Attributes:
        message: Human readable description
        code: Machine readable error code (e.g. "invalid_grant")
        status: HTTP status when the error came from a response
    """

    def __init__(self, message: str, code: str = "appkit_error", status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, code={self.code!r}, status={self.status!r})"


class ConfigurationError(AppKitError):
    """Required client configuration is missing or invalid"""

    def __init__(self, message: str, code: str = "invalid_config"):
        super().__init__(message, code)


class ProtocolError(AppKitError):
    """The OAuth callback failed validation (state, verifier, code)"""


class NetworkError(AppKitError):
    """The identity platform could not be reached"""

    def __init__(self, message: str, code: str = "network_error"):
        super().__init__(message, code)


class RequestFailedError(AppKitError):
    """The identity platform answered with a non-2xx status"""

    def __init__(
        self,
        message: str,
        code: str = "request_failed",
        status: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message, code, status)
        self.body = body


class RefreshFailedError(AppKitError):
    """The refresh token was rejected; stored credentials have been cleared"""
