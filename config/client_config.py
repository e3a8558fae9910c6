"""Per-client configuration for the AppKit auth client"""

import webbrowser
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse

import httpx

import settings
from oauth.errors import ConfigurationError
from .loader import get_config_loader

if TYPE_CHECKING:
    from fastapi import Request, Response


class StorageBackend(str, Enum):
    """Credential storage selection; never inferred at runtime"""
    PERSISTENT = "persistent"
    SESSION = "session"
    COOKIE = "cookie"
    MEMORY = "memory"


def _normalize_scope(scope: Union[str, Sequence[str], None]) -> Tuple[str, ...]:
    if scope is None:
        scope = settings.DEFAULT_SCOPE
    if isinstance(scope, str):
        return tuple(part for part in scope.split() if part)
    return tuple(str(part) for part in scope if part)


def _require_address(name: str, value: Optional[str]) -> str:
    if not value or not isinstance(value, str):
        raise ConfigurationError(f"{name} is required", f"missing_{name}")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"{name} must be an absolute http(s) URL: {value}", f"invalid_{name}")
    return value


@dataclass(frozen=True)
class AppKitConfig:
    """Immutable client configuration

    Attributes:
        domain: Identity platform base URL, e.g. https://id.example.com
        client_id: OAuth client identifier
        redirect_uri: Callback URL registered for the client
        scope: Requested scopes, as a space separated string or a sequence
        storage: Credential storage backend
        transport: Optional httpx transport replacing the default network stack
        expiry_skew: Seconds before expires_at at which a token counts as expired
        auto_refresh: Schedule a proactive refresh before expiry
        refresh_leeway: Seconds before expires_at at which that refresh fires
        storage_dir: Root directory of the persistent store
        cookie_request: Incoming request for the cookie store
        cookie_response: Outgoing response for the cookie store
        navigator: Called with a URL to perform redirects
        request_timeout: Total timeout for a single call to the platform
    """
    domain: str
    client_id: str
    redirect_uri: str
    scope: Union[str, Sequence[str], None] = None
    storage: StorageBackend = StorageBackend.PERSISTENT
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)
    expiry_skew: float = settings.EXPIRY_SKEW
    auto_refresh: bool = settings.AUTO_REFRESH
    refresh_leeway: float = settings.REFRESH_LEEWAY
    storage_dir: Optional[Path] = None
    cookie_request: Optional["Request"] = field(default=None, repr=False, compare=False)
    cookie_response: Optional["Response"] = field(default=None, repr=False, compare=False)
    navigator: Callable[[str], Any] = field(default=webbrowser.open, repr=False, compare=False)
    request_timeout: float = settings.REQUEST_TIMEOUT

    def __post_init__(self):
        domain = _require_address("domain", self.domain).rstrip("/")
        if not self.client_id or not isinstance(self.client_id, str):
            raise ConfigurationError("client_id is required", "missing_client_id")
        _require_address("redirect_uri", self.redirect_uri)

        try:
            storage = StorageBackend(self.storage)
        except ValueError:
            raise ConfigurationError(f"Unknown storage backend: {self.storage!r}", "invalid_storage") from None

        if self.expiry_skew < 0 or self.refresh_leeway < 0:
            raise ConfigurationError("expiry_skew and refresh_leeway must not be negative")

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "domain", domain)
        object.__setattr__(self, "scope", _normalize_scope(self.scope))
        object.__setattr__(self, "storage", storage)
        object.__setattr__(
            self,
            "storage_dir",
            Path(self.storage_dir).expanduser() if self.storage_dir else Path(settings.STORAGE_DIR),
        )

    @property
    def scope_string(self) -> str:
        return " ".join(self.scope)

    @property
    def origin(self) -> str:
        """Identifier used to scope persisted credentials to this client"""
        return f"{urlparse(self.domain).netloc}:{self.client_id}"

    @classmethod
    def from_env(cls, **overrides: Any) -> "AppKitConfig":
        """Build a configuration from APPKIT_* environment variables

        Keyword arguments override values read from the environment.
        """
        loader = get_config_loader()
        values = {
            "domain": loader.get("APPKIT_DOMAIN", ""),
            "client_id": loader.get("APPKIT_CLIENT_ID", ""),
            "redirect_uri": loader.get("APPKIT_REDIRECT_URI", ""),
            "scope": loader.get_list("APPKIT_SCOPE") or None,
            "storage": loader.get("APPKIT_STORAGE", StorageBackend.PERSISTENT.value),
        }
        values.update(overrides)
        return cls(**values)
