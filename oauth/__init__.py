"""OAuth 2.0 Authorization Code + PKCE lifecycle for the AppKit client"""

from .errors import (
    AppKitError,
    ConfigurationError,
    NetworkError,
    ProtocolError,
    RefreshFailedError,
    RequestFailedError,
)
from .models import (
    AuthState,
    AuthUrlOptions,
    CallbackResult,
    LogoutOptions,
    PKCEChallenge,
    TokenSet,
)
from .pkce import compute_code_challenge, generate_pkce_challenge, generate_random_string
from .events import EventBus
from .jwt_utils import decode_jwt_claims
from .authorization import AuthorizationURLBuilder
from .token_exchange import exchange_code
from .token_refresh import refresh_tokens, revoke_token
from .token_manager import AuthManager

__all__ = [
    # Errors
    "AppKitError",
    "ConfigurationError",
    "NetworkError",
    "ProtocolError",
    "RefreshFailedError",
    "RequestFailedError",
    # Models
    "AuthState",
    "AuthUrlOptions",
    "CallbackResult",
    "LogoutOptions",
    "PKCEChallenge",
    "TokenSet",
    # PKCE
    "compute_code_challenge",
    "generate_pkce_challenge",
    "generate_random_string",
    # Lifecycle
    "EventBus",
    "decode_jwt_claims",
    "AuthorizationURLBuilder",
    "exchange_code",
    "refresh_tokens",
    "revoke_token",
    "AuthManager",
]
