"""Data models for the AppKit OAuth lifecycle"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class AuthState(str, Enum):
    """Lifecycle state, derived from stored evidence rather than persisted"""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class PKCEChallenge:
    """PKCE (Proof Key for Code Exchange) codes for one login attempt

    Attributes:
        verifier: Random secret kept by the client until the code exchange
        challenge: base64url(sha256(verifier)), sent in the authorize request
        method: Challenge method, always S256
    """
    verifier: str
    challenge: str
    method: str = "S256"


@dataclass(frozen=True)
class TokenSet:
    """OAuth tokens issued by the identity platform

    Written and read as a single unit; a refresh replaces the whole set.

    Attributes:
        access_token: Bearer token for API calls
        token_type: Token type reported by the platform (usually Bearer)
        expires_at: POSIX timestamp computed at issuance as now + expires_in
        refresh_token: Token for obtaining new access tokens
        id_token: OIDC ID token carrying identity claims
        scope: Granted scope, space separated
    """
    access_token: str
    expires_at: float
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    scope: Optional[str] = None

    def is_expired(self, skew: float = 0.0, now: Optional[float] = None) -> bool:
        """Check whether the access token is expired, ``skew`` seconds early"""
        current = time.time() if now is None else now
        return current >= self.expires_at - skew

    def expires_in(self, now: Optional[float] = None) -> float:
        """Seconds remaining until expires_at (negative once expired)"""
        current = time.time() if now is None else now
        return self.expires_at - current

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "id_token": self.id_token,
            "token_type": self.token_type,
            "scope": self.scope,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenSet":
        """Load from a stored dictionary

        Raises:
            KeyError, TypeError, ValueError: If the dictionary is malformed
        """
        access_token = data["access_token"]
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("access_token must be a non-empty string")
        return cls(
            access_token=access_token,
            expires_at=float(data["expires_at"]),
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token"),
            id_token=data.get("id_token"),
            scope=data.get("scope"),
        )

    @classmethod
    def from_token_response(
        cls,
        payload: Dict[str, Any],
        default_expires_in: int = 3600,
        previous_refresh_token: Optional[str] = None,
        now: Optional[float] = None,
    ) -> "TokenSet":
        """Build a token set from a token endpoint response body

        Args:
            payload: Parsed JSON body of the token endpoint
            default_expires_in: Lifetime used when expires_in is missing
            previous_refresh_token: Kept when the platform does not rotate
            now: Issuance time (defaults to the current time)

        Raises:
            ValueError: If the payload has no usable access_token
        """
        if not isinstance(payload, dict):
            raise ValueError("token response is not a JSON object")

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("token response is missing access_token")

        expires_in = payload.get("expires_in")
        try:
            expires_in = float(expires_in) if expires_in is not None else float(default_expires_in)
        except (TypeError, ValueError):
            expires_in = float(default_expires_in)

        issued_at = time.time() if now is None else now
        return cls(
            access_token=access_token,
            expires_at=issued_at + expires_in,
            token_type=payload.get("token_type") or "Bearer",
            refresh_token=payload.get("refresh_token") or previous_refresh_token,
            id_token=payload.get("id_token"),
            scope=payload.get("scope"),
        )


@dataclass
class AuthUrlOptions:
    """Options for building an authorization URL"""
    redirect_uri: Optional[str] = None
    scope: Optional[str] = None
    state: Optional[str] = None
    login_hint: Optional[str] = None
    prompt: Optional[str] = None
    extra_params: Dict[str, str] = field(default_factory=dict)


@dataclass
class LogoutOptions:
    """Options for logging out

    Attributes:
        revoke_token: Revoke the refresh token on the platform (best effort)
        post_logout_redirect_uri: Navigate to the end-session endpoint with
            this redirect after clearing local state
    """
    revoke_token: bool = True
    post_logout_redirect_uri: Optional[str] = None


@dataclass(frozen=True)
class CallbackResult:
    """Outcome of a successful callback exchange

    Attributes:
        tokens: Newly stored token set
        state: State value returned by the platform
        user: Unverified ID token claims, when an ID token was issued
    """
    tokens: TokenSet
    state: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
