"""Typed credential access on top of a storage adapter"""

import json
import logging
from typing import Optional

import settings
from oauth.models import TokenSet
from .storage import StorageAdapter

logger = logging.getLogger(__name__)

TOKENS_KEY = f"{settings.STORAGE_KEY_PREFIX}.tokens"
PKCE_VERIFIER_KEY = f"{settings.STORAGE_KEY_PREFIX}.pkce_verifier"
STATE_KEY = f"{settings.STORAGE_KEY_PREFIX}.state"


class CredentialStore:
    """Stores the token set, the PKCE verifier and the anti-CSRF state

    The token set is serialized as one JSON document so it is always written
    and read as a unit. The verifier and state are stored as plain strings.
    A corrupt token entry is reported as absent rather than raised.
    """

    def __init__(self, storage: StorageAdapter):
        self.storage = storage

    # Token set
    def get_tokens(self) -> Optional[TokenSet]:
        raw = self.storage.get(TOKENS_KEY)
        if raw is None:
            return None
        try:
            return TokenSet.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed stored token set: {e}")
            return None

    def set_tokens(self, tokens: TokenSet) -> None:
        self.storage.set(TOKENS_KEY, json.dumps(tokens.to_dict()))

    def clear_tokens(self) -> None:
        self.storage.remove(TOKENS_KEY)

    # PKCE verifier
    def get_pkce_verifier(self) -> Optional[str]:
        return self.storage.get(PKCE_VERIFIER_KEY) or None

    def set_pkce_verifier(self, verifier: str) -> None:
        self.storage.set(PKCE_VERIFIER_KEY, verifier)

    def clear_pkce_verifier(self) -> None:
        self.storage.remove(PKCE_VERIFIER_KEY)

    # Anti-CSRF state
    def get_state(self) -> Optional[str]:
        return self.storage.get(STATE_KEY) or None

    def set_state(self, state: str) -> None:
        self.storage.set(STATE_KEY, state)

    def clear_state(self) -> None:
        self.storage.remove(STATE_KEY)

    def clear(self) -> None:
        """Remove all three credential slots"""
        self.clear_tokens()
        self.clear_pkce_verifier()
        self.clear_state()
