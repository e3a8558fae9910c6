"""
JWT claim decoding for ID tokens
"""
import base64
import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def decode_jwt_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decode the payload of a JWT without verifying its signature.

    The claims are informational only (display name, email, subject); the
    token itself was received directly from the token endpoint over TLS.

    Args:
        token: JWT string (header.payload.signature)

    Returns:
        Decoded payload as dictionary, or None if the token is not a JWT
    """
    if not token or token.count(".") != 2:
        return None

    try:
        _, payload, _ = token.split(".")
        # JWT uses base64url without padding
        padded = payload + "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (ValueError, UnicodeError) as e:
        logger.debug(f"Could not decode JWT payload: {e}")
        return None

    return claims if isinstance(claims, dict) else None
