"""PKCE (Proof Key for Code Exchange) and random string generation"""

import base64
import hashlib
import secrets
import string

from .models import PKCEChallenge

# RFC 3986 unreserved characters
UNRESERVED_CHARACTERS = string.ascii_letters + string.digits + "-._~"

# RFC 7636 section 4.1
MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128


def generate_random_string(length: int) -> str:
    """Generate a URL-safe random string from a CSPRNG

    Used both for the anti-CSRF state value and for PKCE verifiers.

    Args:
        length: Number of characters to produce

    Returns:
        String of exactly ``length`` unreserved characters
    """
    if length < 1:
        raise ValueError("length must be a positive integer")
    return "".join(secrets.choice(UNRESERVED_CHARACTERS) for _ in range(length))


def compute_code_challenge(verifier: str) -> str:
    """Derive the S256 code challenge: base64url(sha256(verifier)) without padding"""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_pkce_challenge(length: int = 64) -> PKCEChallenge:
    """Generate a PKCE verifier and its S256 challenge

    Pure function; persisting the verifier is the caller's job.

    Args:
        length: Verifier length, 43 to 128 characters

    Returns:
        PKCEChallenge with verifier, challenge and method "S256"
    """
    if not MIN_VERIFIER_LENGTH <= length <= MAX_VERIFIER_LENGTH:
        raise ValueError(
            f"PKCE verifier length must be between {MIN_VERIFIER_LENGTH} and {MAX_VERIFIER_LENGTH}"
        )

    verifier = generate_random_string(length)
    return PKCEChallenge(verifier=verifier, challenge=compute_code_challenge(verifier))
