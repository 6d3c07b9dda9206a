"""PKCE (Proof Key for Code Exchange) primitives.

Implements RFC 7636 verifier generation and S256 challenge derivation.
Everything here is pure: no I/O, and the caller owns persistence of the
verifier between the authorization redirect and the token exchange.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string

from pkceflow.auth.client.models.errors import PKCEError
from pkceflow.auth.client.models.security import (
    MAX_VERIFIER_LENGTH,
    MIN_VERIFIER_LENGTH,
    PKCEParameters,
)

# RFC 7636 Section 4.1 unreserved characters, 66 symbols
UNRESERVED_CHARACTERS = (
    string.ascii_uppercase + string.ascii_lowercase + string.digits + "-._~"
)

DEFAULT_VERIFIER_LENGTH = MAX_VERIFIER_LENGTH


def generate_code_verifier(length: int = DEFAULT_VERIFIER_LENGTH) -> str:
    """Generate a cryptographically secure code verifier.

    Each character comes from one byte of ``secrets.token_bytes`` reduced
    modulo 66. Since 256 = 3 * 66 + 58, the first 58 symbols are drawn with
    probability 4/256 and the last 8 with 3/256. At 128 characters the
    verifier still carries well over 700 bits of entropy, far above the
    256 bits RFC 7636 asks for.

    Args:
        length: Verifier length, 43-128 inclusive

    Returns:
        The code verifier

    Raises:
        PKCEError: If length is out of range
    """
    if not (MIN_VERIFIER_LENGTH <= length <= MAX_VERIFIER_LENGTH):
        raise PKCEError(
            f"code_verifier length must be {MIN_VERIFIER_LENGTH}-"
            f"{MAX_VERIFIER_LENGTH}, got {length}"
        )

    random_bytes = secrets.token_bytes(length)
    alphabet_size = len(UNRESERVED_CHARACTERS)
    return "".join(UNRESERVED_CHARACTERS[b % alphabet_size] for b in random_bytes)


def derive_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

    Args:
        code_verifier: The code verifier to hash

    Returns:
        Base64url-encoded SHA-256 digest with ``=`` padding stripped

    Raises:
        PKCEError: If the verifier is not pure ASCII
    """
    try:
        verifier_bytes = code_verifier.encode("ascii")
    except UnicodeEncodeError as e:
        raise PKCEError("code_verifier must be ASCII") from e

    digest = hashlib.sha256(verifier_bytes).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_pkce_pair(length: int = DEFAULT_VERIFIER_LENGTH) -> PKCEParameters:
    """Generate a fresh verifier and its derived challenge.

    The result unpacks as ``verifier, challenge = generate_pkce_pair()``.

    Raises:
        PKCEError: If parameter generation fails
    """
    code_verifier = generate_code_verifier(length)
    code_challenge = derive_code_challenge(code_verifier)

    try:
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=code_challenge,
            code_challenge_method="S256",
        )
    except ValueError as e:
        raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e
