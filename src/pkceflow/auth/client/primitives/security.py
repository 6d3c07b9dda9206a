"""Security utilities for the authorization code flow.

Provides the state parameter used for CSRF protection and redirect URI
checks.
"""

from __future__ import annotations

import secrets
from urllib.parse import urlparse

from pkceflow.auth.client.models.errors import StateValidationError
from pkceflow.auth.client.primitives.pkce import UNRESERVED_CHARACTERS

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}


def generate_state(length: int = 32) -> str:
    """Generate cryptographically secure state parameter.

    Returns:
        Random state string drawn from the unreserved character set
    """
    return "".join(secrets.choice(UNRESERVED_CHARACTERS) for _ in range(length))


def validate_state(expected: str, actual: str | None) -> None:
    """Validate state parameter matches expected value.

    Args:
        expected: State parameter from original authorization request
        actual: State parameter from callback URL

    Raises:
        StateValidationError: If state is missing or doesn't match
    """
    if actual is None:
        raise StateValidationError(
            "Authorization server callback missing required state parameter"
        )
    # compare_digest only accepts ASCII str
    if not secrets.compare_digest(expected.encode("utf-8"), actual.encode("utf-8")):
        raise StateValidationError("State parameter mismatch - possible CSRF attack")


def validate_redirect_uri(uri: str) -> bool:
    """Validate redirect URI is HTTPS or plain HTTP on a loopback host."""
    parsed = urlparse(uri)
    if parsed.scheme == "https":
        return bool(parsed.netloc)
    return parsed.scheme == "http" and parsed.hostname in LOOPBACK_HOSTS
