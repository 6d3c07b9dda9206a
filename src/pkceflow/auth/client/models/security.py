"""Security-related models for the PKCE flow.

Contains the verifier/challenge pair produced before the authorization
redirect.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128


@dataclass(frozen=True)
class PKCEParameters:
    """PKCE (Proof Key for Code Exchange) parameters (RFC 7636).

    Immutable pair generated for each authorization flow. Iterating yields
    ``(code_verifier, code_challenge)`` so the pair unpacks directly.
    """

    code_verifier: str = field(repr=False)
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not (
            MIN_VERIFIER_LENGTH <= len(self.code_verifier) <= MAX_VERIFIER_LENGTH
        ):
            raise ValueError("code_verifier must be 43-128 characters")
        if not (
            MIN_VERIFIER_LENGTH <= len(self.code_challenge) <= MAX_VERIFIER_LENGTH
        ):
            raise ValueError("code_challenge must be 43-128 characters")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")

    def __iter__(self) -> Iterator[str]:
        yield self.code_verifier
        yield self.code_challenge
