"""Token models for the OIDC code flow.

Contains the token endpoint request shapes, the raw token endpoint
response, and the Token Set kept for the rest of the session.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

from pydantic import BaseModel, Field


def encode_form(data: dict[str, str]) -> str:
    """Encode form fields as application/x-www-form-urlencoded.

    Uses standard percent-encoding (space becomes ``%20``, not ``+``).
    """
    return urlencode(data, quote_via=quote)


class TokenSet(BaseModel):
    """Tokens returned by a successful exchange or refresh.

    Created only from a fully validated token endpoint response and kept
    client-side until logout or revocation.
    """

    access_token: str
    id_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds, as issued
    scope: str | None = None
    issued_at: float = Field(default_factory=time.time)
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def expires_at(self) -> float | None:
        """Unix timestamp when the access token expires, or None."""
        if self.expires_in is None:
            return None
        return self.issued_at + self.expires_in

    def is_expired(self, buffer_seconds: float = 30.0) -> bool:
        """Check if the access token is expired or about to expire.

        Args:
            buffer_seconds: Treat the token as expired this many seconds early
        """
        if self.expires_at is None:
            return False
        return time.time() >= (self.expires_at - buffer_seconds)

    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    def with_fallback_refresh_token(self, previous: TokenSet) -> TokenSet:
        """Keep the previous refresh and ID tokens when a refresh omits them."""
        updates: dict[str, Any] = {}
        if self.refresh_token is None:
            updates["refresh_token"] = previous.refresh_token
        if self.id_token is None:
            updates["id_token"] = previous.id_token
        return self.model_copy(update=updates) if updates else self


class TokenResponse(BaseModel):
    """Token endpoint response (RFC 6749 Section 5).

    Represents both successful responses (Section 5.1) and error
    responses (Section 5.2).
    """

    # Success response fields (RFC 6749 Section 5.1, OIDC Core 3.1.3.3)
    access_token: str | None = None
    id_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str | None = None

    # Error response fields (RFC 6749 Section 5.2)
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        """Check if token response indicates success."""
        return self.error is None and self.access_token is not None

    def is_error(self) -> bool:
        """Check if token response indicates an error."""
        return self.error is not None

    def to_token_set(self, raw: dict[str, Any] | None = None) -> TokenSet:
        """Convert a successful response into a TokenSet.

        Raises:
            ValueError: If response is not successful
        """
        if not self.is_success():
            raise ValueError("Cannot convert error response to TokenSet")

        return TokenSet(
            access_token=self.access_token,
            id_token=self.id_token,
            refresh_token=self.refresh_token,
            token_type=self.token_type,
            expires_in=self.expires_in,
            scope=self.scope,
            raw=raw or {},
        )


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange parameters (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636). The redirect URI must be
    byte-for-byte the one used in the authorization request.
    """

    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    code_verifier: str  # RFC 7636 PKCE

    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request."""
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "code_verifier": self.code_verifier,
        }


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request parameters (RFC 6749 Section 6)."""

    token_endpoint: str
    refresh_token: str
    client_id: str

    grant_type: str = "refresh_token"
    scope: str | None = None

    def to_form_data(self) -> dict[str, str]:
        data = {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
        }

        if self.scope:
            data["scope"] = self.scope

        return data


@dataclass(frozen=True)
class RevocationRequest:
    """Token revocation request parameters (RFC 7009 Section 2.1)."""

    revocation_endpoint: str
    token: str
    client_id: str
    token_type_hint: str | None = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        data = {"token": self.token, "client_id": self.client_id}
        if self.token_type_hint:
            data["token_type_hint"] = self.token_type_hint
        return data


@dataclass(frozen=True)
class IntrospectionRequest:
    """Token introspection request parameters (RFC 7662 Section 2.1)."""

    introspection_endpoint: str
    token: str
    client_id: str
    token_type_hint: str | None = None

    def to_form_data(self) -> dict[str, str]:
        data = {"token": self.token, "client_id": self.client_id}
        if self.token_type_hint:
            data["token_type_hint"] = self.token_type_hint
        return data


class IntrospectionResponse(BaseModel):
    """Token introspection response (RFC 7662 Section 2.2)."""

    model_config = {"extra": "allow"}

    active: bool
    scope: str | None = None
    client_id: str | None = None
    username: str | None = None
    token_type: str | None = None
    exp: int | None = None
    iat: int | None = None
    sub: str | None = None
    aud: str | list[str] | None = None
    iss: str | None = None
