"""OpenID Provider Metadata (OpenID Connect Discovery 1.0, Section 3)."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ProviderMetadata(BaseModel):
    """Subset of the openid-configuration document the client relies on.

    Unknown members are preserved so callers can display the full document.
    """

    model_config = {"extra": "allow"}

    # Required by OIDC Discovery
    issuer: str
    authorization_endpoint: str
    token_endpoint: str | None = None
    response_types_supported: list[str] = Field(min_length=1)

    userinfo_endpoint: str | None = None
    introspection_endpoint: str | None = None
    revocation_endpoint: str | None = None
    end_session_endpoint: str | None = None
    jwks_uri: str | None = None

    scopes_supported: list[str] | None = None
    grant_types_supported: list[str] = Field(
        default=["authorization_code", "implicit"]
    )
    code_challenge_methods_supported: list[str] | None = None

    @field_validator("code_challenge_methods_supported")
    @classmethod
    def validate_pkce_support(cls, v: list[str] | None) -> list[str] | None:
        # Absent means "not advertised", which many providers still honor.
        if v is not None and "S256" not in v:
            raise ValueError("Provider must support S256 PKCE method")
        return v
