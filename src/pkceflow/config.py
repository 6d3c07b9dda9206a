"""Client configuration using pydantic-settings.

Values come from keyword arguments or ``PKCEFLOW_``-prefixed environment
variables. Example: PKCEFLOW_CLIENT_ID, PKCEFLOW_REDIRECT_URI,
PKCEFLOW_ISSUER.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pkceflow.auth.client.models.discovery import ProviderMetadata
from pkceflow.auth.client.models.errors import ConfigurationError
from pkceflow.auth.client.primitives.security import validate_redirect_uri

# Endpoint paths below the issuer when neither explicit URLs nor discovery
# metadata are available.
DEFAULT_ENDPOINT_PATHS = {
    "authorization_endpoint": "/auth",
    "token_endpoint": "/token",
    "userinfo_endpoint": "/me",
    "introspection_endpoint": "/introspection",
    "revocation_endpoint": "/token/revocation",
    "end_session_endpoint": "/session/end",
}


class ClientSettings(BaseSettings):
    """Public OIDC client configuration.

    Environment prefix: PKCEFLOW_
    Example: PKCEFLOW_CLIENT_ID=partner-dashboard
    """

    model_config = SettingsConfigDict(
        env_prefix="PKCEFLOW_",
        extra="ignore",
    )

    client_id: str = Field(description="Registered public client identifier")
    redirect_uri: str = Field(
        description=(
            "Callback URL, sent byte-for-byte in both the authorization "
            "request and the token exchange"
        ),
    )
    issuer: str = Field(
        default="",
        description="Provider issuer URL, base for discovery and default endpoints",
    )

    # Explicit endpoints override issuer-relative defaults
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    userinfo_endpoint: str | None = None
    introspection_endpoint: str | None = None
    revocation_endpoint: str | None = None
    end_session_endpoint: str | None = None

    scope: str = Field(
        default="openid profile email offline_access",
        description="Space-separated scopes to request",
    )
    post_logout_redirect_uri: str | None = None

    timeout: float = Field(
        default=30.0,
        ge=10.0,
        le=120.0,
        description="Seconds before any provider call is abandoned",
    )
    verifier_length: int = Field(default=128, ge=43, le=128)

    @field_validator("redirect_uri")
    @classmethod
    def validate_redirect(cls, v: str) -> str:
        if not validate_redirect_uri(v):
            raise ValueError(f"Redirect URI must use HTTPS or a loopback host: {v}")
        return v

    @field_validator("issuer")
    @classmethod
    def strip_issuer_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def endpoint(self, name: str) -> str:
        """Resolve an endpoint URL by metadata name.

        Raises:
            ConfigurationError: If the endpoint is neither set nor derivable
        """
        if name not in DEFAULT_ENDPOINT_PATHS:
            raise ConfigurationError(f"Unknown endpoint: {name}")

        explicit = getattr(self, name)
        if explicit:
            return explicit
        if not self.issuer:
            raise ConfigurationError(
                f"{name} is not configured and no issuer is set to derive it from"
            )
        return f"{self.issuer}{DEFAULT_ENDPOINT_PATHS[name]}"

    def with_metadata(self, metadata: ProviderMetadata) -> ClientSettings:
        """Return a copy whose unset endpoints come from discovery metadata."""
        updates = {}
        for name in DEFAULT_ENDPOINT_PATHS:
            discovered = getattr(metadata, name, None)
            if getattr(self, name) is None and discovered:
                updates[name] = discovered
        if not self.issuer:
            updates["issuer"] = metadata.issuer.rstrip("/")
        return self.model_copy(update=updates)
