"""Tests for client configuration."""

import pytest
from pydantic import ValidationError

from pkceflow.auth.client.models.discovery import ProviderMetadata
from pkceflow.auth.client.models.errors import ConfigurationError
from pkceflow.config import ClientSettings


def make_settings(**overrides) -> ClientSettings:
    values = {
        "client_id": "client-1",
        "redirect_uri": "http://localhost:3000/auth/callback",
        "issuer": "http://localhost:4001/oidc/",
    }
    values.update(overrides)
    return ClientSettings(**values)


class TestClientSettings:
    def test_defaults(self):
        settings = make_settings()

        assert settings.issuer == "http://localhost:4001/oidc"
        assert settings.scope == "openid profile email offline_access"
        assert settings.timeout == 30.0
        assert settings.verifier_length == 128

    def test_environment_variables(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("PKCEFLOW_CLIENT_ID", "env-client")
        monkeypatch.setenv("PKCEFLOW_REDIRECT_URI", "https://app.example.com/cb")
        monkeypatch.setenv("PKCEFLOW_TIMEOUT", "15")

        # Act
        settings = ClientSettings()

        # Assert
        assert settings.client_id == "env-client"
        assert settings.redirect_uri == "https://app.example.com/cb"
        assert settings.timeout == 15.0

    def test_client_id_and_redirect_uri_are_required(self, monkeypatch):
        monkeypatch.delenv("PKCEFLOW_CLIENT_ID", raising=False)
        monkeypatch.delenv("PKCEFLOW_REDIRECT_URI", raising=False)

        with pytest.raises(ValidationError):
            ClientSettings()

    @pytest.mark.parametrize(
        "redirect_uri",
        ["http://app.example.com/cb", "ftp://localhost/cb", "not-a-url"],
    )
    def test_insecure_redirect_uri_rejected(self, redirect_uri):
        with pytest.raises(ValidationError):
            make_settings(redirect_uri=redirect_uri)

    @pytest.mark.parametrize("field,value", [("timeout", 5), ("verifier_length", 42)])
    def test_bounds(self, field, value):
        with pytest.raises(ValidationError):
            make_settings(**{field: value})


class TestEndpointResolution:
    def test_issuer_relative_defaults(self):
        settings = make_settings()

        assert settings.endpoint("authorization_endpoint") == (
            "http://localhost:4001/oidc/auth"
        )
        assert settings.endpoint("revocation_endpoint") == (
            "http://localhost:4001/oidc/token/revocation"
        )
        assert settings.endpoint("introspection_endpoint") == (
            "http://localhost:4001/oidc/introspection"
        )

    def test_explicit_endpoint_wins(self):
        settings = make_settings(token_endpoint="https://tokens.example.com/t")

        assert settings.endpoint("token_endpoint") == "https://tokens.example.com/t"

    def test_missing_issuer_raises(self):
        settings = make_settings(issuer="")

        with pytest.raises(ConfigurationError):
            settings.endpoint("token_endpoint")

    def test_unknown_endpoint_raises(self):
        with pytest.raises(ConfigurationError):
            make_settings().endpoint("jwks_uri")

    def test_with_metadata_fills_only_unset_endpoints(self):
        # Arrange
        settings = make_settings(issuer="", token_endpoint="https://mine/token")
        metadata = ProviderMetadata(
            issuer="https://auth.example.com/",
            authorization_endpoint="https://auth.example.com/authorize",
            token_endpoint="https://auth.example.com/token",
            response_types_supported=["code"],
        )

        # Act
        updated = settings.with_metadata(metadata)

        # Assert
        assert updated.issuer == "https://auth.example.com"
        assert updated.endpoint("authorization_endpoint") == (
            "https://auth.example.com/authorize"
        )
        assert updated.endpoint("token_endpoint") == "https://mine/token"
        assert updated.endpoint("userinfo_endpoint") == "https://auth.example.com/me"
        assert settings.authorization_endpoint is None
