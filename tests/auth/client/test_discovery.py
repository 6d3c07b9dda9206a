"""Tests for OIDC provider discovery."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from pkceflow.auth.client.models.errors import DiscoveryError
from pkceflow.auth.client.services.discovery import OIDCDiscovery

METADATA = """{
    "issuer": "https://auth.example.com/oidc",
    "authorization_endpoint": "https://auth.example.com/oidc/auth",
    "token_endpoint": "https://auth.example.com/oidc/token",
    "userinfo_endpoint": "https://auth.example.com/oidc/me",
    "end_session_endpoint": "https://auth.example.com/oidc/session/end",
    "response_types_supported": ["code"],
    "code_challenge_methods_supported": ["S256"],
    "claims_supported": ["sub", "email"]
}"""


class TestDiscoveryUrl:
    @pytest.mark.parametrize(
        "issuer,expected",
        [
            (
                "https://auth.example.com",
                "https://auth.example.com/.well-known/openid-configuration",
            ),
            (
                "https://auth.example.com/oidc/",
                "https://auth.example.com/oidc/.well-known/openid-configuration",
            ),
        ],
    )
    def test_build_discovery_url(self, issuer, expected):
        assert OIDCDiscovery.build_discovery_url(issuer) == expected


class TestFetchMetadata:
    def setup_method(self):
        self.discovery = OIDCDiscovery()
        self.discovery._http_client = AsyncMock()

    def respond(self, status_code: int, text: str) -> None:
        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.text = text
        mock_response.raise_for_status = MagicMock()
        if status_code >= 400:
            mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
                f"{status_code}", request=MagicMock(), response=mock_response
            )
        self.discovery._http_client.get.return_value = mock_response

    async def test_successful_discovery(self):
        # Arrange
        self.respond(200, METADATA)

        # Act
        metadata = await self.discovery.fetch_metadata("https://auth.example.com/oidc")

        # Assert
        assert metadata.token_endpoint == "https://auth.example.com/oidc/token"
        assert metadata.end_session_endpoint == (
            "https://auth.example.com/oidc/session/end"
        )
        assert metadata.model_extra["claims_supported"] == ["sub", "email"]
        self.discovery._http_client.get.assert_awaited_once()
        assert self.discovery._http_client.get.call_args.args[0] == (
            "https://auth.example.com/oidc/.well-known/openid-configuration"
        )

    async def test_http_error_raises_discovery_error(self):
        self.respond(404, "not found")

        with pytest.raises(DiscoveryError, match="Failed to fetch"):
            await self.discovery.fetch_metadata("https://auth.example.com")

    async def test_invalid_document_raises_discovery_error(self):
        self.respond(200, '{"issuer": "https://auth.example.com"}')

        with pytest.raises(DiscoveryError, match="Invalid provider metadata"):
            await self.discovery.fetch_metadata("https://auth.example.com")

    async def test_provider_without_s256_is_rejected(self):
        self.respond(
            200,
            METADATA.replace('["S256"]', '["plain"]'),
        )

        with pytest.raises(DiscoveryError):
            await self.discovery.fetch_metadata("https://auth.example.com/oidc")

    async def test_network_error_raises_discovery_error(self):
        self.discovery._http_client.get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(DiscoveryError):
            await self.discovery.fetch_metadata("https://auth.example.com")
