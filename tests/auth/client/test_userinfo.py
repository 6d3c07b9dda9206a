from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from pkceflow.auth.client.models.errors import UserInfoError
from pkceflow.auth.client.services.userinfo import UserInfoClient

USERINFO_ENDPOINT = "https://auth.example.com/oidc/me"


class TestUserInfoClient:
    def setup_method(self):
        self.client = UserInfoClient(userinfo_endpoint=USERINFO_ENDPOINT)
        self.client._http_client = AsyncMock()

    def respond(self, status_code: int, body=None, invalid_json: bool = False):
        mock_response = MagicMock()
        mock_response.status_code = status_code
        if invalid_json:
            mock_response.json.side_effect = ValueError("Expecting value")
        else:
            mock_response.json.return_value = body
        self.client._http_client.get.return_value = mock_response

    async def test_fetch_claims_with_bearer_token(self):
        # Arrange
        self.respond(200, {"sub": "user-1", "name": "Test User"})

        # Act
        claims = await self.client.fetch("access-xyz")

        # Assert
        assert claims == {"sub": "user-1", "name": "Test User"}
        call_args = self.client._http_client.get.call_args
        assert call_args.args[0] == USERINFO_ENDPOINT
        assert call_args.kwargs["headers"]["Authorization"] == "Bearer access-xyz"

    async def test_unauthorized_raises(self):
        self.respond(401, {"error": "invalid_token"})

        with pytest.raises(UserInfoError, match="HTTP 401"):
            await self.client.fetch("expired")

    async def test_missing_sub_raises(self):
        self.respond(200, {"name": "No Subject"})

        with pytest.raises(UserInfoError, match="sub"):
            await self.client.fetch("access-xyz")

    async def test_invalid_json_raises(self):
        self.respond(200, invalid_json=True)

        with pytest.raises(UserInfoError):
            await self.client.fetch("access-xyz")

    async def test_transport_error_raises(self):
        self.client._http_client.get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(UserInfoError):
            await self.client.fetch("access-xyz")

    async def test_no_endpoint_configured(self):
        client = UserInfoClient()
        client._http_client = AsyncMock()

        with pytest.raises(UserInfoError, match="No userinfo endpoint"):
            await client.fetch("access-xyz")
