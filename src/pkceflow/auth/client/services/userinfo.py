"""OIDC userinfo endpoint client (OpenID Connect Core 1.0, Section 5.3)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pkceflow.auth.client.models.errors import UserInfoError

logger = logging.getLogger(__name__)


class UserInfoClient:
    def __init__(
        self,
        userinfo_endpoint: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.userinfo_endpoint = userinfo_endpoint
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> UserInfoClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def fetch(
        self, access_token: str, userinfo_endpoint: str | None = None
    ) -> dict[str, Any]:
        """Fetch claims about the authenticated user.

        Raises:
            UserInfoError: On transport failure, non-2xx status, or a body
                that is not a JSON object with a ``sub`` claim
        """
        endpoint = userinfo_endpoint or self.userinfo_endpoint
        if not endpoint:
            raise UserInfoError("No userinfo endpoint configured")

        logger.debug(f"Fetching user info from {endpoint}")

        try:
            response = await self._http_client.get(
                endpoint,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise UserInfoError(f"HTTP error fetching user info: {e}") from e

        if not 200 <= response.status_code < 300:
            raise UserInfoError(f"Failed to get user info: HTTP {response.status_code}")

        try:
            claims = response.json()
        except ValueError as e:
            raise UserInfoError(f"User info response is not valid JSON: {e}") from e

        if not isinstance(claims, dict) or "sub" not in claims:
            raise UserInfoError("User info response missing required sub claim")

        return claims

    async def close(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()
