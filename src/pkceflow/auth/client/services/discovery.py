"""OpenID Connect provider discovery.

Fetches ``/.well-known/openid-configuration`` (OpenID Connect Discovery 1.0)
so endpoint URLs need not be configured by hand.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from pkceflow.auth.client.models.discovery import ProviderMetadata
from pkceflow.auth.client.models.errors import DiscoveryError

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


class OIDCDiscovery:
    """Resolves provider metadata from an issuer URL."""

    def __init__(
        self, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize OIDC discovery.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Optional pre-configured client (not closed by us)
        """
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> OIDCDiscovery:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @staticmethod
    def build_discovery_url(issuer: str) -> str:
        """Append the well-known path to the issuer, keeping any issuer path.

        OIDC Discovery Section 4: the issuer's path component is kept and the
        well-known suffix is appended to it.
        """
        return f"{issuer.rstrip('/')}{WELL_KNOWN_PATH}"

    async def fetch_metadata(self, issuer: str) -> ProviderMetadata:
        """Fetch and validate the provider's openid-configuration.

        Args:
            issuer: Provider issuer URL

        Returns:
            Parsed provider metadata

        Raises:
            DiscoveryError: If the document cannot be fetched or parsed
        """
        url = self.build_discovery_url(issuer)

        try:
            logger.debug(f"Fetching provider metadata from: {url}")
            response = await self._http_client.get(
                url, headers={"Accept": "application/json"}
            )
            response.raise_for_status()

            metadata = ProviderMetadata.model_validate_json(response.text)

            logger.debug(f"Discovered provider metadata for issuer {metadata.issuer}")
            return metadata

        except httpx.HTTPStatusError as e:
            raise DiscoveryError(
                f"Failed to fetch provider metadata from {url}: {e}"
            ) from e
        except httpx.HTTPError as e:
            raise DiscoveryError(f"HTTP error fetching provider metadata: {e}") from e
        except ValidationError as e:
            raise DiscoveryError(f"Invalid provider metadata from {url}: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client:
            await self._http_client.aclose()
