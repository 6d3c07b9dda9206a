"""Token endpoint service for the authorization code + PKCE flow.

Implements RFC 6749 code exchange and refresh with the RFC 7636
code_verifier, plus RFC 7662 introspection and RFC 7009 revocation.
Nothing is retried: authorization codes are single-use, so a failed
exchange can only be recovered by starting a new login flow.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from pkceflow.auth.client.models.errors import (
    ConfigurationError,
    ExchangeRejectedError,
    MalformedResponseError,
    MissingVerifierError,
    TransportFailureError,
)
from pkceflow.auth.client.models.tokens import (
    IntrospectionRequest,
    IntrospectionResponse,
    RefreshTokenRequest,
    RevocationRequest,
    TokenRequest,
    TokenResponse,
    TokenSet,
    encode_form,
)

logger = logging.getLogger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


class OAuth2TokenManager:
    """Manages token endpoint interactions for a public client.

    Handles:
    - Authorization code to token exchange (RFC 6749 Section 4.1.3)
    - Access token refresh (RFC 6749 Section 6)
    - Token introspection (RFC 7662)
    - Token revocation (RFC 7009)

    Request bodies use application/x-www-form-urlencoded with standard
    percent-encoding.
    """

    def __init__(
        self,
        token_endpoint: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the token manager.

        Args:
            token_endpoint: Default token endpoint URL
            timeout: HTTP request timeout in seconds
            http_client: Optional pre-configured client (not closed by us)
        """
        self.token_endpoint = token_endpoint
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> OAuth2TokenManager:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def exchange_code(
        self,
        code: str,
        verifier: str | None,
        redirect_uri: str,
        client_id: str,
        token_endpoint: str | None = None,
    ) -> TokenSet:
        """Exchange an authorization code for a Token Set.

        Args:
            code: Authorization code from the redirect
            verifier: Code verifier stored when the flow started
            redirect_uri: Exactly the redirect URI sent to the authorizer
            client_id: Public client identifier
            token_endpoint: Overrides the manager's default endpoint

        Returns:
            TokenSet: Validated tokens; persisting them is the caller's job

        Raises:
            MissingVerifierError: No verifier; no request was sent
            ExchangeRejectedError: Non-2xx response from the token endpoint
            MalformedResponseError: 2xx response without a usable body
            TransportFailureError: Network error or timeout
        """
        if not verifier:
            raise MissingVerifierError(
                "Code verifier not found. Start the login flow again."
            )

        token_request = TokenRequest(
            token_endpoint=self._resolve_endpoint(token_endpoint),
            code=code,
            redirect_uri=redirect_uri,
            client_id=client_id,
            code_verifier=verifier,
        )
        return await self.exchange_code_for_token(token_request)

    async def exchange_code_for_token(self, token_request: TokenRequest) -> TokenSet:
        """Send a prepared TokenRequest to its token endpoint."""
        if not token_request.code_verifier:
            raise MissingVerifierError(
                "Code verifier not found. Start the login flow again."
            )

        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        form_data = token_request.to_form_data()

        # Log request details (without sensitive data)
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}, "
            f"redirect_uri={form_data['redirect_uri']}"
        )

        response = await self._post_form(token_request.token_endpoint, form_data)
        token_set = self._parse_token_response(response)
        logger.info("Token exchange successful")
        return token_set

    async def refresh_access_token(
        self,
        refresh_token: str,
        client_id: str,
        token_endpoint: str | None = None,
        scope: str | None = None,
    ) -> TokenSet:
        """Refresh an access token (RFC 6749 Section 6).

        The returned set has ``refresh_token=None`` when the provider did not
        rotate it; merge with the previous set to keep the old one.

        Raises:
            ExchangeRejectedError, MalformedResponseError, TransportFailureError
        """
        refresh_request = RefreshTokenRequest(
            token_endpoint=self._resolve_endpoint(token_endpoint),
            refresh_token=refresh_token,
            client_id=client_id,
            scope=scope,
        )

        logger.debug(f"Refreshing access token at {refresh_request.token_endpoint}")

        response = await self._post_form(
            refresh_request.token_endpoint, refresh_request.to_form_data()
        )
        token_set = self._parse_token_response(response)
        logger.info("Token refresh successful")
        return token_set

    async def introspect_token(
        self,
        token: str,
        client_id: str,
        introspection_endpoint: str,
        token_type_hint: str | None = None,
    ) -> IntrospectionResponse:
        """Ask the provider whether a token is active (RFC 7662).

        Raises:
            ExchangeRejectedError, MalformedResponseError, TransportFailureError
        """
        request = IntrospectionRequest(
            introspection_endpoint=introspection_endpoint,
            token=token,
            client_id=client_id,
            token_type_hint=token_type_hint,
        )

        logger.debug(f"Introspecting token at {introspection_endpoint}")

        response = await self._post_form(
            request.introspection_endpoint, request.to_form_data()
        )
        self._raise_for_error_response(response, "Token introspection")

        try:
            return IntrospectionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError(
                f"Invalid introspection response format: {e}"
            ) from e

    async def revoke_token(
        self,
        token: str,
        client_id: str,
        revocation_endpoint: str,
        token_type_hint: str | None = "refresh_token",
    ) -> None:
        """Revoke a token (RFC 7009). Success is HTTP 200.

        Raises:
            ExchangeRejectedError, TransportFailureError
        """
        request = RevocationRequest(
            revocation_endpoint=revocation_endpoint,
            token=token,
            client_id=client_id,
            token_type_hint=token_type_hint,
        )

        logger.debug(f"Revoking token at {revocation_endpoint}")

        response = await self._post_form(
            request.revocation_endpoint, request.to_form_data()
        )
        self._raise_for_error_response(response, "Token revocation")
        logger.info("Token revoked")

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self._owns_client:
            await self._http_client.aclose()

    def _resolve_endpoint(self, token_endpoint: str | None) -> str:
        endpoint = token_endpoint or self.token_endpoint
        if not endpoint:
            raise ConfigurationError("No token endpoint configured")
        return endpoint

    async def _post_form(self, url: str, form_data: dict[str, str]) -> httpx.Response:
        """POST a form body, mapping network failures to TransportFailureError."""
        try:
            return await self._http_client.post(
                url,
                content=encode_form(form_data),
                headers=FORM_HEADERS,
            )
        except httpx.TimeoutException as e:
            raise TransportFailureError(
                f"Timed out after {self.timeout}s calling {url}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportFailureError(f"HTTP error calling {url}: {e}") from e

    def _raise_for_error_response(self, response: httpx.Response, action: str) -> None:
        """Raise ExchangeRejectedError for any non-2xx response.

        Carries the RFC 6749 Section 5.2 ``error`` and ``error_description``
        when the body has them.
        """
        if 200 <= response.status_code < 300:
            return

        error_code = None
        error_description = None
        try:
            error_data = response.json()
        except ValueError:
            error_data = None

        if isinstance(error_data, dict):
            error_code = error_data.get("error")
            error_description = error_data.get("error_description")

        logger.warning(
            f"{action} failed with {response.status_code}: "
            f"{error_code or 'unknown_error'} - "
            f"{error_description or 'No description provided'}"
        )

        if error_code:
            message = f"{action} rejected: {error_code}"
            if error_description:
                message += f" ({error_description})"
        else:
            message = f"{action} failed with HTTP {response.status_code}"

        raise ExchangeRejectedError(
            message,
            status_code=response.status_code,
            error=error_code,
            error_description=error_description,
        )

    def _parse_token_response(self, response: httpx.Response) -> TokenSet:
        """Validate a token endpoint response and build a TokenSet.

        Raises:
            ExchangeRejectedError: Non-2xx status
            MalformedResponseError: Body is not a JSON object with access_token
        """
        self._raise_for_error_response(response, "Token request")

        try:
            response_data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Token response is not valid JSON: {e}"
            ) from e

        if not isinstance(response_data, dict):
            raise MalformedResponseError("Token response is not a JSON object")
        if not response_data.get("access_token"):
            raise MalformedResponseError("Token response missing required access_token")

        try:
            token_response = TokenResponse.model_validate(response_data)
            return token_response.to_token_set(raw=response_data)
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError(f"Invalid token response format: {e}") from e
