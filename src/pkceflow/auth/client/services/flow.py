"""Login flow orchestration for a public OIDC client.

Drives one authorization code + PKCE login as an explicit state machine.
The two halves run on different page loads: ``start_login`` stores the
verifier and departs to the authorizer, ``handle_redirect`` picks the
verifier back up from the same session storage when the callback arrives.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlencode, urlparse

from pkceflow.auth.client.models.discovery import ProviderMetadata
from pkceflow.auth.client.models.errors import (
    AuthorizationError,
    FlowStateError,
    MissingTokenError,
    OAuth2Error,
)
from pkceflow.auth.client.models.flow import (
    TRANSITIONS,
    AuthorizationRequest,
    AuthorizationResponse,
    FlowEvent,
    FlowState,
)
from pkceflow.auth.client.models.tokens import IntrospectionResponse, TokenSet
from pkceflow.auth.client.primitives.pkce import generate_pkce_pair
from pkceflow.auth.client.primitives.security import generate_state, validate_state
from pkceflow.auth.client.services.discovery import OIDCDiscovery
from pkceflow.auth.client.services.tokens import OAuth2TokenManager
from pkceflow.auth.client.services.userinfo import UserInfoClient
from pkceflow.auth.client.storage import SessionStorage, TokenStore, VerifierStore
from pkceflow.config import ClientSettings

logger = logging.getLogger(__name__)


class LoginFlow:
    """Coordinates the Challenge Generator and Token Exchanger.

    States: IDLE -> AWAITING_REDIRECT -> AWAITING_EXCHANGE ->
    AUTHENTICATED | FAILED. A fresh instance on the callback page starts in
    AWAITING_REDIRECT when a verifier is already stored, otherwise IDLE.

    Tokens are persisted only after the exchange response has been fully
    validated. The verifier is cleared after every exchange attempt.
    """

    def __init__(
        self,
        settings: ClientSettings,
        storage: SessionStorage,
        token_manager: OAuth2TokenManager | None = None,
        userinfo_client: UserInfoClient | None = None,
        discovery: OIDCDiscovery | None = None,
    ):
        self.settings = settings
        self._storage = storage
        self.verifiers = VerifierStore(storage)
        self.tokens = TokenStore(storage)

        self._owned: list[Any] = []
        self.token_manager = token_manager or self._own(
            OAuth2TokenManager(timeout=settings.timeout)
        )
        self.userinfo_client = userinfo_client or self._own(
            UserInfoClient(timeout=settings.timeout)
        )
        self.discovery = discovery or self._own(
            OIDCDiscovery(timeout=settings.timeout)
        )

        self._state = (
            FlowState.AWAITING_REDIRECT
            if self.verifiers.load_verifier()
            else FlowState.IDLE
        )

    def _own(self, service: Any) -> Any:
        self._owned.append(service)
        return service

    async def __aenter__(self) -> LoginFlow:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def state(self) -> FlowState:
        return self._state

    def _transition(self, event: FlowEvent) -> FlowState:
        """Apply an event to the current state.

        Raises:
            FlowStateError: If the event is not valid in the current state
        """
        # A callback page load with nothing stored behaves like one that
        # was expecting a redirect.
        current = self._state
        if current is FlowState.IDLE and event in (
            FlowEvent.REDIRECT_RECEIVED,
            FlowEvent.EXCHANGE_FAILED,
        ):
            current = FlowState.AWAITING_REDIRECT

        next_state = TRANSITIONS.get((current, event))
        if next_state is None:
            raise FlowStateError(
                f"Event {event.value} not allowed in state {self._state.value}"
            )

        logger.debug(f"Login flow {self._state.value} -> {next_state.value}")
        self._state = next_state
        return next_state

    async def discover(self) -> ProviderMetadata:
        """Fetch provider metadata and fill in any unconfigured endpoints."""
        metadata = await self.discovery.fetch_metadata(self.settings.issuer)
        self.settings = self.settings.with_metadata(metadata)
        return metadata

    def start_login(self, scope: str | None = None) -> str:
        """Begin a new login and return the authorization URL.

        Any earlier flow instance is abandoned: a fresh verifier/challenge
        pair and state replace whatever was stored.

        Args:
            scope: Scopes to request, defaults to the configured scope

        Returns:
            URL the user agent should navigate to
        """
        self._state = FlowState.IDLE

        pkce_params = generate_pkce_pair(self.settings.verifier_length)
        state = generate_state()

        auth_request = AuthorizationRequest(
            authorization_endpoint=self.settings.endpoint("authorization_endpoint"),
            client_id=self.settings.client_id,
            redirect_uri=self.settings.redirect_uri,
            code_challenge=pkce_params.code_challenge,
            code_challenge_method=pkce_params.code_challenge_method,
            state=state,
            scope=scope or self.settings.scope,
        )
        authorization_url = auth_request.build_authorization_url()

        self.verifiers.store_verifier(pkce_params.code_verifier)
        self.verifiers.store_state(state)
        self._transition(FlowEvent.LOGIN_STARTED)

        logger.info(
            f"Generated authorization URL for client {self.settings.client_id}"
        )
        return authorization_url

    async def handle_redirect(self, callback_url: str) -> TokenSet:
        """Complete the login from the authorizer's redirect.

        Args:
            callback_url: Full callback URL including query parameters

        Returns:
            TokenSet: The tokens, already persisted to the token store

        Raises:
            FlowStateError: The flow instance already finished
            AuthorizationError: The authorizer returned ``error``, no code,
                or a mismatched state
            ExchangeError: Any token exchange failure
        """
        if self._state.is_terminal:
            raise FlowStateError(
                f"Login flow already {self._state.value}; start a new login"
            )

        auth_response = AuthorizationResponse.from_callback_url(callback_url)
        expected_state = self.verifiers.load_state()

        try:
            if auth_response.is_error():
                logger.warning(
                    f"Authorization callback contained error: {auth_response.error}"
                    f" - {auth_response.error_description}"
                )
                raise AuthorizationError(
                    f"{auth_response.error}: "
                    f"{auth_response.error_description or 'Unknown error'}",
                    error=auth_response.error,
                    error_description=auth_response.error_description,
                )

            if expected_state is not None:
                validate_state(expected_state, auth_response.state)

            if auth_response.code is None:
                raise AuthorizationError("Authorization code missing")

            self._transition(FlowEvent.REDIRECT_RECEIVED)

            token_set = await self.token_manager.exchange_code(
                code=auth_response.code,
                verifier=self.verifiers.load_verifier(),
                redirect_uri=self.settings.redirect_uri,
                client_id=self.settings.client_id,
                token_endpoint=self.settings.endpoint("token_endpoint"),
            )
        except OAuth2Error:
            self._transition(FlowEvent.EXCHANGE_FAILED)
            raise
        finally:
            self.verifiers.clear_verifier()
            self.verifiers.clear_state()

        self.tokens.save(token_set)
        self._transition(FlowEvent.EXCHANGE_COMPLETED)
        logger.info("Login flow authenticated")
        return token_set

    def _require_tokens(self) -> TokenSet:
        token_set = self.tokens.load()
        if token_set is None:
            raise MissingTokenError("No tokens stored. Complete the login flow first.")
        return token_set

    async def refresh(self) -> TokenSet:
        """Refresh the stored access token and persist the new set.

        Raises:
            MissingTokenError: No stored tokens or no refresh token
            ExchangeError: The refresh call failed
        """
        current = self._require_tokens()
        if not current.can_refresh():
            raise MissingTokenError("No refresh token stored.")

        refreshed = await self.token_manager.refresh_access_token(
            refresh_token=current.refresh_token,
            client_id=self.settings.client_id,
            token_endpoint=self.settings.endpoint("token_endpoint"),
        )
        refreshed = refreshed.with_fallback_refresh_token(current)
        self.tokens.save(refreshed)
        return refreshed

    async def fetch_userinfo(self) -> dict[str, Any]:
        """Fetch claims for the stored access token."""
        current = self._require_tokens()
        return await self.userinfo_client.fetch(
            current.access_token, self.settings.endpoint("userinfo_endpoint")
        )

    async def introspect(self) -> IntrospectionResponse:
        """Introspect the stored access token."""
        current = self._require_tokens()
        return await self.token_manager.introspect_token(
            token=current.access_token,
            client_id=self.settings.client_id,
            introspection_endpoint=self.settings.endpoint("introspection_endpoint"),
        )

    async def revoke(self) -> None:
        """Revoke the stored refresh token and clear the session.

        Raises:
            MissingTokenError: No refresh token stored
            ExchangeError: The provider refused the revocation
        """
        current = self._require_tokens()
        if not current.refresh_token:
            raise MissingTokenError("No refresh token stored.")

        await self.token_manager.revoke_token(
            token=current.refresh_token,
            client_id=self.settings.client_id,
            revocation_endpoint=self.settings.endpoint("revocation_endpoint"),
            token_type_hint="refresh_token",
        )
        self._storage.clear()
        self._state = FlowState.IDLE

    def logout(self) -> str:
        """Clear client-side auth state and return the end-session URL.

        Session storage is cleared before the URL is built, so a failed
        navigation still leaves the client logged out locally.
        """
        current = self.tokens.load()
        id_token = current.id_token if current else None

        self._storage.clear()
        self._state = FlowState.IDLE

        params = {
            "post_logout_redirect_uri": self._post_logout_redirect_uri(),
        }
        if id_token:
            params["id_token_hint"] = id_token
        params["state"] = generate_state()

        return (
            f"{self.settings.endpoint('end_session_endpoint')}?"
            f"{urlencode(params, quote_via=quote)}"
        )

    def _post_logout_redirect_uri(self) -> str:
        if self.settings.post_logout_redirect_uri:
            return self.settings.post_logout_redirect_uri
        parsed = urlparse(self.settings.redirect_uri)
        return f"{parsed.scheme}://{parsed.netloc}"

    async def close(self) -> None:
        """Close services this flow created itself."""
        for service in self._owned:
            await service.close()
