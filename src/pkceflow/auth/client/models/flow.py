"""Authorization flow models for the OIDC code flow.

Contains the authorization request, the parsed redirect, and the explicit
states and events of a single login attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qs, quote, urlencode, urlparse


class FlowState(str, Enum):
    """States of one login flow instance."""

    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    AWAITING_EXCHANGE = "awaiting_exchange"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FlowState.AUTHENTICATED, FlowState.FAILED)


class FlowEvent(str, Enum):
    """Events that drive a login flow between states."""

    LOGIN_STARTED = "login_started"
    REDIRECT_RECEIVED = "redirect_received"
    EXCHANGE_COMPLETED = "exchange_completed"
    EXCHANGE_FAILED = "exchange_failed"


# (state, event) -> next state
TRANSITIONS: dict[tuple[FlowState, FlowEvent], FlowState] = {
    (FlowState.IDLE, FlowEvent.LOGIN_STARTED): FlowState.AWAITING_REDIRECT,
    (
        FlowState.AWAITING_REDIRECT,
        FlowEvent.REDIRECT_RECEIVED,
    ): FlowState.AWAITING_EXCHANGE,
    (FlowState.AWAITING_REDIRECT, FlowEvent.EXCHANGE_FAILED): FlowState.FAILED,
    (
        FlowState.AWAITING_EXCHANGE,
        FlowEvent.EXCHANGE_COMPLETED,
    ): FlowState.AUTHENTICATED,
    (FlowState.AWAITING_EXCHANGE, FlowEvent.EXCHANGE_FAILED): FlowState.FAILED,
}


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the code flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    state: str
    code_challenge_method: str = "S256"
    scope: str | None = None

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
            "state": self.state,
        }

        if self.scope:
            params["scope"] = self.scope

        separator = "&" if "?" in self.authorization_endpoint else "?"
        return (
            f"{self.authorization_endpoint}{separator}"
            f"{urlencode(params, quote_via=quote)}"
        )


@dataclass(frozen=True)
class AuthorizationResponse:
    """Parameters the authorization server sent back on the redirect."""

    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_callback_url(cls, callback_url: str) -> AuthorizationResponse:
        """Parse a redirect URL into an AuthorizationResponse.

        Only the first value of each repeated parameter is kept; unknown
        parameters are ignored.
        """
        query_params = parse_qs(urlparse(callback_url).query)

        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        return cls(
            code=get_single_param("code"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
            error_uri=get_single_param("error_uri"),
        )
