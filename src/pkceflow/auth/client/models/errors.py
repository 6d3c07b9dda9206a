"""Exception hierarchy for the OIDC public-client flow.

Provides specific exception types for each failure mode so callers can
decide whether to surface the error or restart the login flow.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.1 / OIDC client errors."""

    pass


class ConfigurationError(OAuth2Error):
    """Raised when client configuration is incomplete or inconsistent."""

    pass


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation or validation fails."""

    pass


class FlowStateError(OAuth2Error):
    """Raised when a login flow event arrives in a state that cannot accept it."""

    pass


class AuthorizationError(OAuth2Error):
    """Raised when the authorization server redirects back with an error."""

    def __init__(
        self,
        message: str,
        error: str | None = None,
        error_description: str | None = None,
    ):
        super().__init__(message)
        self.error = error
        self.error_description = error_description


class StateValidationError(AuthorizationError):
    """Raised when OAuth state parameter validation fails.

    This indicates either a missing state parameter or a state mismatch,
    which could indicate a CSRF attack or a callback from another flow.
    """

    pass


class DiscoveryError(OAuth2Error):
    """Raised when OpenID provider discovery fails."""

    pass


class UserInfoError(OAuth2Error):
    """Raised when the userinfo endpoint call fails."""

    pass


class MissingTokenError(OAuth2Error):
    """Raised when an operation needs a stored token that is not there."""

    pass


class ExchangeError(OAuth2Error):
    """Base for token endpoint failures.

    All subclasses are terminal for the current attempt. Authorization codes
    are single-use, so the only recovery is a new login flow.
    """

    pass


class MissingVerifierError(ExchangeError):
    """Raised when no code verifier is available at exchange time.

    No network call has been made. Usually means storage was cleared between
    the authorization redirect and the callback, or the callback landed in a
    different tab.
    """

    pass


class ExchangeRejectedError(ExchangeError):
    """Raised when the token endpoint answers with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error: str | None = None,
        error_description: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.error_description = error_description


class MalformedResponseError(ExchangeError):
    """Raised when a success response body is unparseable or incomplete."""

    pass


class TransportFailureError(ExchangeError):
    """Raised on network-level failures: DNS, connection, or timeout."""

    pass
