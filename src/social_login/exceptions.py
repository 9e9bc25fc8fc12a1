from __future__ import annotations

from typing import Any, Mapping

NO_AUTH_URL_MESSAGE = "an AuthURL has not been set"


class SocialLoginError(Exception):
    def __init__(
        self,
        message: str,
        *,
        error: str | None = None,
        description: str | None = None,
        status_code: int | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.description = description
        self.status_code = status_code
        self.details = dict(details or {})


class ConfigurationError(SocialLoginError):
    """Raised when provider configuration is incomplete."""


class ProviderNotFoundError(SocialLoginError):
    """Raised when a provider name is not registered."""


class NoAuthURLError(SocialLoginError):
    """Raised when a session is asked for an auth URL it never received."""


class TokenError(SocialLoginError):
    """Raised when the token endpoint returns an error."""


class ProfileError(SocialLoginError):
    """Raised when the user profile cannot be fetched or decoded."""


class IDTokenError(SocialLoginError):
    """Raised when an ID token fails signature or claim verification."""


class InvalidCallbackError(SocialLoginError):
    """Raised when callback parameters fail provider-side validation."""


class RefreshNotAvailableError(SocialLoginError):
    """Raised by providers that do not issue refresh tokens."""
