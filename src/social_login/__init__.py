from social_login.clients.oauth import Token
from social_login.exceptions import (
    ConfigurationError,
    IDTokenError,
    InvalidCallbackError,
    NoAuthURLError,
    ProfileError,
    ProviderNotFoundError,
    RefreshNotAvailableError,
    SocialLoginError,
    TokenError,
)
from social_login.logging_config import configure_logging
from social_login.provider import (
    clear_providers,
    get_provider,
    get_providers,
    set_provider_resolver,
    use_providers,
)
from social_login.session import OAuth2Session, Session
from social_login.types import Provider, ProviderResolver
from social_login.user import User

__all__ = [
    "ConfigurationError",
    "IDTokenError",
    "InvalidCallbackError",
    "NoAuthURLError",
    "OAuth2Session",
    "ProfileError",
    "Provider",
    "ProviderNotFoundError",
    "ProviderResolver",
    "RefreshNotAvailableError",
    "Session",
    "SocialLoginError",
    "Token",
    "TokenError",
    "User",
    "clear_providers",
    "configure_logging",
    "get_provider",
    "get_providers",
    "set_provider_resolver",
    "use_providers",
]
