from __future__ import annotations

from typing import Dict, List, Optional, Type

from social_login.exceptions import ConfigurationError
from social_login.providers import (
    apple,
    azureadv2,
    discord,
    facebook,
    github,
    gitlab,
    google,
    linkedin,
    openidconnect,
    reddit,
    shopify,
    slack,
    tiktok,
    twitter,
)
from social_login.providers.base import OAuth2Provider
from social_login.settings import Settings, get_settings
from social_login.types import Provider

PROVIDERS: Dict[str, Type] = {
    "apple": apple.Provider,
    "azureadv2": azureadv2.Provider,
    "discord": discord.Provider,
    "facebook": facebook.Provider,
    "github": github.Provider,
    "gitlab": gitlab.Provider,
    "google": google.Provider,
    "linkedin": linkedin.Provider,
    "openidconnect": openidconnect.Provider,
    "reddit": reddit.Provider,
    "shopify": shopify.Provider,
    "slack": slack.Provider,
    "tiktok": tiktok.Provider,
    "twitter": twitter.Provider,
}


def providers_from_settings(settings: Optional[Settings] = None) -> List[Provider]:
    """Instantiate every provider configured under ``SOCIAL_LOGIN_PROVIDERS__<name>__...``.

    The settings key picks the provider type and becomes the provider name. A
    key that is not a known type may name one through ``options.type``, e.g.
    ``google-workspace`` with ``type=google``.
    """
    settings = settings or get_settings()
    built: List[Provider] = []
    for name, conf in settings.providers.items():
        options = dict(conf.options)
        kind = options.pop("type", name)
        cls = PROVIDERS.get(kind)
        if cls is None:
            raise ConfigurationError(f"unknown provider type {kind!r} for {name!r}", error="unknown_provider")
        if not conf.key:
            raise ConfigurationError(f"provider {name!r} has no key configured", error="missing_client_key")

        # OAuth 1.0a providers take no scopes
        scopes = conf.scope_list() if issubclass(cls, OAuth2Provider) else []
        try:
            provider = cls(conf.key, conf.secret, conf.callback_url, *scopes, **options)
        except TypeError as exc:
            raise ConfigurationError(
                f"invalid options for provider {name!r}",
                error="invalid_options",
                description=str(exc),
            ) from exc
        provider.set_name(name)
        built.append(provider)
    return built


__all__ = ["PROVIDERS", "OAuth2Provider", "providers_from_settings"]
