from __future__ import annotations

import logging
from typing import Dict, Optional

from social_login.exceptions import ProviderNotFoundError
from social_login.types import Provider, ProviderResolver

logger = logging.getLogger("social_login")


class _DictResolver:
    def __init__(self) -> None:
        self.providers: Dict[str, Provider] = {}

    def get(self, name: str) -> Optional[Provider]:
        provider = self.providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(f"no provider for {name} exists", error="unknown_provider")
        return provider

    def get_all(self) -> Dict[str, Provider]:
        return self.providers


_registry = _DictResolver()
_resolver: ProviderResolver = _registry


def use_providers(*providers: Provider) -> None:
    """Register providers under their ``name``, replacing same-named ones."""
    for provider in providers:
        _registry.providers[provider.name] = provider
        logger.debug("provider registered", extra={"provider": provider.name})


def get_providers() -> Dict[str, Provider]:
    return _resolver.get_all()


def get_provider(name: str) -> Optional[Provider]:
    """Look a provider up by name.

    The built-in registry raises ``ProviderNotFoundError`` for unknown names;
    a custom resolver may return ``None`` instead.
    """
    return _resolver.get(name)


def set_provider_resolver(resolver: ProviderResolver) -> None:
    global _resolver
    _resolver = resolver


def clear_providers() -> None:
    """Drop every registered provider and restore the built-in registry."""
    global _resolver
    _registry.providers = {}
    _resolver = _registry
