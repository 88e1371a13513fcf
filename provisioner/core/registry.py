"""Name -> provider registry, safe to share between threads."""

from __future__ import annotations

import logging
import threading

from provisioner.core.errors import (
    ProviderAlreadyRegisteredError,
    ProviderNotRegisteredError,
)
from provisioner.core.interfaces import CloudProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    def __init__(self):
        self._providers: dict[str, CloudProvider] = {}
        self._lock = threading.Lock()

    def register(self, name: str, provider: CloudProvider) -> None:
        """Add a provider under ``name``.

        Double registration raises instead of overwriting.
        """
        if not name:
            raise ValueError("name cannot be empty")
        if provider is None:
            raise ValueError("provider cannot be None")

        with self._lock:
            if name in self._providers:
                raise ProviderAlreadyRegisteredError(name)
            self._providers[name] = provider
        logger.info("Registered provider %s (%s)", name, provider.name())

    def get(self, name: str) -> CloudProvider:
        with self._lock:
            provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotRegisteredError(name)
        return provider

    def list(self) -> list[str]:
        """Names of all registered providers, sorted."""
        with self._lock:
            return sorted(self._providers)

    def unregister(self, name: str) -> None:
        """Remove ``name``. No-op if it was never registered."""
        with self._lock:
            removed = self._providers.pop(name, None)
        if removed is not None:
            logger.info("Unregistered provider %s", name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)


_default_registry: ProviderRegistry | None = None
_default_lock = threading.Lock()


def get_default_registry() -> ProviderRegistry:
    """Process-wide registry, created on first use.

    Prefer constructing a ``ProviderRegistry`` and passing it explicitly.
    The default instance is never replaced once created.
    """
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = ProviderRegistry()
        return _default_registry
