"""Mini README: Registry of asset loader backends.

Structure:
    * AssetLoaderRegistry - maps backend identifiers to ``AssetLoader`` classes
      and builds them either from explicit options or from ``OverlaySettings``.
    * REGISTRY - process-wide registry populated by ``scene.backends``.

The service and the replay CLI never name a backend class directly: they
ask the registry for ``settings.asset_backend`` and each backend reads the
settings it cares about (models directory, worker count) itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Type

from .base import AssetLoader
from ..logging_utils import get_logger

if TYPE_CHECKING:
    from ..configuration import OverlaySettings

LOGGER = get_logger(__name__)


class AssetLoaderRegistry:
    """Lookup table from backend identifier to loader class."""

    def __init__(self) -> None:
        self._backends: Dict[str, Type[AssetLoader]] = {}

    def register(self, backend: Type[AssetLoader]) -> None:
        """Register a loader class under its ``backend_name``; later registrations win."""

        identifier = backend.backend_name.lower()
        if identifier in self._backends and self._backends[identifier] is not backend:
            LOGGER.warning("Asset backend '%s' replaced by %s", identifier, backend.__name__)
        self._backends[identifier] = backend

    def available_backends(self) -> Iterable[str]:
        return sorted(self._backends.keys())

    def _lookup(self, identifier: str) -> Type[AssetLoader]:
        backend_cls = self._backends.get(identifier.strip().lower())
        if backend_cls is None:
            raise KeyError(
                f"Unknown asset backend '{identifier}' (available: {', '.join(self.available_backends())})"
            )
        return backend_cls

    def create(self, identifier: str, **options: Any) -> AssetLoader:
        """Instantiate ``identifier`` with keyword options passed to its constructor."""

        backend = self._lookup(identifier)(**options)
        LOGGER.info("Created asset backend '%s'", backend.backend_name)
        return backend

    def create_from_settings(self, settings: "OverlaySettings") -> AssetLoader:
        """Instantiate the backend named by ``settings.asset_backend``."""

        backend = self._lookup(settings.asset_backend).from_settings(settings)
        LOGGER.info("Created asset backend '%s' from settings", backend.backend_name)
        return backend


REGISTRY = AssetLoaderRegistry()
