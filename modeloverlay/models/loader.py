"""Mini README: Asynchronous, de-duplicating model cache.

Structure:
    * ResourceState - lifecycle of a cache entry.
    * ResourceEntry - bookkeeping for one model key.
    * LoadFailure - error delivered through futures when a load fails.
    * ResourceLoader - request/resolve/clear/dispose API over an AssetLoader.

Threading:
    ``request`` never blocks. The first request for a key registers a LOADING
    entry and calls the backend once; later requests for the same key share
    that future until it settles. Backends may complete on their own worker
    threads, so every change to the entry table happens under ``self._lock``.
    Backend calls and future callbacks run outside the lock.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from typing import Any, Dict, List, Optional

from ..catalog import DEFAULT_CATALOG, CategoryCatalog
from ..logging_utils import get_logger
from ..scene.base import AssetLoader

LOGGER = get_logger(__name__)


class ResourceState(str, Enum):
    """Lifecycle states of a cached model."""

    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(slots=True)
class ResourceEntry:
    """Single cache slot; at most one exists per key."""

    key: str
    state: ResourceState
    future: Future
    asset: Any = None


class LoadFailure(Exception):
    """The backend could not fetch or decode ``key``."""

    def __init__(self, key: str, cause: BaseException) -> None:
        super().__init__(f"Unable to load model '{key}': {cause}")
        self.key = key
        self.cause = cause


def _completed(asset: Any) -> Future:
    future: Future = Future()
    future.set_result(asset)
    return future


class ResourceLoader:
    """Load each model key once and share the result with every caller."""

    def __init__(self, asset_loader: AssetLoader, *, catalog: Optional[CategoryCatalog] = None) -> None:
        self.asset_loader = asset_loader
        self.catalog = catalog or DEFAULT_CATALOG
        self._entries: Dict[str, ResourceEntry] = {}
        self._lock = RLock()
        LOGGER.debug("ResourceLoader initialised with backend %s", asset_loader.backend_name)

    def resolve_category(self, category: str) -> str:
        """Map a detector label to a model key, falling back to the default model."""

        return self.catalog.model_for(category)

    def request_for_category(self, category: str) -> Future:
        """Request the model associated with ``category``."""

        return self.request(self.resolve_category(category))

    def request(self, key: str) -> Future:
        """Return a future for ``key``, starting a backend load only on a cache miss."""

        if not key:
            raise ValueError("Model key must not be empty")

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if entry.state is ResourceState.READY:
                    return _completed(entry.asset)
                return entry.future
            entry = ResourceEntry(key=key, state=ResourceState.LOADING, future=Future())
            self._entries[key] = entry

        LOGGER.debug("Cache miss for %s; starting load", key)
        try:
            backend_future = self.asset_loader.load(key)
        except Exception as error:
            self._fail(entry, error)
            return entry.future
        backend_future.add_done_callback(lambda done: self._settle(entry, done))
        return entry.future

    def _settle(self, entry: ResourceEntry, done: Future) -> None:
        if done.cancelled():
            self._fail(entry, RuntimeError("load was cancelled"))
            return
        error = done.exception()
        if error is not None:
            self._fail(entry, error)
            return
        asset = done.result()
        with self._lock:
            current = self._entries.get(entry.key)
            if current is entry:
                entry.state = ResourceState.READY
                entry.asset = asset
            elif current is None:
                # Cleared while loading: keep the result as a fresh cache fill.
                self._entries[entry.key] = ResourceEntry(
                    key=entry.key,
                    state=ResourceState.READY,
                    future=entry.future,
                    asset=asset,
                )
            else:
                LOGGER.debug("Discarding stale load result for %s", entry.key)
        entry.future.set_result(asset)

    def _fail(self, entry: ResourceEntry, cause: BaseException) -> None:
        with self._lock:
            if self._entries.get(entry.key) is entry:
                del self._entries[entry.key]
        entry.state = ResourceState.FAILED
        LOGGER.warning("Unable to load model %s: %s", entry.key, cause, exc_info=cause)
        entry.future.set_exception(LoadFailure(entry.key, cause))

    def state_of(self, key: str) -> Optional[ResourceState]:
        """Return the state of ``key`` or ``None`` when no entry exists."""

        with self._lock:
            entry = self._entries.get(key)
            return entry.state if entry is not None else None

    def cached_keys(self) -> List[str]:
        with self._lock:
            return sorted(k for k, e in self._entries.items() if e.state is ResourceState.READY)

    def pending_keys(self) -> List[str]:
        with self._lock:
            return sorted(k for k, e in self._entries.items() if e.state is ResourceState.LOADING)

    def clear(self) -> None:
        """Forget cached models and in-flight bookkeeping without cancelling loads."""

        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
        LOGGER.info("Cleared %s model cache entries", dropped)

    def dispose(self) -> None:
        """Release source data held by cached models, then clear the cache."""

        with self._lock:
            ready = [e.asset for e in self._entries.values() if e.state is ResourceState.READY]
        for asset in ready:
            self.asset_loader.release(asset)
        LOGGER.debug("Released %s cached models", len(ready))
        self.clear()
