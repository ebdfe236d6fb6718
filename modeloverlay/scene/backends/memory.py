"""Mini README: Asset backend serving preloaded model payloads.

Structure:
    * InMemoryAssetLoader - decodes bytes held in a dictionary.

Payloads are either passed in directly or read up front from the models
directory (``from_settings``). Futures complete before ``load`` returns, so
placements happen synchronously.
"""

from __future__ import annotations

from concurrent.futures import Future
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Mapping, Optional

from .asset import ModelAsset, decode_model
from ..base import AssetLoader
from ..registry import REGISTRY
from ...logging_utils import get_logger

if TYPE_CHECKING:
    from ...configuration import OverlaySettings

LOGGER = get_logger(__name__)

MODEL_SUFFIXES = (".glb", ".gltf")


class InMemoryAssetLoader(AssetLoader):
    """Serve models from an in-process mapping of key to bytes."""

    backend_name = "memory"

    def __init__(self, *, payloads: Optional[Mapping[str, bytes]] = None) -> None:
        self._payloads: Dict[str, bytes] = dict(payloads or {})
        self.load_count = 0
        LOGGER.debug("In-memory backend holds %s payloads", len(self._payloads))

    @classmethod
    def from_directory(cls, directory: Path) -> "InMemoryAssetLoader":
        """Preload every model file directly inside ``directory``."""

        payloads: Dict[str, bytes] = {}
        if directory.is_dir():
            for path in sorted(directory.iterdir()):
                if path.is_file() and path.suffix.lower() in MODEL_SUFFIXES:
                    payloads[path.name] = path.read_bytes()
        else:
            LOGGER.warning("Models directory %s does not exist; memory backend starts empty", directory)
        return cls(payloads=payloads)

    @classmethod
    def from_settings(cls, settings: "OverlaySettings") -> "InMemoryAssetLoader":
        return cls.from_directory(settings.models_directory)

    def add(self, key: str, data: bytes) -> None:
        """Make ``data`` available under ``key`` for subsequent loads."""

        self._payloads[key] = data

    def load(self, key: str) -> Future:
        self.load_count += 1
        future: Future = Future()
        try:
            data = self._payloads[key]
        except KeyError:
            future.set_exception(KeyError(f"No payload registered for model '{key}'"))
            return future
        try:
            future.set_result(decode_model(key, f"memory://{key}", data))
        except ValueError as error:
            future.set_exception(error)
        return future

    def release(self, asset: ModelAsset) -> None:
        asset.release_source_data()

    def metadata(self) -> Dict[str, str]:
        return {"backend": self.backend_name, "payloads": str(len(self._payloads))}


REGISTRY.register(InMemoryAssetLoader)
