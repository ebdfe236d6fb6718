"""Mini README: Asset backend reading models from a local directory.

Structure:
    * FileSystemAssetLoader - reads and validates model files on worker threads.

Keys are file names relative to the configured models directory (for
example ``"sofa.glb"``). Reads happen on a small thread pool so the caller
gets a pending future straight away, which is what lets the resource loader
coalesce duplicate requests while a file is still being read.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional

from .asset import ModelAsset, decode_model
from ..base import AssetLoader
from ..registry import REGISTRY
from ...configuration import get_settings
from ...logging_utils import get_logger

if TYPE_CHECKING:
    from ...configuration import OverlaySettings

LOGGER = get_logger(__name__)


class FileSystemAssetLoader(AssetLoader):
    """Serve ``.glb``/``.gltf`` files from ``models_directory``."""

    backend_name = "filesystem"

    def __init__(
        self,
        *,
        models_directory: Optional[Path] = None,
        workers: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.models_directory = Path(models_directory or settings.models_directory).resolve()
        self._executor = ThreadPoolExecutor(
            max_workers=workers or settings.loader_workers,
            thread_name_prefix="model-loader",
        )
        LOGGER.debug("Filesystem models directory set to %s", self.models_directory)

    @classmethod
    def from_settings(cls, settings: "OverlaySettings") -> "FileSystemAssetLoader":
        return cls(models_directory=settings.models_directory, workers=settings.loader_workers)

    def resolve_path(self, key: str) -> Path:
        """Map a model key to a path, refusing keys outside the models directory."""

        candidate = (self.models_directory / key).resolve()
        if not candidate.is_relative_to(self.models_directory):
            raise ValueError(f"Model key '{key}' escapes the models directory")
        return candidate

    def load(self, key: str) -> Future:
        path = self.resolve_path(key)
        LOGGER.debug("Scheduling read of %s", path)
        return self._executor.submit(self._read, key, path)

    def _read(self, key: str, path: Path) -> ModelAsset:
        if not path.is_file():
            raise FileNotFoundError(f"Model file not found: {path}")
        data = path.read_bytes()
        asset = decode_model(key, str(path), data)
        LOGGER.info("Loaded model %s (%s bytes)", key, asset.size_bytes)
        return asset

    def release(self, asset: ModelAsset) -> None:
        asset.release_source_data()

    def shutdown(self) -> None:
        super().shutdown()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def metadata(self) -> Dict[str, str]:
        return {
            "backend": self.backend_name,
            "models_directory": str(self.models_directory),
        }


REGISTRY.register(FileSystemAssetLoader)
