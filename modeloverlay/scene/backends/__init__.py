"""Mini README: Bundled asset loader backends.

Importing this package registers each backend with ``scene.REGISTRY``. New
backends should subclass ``AssetLoader`` and call ``REGISTRY.register`` at
import time to become selectable through configuration.
"""

from .asset import AssetDecodeError, ModelAsset, decode_model
from .filesystem import FileSystemAssetLoader
from .memory import InMemoryAssetLoader

__all__ = [
    "AssetDecodeError",
    "FileSystemAssetLoader",
    "InMemoryAssetLoader",
    "ModelAsset",
    "decode_model",
]
