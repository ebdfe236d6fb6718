"""Mini README: Decoded model container shared by the bundled backends.

Structure:
    * AssetDecodeError - raised when bytes are not a usable glTF model.
    * ModelAsset - decoded model with releasable source bytes.
    * decode_model - validates ``.glb``/``.gltf`` payloads.

Validation is deliberately shallow: the header or top-level JSON is checked
so corrupt downloads fail at load time, while full parsing is left to the
renderer that eventually consumes the bytes.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

GLB_MAGIC = b"glTF"
GLB_HEADER = struct.Struct("<4sII")
SUPPORTED_GLB_VERSION = 2


class AssetDecodeError(ValueError):
    """Raised when a model payload cannot be decoded."""


@dataclass(slots=True)
class ModelAsset:
    """A loaded model ready to hand to the scene attacher."""

    key: str
    source: str
    data: Optional[bytes]
    format: str

    @property
    def is_released(self) -> bool:
        return self.data is None

    @property
    def size_bytes(self) -> int:
        return len(self.data) if self.data is not None else 0

    def release_source_data(self) -> None:
        """Drop the raw bytes once the renderer no longer needs them."""

        self.data = None


def _validate_glb(key: str, data: bytes) -> None:
    if len(data) < GLB_HEADER.size:
        raise AssetDecodeError(f"Model '{key}' is too short to be a GLB file")
    magic, version, declared_length = GLB_HEADER.unpack_from(data)
    if magic != GLB_MAGIC:
        raise AssetDecodeError(f"Model '{key}' is missing the glTF binary magic")
    if version != SUPPORTED_GLB_VERSION:
        raise AssetDecodeError(f"Model '{key}' uses unsupported glTF version {version}")
    if declared_length > len(data):
        raise AssetDecodeError(
            f"Model '{key}' declares {declared_length} bytes but only {len(data)} are present"
        )


def _validate_gltf(key: str, data: bytes) -> None:
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise AssetDecodeError(f"Model '{key}' is not valid glTF JSON") from error
    if not isinstance(document, dict) or "asset" not in document:
        raise AssetDecodeError(f"Model '{key}' is missing the glTF 'asset' section")


def decode_model(key: str, source: str, data: bytes) -> ModelAsset:
    """Validate ``data`` according to the key's extension and wrap it."""

    suffix = PurePosixPath(key).suffix.lower()
    if suffix == ".glb":
        _validate_glb(key, data)
    elif suffix == ".gltf":
        _validate_gltf(key, data)
    else:
        raise AssetDecodeError(f"Unsupported model format for '{key}'")
    return ModelAsset(key=key, source=source, data=data, format=suffix.lstrip("."))
