"""Mini README: Centralised configuration for the model overlay runtime.

Structure:
    * OverlaySettings - Pydantic settings model read from the environment.
    * get_settings - cached accessor shared by every module.

Usage:
    ``get_settings()`` reads ``MODELOVERLAY_*`` environment variables (and an
    optional ``.env`` file) once per process. The models directory points at
    the folder holding ``.glb``/``.gltf`` files served by the filesystem
    asset backend.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class OverlaySettings(BaseSettings):
    """Runtime configuration for model loading and placement."""

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    models_directory: Path = Field(
        Path("models"),
        description="Directory containing the 3D model files addressed by catalog keys.",
    )
    asset_backend: str = Field(
        "filesystem",
        description="Identifier of the asset loader backend registered in the scene registry.",
    )
    loader_workers: int = Field(
        2,
        description="Worker threads used by the filesystem backend to read and validate models.",
        ge=1,
        le=32,
    )
    manual_category: str = Field(
        "manual",
        description="Category label applied to placements created by tapping a surface.",
    )
    horizon: float = Field(
        0.4,
        description="Normalised screen height below which the simulated floor accepts hits.",
        ge=0.0,
        le=1.0,
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the demo service to bind to.",
    )
    interface_port: int = Field(
        8000,
        description="Default port the demo service exposes.",
        ge=1,
        le=65535,
    )
    log_level: str = Field(
        "INFO",
        description="Root log level applied the first time a module logger is requested.",
    )

    class Config:
        env_prefix = "MODELOVERLAY_"
        env_file = ".env"
        case_sensitive = False

    @validator("models_directory", pre=True)
    def _expand_path(cls, value: Optional[str | Path]) -> Path:
        """Expand user directories; the folder itself is optional until first load."""

        return Path(value).expanduser().resolve()

    @validator("manual_category")
    def _require_label(cls, value: str) -> str:
        """Manual placements derive ids from this label so it cannot be blank."""

        if not value.strip():
            raise ValueError("manual_category must not be empty")
        return value.strip()


@lru_cache()
def get_settings() -> OverlaySettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return OverlaySettings()
