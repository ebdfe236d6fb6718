"""Mini README: Scene collaborators used by the overlay core.

``base`` declares the abstract asset loader, hit tester and attacher,
``registry`` manages selectable asset backends, ``backends`` ships the
filesystem and in-memory loaders, and ``simulated`` offers an AR-free scene
for demos and tests.
"""

from .base import AssetLoader, SceneAttacher, SurfaceHitTester
from .registry import AssetLoaderRegistry, REGISTRY
from . import backends  # noqa: F401  # ensure bundled backends register on import
from .simulated import Anchor, SceneNode, SimulatedScene, SimulatedSurface

__all__ = [
    "Anchor",
    "AssetLoader",
    "AssetLoaderRegistry",
    "REGISTRY",
    "SceneAttacher",
    "SceneNode",
    "SimulatedScene",
    "SimulatedSurface",
    "SurfaceHitTester",
]
