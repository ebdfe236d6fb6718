"""Mini README: Abstract collaborators the overlay core talks to.

Structure:
    * AssetLoader - fetches and decodes a named model asynchronously.
    * SurfaceHitTester - maps a normalised screen point to a surface anchor.
    * SceneAttacher - attaches and detaches rendered objects.

Concrete AR runtimes implement these interfaces; the core never inspects
anchors, assets or handles beyond passing them between collaborators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..logging_utils import get_logger

if TYPE_CHECKING:
    from ..configuration import OverlaySettings

LOGGER = get_logger(__name__)


class AssetLoader(ABC):
    """Base interface for model asset backends."""

    backend_name: str = "generic"

    @classmethod
    def from_settings(cls, settings: "OverlaySettings") -> "AssetLoader":
        """Build the backend from runtime settings; backends without options ignore them."""

        return cls()

    @abstractmethod
    def load(self, key: str) -> Future:
        """Begin loading ``key`` and return a future resolving to the asset.

        Implementations may either raise immediately or fail the returned
        future; both are reported to callers as load failures.
        """

    def release(self, asset: Any) -> None:
        """Free native or source data held by a cached asset."""

    def shutdown(self) -> None:
        """Stop background workers owned by the backend."""

        LOGGER.debug("Shutting down asset backend %s", self.backend_name)

    def metadata(self) -> Dict[str, str]:
        """Return diagnostic metadata for service responses."""

        return {"backend": self.backend_name}


class SurfaceHitTester(ABC):
    """Locate placement anchors on detected surfaces."""

    @abstractmethod
    def hit_test(self, x: float, y: float) -> Optional[Any]:
        """Return an anchor at normalised ``(x, y)`` or ``None`` when no surface is hit."""

    def frame_available(self) -> bool:
        """Whether the AR session currently has a frame to hit-test against."""

        return True


class SceneAttacher(ABC):
    """Place and remove rendered objects in the scene."""

    @abstractmethod
    def attach(self, asset: Any, anchor: Any, scale: float) -> Any:
        """Attach ``asset`` at ``anchor`` scaled uniformly, returning an opaque handle."""

    @abstractmethod
    def detach(self, handle: Any) -> None:
        """Remove the object behind ``handle`` and release its anchor."""
