"""Mini README: Shared fakes for the overlay test-suite.

Structure:
    * glb_bytes - smallest payload accepted by the GLB validator.
    * ControlledAssetLoader - backend whose futures the test settles by hand.
    * FixedSurface - hit tester returning a preset anchor (or none).
"""

from __future__ import annotations

import struct
from concurrent.futures import Future
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

import pytest

from modeloverlay.scene import AssetLoader, SimulatedScene, SurfaceHitTester


def glb_bytes(body: bytes = b"") -> bytes:
    return struct.pack("<4sII", b"glTF", 2, 12 + len(body)) + body


class ControlledAssetLoader(AssetLoader):
    """Records every load and hands out futures settled by the test.

    With ``auto=True`` loads resolve immediately to a fresh object per key.
    """

    backend_name = "controlled"

    def __init__(self, *, auto: bool = False, failing: Tuple[str, ...] = ()) -> None:
        self.auto = auto
        self.failing = set(failing)
        self.calls: List[str] = []
        self.pending: Dict[str, Future] = {}
        self.released: List[Any] = []
        self._lock = Lock()

    def load(self, key: str) -> Future:
        with self._lock:
            self.calls.append(key)
            future: Future = Future()
            self.pending[key] = future
        if key in self.failing:
            future.set_exception(IOError(f"cannot read {key}"))
        elif self.auto:
            future.set_result({"model": key})
        return future

    def resolve(self, key: str, asset: Any) -> None:
        self.pending[key].set_result(asset)

    def fail(self, key: str, error: BaseException) -> None:
        self.pending[key].set_exception(error)

    def release(self, asset: Any) -> None:
        self.released.append(asset)


class FixedSurface(SurfaceHitTester):
    def __init__(self, anchor: Optional[Any] = "anchor", *, available: bool = True) -> None:
        self.anchor = anchor
        self.available = available
        self.queries: List[Tuple[float, float]] = []

    def frame_available(self) -> bool:
        return self.available

    def hit_test(self, x: float, y: float) -> Optional[Any]:
        self.queries.append((x, y))
        return self.anchor


@pytest.fixture
def controlled_loader() -> ControlledAssetLoader:
    return ControlledAssetLoader()


@pytest.fixture
def scene() -> SimulatedScene:
    return SimulatedScene()
