"""Mini README: In-process stand-ins for the AR surface and scene graph.

Structure:
    * Anchor - point on a simulated surface with a pose vector.
    * SceneNode - bookkeeping record for an attached model.
    * SimulatedSurface - hit tester modelling a floor below a horizon line.
    * SimulatedScene - attacher storing nodes keyed by integer handles.

These classes let the service, the replay CLI and the tests exercise the
placement flow without an AR runtime. Nothing here renders; nodes only track
which asset sits on which anchor and at what scale.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional

import numpy as np

from .base import SceneAttacher, SurfaceHitTester
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class Anchor:
    """Surface point expressed in normalised screen coordinates."""

    x: float
    y: float
    pose: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float32))
    attached: bool = True

    def detach(self) -> None:
        self.attached = False


@dataclass(slots=True)
class SceneNode:
    """Model attached to an anchor with a local scale."""

    handle: int
    asset: Any
    anchor: Any
    local_scale: np.ndarray


class SimulatedSurface(SurfaceHitTester):
    """Treat everything below ``horizon`` as a horizontal, upward facing plane."""

    def __init__(self, *, horizon: float = 0.4, floor_depth: float = 1.5, tracking: bool = True) -> None:
        if not 0.0 <= horizon <= 1.0:
            raise ValueError("horizon must be within [0, 1]")
        self.horizon = horizon
        self.floor_depth = floor_depth
        self.tracking = tracking

    def frame_available(self) -> bool:
        return self.tracking

    def hit_test(self, x: float, y: float) -> Optional[Anchor]:
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            return None
        if y < self.horizon:
            return None
        # Points nearer the bottom of the frame land closer to the camera.
        depth = self.floor_depth * (1.0 - (y - self.horizon) / max(1.0 - self.horizon, 1e-6))
        pose = np.array([x - 0.5, 0.0, -depth], dtype=np.float32)
        return Anchor(x=x, y=y, pose=pose)


class SimulatedScene(SceneAttacher):
    """Keep attached nodes in a dictionary and record every attach/detach."""

    def __init__(self) -> None:
        self._nodes: Dict[int, SceneNode] = {}
        self._handles = itertools.count(1)
        self._lock = Lock()
        self.events: List[tuple] = []

    def attach(self, asset: Any, anchor: Any, scale: float) -> int:
        with self._lock:
            handle = next(self._handles)
            self._nodes[handle] = SceneNode(
                handle=handle,
                asset=asset,
                anchor=anchor,
                local_scale=np.full(3, scale, dtype=np.float32),
            )
            self.events.append(("attach", handle))
        LOGGER.debug("Attached node %s with scale %.2f", handle, scale)
        return handle

    def detach(self, handle: int) -> None:
        with self._lock:
            node = self._nodes.pop(handle, None)
            self.events.append(("detach", handle))
        if node is None:
            LOGGER.warning("Detach requested for unknown node %s", handle)
            return
        if isinstance(node.anchor, Anchor):
            node.anchor.detach()
        LOGGER.debug("Detached node %s", handle)

    def node(self, handle: int) -> SceneNode:
        with self._lock:
            if handle not in self._nodes:
                raise KeyError(f"Node {handle} is not attached")
            return self._nodes[handle]

    def nodes(self) -> List[SceneNode]:
        with self._lock:
            return list(self._nodes.values())
