"""Mini README: Turns detections into placed models and tracks their lifetime.

Structure:
    * BoundingBox / DetectionCategory / Detection - detector output shapes.
    * Placement - registry record owning an attached scene handle.
    * derive_placement_id - ``"{category}_{token}"`` identifiers.
    * PlacementCoordinator - hit-tests detections, requests models, and
      keeps at most one live placement per identifier.

Completions from the model cache may arrive on backend worker threads. They
either go through the host supplied ``dispatch`` callable (to hop onto the
host's own thread) or run in place; either way the registry is only touched
while holding ``self._lock``.
"""

from __future__ import annotations

import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..catalog import CategoryCatalog
from ..logging_utils import get_logger
from ..models import ResourceLoader
from ..scene.base import SceneAttacher, SurfaceHitTester

LOGGER = get_logger(__name__)

Dispatcher = Callable[[Callable[[], None]], None]


@dataclass(slots=True)
class BoundingBox:
    """Detection rectangle in pixel coordinates of the analysed frame."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2.0

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2.0

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


@dataclass(slots=True)
class DetectionCategory:
    category_name: str
    score: float = 1.0


@dataclass(slots=True)
class Detection:
    """One detector hit; ``categories`` are ordered best first."""

    bounding_box: BoundingBox
    categories: List[DetectionCategory] = field(default_factory=list)

    @property
    def top_category(self) -> Optional[DetectionCategory]:
        return self.categories[0] if self.categories else None


@dataclass(slots=True)
class Placement:
    """A model attached to the scene under ``placement_id``."""

    placement_id: str
    category: str
    handle: Any
    scale: float
    model_key: str = ""


def derive_placement_id(category: str, token: int) -> str:
    """Combine a category label with a uniqueness token."""

    return f"{category}_{token}"


class PlacementCoordinator:
    """Own the placement registry and drive model placement from detections."""

    def __init__(
        self,
        resource_loader: ResourceLoader,
        hit_tester: SurfaceHitTester,
        attacher: SceneAttacher,
        *,
        catalog: Optional[CategoryCatalog] = None,
        manual_category: str = "manual",
        dispatch: Optional[Dispatcher] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.resource_loader = resource_loader
        self.hit_tester = hit_tester
        self.attacher = attacher
        self.catalog = catalog or resource_loader.catalog
        self.manual_category = manual_category
        self._dispatch = dispatch
        self._clock = clock
        self._placements: Dict[str, Placement] = {}
        self._lock = RLock()
        self._last_token = 0
        self._torn_down = False
        LOGGER.debug("PlacementCoordinator initialised (manual category '%s')", manual_category)

    def _next_token(self) -> int:
        """Millisecond timestamp, bumped so tokens strictly increase."""

        with self._lock:
            token = max(int(self._clock() * 1000), self._last_token + 1)
            self._last_token = token
            return token

    def next_placement_id(self, category: str) -> str:
        return derive_placement_id(category, self._next_token())

    def on_detections(
        self,
        detections: Sequence[Detection],
        frame_width: float,
        frame_height: float,
    ) -> List[str]:
        """Hit-test each detection and schedule a model placement for every surface hit.

        Returns the placement ids that were scheduled. Detections without a
        surface underneath, or without any category, are skipped.
        """

        if not detections:
            return []
        if frame_width <= 0 or frame_height <= 0:
            LOGGER.warning(
                "Ignoring %s detections for invalid frame size %sx%s",
                len(detections),
                frame_width,
                frame_height,
            )
            return []
        if self._torn_down:
            LOGGER.debug("Coordinator torn down; ignoring %s detections", len(detections))
            return []
        try:
            frame_ready = self.hit_tester.frame_available()
        except Exception:
            LOGGER.exception("Unable to query AR frame state; skipping %s detections", len(detections))
            return []
        if not frame_ready:
            LOGGER.debug("No AR frame available; skipping %s detections", len(detections))
            return []

        scheduled: List[str] = []
        for detection in detections:
            top = detection.top_category
            if top is None:
                LOGGER.debug("Detection without categories skipped")
                continue
            box = detection.bounding_box
            x = box.center_x / float(frame_width)
            y = box.center_y / float(frame_height)
            try:
                anchor = self.hit_tester.hit_test(x, y)
            except Exception:
                LOGGER.exception("Hit test failed for %s at (%.3f, %.3f)", top.category_name, x, y)
                continue
            if anchor is None:
                LOGGER.debug("No surface under %s at (%.3f, %.3f)", top.category_name, x, y)
                continue
            placement_id = self._schedule(anchor, top.category_name)
            if placement_id is not None:
                scheduled.append(placement_id)
        return scheduled

    def on_manual_placement(self, anchor: Any) -> Optional[str]:
        """Place the default model where the user tapped.

        Returns the scheduled id, or ``None`` if the model request failed.
        """

        return self._schedule(anchor, self.manual_category)

    def _schedule(self, anchor: Any, category: str) -> Optional[str]:
        placement_id = self.next_placement_id(category)
        model_key = self.resource_loader.resolve_category(category)
        try:
            future = self.resource_loader.request(model_key)
        except Exception:
            LOGGER.exception("Model request for placement %s failed", placement_id)
            return None
        self._when_loaded(future, anchor, category, placement_id, model_key)
        return placement_id

    def _when_loaded(
        self,
        future: Future,
        anchor: Any,
        category: str,
        placement_id: str,
        model_key: str,
    ) -> None:
        def complete() -> None:
            error = future.exception()
            if error is not None:
                LOGGER.warning("Abandoning placement %s: %s", placement_id, error)
                return
            with self._lock:
                if self._torn_down:
                    LOGGER.debug("Dropping late placement %s after teardown", placement_id)
                    return
                try:
                    self.place(future.result(), anchor, category, placement_id, model_key=model_key)
                except Exception:
                    LOGGER.exception("Failed to attach placement %s", placement_id)

        if self._dispatch is None:
            future.add_done_callback(lambda _: complete())
        else:
            future.add_done_callback(lambda _: self._dispatch(complete))

    def place(
        self,
        asset: Any,
        anchor: Any,
        category: str,
        placement_id: str,
        *,
        model_key: str = "",
    ) -> Placement:
        """Attach ``asset`` under ``placement_id``, retiring any placement already using it."""

        scale = self.catalog.scale_for(category)
        with self._lock:
            previous = self._placements.get(placement_id)
            if previous is not None:
                LOGGER.debug("Replacing placement %s", placement_id)
                self.attacher.detach(previous.handle)
                del self._placements[placement_id]
            handle = self.attacher.attach(asset, anchor, scale)
            placement = Placement(
                placement_id=placement_id,
                category=category,
                handle=handle,
                scale=scale,
                model_key=model_key,
            )
            self._placements[placement_id] = placement
        LOGGER.info("Placed %s as %s (scale %.2f)", category, placement_id, scale)
        return placement

    def clear_all(self) -> int:
        """Detach every active placement, returning how many were removed.

        Placements whose detach fails stay in the registry.
        """

        removed = 0
        with self._lock:
            for placement in list(self._placements.values()):
                try:
                    self.attacher.detach(placement.handle)
                except Exception:
                    # Kept registered so a later clear can retry the handle.
                    LOGGER.exception("Failed to detach placement %s", placement.placement_id)
                    continue
                del self._placements[placement.placement_id]
                removed += 1
        if removed:
            LOGGER.info("Cleared %s placements", removed)
        return removed

    def teardown(self) -> None:
        """Clear all placements and ignore loads completing afterwards. Safe to repeat."""

        with self._lock:
            self._torn_down = True
            self.clear_all()

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def active_placements(self) -> List[Placement]:
        with self._lock:
            return list(self._placements.values())

    def get_placement(self, placement_id: str) -> Placement:
        with self._lock:
            if placement_id not in self._placements:
                raise KeyError(f"Placement {placement_id} is not active")
            return self._placements[placement_id]

    def __contains__(self, placement_id: object) -> bool:
        with self._lock:
            return placement_id in self._placements

    def __len__(self) -> int:
        with self._lock:
            return len(self._placements)


def detections_from_payload(items: Iterable[Dict[str, Any]]) -> List[Detection]:
    """Build detections from plain dictionaries as posted by the service or replay files."""

    detections: List[Detection] = []
    for item in items:
        box = item["bounding_box"]
        categories = [
            DetectionCategory(category_name=str(c["category_name"]), score=float(c.get("score", 1.0)))
            for c in item.get("categories", [])
        ]
        detections.append(
            Detection(
                bounding_box=BoundingBox(
                    left=float(box["left"]),
                    top=float(box["top"]),
                    right=float(box["right"]),
                    bottom=float(box["bottom"]),
                ),
                categories=categories,
            )
        )
    return detections
