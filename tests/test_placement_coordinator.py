"""Mini README: Tests for the placement coordinator.

Structure:
    * registry behaviour - replace-before-insert, clear_all, teardown.
    * detection flow - model key and scale selection, skipped detections.
    * failure and threading - abandoned loads, marshalled completions.
"""

from __future__ import annotations

import logging
import queue

import pytest

from modeloverlay.models import ResourceLoader
from modeloverlay.placement import (
    BoundingBox,
    Detection,
    DetectionCategory,
    PlacementCoordinator,
    derive_placement_id,
)
from modeloverlay.scene import SimulatedScene

from conftest import ControlledAssetLoader, FixedSurface


def _detection(category: str, box=(40.0, 40.0, 60.0, 60.0)) -> Detection:
    return Detection(
        bounding_box=BoundingBox(*box),
        categories=[DetectionCategory(category_name=category, score=0.9)],
    )


def _coordinator(backend, scene, surface=None, **options) -> PlacementCoordinator:
    return PlacementCoordinator(ResourceLoader(backend), surface or FixedSurface(), scene, **options)


def test_place_twice_with_same_id_replaces(scene: SimulatedScene) -> None:
    """The earlier handle is detached before the replacement is attached."""

    coordinator = _coordinator(ControlledAssetLoader(), scene)
    first = coordinator.place("asset-a", "anchor-1", "chair", "chair_1")
    second = coordinator.place("asset-b", "anchor-2", "chair", "chair_1")

    assert len(coordinator) == 1
    assert coordinator.get_placement("chair_1").handle == second.handle
    assert scene.events == [
        ("attach", first.handle),
        ("detach", first.handle),
        ("attach", second.handle),
    ]


def test_clear_all_detaches_each_placement_once(scene: SimulatedScene) -> None:
    coordinator = _coordinator(ControlledAssetLoader(), scene)
    handles = [
        coordinator.place("asset", "anchor", "tv", f"tv_{index}").handle for index in range(3)
    ]

    assert coordinator.clear_all() == 3
    assert len(coordinator) == 0
    detached = [handle for event, handle in scene.events if event == "detach"]
    assert sorted(detached) == sorted(handles)
    assert scene.nodes() == []


def test_couch_detection_places_sofa_with_couch_scale(scene: SimulatedScene) -> None:
    backend = ControlledAssetLoader(auto=True)
    surface = FixedSurface()
    coordinator = _coordinator(backend, scene, surface)

    scheduled = coordinator.on_detections([_detection("couch")], 100, 100)

    assert surface.queries == [(0.5, 0.5)]
    assert backend.calls == ["sofa.glb"]
    placement = coordinator.get_placement(scheduled[0])
    assert placement.category == "couch"
    assert placement.model_key == "sofa.glb"
    assert placement.scale == pytest.approx(0.7)
    assert scene.node(placement.handle).local_scale.tolist() == pytest.approx([0.7, 0.7, 0.7])


def test_unmapped_category_uses_defaults(scene: SimulatedScene) -> None:
    backend = ControlledAssetLoader(auto=True)
    coordinator = _coordinator(backend, scene)

    scheduled = coordinator.on_detections([_detection("lamp")], 100, 100)

    assert backend.calls == ["chair.glb"]
    placement = coordinator.get_placement(scheduled[0])
    assert placement.category == "lamp"
    assert placement.scale == pytest.approx(0.5)


def test_detections_without_surface_or_category_are_skipped(scene: SimulatedScene) -> None:
    backend = ControlledAssetLoader(auto=True)
    coordinator = _coordinator(backend, scene, FixedSurface(anchor=None))
    assert coordinator.on_detections([_detection("chair")], 100, 100) == []

    coordinator = _coordinator(backend, scene)
    uncategorised = Detection(bounding_box=BoundingBox(0, 0, 10, 10))
    assert coordinator.on_detections([uncategorised], 100, 100) == []
    assert backend.calls == []
    assert scene.events == []


def test_batches_skipped_for_bad_frame_or_missing_ar_frame(scene: SimulatedScene) -> None:
    backend = ControlledAssetLoader(auto=True)
    coordinator = _coordinator(backend, scene)
    assert coordinator.on_detections([_detection("chair")], 0, 100) == []
    assert coordinator.on_detections([], 100, 100) == []

    offline = _coordinator(backend, scene, FixedSurface(available=False))
    assert offline.on_detections([_detection("chair")], 100, 100) == []
    assert backend.calls == []


def test_rapid_detections_get_distinct_ids(scene: SimulatedScene) -> None:
    """Tokens keep increasing even when the clock does not move."""

    coordinator = _coordinator(ControlledAssetLoader(auto=True), scene, clock=lambda: 1000.0)
    scheduled = coordinator.on_detections([_detection("chair"), _detection("chair")], 100, 100)

    assert scheduled == [derive_placement_id("chair", 1_000_000), derive_placement_id("chair", 1_000_001)]
    assert len(coordinator) == 2


def test_manual_placement_uses_default_model(scene: SimulatedScene) -> None:
    backend = ControlledAssetLoader(auto=True)
    coordinator = _coordinator(backend, scene)

    placement_id = coordinator.on_manual_placement("tap-anchor")

    assert placement_id.startswith("manual_")
    assert backend.calls == ["chair.glb"]
    placement = coordinator.get_placement(placement_id)
    assert placement.scale == pytest.approx(0.5)
    assert scene.node(placement.handle).anchor == "tap-anchor"


def test_failed_load_abandons_placement(scene: SimulatedScene, caplog: pytest.LogCaptureFixture) -> None:
    """A missing model is logged and later detections still place normally."""

    backend = ControlledAssetLoader(auto=True, failing=("television.glb",))
    coordinator = _coordinator(backend, scene)

    with caplog.at_level(logging.WARNING):
        scheduled = coordinator.on_detections([_detection("tv")], 100, 100)
    assert len(scheduled) == 1
    assert len(coordinator) == 0
    assert "television.glb" in caplog.text

    coordinator.on_detections([_detection("chair")], 100, 100)
    assert len(coordinator) == 1


def test_attach_error_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    class BrokenScene(SimulatedScene):
        def attach(self, asset, anchor, scale):
            raise RuntimeError("renderer lost")

    backend = ControlledAssetLoader()
    coordinator = _coordinator(backend, BrokenScene())
    coordinator.on_detections([_detection("chair")], 100, 100)

    with caplog.at_level(logging.ERROR):
        backend.resolve("chair.glb", object())
    assert len(coordinator) == 0
    assert "renderer lost" in caplog.text


def test_teardown_is_idempotent_and_drops_late_loads(scene: SimulatedScene) -> None:
    backend = ControlledAssetLoader()
    coordinator = _coordinator(backend, scene)
    coordinator.place("asset", "anchor", "chair", "chair_1")
    coordinator.on_detections([_detection("couch")], 100, 100)

    coordinator.teardown()
    coordinator.teardown()
    assert coordinator.torn_down
    assert len(coordinator) == 0

    backend.resolve("sofa.glb", object())
    assert len(coordinator) == 0
    assert [event for event, _ in scene.events].count("attach") == 1


def test_dispatch_marshals_completions(scene: SimulatedScene) -> None:
    """With a dispatcher nothing touches the registry until the host drains it."""

    completions = queue.Queue()
    backend = ControlledAssetLoader()
    coordinator = _coordinator(backend, scene, dispatch=completions.put)

    scheduled = coordinator.on_detections([_detection("couch"), _detection("tv")], 100, 100)
    backend.resolve("sofa.glb", object())
    backend.resolve("television.glb", object())
    assert len(coordinator) == 0

    while not completions.empty():
        completions.get_nowait()()
    assert sorted(p.placement_id for p in coordinator.active_placements()) == sorted(scheduled)


def test_detections_sharing_a_model_load_it_once(scene: SimulatedScene) -> None:
    backend = ControlledAssetLoader()
    coordinator = _coordinator(backend, scene)
    coordinator.on_detections([_detection("couch"), _detection("couch")], 100, 100)

    assert backend.calls == ["sofa.glb"]
    backend.resolve("sofa.glb", object())
    assert len(coordinator) == 2


class StickyScene(SimulatedScene):
    """Scene whose detach fails for the handles listed in ``stuck``."""

    def __init__(self, stuck=()) -> None:
        super().__init__()
        self.stuck = set(stuck)

    def detach(self, handle):
        if handle in self.stuck:
            raise RuntimeError(f"node {handle} is locked")
        super().detach(handle)


def test_clear_all_keeps_placements_whose_detach_fails(caplog: pytest.LogCaptureFixture) -> None:
    """A failing detach is logged, the rest are still cleared, and the stuck one stays owned."""

    scene = StickyScene(stuck={1})
    coordinator = _coordinator(ControlledAssetLoader(), scene)
    for index in range(3):
        coordinator.place("asset", "anchor", "chair", f"chair_{index}")

    with caplog.at_level(logging.ERROR):
        assert coordinator.clear_all() == 2
    assert "node 1 is locked" in caplog.text
    assert [p.placement_id for p in coordinator.active_placements()] == ["chair_0"]
    assert [node.handle for node in scene.nodes()] == [1]

    scene.stuck.clear()
    assert coordinator.clear_all() == 1
    assert scene.nodes() == []


def test_replacement_keeps_old_placement_when_detach_fails() -> None:
    scene = StickyScene(stuck={1})
    coordinator = _coordinator(ControlledAssetLoader(), scene)
    first = coordinator.place("asset-a", "anchor", "chair", "chair_1")

    with pytest.raises(RuntimeError):
        coordinator.place("asset-b", "anchor", "chair", "chair_1")
    assert coordinator.get_placement("chair_1").handle == first.handle
    assert [event for event, _ in scene.events] == ["attach"]


def test_hit_test_error_skips_only_that_detection(
    scene: SimulatedScene, caplog: pytest.LogCaptureFixture
) -> None:
    """An exploding hit test never reaches the caller and later detections still place."""

    class FlakySurface(FixedSurface):
        def hit_test(self, x, y):
            self.queries.append((x, y))
            if len(self.queries) == 1:
                raise RuntimeError("tracking lost")
            return self.anchor

    backend = ControlledAssetLoader(auto=True)
    coordinator = _coordinator(backend, scene, FlakySurface())

    with caplog.at_level(logging.ERROR):
        scheduled = coordinator.on_detections([_detection("chair"), _detection("couch")], 100, 100)

    assert "tracking lost" in caplog.text
    assert backend.calls == ["sofa.glb"]
    assert len(scheduled) == 1
    assert coordinator.get_placement(scheduled[0]).category == "couch"


def test_model_request_error_is_contained(scene: SimulatedScene) -> None:
    class RejectingLoader(ResourceLoader):
        def request(self, key):
            raise RuntimeError("cache offline")

    coordinator = PlacementCoordinator(RejectingLoader(ControlledAssetLoader()), FixedSurface(), scene)
    assert coordinator.on_detections([_detection("chair")], 100, 100) == []
    assert coordinator.on_manual_placement("tap-anchor") is None
    assert len(coordinator) == 0
