"""Mini README: Placement package.

Re-exports the detection shapes and the ``PlacementCoordinator`` which keeps
one live placement per identifier and places models as they finish loading.
"""

from .coordinator import (
    BoundingBox,
    Detection,
    DetectionCategory,
    Placement,
    PlacementCoordinator,
    derive_placement_id,
    detections_from_payload,
)

__all__ = [
    "BoundingBox",
    "Detection",
    "DetectionCategory",
    "Placement",
    "PlacementCoordinator",
    "derive_placement_id",
    "detections_from_payload",
]
