"""Mini README: FastAPI service exposing the overlay pipeline.

Structure:
    * create_application - factory wiring the model cache, the placement
      coordinator and the scene collaborators into HTTP routes.
    * DetectionBatch and friends - request bodies for posted detections.

The service is a thin host: a camera client posts detector output, taps are
sent as normalised coordinates, and operators can inspect or clear the
placements and model cache. Without injected collaborators it runs against
the simulated surface and scene.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import FastAPI, Form, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..configuration import OverlaySettings, get_settings
from ..logging_utils import get_logger
from ..models import ResourceLoader
from ..placement import PlacementCoordinator, detections_from_payload
from ..scene import REGISTRY, AssetLoader, SceneAttacher, SimulatedScene, SimulatedSurface, SurfaceHitTester

LOGGER = get_logger(__name__)


class CategoryPayload(BaseModel):
    category_name: str
    score: float = 1.0


class BoundingBoxPayload(BaseModel):
    left: float
    top: float
    right: float
    bottom: float


class DetectionPayload(BaseModel):
    bounding_box: BoundingBoxPayload
    categories: List[CategoryPayload] = Field(default_factory=list)


class DetectionBatch(BaseModel):
    frame_width: float
    frame_height: float
    detections: List[DetectionPayload] = Field(default_factory=list)


def create_application(
    *,
    settings: Optional[OverlaySettings] = None,
    asset_loader: Optional[AssetLoader] = None,
    hit_tester: Optional[SurfaceHitTester] = None,
    attacher: Optional[SceneAttacher] = None,
) -> FastAPI:
    """Create the FastAPI application with routes and collaborators."""

    settings = settings or get_settings()
    asset_loader = asset_loader or REGISTRY.create_from_settings(settings)
    hit_tester = hit_tester or SimulatedSurface(horizon=settings.horizon)
    attacher = attacher or SimulatedScene()
    resource_loader = ResourceLoader(asset_loader)
    coordinator = PlacementCoordinator(
        resource_loader,
        hit_tester,
        attacher,
        manual_category=settings.manual_category,
    )
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        coordinator.teardown()
        resource_loader.dispose()
        asset_loader.shutdown()
        LOGGER.info("Overlay service resources released")

    app = FastAPI(title="Model Overlay Service", version="0.1.0", lifespan=lifespan)
    app.state.resource_loader = resource_loader
    app.state.coordinator = coordinator

    @app.get("/placements")
    async def list_placements() -> JSONResponse:
        """Return the placements currently attached to the scene."""

        payload = [
            {
                "placement_id": placement.placement_id,
                "category": placement.category,
                "model_key": placement.model_key,
                "scale": placement.scale,
            }
            for placement in coordinator.active_placements()
        ]
        LOGGER.debug("Returning %s placements", len(payload))
        return JSONResponse({"placements": payload})

    @app.post("/detections")
    async def post_detections(batch: DetectionBatch) -> JSONResponse:
        """Schedule placements for a batch of detector results."""

        if batch.frame_width <= 0 or batch.frame_height <= 0:
            raise HTTPException(status_code=400, detail="Frame dimensions must be positive")
        detections = detections_from_payload(batch.model_dump()["detections"])
        scheduled = coordinator.on_detections(detections, batch.frame_width, batch.frame_height)
        LOGGER.info("Scheduled %s of %s detections", len(scheduled), len(batch.detections))
        return JSONResponse({"scheduled": scheduled}, status_code=202)

    @app.post("/placements/manual")
    async def manual_placement(x: float = Form(...), y: float = Form(...)) -> JSONResponse:
        """Place the default model at a tapped screen position."""

        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            raise HTTPException(status_code=400, detail="Tap coordinates must be normalised to [0, 1]")
        try:
            anchor = hit_tester.hit_test(x, y)
        except Exception as error:
            LOGGER.exception("Hit test failed for tap at (%s, %s)", x, y)
            raise HTTPException(status_code=503, detail="Surface tracking unavailable") from error
        if anchor is None:
            raise HTTPException(status_code=404, detail=f"No surface found at ({x}, {y})")
        placement_id = coordinator.on_manual_placement(anchor)
        if placement_id is None:
            raise HTTPException(status_code=503, detail="Default model could not be requested")
        return JSONResponse({"scheduled": [placement_id]}, status_code=202)

    @app.delete("/placements")
    async def clear_placements() -> JSONResponse:
        """Remove every placed model."""

        removed = coordinator.clear_all()
        return JSONResponse({"removed": removed})

    @app.get("/models")
    async def model_cache() -> JSONResponse:
        """Describe the model cache and its backend."""

        return JSONResponse(
            {
                "cached": resource_loader.cached_keys(),
                "pending": resource_loader.pending_keys(),
                "backend": asset_loader.metadata(),
            }
        )

    @app.delete("/models")
    async def clear_models() -> JSONResponse:
        """Drop cached models so the next request reloads them."""

        resource_loader.clear()
        return JSONResponse({"cleared": True})

    return app
