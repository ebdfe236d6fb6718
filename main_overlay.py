"""Mini README: Entry point CLI for the model overlay service.

Commands:
    * run - start the FastAPI service with uvicorn.
    * replay - push recorded detection batches through the placement
      pipeline against the simulated scene and print the outcome.

Replay files hold a JSON list of batches, each shaped like the body accepted
by ``POST /detections``::

    [{"frame_width": 640, "frame_height": 480,
      "detections": [{"bounding_box": {"left": 10, "top": 300, "right": 200, "bottom": 470},
                      "categories": [{"category_name": "couch", "score": 0.91}]}]}]
"""

from __future__ import annotations

import json
import queue
from pathlib import Path
from typing import Callable, Optional

import typer
import uvicorn

from modeloverlay.configuration import get_settings
from modeloverlay.logging_utils import configure_root_logger
from modeloverlay.models import ResourceLoader
from modeloverlay.placement import PlacementCoordinator, detections_from_payload
from modeloverlay.scene import REGISTRY, SimulatedScene, SimulatedSurface

cli = typer.Typer(help="Serve or replay the 3D model overlay pipeline.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the overlay service using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger(settings.log_level)

    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(f"Starting model overlay service on http://{browser_host}:{effective_port}")
    uvicorn.run(
        "modeloverlay.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production,
    )


@cli.command()
def replay(
    detections_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON list of detection batches."),
    models_directory: Optional[Path] = typer.Option(None, help="Folder holding the model files."),
    timeout: float = typer.Option(10.0, help="Seconds to wait for each model load."),
) -> None:
    """Replay detections and report which models were placed."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    batches = json.loads(detections_file.read_text())
    if not isinstance(batches, list):
        raise typer.BadParameter("Replay file must contain a list of batches")

    # Load completions are queued and run here so only this thread touches the registry.
    completions: "queue.Queue[Callable[[], None]]" = queue.Queue()
    if models_directory is not None:
        settings = settings.model_copy(update={"models_directory": models_directory.resolve()})
    asset_loader = REGISTRY.create_from_settings(settings)
    resource_loader = ResourceLoader(asset_loader)
    scene = SimulatedScene()
    coordinator = PlacementCoordinator(
        resource_loader,
        SimulatedSurface(horizon=settings.horizon),
        scene,
        manual_category=settings.manual_category,
        dispatch=completions.put,
    )

    scheduled = 0
    try:
        for batch in batches:
            detections = detections_from_payload(batch.get("detections", []))
            scheduled += len(
                coordinator.on_detections(detections, batch["frame_width"], batch["frame_height"])
            )
        for _ in range(scheduled):
            try:
                completions.get(timeout=timeout)()
            except queue.Empty:
                typer.echo("Timed out waiting for model loads", err=True)
                break

        typer.echo(f"Scheduled {scheduled} placements; {len(coordinator)} active")
        for placement in coordinator.active_placements():
            typer.echo(
                f"  {placement.placement_id}: {placement.category} -> "
                f"{placement.model_key} (scale {placement.scale:.2f})"
            )
    finally:
        coordinator.teardown()
        resource_loader.dispose()
        asset_loader.shutdown()


if __name__ == "__main__":
    cli()
