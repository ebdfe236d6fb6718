"""Mini README: Tests for the command line launcher.

Drives ``replay`` with Typer's runner against a temporary models folder so
the queued completions, printed summary and teardown are all exercised.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from main_overlay import cli

from conftest import glb_bytes

RUNNER = CliRunner()


def _batch(category: str) -> dict:
    return {
        "frame_width": 640,
        "frame_height": 480,
        "detections": [
            {
                "bounding_box": {"left": 200, "top": 300, "right": 440, "bottom": 460},
                "categories": [{"category_name": category, "score": 0.9}],
            }
        ],
    }


@pytest.fixture
def models_directory(tmp_path: Path) -> Path:
    directory = tmp_path / "models"
    directory.mkdir()
    (directory / "sofa.glb").write_bytes(glb_bytes(b"sofa"))
    (directory / "chair.glb").write_bytes(glb_bytes(b"chair"))
    return directory


def _replay(tmp_path: Path, models_directory: Path, batches: list):
    replay_file = tmp_path / "detections.json"
    replay_file.write_text(json.dumps(batches))
    return RUNNER.invoke(
        cli,
        ["replay", str(replay_file), "--models-directory", str(models_directory), "--timeout", "5"],
    )


def test_replay_prints_placed_models(tmp_path: Path, models_directory: Path) -> None:
    result = _replay(tmp_path, models_directory, [_batch("couch"), _batch("lamp")])

    assert result.exit_code == 0, result.output
    assert "Scheduled 2 placements; 2 active" in result.output
    assert "couch -> sofa.glb (scale 0.70)" in result.output
    assert "lamp -> chair.glb (scale 0.50)" in result.output


def test_replay_skips_models_that_fail_to_load(tmp_path: Path, models_directory: Path) -> None:
    result = _replay(tmp_path, models_directory, [_batch("tv"), _batch("chair")])

    assert result.exit_code == 0, result.output
    assert "Scheduled 2 placements; 1 active" in result.output
    assert "chair -> chair.glb (scale 0.50)" in result.output


def test_replay_rejects_non_list_files(tmp_path: Path, models_directory: Path) -> None:
    result = _replay(tmp_path, models_directory, {"frame_width": 640})  # type: ignore[arg-type]
    assert result.exit_code != 0
