from __future__ import annotations

import importlib
import os
import sys

import yaml

import run
from conftest import BOTTLENECK_LENGTH, OVERLAP, STYLE_DIM, TILE_DIM, FakeStyleModels, random_image
from eztransfer.engines.backends import ModelContext
from eztransfer.project import Project
from eztransfer.utils import io_utils


def _write_config(tmp_path) -> str:
    io_utils.write_image(tmp_path / "content.png", random_image(20, 24))
    io_utils.write_image(tmp_path / "style.png", random_image(10, 10, seed=3))
    config = {
        "project": {
            "content_path": str(tmp_path / "content.png"),
            "style_path": str(tmp_path / "style.png"),
            "output_path": str(tmp_path / "styled.png"),
        },
        "tiling": {"tile_dim": TILE_DIM, "overlap": OVERLAP},
        "models": {"style_dim": STYLE_DIM, "bottleneck_length": BOTTLENECK_LENGTH},
        "pipeline": {"show_progress": False},
    }
    path = tmp_path / "project.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)
    return str(path)


def test_importing_the_cli_leaves_the_environment_alone(monkeypatch) -> None:
    monkeypatch.delenv("KMP_DUPLICATE_LIB_OK", raising=False)

    importlib.reload(run)

    assert "KMP_DUPLICATE_LIB_OK" not in os.environ


def test_cli_runs_a_project_and_exits_cleanly(tmp_path, monkeypatch) -> None:
    models = FakeStyleModels()

    def _project_with_fake_models(config_path):
        return Project(config_path, models=ModelContext(models.predict, models.transfer))

    monkeypatch.setattr(run, "Project", _project_with_fake_models)
    monkeypatch.setattr(sys, "argv", ["run.py", "--config", _write_config(tmp_path)])

    assert run.main() == 0
    assert (tmp_path / "styled.png").exists()
    assert models.predict_calls == 1


def test_cli_reports_a_missing_config(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["run.py", "--config", str(tmp_path / "missing.yaml")])

    assert run.main() == 1
