from __future__ import annotations

import json
import os
import time
from pathlib import Path

import pytest

from mindmapsys.cli import main

CONFIG_TEMPLATE = """
[access]
api_keys = ["cli-key"]

[storage]
output_dir = "{output_dir}"

[sweeper]
ttl_seconds = 3600
interval_seconds = 600
"""


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(CONFIG_TEMPLATE.format(output_dir="artifacts"), encoding="utf-8")
    return path


@pytest.fixture()
def markdown_file(tmp_path: Path) -> Path:
    path = tmp_path / "plan.md"
    path.write_text("# Plan\n## Build\n## Ship\n", encoding="utf-8")
    return path


def test_serve_dry_run(config_file: Path, log_capture, capsys: pytest.CaptureFixture[str]) -> None:
    return_code = main(["--config", str(config_file), "serve", "--dry-run"])

    assert return_code == 0
    captured = capsys.readouterr()
    assert "Registering sweep job every 600.0s" in captured.err
    assert "[Dry Run] Sweep job has been validated and registered." in captured.err
    assert "[Dry Run] Server will not be started." in captured.err


def test_convert_writes_artifacts(
    config_file: Path, markdown_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    return_code = main(["--config", str(config_file), "convert", str(markdown_file), "--title", "Roadmap"])

    assert return_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["title"] == "Roadmap"
    assert payload["formats"] == {"interactive": True, "preview": True, "outline": True}
    output_dir = tmp_path / "artifacts"
    assert sorted(path.suffix for path in output_dir.iterdir()) == [".html", ".json", ".svg"]


def test_convert_missing_file(config_file: Path, tmp_path: Path, log_capture, capsys) -> None:
    return_code = main(["--config", str(config_file), "convert", str(tmp_path / "absent.md")])

    assert return_code == 1
    assert "Markdown file not found" in capsys.readouterr().err


def test_outline_prints_tree(config_file: Path, markdown_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    return_code = main(["--config", str(config_file), "outline", str(markdown_file)])

    assert return_code == 0
    tree = json.loads(capsys.readouterr().out)
    assert tree["title"] == "Mind Map"
    assert [child["title"] for child in tree["children"][0]["children"]] == ["Build", "Ship"]


def test_sweep_removes_expired_artifacts(
    config_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output_dir = tmp_path / "artifacts"
    output_dir.mkdir()
    old = output_dir / "old-one.json"
    fresh = output_dir / "fresh-one.json"
    old.write_text("{}")
    fresh.write_text("{}")
    stale = time.time() - 7200
    os.utime(old, (stale, stale))

    return_code = main(["--config", str(config_file), "sweep"])

    assert return_code == 0
    assert not old.exists()
    assert fresh.exists()
    assert json.loads(capsys.readouterr().out) == {"scanned": 2, "removed": 1, "errors": 0}


def test_sweep_ttl_override(config_file: Path, tmp_path: Path) -> None:
    output_dir = tmp_path / "artifacts"
    output_dir.mkdir()
    artifact = output_dir / "recent.svg"
    artifact.write_text("<svg/>")
    ten_minutes_ago = time.time() - 600
    os.utime(artifact, (ten_minutes_ago, ten_minutes_ago))

    assert main(["--config", str(config_file), "sweep", "--dry-run", "--ttl-seconds", "60"]) == 0
    assert artifact.exists()
    assert main(["--config", str(config_file), "sweep", "--ttl-seconds", "60"]) == 0
    assert not artifact.exists()


def test_convert_output_dir_override(
    config_file: Path, markdown_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    target = tmp_path / "elsewhere"

    return_code = main(["--config", str(config_file), "convert", str(markdown_file), "--output-dir", str(target)])

    assert return_code == 0
    artifact_id = json.loads(capsys.readouterr().out)["id"]
    assert (target / f"{artifact_id}.html").is_file()
    assert (target / f"{artifact_id}.json").is_file()


def test_status_reports_configuration(config_file: Path, log_capture, capsys) -> None:
    return_code = main(["--config", str(config_file), "status"])

    assert return_code == 0
    captured = capsys.readouterr()
    assert "=== Access Gate ===" in captured.err
    assert "API keys configured: 1" in captured.err
    assert "External transformer: not configured" in captured.err
