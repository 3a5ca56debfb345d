from __future__ import annotations

import json

from mindmapsys.cli import main


def test_config_check_json_success(capsys, tmp_path):
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        """
[access]
api_keys = ["prod-key"]

[sweeper]
ttl_seconds = 3600
interval_seconds = 600
"""
    )

    exit_code = main(["--config", str(config_file), "config", "check", "--format", "json"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "ok"
    assert payload["warnings"] == []
    assert payload["config_path"].endswith("config.toml")


def test_config_check_missing_file(capsys, tmp_path, log_capture):
    missing_path = tmp_path / "absent.toml"

    exit_code = main(["--config", str(missing_path), "config", "check"])

    assert exit_code == 2
    captured = capsys.readouterr()
    assert "Configuration error (missing_file" in captured.err
    assert str(missing_path) in captured.err


def test_config_check_validation_error(capsys, tmp_path, log_capture):
    config_file = tmp_path / "config.toml"
    config_file.write_text("unknown_field = 42\n")

    exit_code = main(["--config", str(config_file), "config", "check"])

    assert exit_code == 3
    captured = capsys.readouterr()
    assert "validation_error" in captured.err
    assert "Extra inputs are not permitted" in captured.err


def test_config_explain_text_output(capsys, log_capture):
    exit_code = main(["config", "explain"])

    assert exit_code == 0
    captured = capsys.readouterr()
    assert "Configuration schema" in captured.err
    assert "access.api_keys" in captured.err
    assert "generation.max_nodes" in captured.err


def test_config_explain_json_output(capsys):
    exit_code = main(["config", "explain", "--format", "json"])

    assert exit_code == 0
    names = {field["name"] for field in json.loads(capsys.readouterr().out)["fields"]}
    assert {"logging_level", "sweeper.interval_seconds", "web.cors_origins"} <= names
