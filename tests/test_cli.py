from __future__ import annotations

import yaml
from click.testing import CliRunner

from mousevr.__main__ import cli


def test_template_then_validate(tmp_path) -> None:
    runner = CliRunner()
    path = tmp_path / "session.yaml"

    result = runner.invoke(cli, ["template", str(path)])
    assert result.exit_code == 0, result.output
    assert path.exists()

    result = runner.invoke(cli, ["validate", str(path)])
    assert result.exit_code == 0, result.output
    assert "ok" in result.output


def test_validate_rejects_bad_file(tmp_path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("task: alternation\n")

    result = CliRunner().invoke(cli, ["validate", str(path)])

    assert result.exit_code != 0
    assert "Invalid configuration" in result.output


def test_run_stops_after_max_ticks(tmp_path) -> None:
    path = tmp_path / "session.yaml"
    path.write_text(yaml.safe_dump({
        "subject": "m01",
        "task": "alternation",
        "enable_socket": False,
        "com_port": "",
        "tick_interval": 0.0,
    }))

    result = CliRunner().invoke(cli, ["run", str(path), "--max-ticks", "3"])

    assert result.exit_code == 0, result.output
    assert "trial: 0, correct: 0" in result.output
