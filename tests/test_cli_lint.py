import json
from pathlib import Path

from typer.testing import CliRunner

from tracery_grammar.cli import app


runner = CliRunner()


def _write(tmp_path: Path, data: dict) -> str:
    p = tmp_path / "g.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return str(p)


def test_cli_lint_success(tmp_path: Path):
    path = _write(tmp_path, {"origin": ["#animal.a.capitalize# flew"], "animal": ["eagle"]})
    r = runner.invoke(app, ["lint", path])
    assert r.exit_code == 0, r.output
    assert "OK: lint passed" in r.output


def test_cli_lint_findings(tmp_path: Path):
    path = _write(tmp_path, {"origin": ["#animl.s#", "#animal.shout#"], "animal": ["eagle"], "spare": ["x"]})
    r = runner.invoke(app, ["lint", path])
    assert r.exit_code == 2
    out = r.output
    assert "L_UNKNOWN_SYMBOL" in out
    assert "L_UNKNOWN_MODIFIER" in out
    assert "L_UNREACHABLE_SYMBOL" in out


def test_cli_lint_json(tmp_path: Path):
    path = _write(tmp_path, {"start": ["#start#"]})
    r = runner.invoke(app, ["lint", path, "--origin", "start", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.output)
    assert payload["command"] == "lint"
    assert payload["ok"] is False
    assert [e["code"] for e in payload["errors"]] == ["L_NON_TERMINATING"]
    assert payload["errors"][0]["source"] == "lint"


def test_cli_lint_reports_validation_errors(tmp_path: Path):
    path = _write(tmp_path, {"origin": {"nested": True}})
    r = runner.invoke(app, ["lint", path])
    assert r.exit_code == 2
    assert "E_INVALID_TYPE" in r.output


def test_cli_lint_ignores_invalid_max_depth_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TRACERY_MAX_DEPTH", "zero")
    path = _write(tmp_path, {"origin": ["#animal.s# flew"], "animal": ["eagle"]})
    r = runner.invoke(app, ["lint", path])
    assert r.exit_code == 0, r.output
    assert r.exception is None
    assert "OK: lint passed" in r.stdout
