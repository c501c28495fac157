import json
from pathlib import Path

from typer.testing import CliRunner

from tracery_grammar.cli import app


runner = CliRunner()


def _write(tmp_path: Path, data: dict, name: str = "grammar.json") -> str:
    p = tmp_path / name
    p.write_text(json.dumps(data), encoding="utf-8")
    return str(p)


STORY = {
    "origin": ["#[hero:#name#][pet:#animal#]story#"],
    "story": ["#hero.capitalize# and the #pet.s#. #hero.capitalize# again."],
    "name": ["anna", "bob"],
    "animal": ["owl", "crow"],
}


def test_flatten_origin_first_selector(tmp_path: Path):
    path = _write(tmp_path, STORY)
    r = runner.invoke(app, ["flatten", path, "--selector", "first"])
    assert r.exit_code == 0, r.output
    assert r.output.strip() == "Anna and the owls. Anna again."


def test_flatten_rule_and_count(tmp_path: Path):
    path = _write(tmp_path, STORY)
    r = runner.invoke(
        app, ["flatten", path, "--rule", "#name.capitalize#!", "--count", "3", "--selector", "sequential"]
    )
    assert r.exit_code == 0, r.output
    assert r.output.splitlines() == ["Anna!", "Bob!", "Anna!"]


def test_flatten_seed_is_reproducible(tmp_path: Path):
    path = _write(tmp_path, STORY)
    args = ["flatten", path, "-n", "5", "--seed", "11", "--format", "json"]
    a = runner.invoke(app, args)
    b = runner.invoke(app, args)
    assert a.exit_code == 0, a.output
    assert json.loads(a.output)["results"] == json.loads(b.output)["results"]
    payload = json.loads(a.output)
    assert payload["rule"] == "#origin#"
    assert len(payload["results"]) == 5


def test_flatten_selector_from_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TRACERY_SELECTOR", "first")
    path = _write(tmp_path, STORY)
    r = runner.invoke(app, ["flatten", path])
    assert r.exit_code == 0, r.output
    assert r.output.strip() == "Anna and the owls. Anna again."


def test_flatten_unknown_origin(tmp_path: Path):
    path = _write(tmp_path, {"start": ["x"]})
    r = runner.invoke(app, ["flatten", path])
    assert r.exit_code == 2
    assert "E_FLATTEN_UNKNOWN_ORIGIN" in r.output


def test_flatten_unknown_selector(tmp_path: Path):
    path = _write(tmp_path, STORY)
    r = runner.invoke(app, ["flatten", path, "--selector", "weighted"])
    assert r.exit_code == 2
    assert "E_UNKNOWN_SELECTOR" in r.output


def test_flatten_strict_depth(tmp_path: Path):
    path = _write(tmp_path, {"origin": ["#origin#"]})
    r = runner.invoke(app, ["flatten", path, "--max-depth", "4", "--strict"])
    assert r.exit_code == 2
    assert "E_MAX_DEPTH" in r.output


def test_flatten_depth_truncates_without_strict(tmp_path: Path):
    path = _write(tmp_path, {"origin": ["#origin#"]})
    r = runner.invoke(app, ["flatten", path, "--max-depth", "4", "--format", "json"])
    assert r.exit_code == 0, r.output
    assert json.loads(r.stdout)["results"] == ["#origin#"]


def test_flatten_missing_file(tmp_path: Path):
    r = runner.invoke(app, ["flatten", str(tmp_path / "missing.json")])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.output


def test_flatten_invalid_grammar(tmp_path: Path):
    path = _write(tmp_path, {"origin": [1, 2]})
    r = runner.invoke(app, ["flatten", path])
    assert r.exit_code == 2
    assert "E_INVALID_TYPE" in r.output


def test_flatten_json_missing_file(tmp_path: Path):
    r = runner.invoke(app, ["flatten", str(tmp_path / "missing.json"), "--format", "json"])
    assert r.exit_code == 1
    payload = json.loads(r.stdout)
    assert payload["command"] == "flatten"
    assert payload["ok"] is False
    assert payload["errors"][0]["code"] == "E_FILE_NOT_FOUND"
    assert payload["errors"][0]["source"] == "load"


def test_flatten_json_invalid_grammar(tmp_path: Path):
    path = _write(tmp_path, {"origin": [1, 2]})
    r = runner.invoke(app, ["flatten", path, "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert payload["error_count"] >= 1
    assert {e["code"] for e in payload["errors"]} == {"E_INVALID_TYPE"}


def test_flatten_json_unknown_origin(tmp_path: Path):
    path = _write(tmp_path, {"start": ["x"]})
    r = runner.invoke(app, ["flatten", path, "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["errors"][0]["code"] == "E_FLATTEN_UNKNOWN_ORIGIN"


def test_flatten_keeps_brackets_in_candidates(tmp_path: Path):
    path = _write(tmp_path, {"origin": ["arr[i] = #n#"], "n": ["0"]})
    r = runner.invoke(app, ["flatten", path])
    assert r.exit_code == 0, r.output
    assert r.stdout.strip() == "arr[i] = 0"
