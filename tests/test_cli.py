"""Tests for the fimble CLI (hash, build/view/check-manifest, config)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fimble.cli import app
from fimble_core.manifest import build_manifest, decode_manifest, save_manifest
from fimble_core.scan import Scanner

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch):
    """Keep stray fimble.yaml files out of the resolution order."""
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")


def _save(root: Path, dest: Path, mode: str = "exact") -> Path:
    save_manifest(build_manifest(root, mode=mode), dest)
    return dest


# ── fimble hash ──────────────────────────────────────────────────────


def test_hash_prints_tree_digest(scenario_tree: Path):
    result = runner.invoke(app, ["hash", str(scenario_tree)])
    assert result.exit_code == 0
    assert result.stdout.strip() == Scanner().scan(scenario_tree).hex()


def test_hash_multiple_paths(scenario_tree: Path, project_tree: Path):
    result = runner.invoke(app, ["hash", str(scenario_tree), str(project_tree)])
    assert result.exit_code == 0
    expected = Scanner().scan_multiple([scenario_tree, project_tree])
    assert result.stdout.strip() == expected.hex()


def test_hash_missing_path_fails(tmp_path: Path):
    result = runner.invoke(app, ["hash", str(tmp_path / "missing")])
    assert result.exit_code == 1
    assert "io error" in result.output


def test_hash_uses_config_file(scenario_tree: Path, tmp_path: Path):
    cfg = tmp_path / "custom.yaml"
    cfg.write_text("digest:\n  algorithm: blake2b\n")
    result = runner.invoke(app, ["--config", str(cfg), "hash", str(scenario_tree)])
    assert result.exit_code == 0
    assert result.stdout.strip() != Scanner().scan(scenario_tree).hex()


def test_invalid_config_file_fails(scenario_tree: Path, tmp_path: Path):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("digest:\n  algorithm: md5\n")
    result = runner.invoke(app, ["-c", str(cfg), "hash", str(scenario_tree)])
    assert result.exit_code == 1
    assert "Invalid config" in result.output


# ── fimble build-manifest ────────────────────────────────────────────


def test_build_manifest_to_stdout(scenario_tree: Path):
    result = runner.invoke(app, ["build-manifest", str(scenario_tree)])
    assert result.exit_code == 0
    manifest = decode_manifest(result.stdout)
    assert manifest.mode == "exact"
    assert manifest.digest == Scanner().scan(scenario_tree)


def test_build_manifest_probabilistic(scenario_tree: Path):
    result = runner.invoke(
        app,
        ["build-manifest", str(scenario_tree), "--mode", "probabilistic", "--fp-rate", "0.01"],
    )
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert "table" not in data
    assert data["bloom"]["false_positive_rate"] == 0.01


def test_build_manifest_to_file(scenario_tree: Path, tmp_path: Path):
    out = tmp_path / "baseline.json"
    result = runner.invoke(app, ["build-manifest", str(scenario_tree), "-o", str(out)])
    assert result.exit_code == 0
    assert "Manifest written to" in result.output
    assert decode_manifest(out.read_text()).root == str(scenario_tree)


def test_build_manifest_rejects_unknown_mode(scenario_tree: Path):
    result = runner.invoke(app, ["build-manifest", str(scenario_tree), "--mode", "fuzzy"])
    assert result.exit_code == 1
    assert "unknown mode" in result.output


def test_build_manifest_rejects_bad_fp_rate(scenario_tree: Path):
    result = runner.invoke(app, ["build-manifest", str(scenario_tree), "--fp-rate", "1.5"])
    assert result.exit_code == 1
    assert "--fp-rate" in result.output


def test_build_manifest_unwritable_output_fails(scenario_tree: Path, tmp_path: Path):
    out = tmp_path / "no-such-dir" / "baseline.json"
    result = runner.invoke(app, ["build-manifest", str(scenario_tree), "-o", str(out)])
    assert result.exit_code == 1
    assert "cannot write manifest" in result.output
    assert not isinstance(result.exception, OSError)


# ── fimble view-manifest ─────────────────────────────────────────────


def test_view_exact_manifest(scenario_tree: Path, tmp_path: Path):
    path = _save(scenario_tree, tmp_path / "m.json")
    manifest = build_manifest(scenario_tree)
    result = runner.invoke(app, ["view-manifest", str(path)])
    assert result.exit_code == 0
    assert manifest.digest.hex() in result.output
    assert "exact" in result.output
    assert f"{manifest.table['b/c.txt'].hex()}  b/c.txt" in result.output


def test_view_probabilistic_manifest(scenario_tree: Path, tmp_path: Path):
    path = _save(scenario_tree, tmp_path / "m.json", mode="probabilistic")
    result = runner.invoke(app, ["view-manifest", str(path)])
    assert result.exit_code == 0
    assert "probabilistic" in result.output
    assert "checkpoints" in result.output


def test_view_invalid_manifest_fails(tmp_path: Path):
    path = tmp_path / "junk.json"
    path.write_text("{}")
    result = runner.invoke(app, ["view-manifest", str(path)])
    assert result.exit_code == 1
    assert "not a fimble manifest" in result.output


# ── fimble check-manifest ────────────────────────────────────────────


def test_check_unchanged_tree(scenario_tree: Path, tmp_path: Path):
    path = _save(scenario_tree, tmp_path / "m.json")
    result = runner.invoke(app, ["check-manifest", str(path)])
    assert result.exit_code == 0
    assert result.stdout == ""


def test_check_reports_changed_paths(scenario_tree: Path, tmp_path: Path):
    path = _save(scenario_tree, tmp_path / "m.json")
    with open(scenario_tree / "a.txt", "a") as f:
        f.write("!")
    (scenario_tree / "d.txt").write_text("new")

    result = runner.invoke(app, ["check-manifest", str(path)])
    assert result.exit_code == 1
    assert "a.txt" in result.output
    assert "d.txt" in result.output
    assert "b/c.txt" not in result.output
    assert "something has changed" in result.output


def test_check_probabilistic_reports_divergence(scenario_tree: Path, tmp_path: Path):
    path = _save(scenario_tree, tmp_path / "m.json", mode="probabilistic")
    (scenario_tree / "a.txt").write_text("changed")

    result = runner.invoke(app, ["check-manifest", str(path)])
    assert result.exit_code == 1
    assert (
        "diverged at or before:" in result.output
        or "tree digest differs from manifest" in result.output
    )
    assert "diverged at or before: ." not in result.output


def test_check_probabilistic_trailing_removal(scenario_tree: Path, tmp_path: Path):
    path = _save(scenario_tree, tmp_path / "m.json", mode="probabilistic")
    (scenario_tree / "b" / "c.txt").unlink()

    result = runner.invoke(app, ["check-manifest", str(path)])
    assert result.exit_code == 1
    assert "tree digest differs from manifest" in result.output


def test_check_missing_manifest_fails(tmp_path: Path):
    result = runner.invoke(app, ["check-manifest", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "cannot read manifest" in result.output


def test_check_rejects_unknown_algorithm(scenario_tree: Path, tmp_path: Path):
    path = _save(scenario_tree, tmp_path / "m.json")
    data = json.loads(path.read_text())
    data["algorithm"] = "md5"
    path.write_text(json.dumps(data))

    result = runner.invoke(app, ["check-manifest", str(path)])
    assert result.exit_code == 1
    assert "unsupported digest algorithm" in result.output


# ── fimble config ────────────────────────────────────────────────────


def test_config_init_creates_file():
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 0
    assert Path("fimble.yaml").is_file()
    assert "algorithm" in Path("fimble.yaml").read_text()


def test_config_init_refuses_to_overwrite():
    Path("fimble.yaml").write_text("log_level: debug\n")
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 1
    assert Path("fimble.yaml").read_text() == "log_level: debug\n"

    result = runner.invoke(app, ["config", "init", "--force"])
    assert result.exit_code == 0
    assert "sha256" in Path("fimble.yaml").read_text()


def test_config_show_reflects_project_file():
    Path("fimble.yaml").write_text("manifest:\n  mode: probabilistic\n")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "probabilistic" in result.output
