"""Tests for the build_index and show_index command-line entry points."""
import json
import os
from pathlib import Path

import pytest

from textindex.cli import build_index as build_cli
from textindex.cli import show_index as show_cli


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("TEXTINDEX_"):
            monkeypatch.delenv(name)


def test_build_then_show(tmp_path: Path, capsys) -> None:
    root = tmp_path / "texts"
    root.mkdir()
    (root / "a.txt").write_text("hello")
    (root / "big.md").write_bytes(b"x" * 50)

    code = build_cli.main(["--root", str(root), "--max-bytes", "20", "--no-progress"])

    assert code == 0
    data = json.loads((root / "index.json").read_text())
    assert data["baseDir"] == "texts"
    assert data["stats"]["indexed"] == 1
    assert data["stats"]["failed"] == 1
    out = capsys.readouterr().out
    assert "Indexed" in out
    assert "errors" in out

    assert show_cli.main(["--root", str(root)]) == 0
    out = capsys.readouterr().out
    assert "a.txt" in out
    assert "big.md" in out


def test_build_missing_root_fails(tmp_path: Path) -> None:
    assert build_cli.main(["--root", str(tmp_path / "nope"), "--no-progress"]) == 1
    assert not (tmp_path / "nope").exists()


def test_build_create_root(tmp_path: Path) -> None:
    root = tmp_path / "nope"

    assert build_cli.main(["--root", str(root), "--create-root", "--no-progress"]) == 0
    assert (root / "index.json").exists()


def test_build_invalid_config(tmp_path: Path) -> None:
    assert build_cli.main(["--root", str(tmp_path), "--concurrency", "0", "--no-progress"]) == 1


def test_build_write_failure(tmp_path: Path) -> None:
    (tmp_path / "blocker").write_text("")
    code = build_cli.main([
        "--root", str(tmp_path), "--output", str(tmp_path / "blocker" / "index.json"),
        "--no-progress",
    ])
    assert code == 1


def test_show_without_manifest(tmp_path: Path) -> None:
    assert show_cli.main(["--root", str(tmp_path)]) == 1
