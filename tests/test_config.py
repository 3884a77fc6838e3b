"""Tests for textindex.models.config."""
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from textindex.models.config import DEFAULT_MAX_BYTES, ScanConfig, default_concurrency


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("TEXTINDEX_"):
            monkeypatch.delenv(name)


def test_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = ScanConfig()

    assert config.root_dir == tmp_path.resolve()
    assert config.manifest_path == tmp_path.resolve() / "index.json"
    assert config.allowed_extensions == frozenset({".txt", ".md"})
    assert config.max_bytes == DEFAULT_MAX_BYTES == 5 * 1024 * 1024
    assert 2 <= config.concurrency <= 8
    assert config.decode_errors == "replace"


@pytest.mark.parametrize("cpus, expected", [(None, 2), (1, 2), (4, 4), (8, 8), (64, 8)])
def test_default_concurrency_is_clamped(monkeypatch, cpus, expected) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: cpus)
    assert default_concurrency() == expected


def test_extensions_are_normalized(tmp_path: Path) -> None:
    config = ScanConfig(root_dir=tmp_path, allowed_extensions={"TXT", ".Md", "rst"})
    assert config.allowed_extensions == frozenset({".txt", ".md", ".rst"})


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_bytes": -1},
        {"concurrency": 0},
        {"allowed_extensions": set()},
        {"decode_errors": "ignore"},
    ],
)
def test_invalid_values_rejected(tmp_path: Path, overrides: dict) -> None:
    with pytest.raises(ValidationError):
        ScanConfig(root_dir=tmp_path, **overrides)


def test_config_is_frozen(tmp_path: Path) -> None:
    config = ScanConfig(root_dir=tmp_path)
    with pytest.raises(ValidationError):
        config.max_bytes = 1


def test_from_env_reads_variables(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TEXTINDEX_ROOT", str(tmp_path))
    monkeypatch.setenv("TEXTINDEX_OUTPUT", str(tmp_path / "out" / "manifest.json"))
    monkeypatch.setenv("TEXTINDEX_EXTENSIONS", ".txt, .rst")
    monkeypatch.setenv("TEXTINDEX_MAX_BYTES", "2048")
    monkeypatch.setenv("TEXTINDEX_CONCURRENCY", "3")
    monkeypatch.setenv("TEXTINDEX_EXCLUDE_DIRS", "node_modules,.git")
    monkeypatch.setenv("TEXTINDEX_DECODE_ERRORS", "STRICT")
    monkeypatch.setenv("TEXTINDEX_CREATE_ROOT", "true")

    config = ScanConfig.from_env()

    assert config.root_dir == tmp_path.resolve()
    assert config.manifest_path == (tmp_path / "out" / "manifest.json").resolve()
    assert config.allowed_extensions == frozenset({".txt", ".rst"})
    assert config.max_bytes == 2048
    assert config.concurrency == 3
    assert config.exclude_dirs == frozenset({"node_modules", ".git"})
    assert config.decode_errors == "strict"
    assert config.create_root is True


def test_from_env_overrides_win(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TEXTINDEX_MAX_BYTES", "2048")
    monkeypatch.setenv("TEXTINDEX_CONCURRENCY", "3")

    config = ScanConfig.from_env(root_dir=tmp_path, max_bytes=10, concurrency=None)

    assert config.max_bytes == 10
    assert config.concurrency == 3


def test_from_env_invalid_number(monkeypatch) -> None:
    monkeypatch.setenv("TEXTINDEX_MAX_BYTES", "lots")
    with pytest.raises(ValidationError):
        ScanConfig.from_env()
