"""Tests for textindex.tools.validity_cache."""
import pytest

from textindex.models.manifest import FileKey, ManifestEntry, Validation
from textindex.tools.validity_cache import ValidityCache

SHA = "0123456789abcdef0123456789abcdef01234567"


def _entry(rel_path: str, file_key: str) -> ManifestEntry:
    return ManifestEntry(
        id=SHA,
        name=rel_path,
        rel_path=rel_path,
        size=4,
        mtime="2025-01-01T00:00:00.000Z",
        content="text",
        validation=Validation(content_hash=SHA, file_key=file_key, normalized_length=4),
    )


def test_empty_cache() -> None:
    cache = ValidityCache.from_manifest(None)
    assert len(cache) == 0
    assert cache.lookup("a.txt") is None
    assert cache.reusable("a.txt", FileKey(4, 1)) is None


def test_lookup_and_validity() -> None:
    key = FileKey(size=4, mtime_ns=1_735_689_600_000_000_000)
    entry = _entry("a.txt", str(key))
    cache = ValidityCache([entry])

    assert cache.lookup("a.txt") is entry
    assert ValidityCache.is_valid(entry, key)
    assert not ValidityCache.is_valid(entry, FileKey(size=5, mtime_ns=key.mtime_ns))
    assert not ValidityCache.is_valid(entry, FileKey(size=4, mtime_ns=key.mtime_ns + 1_000_000))
    assert cache.reusable("a.txt", key) is entry
    assert cache.reusable("a.txt", FileKey(5, key.mtime_ns)) is None
    assert cache.reusable("b.txt", key) is None


def test_cache_is_read_only() -> None:
    cache = ValidityCache([_entry("a.txt", "4-1")])
    with pytest.raises(TypeError):
        cache._entries["b.txt"] = _entry("b.txt", "4-1")
