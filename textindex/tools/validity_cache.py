"""Read-only lookup of entries from the previous manifest."""
from types import MappingProxyType
from typing import Iterable, Optional

from textindex.models.manifest import FileKey, Manifest, ManifestEntry


class ValidityCache:
    """
    Previous manifest entries keyed by relPath.

    Built once per scan and never written afterwards, so worker threads can
    share it without locking.
    """

    def __init__(self, entries: Iterable[ManifestEntry] = ()):
        self._entries = MappingProxyType({entry.rel_path: entry for entry in entries})

    @classmethod
    def from_manifest(cls, manifest: Optional[Manifest]) -> "ValidityCache":
        """Seed from a loaded manifest; None gives an empty (cold) cache."""
        if manifest is None:
            return cls()
        return cls(manifest.items)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, rel_path: str) -> Optional[ManifestEntry]:
        return self._entries.get(rel_path)

    @staticmethod
    def is_valid(entry: ManifestEntry, live_key: FileKey) -> bool:
        """True if the entry was recorded for a file with this exact FileKey."""
        return entry.validation.file_key == str(live_key)

    def reusable(self, rel_path: str, live_key: FileKey) -> Optional[ManifestEntry]:
        """Return the cached entry for rel_path if it is still valid."""
        entry = self.lookup(rel_path)
        if entry is not None and self.is_valid(entry, live_key):
            return entry
        return None
