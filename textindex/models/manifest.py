"""Manifest of indexed text documents and their validation data."""
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


@dataclass(frozen=True)
class FileKey:
    """Cheap (size, mtime) fingerprint of a file's last-known state.

    Two different contents with the same size and modification time produce
    the same key, so a cache hit on such a file keeps the stale entry.
    """
    size: int
    mtime_ns: int

    @classmethod
    def from_stat(cls, st) -> "FileKey":
        return cls(size=st.st_size, mtime_ns=st.st_mtime_ns)

    @property
    def mtime_ms(self) -> float:
        return self.mtime_ns / 1_000_000

    def __str__(self) -> str:
        # "<size>-<mtimeMs>", with whole milliseconds written without ".0"
        ms = self.mtime_ms
        ms_text = str(int(ms)) if ms.is_integer() else repr(ms)
        return f"{self.size}-{ms_text}"


class Validation(BaseModel):
    """Integrity data recorded alongside each entry."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    content_hash: str = Field(alias="sha1")  # hash of the raw bytes
    file_key: str = Field(alias="fileKey")
    normalized_length: int = Field(alias="length")

    @field_validator('content_hash')
    @classmethod
    def validate_sha1(cls, v: str) -> str:
        """Ensure SHA-1 is valid hex string of correct length."""
        if len(v) != 40:
            raise ValueError('sha1 must be 40 characters')
        if not all(c in '0123456789abcdef' for c in v.lower()):
            raise ValueError('sha1 must be valid hex')
        return v.lower()

    @field_validator('normalized_length')
    @classmethod
    def validate_length(cls, v: int) -> int:
        if v < 0:
            raise ValueError('length must be non-negative')
        return v


class ManifestEntry(BaseModel):
    """Single indexed file. Immutable once created."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str  # content hash, stable identity
    name: str  # base filename
    rel_path: str = Field(alias="relPath")  # relative to the scan root, "/" separated
    size: int
    mtime: str  # ISO-8601 UTC, millisecond precision
    content: str  # normalized text
    validation: Validation

    @field_validator('size')
    @classmethod
    def validate_size(cls, v: int) -> int:
        """Ensure size is positive."""
        if v < 0:
            raise ValueError('size must be non-negative')
        return v

    @model_validator(mode='after')
    def check_id_matches_hash(self) -> "ManifestEntry":
        if self.id != self.validation.content_hash:
            raise ValueError('id must equal validation.sha1')
        return self


class ScanError(BaseModel):
    """A file or directory that could not be indexed."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    rel_path: str = Field(alias="relPath")
    reason: str


class ScanStats(BaseModel):
    """Aggregate counters for one scan."""
    model_config = ConfigDict(populate_by_name=True)

    total_files_seen: int = Field(alias="totalFilesSeen")
    indexed: int
    reused: int
    failed: int
    max_bytes: int = Field(alias="maxBytes")
    concurrency: int


class Manifest(BaseModel):
    """Snapshot of every indexed document under the scan root."""
    model_config = ConfigDict(populate_by_name=True)

    version: int = 1
    generated_at: str = Field(alias="generatedAt")  # ISO timestamp
    base_dir: str = Field(alias="baseDir")
    items: list[ManifestEntry] = Field(default_factory=list)
    stats: ScanStats
    errors: list[ScanError] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_invariants(self) -> "Manifest":
        """Reject manifests whose items or stats are inconsistent."""
        paths = [item.rel_path for item in self.items]
        if len(set(paths)) != len(paths):
            raise ValueError('relPath values must be unique')
        if paths != sorted(paths):
            raise ValueError('items must be sorted by relPath')
        if self.stats.indexed != len(self.items):
            raise ValueError('stats.indexed must equal the number of items')
        if self.stats.failed != len(self.errors):
            raise ValueError('stats.failed must equal the number of errors')
        if self.stats.reused > self.stats.indexed:
            raise ValueError('stats.reused cannot exceed stats.indexed')
        return self

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True)
