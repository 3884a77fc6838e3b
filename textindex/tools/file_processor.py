"""Hash, normalize and describe a single text file."""
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from textindex.models.config import ScanConfig
from textindex.models.manifest import FileKey, ManifestEntry, ScanError, Validation
from textindex.tools.validity_cache import ValidityCache

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome for one file: an entry (new or reused) or an error."""
    entry: Optional[ManifestEntry] = None
    error: Optional[ScanError] = None
    reused: bool = False


def process_file(
    path: Path,
    rel_path: str,
    key: FileKey,
    cache: ValidityCache,
    config: ScanConfig,
) -> ProcessResult:
    """
    Produce the manifest entry for one file.

    Files over config.max_bytes are rejected without being read. A file whose
    live FileKey matches its cached entry gets that entry back unchanged,
    whatever config.decode_errors says; decoding only applies to files read.
    Everything else is read, hashed and normalized. I/O and decoding failures
    come back as a ScanError and never raise.

    Args:
        path: Absolute path of the file
        rel_path: Path relative to the scan root
        key: Live FileKey from stat (size and mtime)
        cache: Entries from the previous manifest
        config: Scan configuration

    Returns:
        ProcessResult with exactly one of entry or error set
    """
    if key.size > config.max_bytes:
        return ProcessResult(
            error=ScanError(rel_path=rel_path, reason=f"exceeds {config.max_bytes} bytes")
        )

    cached = cache.reusable(rel_path, key)
    if cached is not None:
        logger.debug("Reusing cached entry for %s", rel_path)
        return ProcessResult(entry=cached, reused=True)

    try:
        data = path.read_bytes()
        content = normalize_text(data.decode("utf-8", errors=config.decode_errors))
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Failed to read %s: %s", rel_path, e)
        return ProcessResult(error=ScanError(rel_path=rel_path, reason=str(e)))

    digest = compute_sha1(data)
    logger.debug("Hashed %s (%s)", rel_path, digest)
    entry = ManifestEntry(
        id=digest,
        name=path.name,
        rel_path=rel_path,
        size=key.size,
        mtime=format_timestamp_ms(key.mtime_ns // 1_000_000),
        content=content,
        validation=Validation(
            content_hash=digest,
            file_key=str(key),
            normalized_length=len(content),
        ),
    )
    return ProcessResult(entry=entry)


def compute_sha1(data: bytes) -> str:
    """Compute SHA-1 hex digest of raw file bytes."""
    return hashlib.sha1(data).hexdigest()


def normalize_text(text: str) -> str:
    """Drop leading BOMs, unify line endings to \\n and trim the document tail."""
    text = text.lstrip("\ufeff")
    return text.replace("\r\n", "\n").replace("\r", "\n").rstrip()


def format_timestamp_ms(ms: int) -> str:
    """Format epoch milliseconds as ISO-8601 UTC, e.g. 2025-08-14T16:33:00.123Z."""
    moment = _EPOCH + timedelta(milliseconds=ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
