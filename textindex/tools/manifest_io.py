"""Manifest I/O: load, assemble, save and the full index build."""
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from textindex.models.config import ScanConfig
from textindex.models.manifest import Manifest, ManifestEntry, ScanError, ScanStats
from textindex.tools.file_processor import format_timestamp_ms
from textindex.tools.fs_scan import is_allowed_file, list_files_recursive
from textindex.tools.validity_cache import ValidityCache
from textindex.tools.worker_pool import ProgressCallback, run_workers

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1


class ManifestWriteError(Exception):
    """The manifest could not be persisted."""


def load_manifest(manifest_path: Path) -> Optional[Manifest]:
    """Load manifest from JSON file. Returns None if not found or invalid."""
    if not manifest_path.exists():
        return None

    try:
        return Manifest.model_validate_json(manifest_path.read_bytes())
    except (OSError, ValidationError) as e:
        logger.warning("Ignoring unreadable manifest %s: %s", manifest_path, e)
        return None


def save_manifest(manifest: Manifest, manifest_path: Path) -> None:
    """
    Save manifest to JSON file atomically (write temp then replace).

    Raises:
        ManifestWriteError: if the file cannot be written
    """
    try:
        payload = manifest.to_json()
    except ValueError as e:
        raise ManifestWriteError(f"Cannot serialize manifest {manifest_path}: {e}") from e

    tmp_name = None
    replaced = False
    try:
        manifest_path.parent.mkdir(parents=True, exist_ok=True)

        # Temp file in the same directory so the replace stays on one filesystem
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=manifest_path.parent,
            prefix=f".{manifest_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())

        # mkstemp creates 0600; the manifest is meant for other tools to read
        os.chmod(tmp_name, 0o644)
        # Atomic replace
        os.replace(tmp_name, manifest_path)
        replaced = True
    except (OSError, ValueError) as e:
        raise ManifestWriteError(f"Cannot write manifest {manifest_path}: {e}") from e
    finally:
        if not replaced and tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)


def assemble_manifest(
    entries: Iterable[ManifestEntry],
    errors: Iterable[ScanError],
    reused: int,
    total_files_seen: int,
    config: ScanConfig,
    generated_at: Optional[str] = None,
) -> Manifest:
    """
    Build the final manifest from worker output.

    Items are sorted by relPath and errors by (relPath, reason) so the
    result does not depend on the order workers finished in.

    Args:
        entries: Indexed entries (new and reused)
        errors: Walk and per-file errors
        reused: How many entries came from the previous manifest
        total_files_seen: Number of eligible files found by the walk
        config: Scan configuration (limits are echoed into stats)
        generated_at: Timestamp override, defaults to now

    Returns:
        Manifest ready to be saved
    """
    items = sorted(entries, key=lambda entry: entry.rel_path)
    sorted_errors = sorted(errors, key=lambda err: (err.rel_path, err.reason))

    return Manifest(
        version=MANIFEST_VERSION,
        generated_at=generated_at or _utc_now_iso(),
        base_dir=_base_dir(config.root_dir),
        items=items,
        stats=ScanStats(
            total_files_seen=total_files_seen,
            indexed=len(items),
            reused=reused,
            failed=len(sorted_errors),
            max_bytes=config.max_bytes,
            concurrency=config.concurrency,
        ),
        errors=sorted_errors,
    )


def build_index(config: ScanConfig, progress_callback: Optional[ProgressCallback] = None) -> Manifest:
    """
    Scan config.root_dir and rewrite the manifest.

    The previous manifest (if it loads) seeds the validity cache, so files
    whose size and mtime are unchanged are not read again.

    Args:
        config: Scan configuration
        progress_callback: Optional callback(rel_path) after each file

    Returns:
        The manifest that was written

    Raises:
        ManifestWriteError: if the manifest cannot be saved
    """
    root = config.root_dir
    manifest_path = config.manifest_path

    if config.create_root:
        root.mkdir(parents=True, exist_ok=True)

    previous = load_manifest(manifest_path)
    cache = ValidityCache.from_manifest(previous)
    if previous is None:
        logger.info("No usable manifest at %s, hashing every file", manifest_path)
    else:
        logger.info("Loaded %d cached entries from %s", len(cache), manifest_path)

    walk = list_files_recursive(root, config.exclude_dirs)
    candidates = [
        path for path in walk.files
        if is_allowed_file(path, config.allowed_extensions) and path != manifest_path
    ]
    logger.info("Found %d eligible files under %s", len(candidates), root)

    pooled = run_workers(candidates, root, cache, config, progress_callback)

    manifest = assemble_manifest(
        entries=pooled.entries,
        errors=[*walk.errors, *pooled.errors],
        reused=pooled.reused,
        total_files_seen=len(candidates),
        config=config,
    )
    save_manifest(manifest, manifest_path)

    logger.info(
        "Index written to %s: %d indexed, %d reused, %d failed",
        manifest_path, manifest.stats.indexed, manifest.stats.reused, manifest.stats.failed,
    )
    return manifest


def _utc_now_iso() -> str:
    return format_timestamp_ms(time.time_ns() // 1_000_000)


def _base_dir(root: Path) -> str:
    """Scan root relative to the working directory, "" when they are the same."""
    try:
        rel = os.path.relpath(root, Path.cwd())
    except ValueError:
        # Different drive on Windows
        return root.as_posix()
    return "" if rel == os.curdir else Path(rel).as_posix()
