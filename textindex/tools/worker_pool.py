"""Process candidate files concurrently on a bounded pool of worker threads."""
import concurrent.futures
import logging
import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from textindex.models.config import ScanConfig
from textindex.models.manifest import FileKey, ManifestEntry, ScanError
from textindex.tools.file_processor import ProcessResult, process_file
from textindex.tools.fs_scan import is_utf8_name, readable_name, relative_posix
from textindex.tools.validity_cache import ValidityCache

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class PoolResult:
    """Everything the workers produced, in completion order."""
    entries: list[ManifestEntry] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)
    reused: int = 0


class ScanResults:
    """Result collector shared by all workers; every mutation holds the lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._result = PoolResult()

    def add(self, outcome: ProcessResult) -> None:
        with self._lock:
            if outcome.entry is not None:
                self._result.entries.append(outcome.entry)
                if outcome.reused:
                    self._result.reused += 1
            if outcome.error is not None:
                self._result.errors.append(outcome.error)

    def snapshot(self) -> PoolResult:
        with self._lock:
            return PoolResult(
                entries=list(self._result.entries),
                errors=list(self._result.errors),
                reused=self._result.reused,
            )


def run_workers(
    paths: Iterable[Path],
    root: Path,
    cache: ValidityCache,
    config: ScanConfig,
    progress_callback: Optional[ProgressCallback] = None,
) -> PoolResult:
    """
    Drain a shared queue of paths across config.concurrency workers.

    Every path is processed exactly once. A failure on one file is recorded
    as a ScanError and does not affect any other file. Returns only after
    the queue is empty and every worker has finished.

    Args:
        paths: Absolute paths of eligible files
        root: Scan root used to compute relPath
        cache: Entries from the previous manifest
        config: Scan configuration
        progress_callback: Optional callback(rel_path) after each file

    Returns:
        PoolResult with entries, errors and the reused count
    """
    work: queue.SimpleQueue[Path] = queue.SimpleQueue()
    for path in paths:
        work.put(path)

    results = ScanResults()

    def worker() -> None:
        while True:
            try:
                path = work.get_nowait()
            except queue.Empty:
                return
            rel_path = relative_posix(path, root)
            results.add(_scan_one(path, rel_path, cache, config))
            if progress_callback:
                progress_callback(readable_name(rel_path))

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=config.concurrency, thread_name_prefix="textindex"
    ) as pool:
        futures = [pool.submit(worker) for _ in range(config.concurrency)]
        for future in concurrent.futures.as_completed(futures):
            # Re-raise anything that escaped a worker loop
            future.result()

    return results.snapshot()


def _scan_one(path: Path, rel_path: str, cache: ValidityCache, config: ScanConfig) -> ProcessResult:
    if not is_utf8_name(rel_path):
        logger.warning("Skipping %s: file name is not valid UTF-8", readable_name(rel_path))
        return ProcessResult(
            error=ScanError(rel_path=readable_name(rel_path), reason="file name is not valid UTF-8")
        )
    try:
        st = path.stat()
    except OSError as e:
        logger.debug("Cannot stat %s: %s", rel_path, e)
        return ProcessResult(error=ScanError(rel_path=rel_path, reason=str(e)))
    return process_file(path, rel_path, FileKey.from_stat(st), cache, config)
