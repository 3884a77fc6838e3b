"""Walk the scan root and pick out files eligible for indexing."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from textindex.models.manifest import ScanError

logger = logging.getLogger(__name__)


@dataclass
class WalkResult:
    """Files found under a root, plus directories that could not be read."""
    files: list[Path] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)


def is_allowed_file(path: Path | str, allowed_extensions: Iterable[str]) -> bool:
    """Return True if the path's extension (case-insensitive) is allowed."""
    suffix = os.path.splitext(str(path))[1].lower()
    return bool(suffix) and suffix in allowed_extensions


def list_files_recursive(root: Path, exclude_dirs: Iterable[str] = ()) -> WalkResult:
    """
    Recursively list every file under root.

    Directories that cannot be listed are skipped and reported as
    ScanError entries instead of aborting the walk; a missing root is
    reported the same way. Symlinked directories are not followed.

    Args:
        root: Directory to walk
        exclude_dirs: Directory names to prune wherever they appear

    Returns:
        WalkResult with absolute file paths (unordered) and walk errors
    """
    root = Path(root)
    excluded = frozenset(exclude_dirs)
    result = WalkResult()

    def on_error(err: OSError) -> None:
        failed = Path(err.filename) if err.filename else root
        rel_path = readable_name(relative_posix(failed, root))
        logger.warning("Skipping unreadable directory %s: %s", rel_path, err)
        result.errors.append(
            ScanError(rel_path=rel_path, reason=f"cannot read directory: {err.strerror or err}")
        )

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        # Prune in place so os.walk never descends into excluded directories
        dirnames[:] = [d for d in dirnames if d not in excluded]
        for filename in filenames:
            result.files.append(Path(dirpath) / filename)

    return result


def relative_posix(path: Path, root: Path) -> str:
    """Path relative to root with "/" separators (the path itself if outside root)."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def is_utf8_name(name: str) -> bool:
    """False if the OS handed back a name that is not valid UTF-8 (surrogate escapes)."""
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def readable_name(name: str) -> str:
    """Name with undecodable bytes shown as U+FFFD, safe to write into JSON."""
    return os.fsencode(name).decode("utf-8", "replace")
