"""CLI to scan a directory and rebuild the text index manifest."""
import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from tqdm import tqdm

from textindex.models.config import ScanConfig
from textindex.tools.manifest_io import ManifestWriteError, build_index


console = Console()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Index .txt/.md files under a directory into index.json"
    )
    parser.add_argument(
        "--root",
        type=Path,
        help="Directory to scan (default: $TEXTINDEX_ROOT or the current directory)"
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Manifest path (default: $TEXTINDEX_OUTPUT or <root>/index.json)"
    )
    parser.add_argument(
        "--max-bytes",
        type=int,
        help="Skip files larger than this many bytes (default: 5 MiB)"
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Number of worker threads (default: CPU count clamped to 2-8)"
    )
    parser.add_argument(
        "--ext",
        action="append",
        dest="extensions",
        help="Allowed extension, repeatable (default: .txt and .md)"
    )
    parser.add_argument(
        "--exclude-dir",
        action="append",
        dest="exclude_dirs",
        help="Directory name to skip, repeatable"
    )
    parser.add_argument(
        "--strict-decoding",
        action="store_true",
        help="Report files that are not valid UTF-8 as errors instead of replacing bad bytes"
    )
    parser.add_argument(
        "--create-root",
        action="store_true",
        help="Create the root directory if it does not exist"
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide the progress bar"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (one line per file)"
    )
    return parser.parse_args(argv)


def configure_logging(verbose: bool, debug: bool) -> None:
    if debug:
        log_level = logging.DEBUG
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    elif verbose:
        log_level = logging.INFO
        log_format = "%(asctime)s - %(levelname)s - %(message)s"
    else:
        log_level = logging.WARNING
        log_format = "%(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Build the index and print a summary. Returns the process exit code."""
    load_dotenv()
    args = parse_args(argv)
    configure_logging(args.verbose, args.debug)

    try:
        config = ScanConfig.from_env(
            root_dir=args.root,
            output_path=args.output,
            max_bytes=args.max_bytes,
            concurrency=args.concurrency,
            allowed_extensions=frozenset(args.extensions) if args.extensions else None,
            exclude_dirs=frozenset(args.exclude_dirs) if args.exclude_dirs else None,
            decode_errors="strict" if args.strict_decoding else None,
            create_root=True if args.create_root else None,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(e))}")
        return 1

    if not config.create_root and not config.root_dir.is_dir():
        console.print(f"[red]Error: directory not found: {escape(str(config.root_dir))}[/red]")
        console.print("Use --create-root to create it.")
        return 1

    console.print(f"Scanning: {escape(str(config.root_dir))}")
    console.print(f"Manifest: {escape(str(config.manifest_path))}")

    pbar = tqdm(desc="Indexing", unit="file", disable=args.no_progress)
    pbar_lock = threading.Lock()

    def progress_callback(rel_path):
        # Called from worker threads
        with pbar_lock:
            pbar.set_postfix_str(rel_path[-40:])
            pbar.update(1)

    try:
        manifest = build_index(config, progress_callback=progress_callback)
    except (ManifestWriteError, OSError) as e:
        pbar.close()
        console.print(f"[red]✗ Failed to build the index: {escape(str(e))}[/red]")
        return 1
    pbar.close()

    stats = manifest.stats
    table = Table(title=f"Index ready: {config.manifest_path.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="magenta", justify="right")
    table.add_row("Files seen", str(stats.total_files_seen))
    table.add_row("Indexed", str(stats.indexed))
    table.add_row("Reused", str(stats.reused))
    table.add_row("Failed", str(stats.failed))
    console.print(table)

    if stats.failed > 0:
        console.print(
            f'[yellow]⚠ See "errors" in {config.manifest_path.name} for details.[/yellow]'
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
