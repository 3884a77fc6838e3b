"""CLI to print the current text index manifest."""
import argparse
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from textindex.models.config import ScanConfig
from textindex.tools.manifest_io import load_manifest


console = Console()


def main(argv: Optional[list[str]] = None) -> int:
    """Show stats, items and errors of the manifest."""
    load_dotenv()
    parser = argparse.ArgumentParser(description="Show the text index manifest")
    parser.add_argument(
        "--root",
        type=Path,
        help="Scanned directory (default: $TEXTINDEX_ROOT or the current directory)"
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Manifest path (default: $TEXTINDEX_OUTPUT or <root>/index.json)"
    )
    args = parser.parse_args(argv)

    try:
        config = ScanConfig.from_env(root_dir=args.root, output_path=args.output)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(e))}")
        return 1
    manifest_path = config.manifest_path

    manifest = load_manifest(manifest_path)
    if manifest is None:
        console.print(f"[red]Error: no valid manifest at {escape(str(manifest_path))}[/red]")
        console.print("Run 'python -m textindex.cli.build_index' first.")
        return 1

    stats = manifest.stats
    console.print(f"Manifest:  {escape(str(manifest_path))}")
    console.print(f"Generated: {manifest.generated_at}")
    console.print(
        f"Indexed: {stats.indexed} | Reused: {stats.reused} | Failed: {stats.failed} "
        f"| Files seen: {stats.total_files_seen}"
    )

    if manifest.items:
        table = Table(title="Items")
        table.add_column("Path", style="cyan")
        table.add_column("Size", justify="right")
        table.add_column("Modified")
        table.add_column("SHA-1", style="magenta")
        for item in manifest.items:
            table.add_row(escape(item.rel_path), str(item.size), item.mtime, item.id[:12])
        console.print(table)

    if manifest.errors:
        console.print("\n[bold]Errors:[/bold]")
        for err in manifest.errors:
            console.print(f"  [yellow]{escape(err.rel_path)}[/yellow]: {escape(err.reason)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
