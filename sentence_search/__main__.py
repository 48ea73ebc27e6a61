"""Command-line entry point for sentence-search.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

# Third-party (alphabetical)
from rich.console import Console
from rich.table import Table

# Local imports (core first, then alphabetical)
from . import __version__
from .core.exceptions import SentenceSearchError
from .core.settings import SearchSettings
from .embeddings.store import FileSnapshotStore
from .infra.config import load_settings
from .infra.logging import configure_logging
from .service import SearchService

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("main", "build_parser")

console = Console()


# =============================================================================
# Section 12: Functions
# =============================================================================
def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sentence-search",
        description="Semantic search over a corpus of text chunks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Embed the corpus (or load the cached snapshot)
  python -m sentence_search build --corpus data/llama4.jsonl --corpus data/qwen3.jsonl

  # Query the snapshot
  python -m sentence_search search "how long is the context window" --top-n 3
""",
    )
    parser.add_argument("--snapshot", type=Path, help="Snapshot file (default: from settings)")
    parser.add_argument("--corpus", type=Path, action="append", help="JSONL corpus file; repeatable")
    parser.add_argument("--provider", choices=("hash", "pydantic-ai"), help="Embedding provider")
    parser.add_argument("--verbose", "-v", action="store_true", help="Echo logs to the console")

    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Load the snapshot or build it from the corpus")
    build.add_argument("--rebuild", action="store_true", help="Discard any existing snapshot first")

    query = subparsers.add_parser("search", help="Search the corpus")
    query.add_argument("query", help="Query text")
    query.add_argument("--top-n", "-n", type=int, default=None, help="Number of results")

    subparsers.add_parser("version", help="Print the package version")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)
    if args.command == "version":
        console.print(f"sentence-search version {__version__}")
        return 0

    settings = _apply_overrides(load_settings(), args)
    configure_logging(environment=settings.environment, console=args.verbose)
    try:
        return asyncio.run(_run(args, settings))
    except SentenceSearchError as exc:
        console.print(f"[red]error:[/red] {exc}")
        return 1


async def _run(args: argparse.Namespace, settings: SearchSettings) -> int:
    if args.command == "build" and args.rebuild:
        FileSnapshotStore(settings.snapshot_path).delete()

    async with SearchService.from_settings(settings) as service:
        with console.status("Loading vector database..."):
            database = await service.initialize()

        if args.command == "build":
            console.print(
                f"[green]ready[/green] {len(database)} records, dimension {database.dimension}, "
                f"snapshot {settings.snapshot_path}"
            )
            return 0

        outcome = await service.search(args.query, args.top_n)
        table = Table(title=f"Results for {args.query!r}")
        table.add_column("id", justify="right")
        table.add_column("similarity", justify="right")
        table.add_column("text")
        for result in outcome.results:
            table.add_row(str(result.id), f"{result.similarity:.4f}", result.text[:200])
        console.print(table)
        console.print(f"[dim]{len(outcome.results)} results in {outcome.elapsed_ms:.2f} ms[/dim]")
        return 0


def _apply_overrides(settings: SearchSettings, args: argparse.Namespace) -> SearchSettings:
    update: dict[str, object] = {}
    if args.snapshot is not None:
        update["snapshot_path"] = args.snapshot.expanduser()
    if args.corpus:
        update["corpus_paths"] = list(args.corpus)
    if args.provider is not None:
        update["embedding_provider"] = args.provider
    return settings.model_copy(update=update) if update else settings


if __name__ == "__main__":
    sys.exit(main())
