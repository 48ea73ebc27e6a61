"""Corpus ingestion and the embedding build path.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import asyncio
import json
from collections.abc import Iterable, Sequence
from pathlib import Path

# Local imports (core first, then alphabetical)
from ..core.exceptions import CorpusError, EncodingFailureError
from ..core.types import EmbedFn
from ..infra.logging import get_logger
from .records import VectorRecord

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("read_corpus", "read_corpus_file", "embed_chunks")

_log = get_logger("ingest")


# =============================================================================
# Section 12: Functions
# =============================================================================
def read_corpus(paths: Iterable[Path | str], *, text_field: str = "page_content") -> list[str]:
    """Read text chunks from JSONL files, in file order then line order.

    Args:
        paths: JSONL corpus files.
        text_field: Key holding the chunk text in each JSON object.

    Returns:
        Chunk texts. Malformed lines are skipped with a warning.

    Raises:
        CorpusError: If a file is missing or unreadable.
    """
    chunks: list[str] = []
    for path in paths:
        chunks.extend(read_corpus_file(Path(path), text_field=text_field))
    return chunks


def read_corpus_file(path: Path, *, text_field: str = "page_content") -> list[str]:
    """Read text chunks from a single JSONL file."""
    with _log.span("corpus.read", path=str(path)) as span:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError as exc:
            raise CorpusError(path, "file not found") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise CorpusError(path, str(exc)) from exc

        chunks: list[str] = []
        skipped = 0
        for line_no, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            text = _extract_text(line, text_field)
            if text is None:
                skipped += 1
                _log.warning("malformed_corpus_line", path=str(path), line=line_no, preview=line[:100])
                continue
            chunks.append(text)

        span.set_attribute("chunks", len(chunks))
        span.set_attribute("skipped", skipped)
        return chunks


async def embed_chunks(
    chunks: Sequence[str],
    embed_fn: EmbedFn,
    *,
    concurrency: int = 8,
) -> list[VectorRecord]:
    """Embed chunks into records with positional ids.

    Chunks are embedded concurrently, at most ``concurrency`` at a time; the
    returned records keep the input order. The first failure cancels the rest.

    Raises:
        EncodingFailureError: If any chunk fails to embed.
    """
    if concurrency <= 0:
        raise ValueError("concurrency must be positive")
    semaphore = asyncio.Semaphore(concurrency)

    async def embed_one(index: int, text: str) -> VectorRecord:
        async with semaphore:
            try:
                vector = await embed_fn(text)
            except EncodingFailureError:
                raise
            except Exception as exc:
                raise EncodingFailureError(text, str(exc), cause=exc) from exc
        if len(vector) == 0:
            raise EncodingFailureError(text, "provider returned an empty embedding")
        return VectorRecord(id=index, text=text, embedding=vector)

    with _log.span("corpus.embed", chunks=len(chunks), concurrency=concurrency):
        tasks = [asyncio.ensure_future(embed_one(index, text)) for index, text in enumerate(chunks)]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


def _extract_text(line: str, text_field: str) -> str | None:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    text = payload.get(text_field)
    return text if isinstance(text, str) else None
