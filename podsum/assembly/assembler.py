"""Resolve transcript chunks through the completion service and merge the outputs."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from podsum.backfill.pool import run_bounded
from podsum.errors import ChunkFailedError
from podsum.ingestion.models import Chunk

logger = logging.getLogger(__name__)


@dataclass
class ChunkResult:
    """Completion output (or failure) for one chunk."""

    position: int  # 1-based
    text: str | None = None
    error: BaseException | None = None


def resolve_chunks(
    chunks: Sequence[Chunk],
    complete_chunk: Callable[[Chunk], str],
    concurrency: int = 1,
) -> list[ChunkResult]:
    """Run *complete_chunk* over every chunk with bounded concurrency.

    Completion order is irrelevant: results come back in chunk position order.
    Failures are recorded per chunk rather than raised.
    """
    pool_results = run_bounded(chunks, complete_chunk, concurrency, name="chunk")
    results: list[ChunkResult] = []
    for chunk, outcome in zip(chunks, pool_results, strict=True):
        if outcome.error is not None:
            logger.warning("Chunk %d/%d failed: %s", chunk.position, chunk.total, outcome.error)
        results.append(ChunkResult(position=chunk.position, text=outcome.value, error=outcome.error))
    return sorted(results, key=lambda r: r.position)


def assemble_document(results: Sequence[ChunkResult] | Mapping[int, str | None]) -> str:
    """Join chunk outputs, in position order, into one document.

    Positions must cover 1..N exactly. Empty outputs are skipped; outputs are
    separated by a blank line and the result is trimmed.

    Raises:
        ChunkFailedError: If any chunk failed or a position is missing.
            Partial documents are never returned.
    """
    if isinstance(results, Mapping):
        by_position = {pos: ChunkResult(position=pos, text=text) for pos, text in results.items()}
    else:
        by_position = {r.position: r for r in results}

    parts: list[str] = []
    for position in range(1, len(by_position) + 1):
        result = by_position.get(position)
        if result is None or result.error is not None or result.text is None:
            raise ChunkFailedError(position, result.error if result else None)
        text = result.text.strip()
        if text:
            parts.append(text)

    return "\n\n".join(parts).strip()
