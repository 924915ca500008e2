"""Group transcript blocks into size-bounded chunks."""

from __future__ import annotations

import math

from podsum.ingestion.models import Chunk, TranscriptBlock


def resolve_blocks_per_chunk(total_blocks: int, baseline: int, max_chunks: int) -> int:
    """Return the effective blocks-per-chunk for a transcript.

    Uses the larger of *baseline* and the minimum size that keeps the chunk
    count within *max_chunks*, so long transcripts grow their chunks instead
    of exceeding the budget.
    """
    baseline = max(1, baseline)
    if total_blocks <= 0:
        return baseline
    min_for_budget = math.ceil(total_blocks / max(1, max_chunks))
    return max(baseline, min_for_budget)


def group_blocks(
    blocks: list[TranscriptBlock],
    baseline: int = 180,
    max_chunks: int = 24,
) -> list[Chunk]:
    """Slice *blocks* into contiguous chunks.

    Blocks are never split or dropped; the chunk count never exceeds
    *max_chunks*.

    Args:
        blocks: Segmented transcript blocks, in order.
        baseline: Preferred number of blocks per chunk.
        max_chunks: Upper bound on the number of chunks.

    Returns:
        List of :class:`Chunk` with 1-based positions.
    """
    if not blocks:
        return []

    size = resolve_blocks_per_chunk(len(blocks), baseline, max_chunks)
    slices = [tuple(blocks[i : i + size]) for i in range(0, len(blocks), size)]
    return [
        Chunk(position=n, total=len(slices), blocks=run)
        for n, run in enumerate(slices, start=1)
    ]
