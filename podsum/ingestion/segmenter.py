"""Split raw SRT transcripts into ordered, verbatim blocks."""

from __future__ import annotations

import re

from podsum.ingestion.models import TranscriptBlock

_INDEX_RE = re.compile(r"^\s*\d+\s*$")
_TIME_RANGE_RE = re.compile(
    r"^\s*(\d{1,2}:\d{2}:\d{2}[.,]\d{1,3})\s*-->\s*(\d{1,2}:\d{2}:\d{2}[.,]\d{1,3})"
)


def parse_srt_timestamp(ts: str) -> float:
    """Convert an SRT timestamp (HH:MM:SS,mmm) to seconds."""
    parts = ts.strip().replace(",", ".").split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
    elif len(parts) == 2:
        hours = "0"
        minutes, seconds = parts
    else:
        return 0.0
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def _cue_time_range(lines: list[str], i: int) -> re.Match[str] | None:
    """Return the time-range match when a cue (index line + time range) starts at line *i*."""
    if i + 1 >= len(lines) or _INDEX_RE.match(lines[i]) is None:
        return None
    return _TIME_RANGE_RE.match(lines[i + 1])


def segment_transcript(content: str) -> list[TranscriptBlock]:
    """Split an SRT transcript into ordered blocks.

    Each cue (index line + time-range line + text lines) becomes one block
    verbatim, running up to the next cue boundary. Text before the first cue
    is kept as its own untimed block; when nothing matches, the whole
    transcript is a single block. Empty or BOM-only input yields ``[]``.
    """
    text = content.lstrip("\ufeff").replace("\r\n", "\n").strip()
    if not text:
        return []

    lines = text.split("\n")
    cues = [
        (i, match) for i in range(len(lines)) if (match := _cue_time_range(lines, i)) is not None
    ]
    if not cues:
        return [TranscriptBlock(index=1, text=text)]

    blocks: list[TranscriptBlock] = []
    prelude = "\n".join(lines[: cues[0][0]]).strip()
    if prelude:
        blocks.append(TranscriptBlock(index=1, text=prelude))

    for n, (start, match) in enumerate(cues):
        end = cues[n + 1][0] if n + 1 < len(cues) else len(lines)
        start_time = parse_srt_timestamp(match.group(1))
        end_time = max(start_time, parse_srt_timestamp(match.group(2)))
        blocks.append(
            TranscriptBlock(
                index=len(blocks) + 1,
                text="\n".join(lines[start:end]).strip(),
                start_time=start_time,
                end_time=end_time,
            )
        )

    return blocks


def flatten_blocks(blocks: list[TranscriptBlock]) -> str:
    """Rejoin blocks into transcript text, one blank line between blocks."""
    return "\n\n".join(block.text for block in blocks)
