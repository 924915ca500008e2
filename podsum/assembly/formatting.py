"""Normalise full-text notes so each timestamped entry is its own paragraph.

Accepts timestamps written as ``00:00:00``, ``[00:00:00]``, ``**00:00:00**``
or ``**[00:00:00]**`` and rewrites them all to ``**[00:00:00]**``.
"""

from __future__ import annotations

import re

_FLEXIBLE_TIMESTAMP_RE = re.compile(r"(\*\*\s*)?\[?(\d{2}:\d{2}:\d{2}(?:[.,]\d{1,3})?)\]?(\s*\*\*)?")
_CANONICAL_TIMESTAMP_RE = re.compile(r"\*\*\[\d{2}:\d{2}:\d{2}(?:[.,]\d{1,3})?\]\*\*")


def enforce_line_breaks(text: str) -> str:
    normalized = (text or "").replace("\r\n", "\n").replace("\u00a0", " ")
    if not normalized.strip():
        return ""

    canonical = _FLEXIBLE_TIMESTAMP_RE.sub(lambda m: f"**[{m.group(2)}]**", normalized)
    separated = _CANONICAL_TIMESTAMP_RE.sub(lambda m: f"\n\n{m.group(0)}", canonical)

    separated = re.sub(r"[ \t]+\n", "\n", separated)
    separated = re.sub(r"\n{3,}", "\n\n", separated)
    return separated.strip()
