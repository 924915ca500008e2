"""Split an assembled summary into its Chinese and English sections.

Detection order:

1. ``<<<SUMMARY_EN>>>`` … ``<<<SUMMARY_ZH>>>`` markers, English first.
2. ``# English Summary`` followed later by ``# 中文总结`` headings (any heading level).
3. ``# 中文总结`` alone: everything before it is English.
4. Nothing found: the whole text is the Chinese (primary) section.

The Chinese section is the primary one and also fills the legacy
single-language field.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from podsum.completion.prompts import SUMMARY_EN_MARKER, SUMMARY_ZH_MARKER
from podsum.errors import MalformedOutputError

_ENGLISH_HEADING_RE = re.compile(r"#+\s*English Summary", re.IGNORECASE)
_CHINESE_HEADING_RE = re.compile(r"#+\s*中文总结", re.IGNORECASE)
_BULLET_RE = re.compile(r"^[ \t]*•[ \t]+", re.MULTILINE)
_INLINE_SPACE_RE = re.compile(r"(?<=\S)[ \t]{2,}")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class BilingualSummary:
    primary_text: str  # Chinese
    secondary_text: str  # English
    legacy_text: str

    @property
    def is_empty(self) -> bool:
        return not (self.primary_text or self.secondary_text)


def normalize_section(text: str) -> str:
    """Canonicalise bullets and whitespace in one summary section."""
    value = (text or "").replace("\r\n", "\n")
    value = _BULLET_RE.sub("- ", value)
    value = _INLINE_SPACE_RE.sub(" ", value)
    value = _TRAILING_SPACE_RE.sub("\n", value)
    value = _BLANK_RUN_RE.sub("\n\n", value)
    return value.strip()


def split_bilingual_summary(text: str) -> BilingualSummary:
    normalized = normalize_section(text)
    if not normalized:
        return BilingualSummary("", "", "")

    english = ""
    chinese = ""

    en_marker = normalized.find(SUMMARY_EN_MARKER)
    zh_marker = normalized.find(SUMMARY_ZH_MARKER)
    if en_marker >= 0 and zh_marker > en_marker:
        english = normalize_section(normalized[en_marker + len(SUMMARY_EN_MARKER) : zh_marker])
        chinese = normalize_section(normalized[zh_marker + len(SUMMARY_ZH_MARKER) :])
    else:
        en_heading = _ENGLISH_HEADING_RE.search(normalized)
        zh_heading = _CHINESE_HEADING_RE.search(normalized)
        if en_heading and zh_heading and zh_heading.start() > en_heading.start():
            english = normalize_section(normalized[en_heading.start() : zh_heading.start()])
            chinese = normalize_section(normalized[zh_heading.start() :])
        elif zh_heading:
            # Lone Chinese heading: whatever precedes it is taken as English.
            english = normalize_section(normalized[: zh_heading.start()])
            chinese = normalize_section(normalized[zh_heading.start() :])
        else:
            chinese = normalized

    primary = chinese or normalized
    return BilingualSummary(primary_text=primary, secondary_text=english, legacy_text=primary)


def require_bilingual_summary(text: str) -> BilingualSummary:
    """Like :func:`split_bilingual_summary` but rejects an unusable result.

    Raises:
        MalformedOutputError: If the text yields no summary at all.
    """
    summary = split_bilingual_summary(text)
    if summary.is_empty:
        raise MalformedOutputError("Summary output is empty", stage="summary")
    return summary
