"""Rank topic tags from a record's title, summary and source URL.

Tokens are scored by where they appear: a recognised source platform is
worth 8, every title occurrence 5 and every summary occurrence 1. Latin
words and CJK runs are tokenised separately; the top ten by score (ties
broken alphabetically) are returned in the casing they were first seen in.
"""

from __future__ import annotations

import json
import re

MAX_TAGS = 10

SOURCE_WEIGHT = 8
TITLE_WEIGHT = 5
SUMMARY_WEIGHT = 1

EN_STOPWORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "with", "from", "that", "this", "into", "about", "over",
        "your", "you", "are", "was", "were", "will", "how", "what", "why", "when",
        "they", "them", "their", "our", "ours", "its", "can", "new", "all", "not",
        "podcast", "summary", "video", "talk", "episode", "analysis", "transcript",
        "public", "private", "full", "text", "part", "chapter",
    }
)  # fmt: skip

ZH_STOPWORDS: frozenset[str] = frozenset(
    {
        "我们", "你们", "他们", "这个", "那个", "一些", "一个", "一种", "这样", "那么",
        "然后", "因为", "所以", "就是", "可以", "需要", "时候", "问题", "内容", "总结",
        "视频", "播客", "字幕", "重点", "分析", "翻译",
    }
)  # fmt: skip

# (substring, tag) pairs matched against the lowercased source reference
SOURCE_PLATFORMS: list[tuple[tuple[str, ...], str]] = [
    (("youtube.com", "youtu.be"), "YouTube"),
    (("bilibili.com",), "Bilibili"),
    (("x.com", "twitter.com"), "X"),
]

_LATIN_TOKEN_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.-]{1,28}")
_CJK_RUN_RE = re.compile(r"[\u4e00-\u9fff]{2,10}")
_DIGITS_RE = re.compile(r"^\d+$")
_TRAILING_PUNCT_RE = re.compile(r"[.,;:!?/\\|()\[\]{}'\"`]+$")
_WHITESPACE_RE = re.compile(r"\s+")

_MARKDOWN_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"```[\s\S]*?```"), " "),  # fenced code
    (re.compile(r"`[^`]*`"), " "),  # inline code
    (re.compile(r"!\[[^\]]*]\([^)]*\)"), " "),  # images
    (re.compile(r"\[[^\]]*]\([^)]*\)"), " "),  # links
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),  # headings
    (re.compile(r"[*_~>#-]"), " "),  # emphasis and list markers
]


def _clean_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def normalize_tag(value: str) -> str:
    tag = _clean_whitespace(value).lstrip("#")
    return _TRAILING_PUNCT_RE.sub("", tag)


def strip_markdown(text: str) -> str:
    value = text.replace("\r\n", "\n")
    for pattern, replacement in _MARKDOWN_PATTERNS:
        value = pattern.sub(replacement, value)
    return value


def detect_source_tags(source_reference: str | None) -> list[str]:
    source = (source_reference or "").lower()
    return [tag for needles, tag in SOURCE_PLATFORMS if any(n in source for n in needles)]


class _TagScores:
    """Accumulates scores by lowercase key and remembers first-seen casing."""

    def __init__(self) -> None:
        self.scores: dict[str, int] = {}
        self.display: dict[str, str] = {}

    def add(self, tag: str, weight: int) -> None:
        normalized = normalize_tag(tag)
        if not normalized:
            return
        key = normalized.lower()
        self.scores[key] = self.scores.get(key, 0) + weight
        self.display.setdefault(key, normalized)

    def add_latin(self, text: str, weight: int) -> None:
        for match in _LATIN_TOKEN_RE.findall(text):
            token = normalize_tag(match)
            if len(token) < 2 or token.lower() in EN_STOPWORDS or _DIGITS_RE.match(token):
                continue
            self.add(token, weight)

    def add_cjk(self, text: str, weight: int) -> None:
        for match in _CJK_RUN_RE.findall(text):
            phrase = normalize_tag(match)
            if len(phrase) < 2 or phrase in ZH_STOPWORDS:
                continue
            self.add(phrase, weight)

    def ranked(self, limit: int = MAX_TAGS) -> list[str]:
        ordered = sorted(self.scores.items(), key=lambda item: (-item[1], item[0]))
        tags: list[str] = []
        seen: set[str] = set()
        for key, _score in ordered[:limit]:
            tag = normalize_tag(self.display.get(key, key))
            if not tag or tag.lower() in seen:
                continue
            seen.add(tag.lower())
            tags.append(tag)
        return tags


def extract_tags(
    title: str | None,
    summary: str | None,
    source_reference: str | None = None,
    fallback_name: str | None = None,
) -> list[str]:
    """Derive up to ten ranked tags for a record.

    Args:
        title: Record title; falls back to *fallback_name* when empty.
        summary: Markdown summary; markup is stripped before tokenising.
        source_reference: Original URL, used to detect the source platform.
        fallback_name: Used as the title when *title* is empty (e.g. a file name).

    Returns:
        Tags ordered by descending score, then alphabetically.
    """
    title_text = _clean_whitespace(title or fallback_name or "")
    summary_text = _clean_whitespace(strip_markdown(summary or ""))

    scores = _TagScores()
    for tag in detect_source_tags(source_reference):
        scores.add(tag, SOURCE_WEIGHT)

    if title_text:
        scores.add_latin(title_text, TITLE_WEIGHT)
        scores.add_cjk(title_text, TITLE_WEIGHT)
    if summary_text:
        scores.add_latin(summary_text, SUMMARY_WEIGHT)
        scores.add_cjk(summary_text, SUMMARY_WEIGHT)

    return scores.ranked()


def normalize_db_tags(raw: object) -> list[str]:
    """Normalise a stored tag value (list, JSON array string or CSV) to at most ten tags."""
    if isinstance(raw, list):
        source: list[object] = raw
    elif isinstance(raw, str):
        try:
            parsed = json.loads(raw)
            source = parsed if isinstance(parsed, list) else []
        except json.JSONDecodeError:
            source = [part.strip() for part in raw.split(",") if part.strip()]
    else:
        source = []

    tags: list[str] = []
    seen: set[str] = set()
    for value in source:
        tag = normalize_tag(str(value or ""))
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        tags.append(tag)
        if len(tags) >= MAX_TAGS:
            break
    return tags
