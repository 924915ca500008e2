"""Extract a bounded mind-map tree from free-form model output.

Model output is expected to hold one JSON object, but it may be fenced in
Markdown or surrounded by prose. The object is located with a string-aware
brace scanner, parsed strictly, normalised into :class:`MindMapNode` limits
and then validated for minimum breadth. Anything that fails is rejected
outright; no partial or default tree is ever returned.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from podsum.completion.prompts import (
    MIND_MAP_SYSTEM_PROMPT,
    MIND_MAP_SYSTEM_PROMPT_ZH,
    mind_map_user_prompt,
)
from podsum.errors import InputError, MalformedOutputError
from podsum.extraction.models import MindMap, MindMapNode

logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 64
MAX_TREE_DEPTH = 3  # levels below the root
MAX_CHILDREN_PER_NODE = 10
MIN_FIRST_LEVEL = 4
MIN_SECOND_LEVEL = 2

_SYSTEM_PROMPTS = {"en": MIND_MAP_SYSTEM_PROMPT, "zh": MIND_MAP_SYSTEM_PROMPT_ZH}

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\s*```$")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_code_fence(raw: str) -> str:
    text = (raw or "").strip()
    text = _FENCE_START_RE.sub("", text)
    text = _FENCE_END_RE.sub("", text)
    return text.strip()


def extract_json_object(raw: str) -> str:
    """Return the first balanced ``{...}`` object in *raw*.

    Braces inside string literals (including escaped quotes) are ignored.
    If the object never closes, the unterminated tail is returned so that
    parsing fails on it. Text with no ``{`` is returned unchanged.
    """
    text = strip_code_fence(raw)
    if text.startswith("{") and text.endswith("}"):
        return text

    start = text.find("{")
    if start == -1:
        return text

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return text[start:]


def _clean_label(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return _WHITESPACE_RE.sub(" ", value).strip()[:MAX_LABEL_LENGTH]


def _normalize_node(value: Any, depth: int) -> MindMapNode | None:
    if not isinstance(value, dict):
        return None
    label = _clean_label(value.get("label"))
    if not label:
        return None

    node = MindMapNode(label=label)
    if depth >= MAX_TREE_DEPTH:
        return node

    raw_children = value.get("children")
    if not isinstance(raw_children, list):
        return node

    seen: set[str] = set()
    for raw_child in raw_children:
        if len(node.children) >= MAX_CHILDREN_PER_NODE:
            break
        child = _normalize_node(raw_child, depth + 1)
        if child is None:
            continue
        key = child.label.lower()
        if key in seen:
            continue
        seen.add(key)
        node.children.append(child)
    return node


def normalize_mind_map(value: Any) -> MindMap | None:
    """Normalise parsed JSON into a bounded tree, or ``None`` if unusable.

    Accepts ``{"root": {...}}`` or a bare root node. Returns ``None`` when
    the root has no label, no valid children, fewer than four first-level
    branches, or any first-level branch with fewer than two children.
    """
    if not isinstance(value, dict):
        return None
    root = _normalize_node(value.get("root", value), 0)
    if root is None or not root.children:
        return None
    if len(root.children) < MIN_FIRST_LEVEL:
        return None
    if any(len(branch.children) < MIN_SECOND_LEVEL for branch in root.children):
        return None
    return MindMap(root=root)


def is_mind_map_data(value: Any) -> bool:
    return normalize_mind_map(value) is not None


def extract_mind_map(raw: str) -> MindMap:
    """Parse and validate a mind map from raw model output.

    Raises:
        MalformedOutputError: If no JSON object parses or the tree fails
            the depth/breadth limits.
    """
    json_text = extract_json_object(raw)
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Mind map output is not valid JSON: {e}", stage="mind_map") from e

    mind_map = normalize_mind_map(parsed)
    if mind_map is None:
        raise MalformedOutputError("Model output is not a valid mind map tree", stage="mind_map")
    return mind_map


def generate_mind_map(
    complete: Callable[..., str],
    title: str = "",
    summary: str = "",
    highlights: str = "",
    max_tokens: int = 2600,
    language: str = "en",
) -> MindMap:
    """Ask the model for a mind map of the given content and extract it.

    *language* is ``"en"`` or ``"zh"`` and selects the prompt, so labels come
    back in that language.

    Raises:
        ValueError: If *language* is not supported.
        InputError: If title, summary and highlights are all empty.
        MalformedOutputError: If the model output is not a valid tree.
    """
    system_prompt = _SYSTEM_PROMPTS.get(language)
    if system_prompt is None:
        raise ValueError(f"Unsupported mind map language: {language!r}")

    signal = f"{title}\n{summary}\n{highlights}".strip()
    if not signal:
        raise InputError("Insufficient input content for mind map generation", stage="mind_map")

    raw = complete(
        system_prompt,
        mind_map_user_prompt(title, summary, highlights, language),
        max_tokens=max_tokens,
        temperature=0.2,
    )
    mind_map = extract_mind_map(raw)
    logger.debug("Mind map (%s) extracted with %d branches", language, len(mind_map.root.children))
    return mind_map
