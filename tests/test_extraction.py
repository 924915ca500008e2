"""Tests for mind-map extraction from noisy model output (no external APIs required)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from podsum.completion.prompts import MIND_MAP_SYSTEM_PROMPT_ZH
from podsum.errors import InputError, MalformedOutputError
from podsum.extraction.mind_map import (
    MAX_CHILDREN_PER_NODE,
    extract_json_object,
    extract_mind_map,
    generate_mind_map,
    is_mind_map_data,
    normalize_mind_map,
    strip_code_fence,
)
from podsum.extraction.models import MindMapNode

VALID_TREE = (
    '{"root":{"label":"A","children":['
    '{"label":"B","children":[{"label":"C"},{"label":"D"}]},'
    '{"label":"E","children":[{"label":"F"},{"label":"G"}]},'
    '{"label":"H","children":[{"label":"I"},{"label":"J"}]},'
    '{"label":"K","children":[{"label":"L"},{"label":"M"}]}]}}'
)


def _branch(label: str, n_children: int = 2, **extra: object) -> dict:
    return {"label": label, "children": [{"label": f"{label}-{i}"} for i in range(n_children)], **extra}


def _tree(*branches: dict, label: str = "Root") -> dict:
    return {"root": {"label": label, "children": list(branches)}}


def _four_branches() -> list[dict]:
    return [_branch(name) for name in ("One", "Two", "Three", "Four")]


# ---------------------------------------------------------------------------
# JSON location
# ---------------------------------------------------------------------------


class TestExtractJsonObject:
    def test_strip_code_fence(self) -> None:
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fence('```JSON {"a": 1} ```') == '{"a": 1}'
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_whole_object_returned_directly(self) -> None:
        assert extract_json_object('  {"a": {"b": 2}}  ') == '{"a": {"b": 2}}'

    def test_prose_with_braces_after_object(self) -> None:
        raw = 'Here you go: {"a": {"b": 1}} Note: use {curly} braces {carefully}.'
        assert extract_json_object(raw) == '{"a": {"b": 1}}'

    def test_braces_inside_strings_are_ignored(self) -> None:
        raw = 'Result {"label": "set {x} and \\"quoted }\\"", "n": 1} trailing }'
        extracted = extract_json_object(raw)
        assert json.loads(extracted) == {"label": 'set {x} and "quoted }"', "n": 1}

    def test_escaped_backslash_before_quote(self) -> None:
        raw = 'x {"path": "C:\\\\", "k": "}"} y'
        assert json.loads(extract_json_object(raw)) == {"path": "C:\\", "k": "}"}

    def test_no_object(self) -> None:
        assert extract_json_object("not json at all") == "not json at all"

    def test_unterminated_returns_tail(self) -> None:
        assert extract_json_object('lead {"a": {"b": 1}') == '{"a": {"b": 1}'


# ---------------------------------------------------------------------------
# Normalisation and validation
# ---------------------------------------------------------------------------


class TestNormalizeMindMap:
    def test_accepts_bare_root(self) -> None:
        mind_map = normalize_mind_map({"label": "Root", "children": _four_branches()})
        assert mind_map is not None
        assert mind_map.root.label == "Root"

    def test_labels_are_cleaned_and_truncated(self) -> None:
        long_label = "word " * 30
        branches = _four_branches()
        branches[0]["label"] = "  spaced \n\t label  "
        branches[1]["label"] = long_label
        mind_map = normalize_mind_map(_tree(*branches))
        assert mind_map is not None
        labels = [c.label for c in mind_map.root.children]
        assert labels[0] == "spaced label"
        assert len(labels[1]) == 64

    def test_extra_fields_dropped(self) -> None:
        branches = _four_branches()
        branches[0]["color"] = "red"
        mind_map = normalize_mind_map(_tree(*branches))
        assert mind_map is not None
        assert "color" not in mind_map.to_dict()["root"]["children"][0]

    def test_children_capped(self) -> None:
        branches = [_branch(f"B{i}", n_children=15) for i in range(14)]
        mind_map = normalize_mind_map(_tree(*branches))
        assert mind_map is not None
        assert len(mind_map.root.children) == MAX_CHILDREN_PER_NODE
        assert all(len(c.children) == MAX_CHILDREN_PER_NODE for c in mind_map.root.children)

    def test_depth_capped(self) -> None:
        deep = {"label": "L1", "children": [
            {"label": "L2", "children": [{"label": "L3", "children": [{"label": "L4"}]}]},
            {"label": "L2b"},
        ]}  # fmt: skip
        branches = _four_branches()[:3] + [deep]
        mind_map = normalize_mind_map(_tree(*branches))
        assert mind_map is not None
        assert mind_map.root.depth() == 3
        l3 = mind_map.root.children[3].children[0].children[0]
        assert l3.label == "L3"
        assert l3.children == []

    def test_sibling_dedup_first_wins(self) -> None:
        branches = _four_branches()
        branches[0]["children"] = [{"label": "Same"}, {"label": "same "}, {"label": "SAME"}, {"label": "Other"}]
        mind_map = normalize_mind_map(_tree(*branches))
        assert mind_map is not None
        assert [c.label for c in mind_map.root.children[0].children] == ["Same", "Other"]

    def test_invalid_children_skipped(self) -> None:
        branches = _four_branches()
        branches[0]["children"] += [None, "text", {"label": ""}, {"children": []}]
        mind_map = normalize_mind_map(_tree(*branches))
        assert mind_map is not None
        assert len(mind_map.root.children[0].children) == 2

    @pytest.mark.parametrize(
        "value",
        [
            None,
            [],
            "root",
            {"root": {"label": "", "children": []}},
            {"root": {"label": "Only root"}},
            _tree(*_four_branches()[:3]),
            _tree(*_four_branches()[:3], _branch("Thin", n_children=1)),
        ],
    )
    def test_rejects_sparse_or_invalid(self, value: object) -> None:
        assert normalize_mind_map(value) is None
        assert not is_mind_map_data(value)

    def test_dedup_can_make_tree_too_sparse(self) -> None:
        branches = _four_branches()
        branches[3]["label"] = "one"  # duplicates "One" case-insensitively
        assert normalize_mind_map(_tree(*branches)) is None


# ---------------------------------------------------------------------------
# End-to-end extraction
# ---------------------------------------------------------------------------


class TestExtractMindMap:
    def test_fenced_reference_tree(self) -> None:
        mind_map = extract_mind_map(f"```json {VALID_TREE} ```")
        assert mind_map.root.label == "A"
        assert [c.label for c in mind_map.root.children] == ["B", "E", "H", "K"]
        assert all(len(c.children) == 2 for c in mind_map.root.children)

    def test_tree_wrapped_in_prose(self) -> None:
        raw = f"Sure! Here is the mind map:\n{VALID_TREE}\nLet me know if you want {{more}} detail."
        assert len(extract_mind_map(raw).root.children) == 4

    def test_not_json_is_rejected(self) -> None:
        with pytest.raises(MalformedOutputError) as exc_info:
            extract_mind_map("not json at all")
        assert exc_info.value.stage == "mind_map"

    def test_truncated_json_is_rejected(self) -> None:
        with pytest.raises(MalformedOutputError):
            extract_mind_map(VALID_TREE[:-5])

    def test_sparse_tree_is_rejected(self) -> None:
        with pytest.raises(MalformedOutputError):
            extract_mind_map(json.dumps(_tree(_branch("Only"))))

    def test_to_dict_omits_empty_children(self) -> None:
        data = extract_mind_map(VALID_TREE).to_dict()
        assert data["root"]["children"][0]["children"][0] == {"label": "C"}
        assert json.loads(json.dumps(data)) == json.loads(VALID_TREE)


class TestGenerateMindMap:
    def test_calls_model_and_extracts(self) -> None:
        complete = MagicMock(return_value=f"```json\n{VALID_TREE}\n```")

        mind_map = generate_mind_map(complete, title="Episode", summary="About things")

        assert mind_map.root.label == "A"
        args, kwargs = complete.call_args
        assert "mind-map JSON" in args[0]
        assert "Episode" in args[1]
        assert kwargs["max_tokens"] == 2600

    def test_chinese_prompt(self) -> None:
        complete = MagicMock(return_value=VALID_TREE)

        generate_mind_map(complete, title="节目", summary="总结", highlights="要点", language="zh")

        args, _ = complete.call_args
        assert args[0] == MIND_MAP_SYSTEM_PROMPT_ZH
        assert "总结" in args[1]
        assert "重点笔记" in args[1]

    def test_unknown_language(self) -> None:
        complete = MagicMock()
        with pytest.raises(ValueError):
            generate_mind_map(complete, summary="x", language="fr")
        complete.assert_not_called()

    def test_empty_input_is_input_error(self) -> None:
        complete = MagicMock()
        with pytest.raises(InputError):
            generate_mind_map(complete, title=" ", summary="", highlights="")
        complete.assert_not_called()

    def test_model_garbage_is_rejected(self) -> None:
        complete = MagicMock(return_value="I cannot build that.")
        with pytest.raises(MalformedOutputError):
            generate_mind_map(complete, summary="something")


class TestMindMapNode:
    def test_depth(self) -> None:
        assert MindMapNode("leaf").depth() == 0
        assert MindMapNode("r", [MindMapNode("a", [MindMapNode("b")])]).depth() == 2
