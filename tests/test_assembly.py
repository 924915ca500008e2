"""Tests for chunk resolution, document assembly, formatting and bilingual splitting."""

from __future__ import annotations

import time

import pytest

from podsum.assembly.assembler import ChunkResult, assemble_document, resolve_chunks
from podsum.assembly.bilingual import (
    BilingualSummary,
    normalize_section,
    require_bilingual_summary,
    split_bilingual_summary,
)
from podsum.assembly.formatting import enforce_line_breaks
from podsum.errors import ChunkFailedError, MalformedOutputError, TransientServiceError
from podsum.ingestion.chunking import group_blocks
from podsum.ingestion.models import Chunk
from podsum.ingestion.segmenter import segment_transcript


def _srt(n: int) -> str:
    return "\n\n".join(
        f"{i}\n00:00:{i % 60:02d},000 --> 00:00:{i % 60:02d},900\nSentence {i}." for i in range(1, n + 1)
    )


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------


class TestAssembleDocument:
    def test_joins_in_position_order(self) -> None:
        results = [
            ChunkResult(position=2, text="second"),
            ChunkResult(position=1, text="  first  "),
            ChunkResult(position=3, text="third\n"),
        ]
        assert assemble_document(results) == "first\n\nsecond\n\nthird"

    def test_mapping_input(self) -> None:
        assert assemble_document({2: "b", 1: "a"}) == "a\n\nb"

    def test_skips_empty_outputs(self) -> None:
        assert assemble_document({1: "a", 2: "   ", 3: "c"}) == "a\n\nc"

    def test_empty(self) -> None:
        assert assemble_document([]) == ""

    def test_failed_chunk_aborts(self) -> None:
        cause = TransientServiceError("gave up", kind="timeout")
        results = [ChunkResult(1, "a"), ChunkResult(2, error=cause), ChunkResult(3, "c")]
        with pytest.raises(ChunkFailedError) as exc_info:
            assemble_document(results)
        assert exc_info.value.position == 2
        assert exc_info.value.cause is cause
        assert exc_info.value.stage == "assemble"

    def test_missing_position_aborts(self) -> None:
        with pytest.raises(ChunkFailedError) as exc_info:
            assemble_document({1: "a", 3: "c"})
        assert exc_info.value.position == 2


class TestResolveChunks:
    def _chunks(self, n_blocks: int, baseline: int) -> list[Chunk]:
        return group_blocks(segment_transcript(_srt(n_blocks)), baseline, 24)

    def test_order_preserved_under_concurrency(self) -> None:
        chunks = self._chunks(40, 5)
        assert len(chunks) == 8

        def slow_first(chunk: Chunk) -> str:
            # Earlier chunks finish last.
            time.sleep(0.005 * (chunk.total - chunk.position))
            return f"out-{chunk.position}"

        results = resolve_chunks(chunks, slow_first, concurrency=4)
        assert [r.position for r in results] == list(range(1, 9))
        assert [r.text for r in results] == [f"out-{i}" for i in range(1, 9)]

    def test_failures_are_captured(self) -> None:
        chunks = self._chunks(10, 2)

        def flaky(chunk: Chunk) -> str:
            if chunk.position == 3:
                raise TransientServiceError("nope", kind="http_status", status_code=503)
            return chunk.content

        results = resolve_chunks(chunks, flaky, concurrency=3)
        assert [r.error is None for r in results] == [True, True, False, True, True]
        with pytest.raises(ChunkFailedError):
            assemble_document(results)

    @pytest.mark.parametrize(("n_blocks", "baseline", "concurrency"), [(1, 180, 3), (57, 4, 3), (300, 1, 8)])
    def test_identity_round_trip(self, n_blocks: int, baseline: int, concurrency: int) -> None:
        text = _srt(n_blocks)
        chunks = group_blocks(segment_transcript(text), baseline, 24)

        document = assemble_document(resolve_chunks(chunks, lambda c: c.content, concurrency))

        assert " ".join(document.split()) == " ".join(text.split())


# ---------------------------------------------------------------------------
# Full-text formatting
# ---------------------------------------------------------------------------


class TestEnforceLineBreaks:
    def test_canonicalises_and_separates(self) -> None:
        raw = "[00:00:01] Hello there. **00:00:05** Next point.\n00:00:09 Last."
        assert enforce_line_breaks(raw) == (
            "**[00:00:01]** Hello there.\n\n**[00:00:05]** Next point.\n\n**[00:00:09]** Last."
        )

    def test_canonical_input_is_stable(self) -> None:
        text = "**[00:00:01]** One.\n\n**[00:00:02]** Two."
        assert enforce_line_breaks(text) == text
        assert enforce_line_breaks(enforce_line_breaks(text)) == text

    def test_empty(self) -> None:
        assert enforce_line_breaks("  \n ") == ""

    def test_collapses_blank_runs(self) -> None:
        assert enforce_line_breaks("a\n\n\n\n\nb") == "a\n\nb"


# ---------------------------------------------------------------------------
# Bilingual splitter
# ---------------------------------------------------------------------------


class TestSplitBilingualSummary:
    def test_markers(self) -> None:
        text = "<<<SUMMARY_EN>>>\n# English Summary\nGood talk.\n<<<SUMMARY_ZH>>>\n# 中文总结\n很好的讨论。"
        summary = split_bilingual_summary(text)
        assert summary.secondary_text == "# English Summary\nGood talk."
        assert summary.primary_text == "# 中文总结\n很好的讨论。"
        assert summary.legacy_text == summary.primary_text

    def test_markers_in_wrong_order_fall_through_to_headings(self) -> None:
        text = "<<<SUMMARY_ZH>>> # English Summary\nA\n# 中文总结\nB <<<SUMMARY_EN>>>"
        summary = split_bilingual_summary(text)
        assert summary.secondary_text.startswith("# English Summary")
        assert summary.primary_text.startswith("# 中文总结")

    def test_headings(self) -> None:
        text = "Intro line\n# English Summary\n- point\n\n#中文总结\n- 要点"
        summary = split_bilingual_summary(text)
        assert summary.secondary_text == "# English Summary\n- point"
        assert summary.primary_text == "#中文总结\n- 要点"

    def test_heading_case_insensitive(self) -> None:
        summary = split_bilingual_summary("## english summary\nx\n## 中文总结\ny")
        assert summary.secondary_text == "## english summary\nx"

    def test_only_chinese_heading(self) -> None:
        summary = split_bilingual_summary("Some English first.\n# 中文总结\n中文内容")
        assert summary.secondary_text == "Some English first."
        assert summary.primary_text == "# 中文总结\n中文内容"

    def test_no_split_found(self) -> None:
        summary = split_bilingual_summary("只有中文的总结。")
        assert summary == BilingualSummary("只有中文的总结。", "", "只有中文的总结。")

    def test_empty(self) -> None:
        assert split_bilingual_summary("  ") == BilingualSummary("", "", "")

    def test_normalises_bullets_and_spacing(self) -> None:
        summary = split_bilingual_summary("• first   point\r\n  •\tsecond\n\n\n\nend")
        assert summary.primary_text == "- first point\n- second\n\nend"

    @pytest.mark.parametrize(
        "text",
        [
            "<<<SUMMARY_EN>>>\nEN body\n<<<SUMMARY_ZH>>>\n# 中文总结\n• 要点",
            "# English Summary\nA\n# 中文总结\nB",
            "Before\n# 中文总结\nAfter",
            "plain text only",
        ],
    )
    def test_idempotent_on_primary(self, text: str) -> None:
        primary = split_bilingual_summary(text).primary_text
        assert split_bilingual_summary(primary).primary_text == primary

    def test_deterministic(self) -> None:
        text = "# English Summary\nA\n# 中文总结\nB"
        assert split_bilingual_summary(text) == split_bilingual_summary(text)


class TestNormalizeSection:
    def test_keeps_leading_indentation(self) -> None:
        assert normalize_section("- top\n  - nested") == "- top\n  - nested"

    def test_strips_trailing_spaces(self) -> None:
        assert normalize_section("line   \nnext") == "line\nnext"


class TestRequireBilingualSummary:
    def test_rejects_empty(self) -> None:
        with pytest.raises(MalformedOutputError) as exc_info:
            require_bilingual_summary("\n\n")
        assert exc_info.value.stage == "summary"

    def test_accepts_text(self) -> None:
        assert require_bilingual_summary("摘要").primary_text == "摘要"
