"""Per-record artifact pipeline: transcript -> notes, summary, mind map, tags."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace

from podsum.assembly.assembler import assemble_document, resolve_chunks
from podsum.assembly.bilingual import BilingualSummary, require_bilingual_summary
from podsum.assembly.formatting import enforce_line_breaks
from podsum.backfill.models import ArtifactSet
from podsum.completion.prompts import (
    BILINGUAL_SUMMARY_SYSTEM_PROMPT,
    FULL_TEXT_SYSTEM_PROMPT,
    HIGHLIGHTS_TRANSLATION_SYSTEM_PROMPT,
    bilingual_summary_user_prompt,
    full_text_user_prompt,
    highlights_translation_user_prompt,
)
from podsum.errors import FetchError, InputError, MalformedOutputError, PipelineError
from podsum.extraction.mind_map import generate_mind_map
from podsum.ingestion.chunking import group_blocks
from podsum.ingestion.fetch import fetch_text
from podsum.ingestion.models import Chunk, SourceRecord
from podsum.ingestion.segmenter import segment_transcript
from podsum.ingestion.storage import RecordStore
from podsum.pipeline_config import ArtifactKind, PipelineConfig
from podsum.tags.scorer import extract_tags

logger = logging.getLogger(__name__)

CompleteFn = Callable[..., str]


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Attribute any error raised inside the block to pipeline stage *name*.

    Completion failures arrive tagged ``complete``; they are re-tagged with
    the artifact stage that issued the request.
    """
    try:
        yield
    except PipelineError as e:
        if not e.stage or e.stage == "complete":
            e.stage = name
        raise
    except Exception as e:
        raise PipelineError(f"{type(e).__name__}: {e}", stage=name) from e


class ArtifactPipeline:
    """Build and persist the derived artifacts of one record.

    Args:
        config: Immutable pipeline configuration.
        complete: ``complete(system_prompt, user_prompt, max_tokens=..., temperature=...)``,
            normally :meth:`CompletionClient.complete`.
        store: Where artifacts are written back; ``None`` or ``config.dry_run``
            skips persistence.
        fetch: Transcript download function, ``fetch(url, timeout) -> str``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        complete: CompleteFn,
        store: RecordStore | None = None,
        fetch: Callable[[str, float], str] = fetch_text,
    ) -> None:
        self.config = config
        self.complete = complete
        self.store = store
        self.fetch = fetch

    def process(self, record: SourceRecord) -> ArtifactSet:
        artifacts = ArtifactSet()

        if self.config.wants(ArtifactKind.FULL_TEXT):
            artifacts.document = self.build_document(record)

        if self.config.wants(ArtifactKind.SUMMARY):
            with stage("summary"):
                artifacts.bilingual_summary = self.build_summary(record, artifacts.document)

        if self.config.wants(ArtifactKind.MIND_MAP):
            with stage("mind_map"):
                self.build_mind_maps(record, artifacts)

        if self.config.wants(ArtifactKind.TAGS):
            summary_text = (
                artifacts.bilingual_summary.legacy_text
                if artifacts.bilingual_summary
                else record.summary
            )
            with stage("tags"):
                artifacts.tags = extract_tags(
                    record.title,
                    summary_text,
                    source_reference=record.source_reference,
                    fallback_name=record.file_name,
                )

        if self.store is not None and not self.config.dry_run:
            with stage("save"):
                self.store.save_artifacts(record.id, artifacts)

        return artifacts

    __call__ = process

    def build_document(self, record: SourceRecord) -> str:
        """Fetch, chunk, rewrite and reassemble the record's transcript.

        Without a transcript URL, or when the download fails, the record's
        Chinese highlights are translated instead (if it has any).
        """
        if not record.transcript_url:
            if record.highlights:
                logger.info("Record %s: no transcript URL, translating highlights", record.id)
                return self.build_document_from_highlights(record)
            raise InputError("Record has no transcript URL or highlights", stage="fetch")

        try:
            with stage("fetch"):
                raw = self.fetch(record.transcript_url, self.config.fetch_timeout)
        except FetchError as e:
            if not record.highlights:
                raise
            logger.warning(
                "Record %s: transcript fetch failed (%s), translating highlights", record.id, e.message
            )
            return self.build_document_from_highlights(record)

        with stage("segment"):
            blocks = segment_transcript(raw)
            if not blocks:
                raise InputError("Transcript is empty")
            chunks = group_blocks(blocks, self.config.chunk_blocks, self.config.max_chunks)

        logger.info("Record %s: %d blocks in %d chunk(s)", record.id, len(blocks), len(chunks))

        with stage("complete"):
            results = resolve_chunks(
                chunks,
                self._complete_chunk,
                concurrency=self.config.chunk_concurrency,
            )

        with stage("assemble"):
            document = enforce_line_breaks(assemble_document(results))
            if not document:
                raise MalformedOutputError("Assembled document is empty")
        return document

    def build_document_from_highlights(self, record: SourceRecord) -> str:
        with stage("translate"):
            raw = self.complete(
                HIGHLIGHTS_TRANSLATION_SYSTEM_PROMPT,
                highlights_translation_user_prompt(record.highlights),
                max_tokens=self.config.completion.max_tokens,
            )
            document = enforce_line_breaks(raw)
            if not document:
                raise MalformedOutputError("Translated highlights are empty")
        return document

    def build_summary(self, record: SourceRecord, document: str | None) -> BilingualSummary:
        """Split the record's summary, generating one from *document* if absent.

        An English section that the split cannot recover is taken from the
        stored ``summary_en``.
        """
        if record.summary:
            summary = require_bilingual_summary(record.summary)
        elif document:
            raw = self.complete(
                BILINGUAL_SUMMARY_SYSTEM_PROMPT,
                bilingual_summary_user_prompt(record.title, document),
                max_tokens=self.config.summary_max_tokens,
            )
            summary = require_bilingual_summary(raw)
        else:
            raise InputError("No summary or document to summarise")

        if not summary.secondary_text and record.summary_en:
            summary = replace(summary, secondary_text=record.summary_en)
        return summary

    def build_mind_maps(self, record: SourceRecord, artifacts: ArtifactSet) -> None:
        """Build the Chinese and English mind maps the record has inputs for.

        Chinese: Chinese summary plus highlights. English: English summary
        (or the Chinese one) plus the English notes (or the highlights).
        """
        bilingual = artifacts.bilingual_summary
        summary_zh = bilingual.primary_text if bilingual else (record.summary_zh or record.summary)
        summary_en = bilingual.secondary_text if bilingual else record.summary_en
        notes_en = artifacts.document or record.translation or record.highlights

        if summary_zh and record.highlights:
            artifacts.mind_map_zh = generate_mind_map(
                self.complete,
                title=record.title,
                summary=summary_zh,
                highlights=record.highlights,
                max_tokens=self.config.mind_map_max_tokens,
                language="zh",
            )
        if (summary_en or summary_zh) and notes_en:
            artifacts.mind_map_en = generate_mind_map(
                self.complete,
                title=record.title,
                summary=summary_en or summary_zh,
                highlights=notes_en,
                max_tokens=self.config.mind_map_max_tokens,
                language="en",
            )
        if artifacts.mind_map is None:
            logger.info("Record %s: not enough content for a mind map", record.id)

    def _complete_chunk(self, chunk: Chunk) -> str:
        return self.complete(
            FULL_TEXT_SYSTEM_PROMPT,
            full_text_user_prompt(chunk.content, chunk.position, chunk.total),
            max_tokens=self.config.completion.max_tokens,
        )
