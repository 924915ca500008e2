"""Supabase persistence for backlog records and their derived artifacts."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError
from supabase import Client, create_client

from podsum.ingestion.models import SourceRecord

if TYPE_CHECKING:
    from podsum.backfill.models import ArtifactSet
    from podsum.extraction.models import MindMap

logger = logging.getLogger(__name__)

TABLE = "analysis_results"

_SELECT_COLUMNS = (
    "podcast_id, title, summary, summary_zh, summary_en, highlights, translation, "
    "blob_url, source_reference, file_name"
)


@dataclass(frozen=True)
class RecordFilter:
    """Which backlog rows to load.

    Without *overwrite* only rows that have no full-text notes yet are
    candidates; a *record_id* selects a single row regardless.
    """

    record_id: str | None = None
    limit: int | None = None
    overwrite: bool = False


class RecordStore(Protocol):
    """Read-then-write-back record interface used by the backfill runner."""

    def load_candidate_records(self, record_filter: RecordFilter) -> list[SourceRecord]: ...

    def save_artifacts(self, record_id: str, artifacts: ArtifactSet) -> None: ...


def get_supabase_client(url: str, key: str) -> Client:
    """Create and return a Supabase client."""
    return create_client(url, key)


def row_to_record(row: dict[str, Any]) -> SourceRecord | None:
    """Map an ``analysis_results`` row onto a :class:`SourceRecord`.

    Rows that fail validation (e.g. no id) are logged and dropped.
    """
    try:
        return SourceRecord.model_validate(
            {
                "id": row.get("podcast_id"),
                "title": row.get("title"),
                "summary": row.get("summary"),
                "summary_zh": row.get("summary_zh"),
                "summary_en": row.get("summary_en"),
                "highlights": row.get("highlights"),
                "translation": row.get("translation"),
                "transcript_url": row.get("blob_url"),
                "source_reference": row.get("source_reference"),
                "file_name": row.get("file_name"),
            }
        )
    except ValidationError as e:
        logger.warning("Skipping invalid record row %r: %s", row.get("podcast_id"), e)
        return None


def _mind_map_json(mind_map: MindMap) -> str:
    return json.dumps(mind_map.to_dict(), ensure_ascii=False)


def artifacts_to_row(artifacts: ArtifactSet) -> dict[str, object]:
    """Build the column update for the artifacts that were produced.

    Columns are only written when there is something to write, so an empty
    English section or a missing mind map never clears a stored value.
    """
    row: dict[str, object] = {}
    if artifacts.document is not None:
        row["translation"] = artifacts.document
    if artifacts.bilingual_summary is not None:
        row["summary"] = artifacts.bilingual_summary.legacy_text
        row["summary_zh"] = artifacts.bilingual_summary.primary_text
        if artifacts.bilingual_summary.secondary_text:
            row["summary_en"] = artifacts.bilingual_summary.secondary_text
    if artifacts.mind_map is not None:
        row["mind_map"] = _mind_map_json(artifacts.mind_map)
    if artifacts.mind_map_zh is not None:
        row["mind_map_zh"] = _mind_map_json(artifacts.mind_map_zh)
    if artifacts.mind_map_en is not None:
        row["mind_map_en"] = _mind_map_json(artifacts.mind_map_en)
    if artifacts.tags is not None:
        row["tags"] = json.dumps(artifacts.tags, ensure_ascii=False)
    return row


class SupabaseRecordStore:
    """:class:`RecordStore` backed by the Supabase ``analysis_results`` table."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def load_candidate_records(self, record_filter: RecordFilter) -> list[SourceRecord]:
        query = self.client.table(TABLE).select(_SELECT_COLUMNS)
        if record_filter.record_id:
            query = query.eq("podcast_id", record_filter.record_id).limit(1)
        else:
            query = query.neq("blob_url", "")
            if not record_filter.overwrite:
                query = query.or_("translation.is.null,translation.eq.")
            query = query.order("processed_at", desc=True)
            if record_filter.limit:
                query = query.limit(record_filter.limit)

        result = query.execute()
        records = [row_to_record(row) for row in result.data or []]
        return [r for r in records if r is not None]

    def save_artifacts(self, record_id: str, artifacts: ArtifactSet) -> None:
        row = artifacts_to_row(artifacts)
        if not row:
            return
        row["processed_at"] = datetime.now(UTC).isoformat()
        self.client.table(TABLE).update(row).eq("podcast_id", record_id).execute()
