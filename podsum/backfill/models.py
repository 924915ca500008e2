"""Data models for backfill jobs and their results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from podsum.assembly.bilingual import BilingualSummary
    from podsum.extraction.models import MindMap
    from podsum.ingestion.models import SourceRecord


class JobStatus(StrEnum):
    """Lifecycle of a backfill job."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.SKIPPED})


@dataclass
class ArtifactSet:
    """Artifacts produced for one record; ``None`` means not rebuilt."""

    document: str | None = None
    bilingual_summary: BilingualSummary | None = None
    mind_map_zh: MindMap | None = None
    mind_map_en: MindMap | None = None
    tags: list[str] | None = None

    @property
    def mind_map(self) -> MindMap | None:
        """The primary mind map: Chinese when built, else English."""
        return self.mind_map_zh or self.mind_map_en


@dataclass
class BackfillJob:
    """One record's unit of work within a batch."""

    record: SourceRecord
    status: JobStatus = JobStatus.PENDING
    stage: str = ""
    error: str | None = None
    artifacts: ArtifactSet | None = None

    @property
    def record_id(self) -> str:
        return self.record.id


@dataclass
class JobOutcome:
    """Final, reportable state of a job."""

    record_id: str
    status: JobStatus
    stage: str = ""
    error: str | None = None


@dataclass
class BatchReport:
    """Aggregated results of a backfill run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: list[JobOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed + self.skipped

    def failures(self) -> list[JobOutcome]:
        return [o for o in self.outcomes if o.status is JobStatus.FAILED]

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "failures": [
                {"record_id": o.record_id, "stage": o.stage, "error": o.error}
                for o in self.failures()
            ],
        }
