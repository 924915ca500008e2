"""Backfill runner: rebuild derived artifacts for a backlog of records.

Records are drained by a bounded worker pool; each one runs the artifact
pipeline independently, so a failing record never stops the batch.

Entry point
-----------
Run as a module::

    python -m podsum.backfill.runner --limit 20 --concurrency 4
    python -m podsum.backfill.runner --id 1234 --artifacts summary,tags --dry-run

Use ``--help`` for full argument documentation.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from collections.abc import Callable, Sequence

from podsum.backfill.models import (
    ArtifactSet,
    BackfillJob,
    BatchReport,
    JobOutcome,
    JobStatus,
)
from podsum.backfill.pool import run_bounded
from podsum.errors import InputError, PipelineError
from podsum.ingestion.models import SourceRecord

logger = logging.getLogger(__name__)

ProcessRecord = Callable[[SourceRecord], ArtifactSet]


class BatchRunner:
    """Drive a per-record pipeline function across many records.

    The runner owns every job's lifecycle (pending -> in_flight ->
    succeeded | failed | skipped). :class:`~podsum.errors.InputError` marks a
    job skipped; any other exception marks it failed with its stage and
    message. Counters are updated under a lock.
    """

    def __init__(self, process_record: ProcessRecord, concurrency: int = 4) -> None:
        self.process_record = process_record
        self.concurrency = max(1, concurrency)
        self._lock = threading.Lock()

    def run(self, records: Sequence[SourceRecord]) -> BatchReport:
        jobs = [BackfillJob(record=r) for r in records]
        report = BatchReport(total=len(jobs))

        def work(job: BackfillJob) -> JobOutcome:
            return self._run_job(job, report)

        results = run_bounded(jobs, work, self.concurrency, name="backfill")
        for job, result in zip(jobs, results, strict=True):
            if result.value is not None:
                report.outcomes.append(result.value)
            else:
                # _run_job handles its own errors; this only fires on a bug there.
                logger.error("Job for record %s crashed: %s", job.record_id, result.error)
                report.outcomes.append(
                    self._finish(job, report, JobStatus.FAILED, "runner", str(result.error))
                )

        logger.info(
            "Backfill done. total=%d, succeeded=%d, failed=%d, skipped=%d",
            report.total,
            report.succeeded,
            report.failed,
            report.skipped,
        )
        return report

    def _run_job(self, job: BackfillJob, report: BatchReport) -> JobOutcome:
        job.status = JobStatus.IN_FLIGHT
        try:
            job.artifacts = self.process_record(job.record)
        except InputError as e:
            logger.info("record=%s -> skipped (%s: %s)", job.record_id, e.stage, e.message)
            return self._finish(job, report, JobStatus.SKIPPED, e.stage, e.message)
        except PipelineError as e:
            logger.error("record=%s -> failed at %s: %s", job.record_id, e.stage, e.message)
            return self._finish(job, report, JobStatus.FAILED, e.stage, e.message)
        except Exception as e:
            logger.exception("record=%s -> failed unexpectedly", job.record_id)
            return self._finish(job, report, JobStatus.FAILED, "unknown", f"{type(e).__name__}: {e}")

        logger.info("record=%s -> succeeded", job.record_id)
        return self._finish(job, report, JobStatus.SUCCEEDED)

    def _finish(
        self,
        job: BackfillJob,
        report: BatchReport,
        status: JobStatus,
        stage: str = "",
        error: str | None = None,
    ) -> JobOutcome:
        job.status = status
        job.stage = stage
        job.error = error
        outcome = JobOutcome(record_id=job.record_id, status=status, stage=stage, error=error)
        with self._lock:
            if status is JobStatus.SUCCEEDED:
                report.succeeded += 1
            elif status is JobStatus.SKIPPED:
                report.skipped += 1
            else:
                report.failed += 1
        return outcome


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser for the backfill runner."""
    parser = argparse.ArgumentParser(
        prog="python -m podsum.backfill.runner",
        description=(
            "PodSum artifact backfill\n\n"
            "Loads candidate records from Supabase, rebuilds full-text notes,\n"
            "bilingual summaries, mind maps and tags, and writes them back."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--id", dest="record_id", default=None, help="Process a single record by id.")
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of records to load (newest first).",
    )
    parser.add_argument(
        "--all",
        "--overwrite",
        dest="overwrite",
        action="store_true",
        default=False,
        help="Include records that already have full-text notes.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Build artifacts but do not write them back.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Records processed in parallel (default: BACKFILL_CONCURRENCY setting).",
    )
    parser.add_argument(
        "--artifacts",
        default="",
        metavar="KIND[,KIND...]",
        help="Artifacts to rebuild: full_text, summary, mind_map, tags (default: all).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    from podsum.backfill.pipeline import ArtifactPipeline
    from podsum.completion.client import CompletionClient
    from podsum.config import get_settings
    from podsum.ingestion.storage import RecordFilter, SupabaseRecordStore, get_supabase_client
    from podsum.pipeline_config import PipelineConfig, parse_artifacts

    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )

    if args.limit is not None and args.limit <= 0:
        parser.error("--limit must be positive")
    try:
        artifacts = parse_artifacts(args.artifacts)
    except ValueError as exc:
        parser.error(str(exc))

    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        print("ERROR: SUPABASE_URL and SUPABASE_KEY must be set", file=sys.stderr)
        return 1
    if not settings.anthropic_api_key:
        print("ERROR: ANTHROPIC_API_KEY must be set", file=sys.stderr)
        return 1

    overrides: dict[str, object] = {"artifacts": artifacts, "dry_run": args.dry_run}
    if args.concurrency:
        overrides["backfill_concurrency"] = args.concurrency
    config = PipelineConfig.from_settings(settings, **overrides)

    store = SupabaseRecordStore(get_supabase_client(settings.supabase_url, settings.supabase_key))
    record_filter = RecordFilter(record_id=args.record_id, limit=args.limit, overwrite=args.overwrite)
    records = store.load_candidate_records(record_filter)
    print(f"Backfill: {len(records)} record(s) to process, model {config.completion.model}")

    pipeline = ArtifactPipeline(config, CompletionClient(config.completion).complete, store=store)
    report = BatchRunner(pipeline.process, config.backfill_concurrency).run(records)

    for failure in report.failures():
        print(f"  failed {failure.record_id} at {failure.stage}: {failure.error}", file=sys.stderr)
    print(
        f"Done. total={report.total}, succeeded={report.succeeded}, "
        f"skipped={report.skipped}, failed={report.failed}, dryRun={config.dry_run}"
    )
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
