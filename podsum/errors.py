"""Error taxonomy for the artifact pipeline.

Every error carries the pipeline *stage* it came from so a failed record can
be diagnosed from the batch report alone.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all stage-level pipeline failures."""

    def __init__(self, message: str, stage: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage


class InputError(PipelineError):
    """Input is empty or incomplete; the record is skipped, not failed."""


class FetchError(PipelineError):
    """The transcript blob could not be retrieved."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, stage="fetch")
        self.status_code = status_code


class TransientServiceError(PipelineError):
    """The completion service kept failing after all retry attempts."""

    def __init__(
        self,
        message: str,
        kind: str,
        status_code: int | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message, stage="complete")
        self.kind = kind
        self.status_code = status_code
        self.attempts = attempts


class ChunkFailedError(PipelineError):
    """A chunk could not be resolved, so the document cannot be assembled."""

    def __init__(self, position: int, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else " (missing output)"
        super().__init__(f"Chunk {position} failed{detail}", stage="assemble")
        self.position = position
        self.cause = cause


class MalformedOutputError(PipelineError):
    """Model output could not be parsed or failed structural validation."""
