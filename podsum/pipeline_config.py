"""Pipeline configuration: artifact enum and immutable config dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from podsum.config import Settings


class ArtifactKind(StrEnum):
    """Derived artifacts the pipeline can (re)build for a record."""

    FULL_TEXT = "full_text"
    SUMMARY = "summary"
    MIND_MAP = "mind_map"
    TAGS = "tags"


ALL_ARTIFACTS: frozenset[ArtifactKind] = frozenset(ArtifactKind)


@dataclass(frozen=True)
class CompletionConfig:
    """Immutable settings for the completion client."""

    model: str = "claude-sonnet-4-20250514"
    api_key: str = ""
    max_retries: int = 2
    retry_base_delay: float = 1.0
    timeout: float = 120.0
    max_tokens: int = 16000
    temperature: float = 0.3


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the artifact pipeline.

    Defaults mirror the production backfill behaviour (180 blocks per chunk,
    at most 24 chunks, three chunks in flight per record).
    """

    completion: CompletionConfig = field(default_factory=CompletionConfig)
    chunk_blocks: int = 180
    max_chunks: int = 24
    chunk_concurrency: int = 3
    backfill_concurrency: int = 4
    summary_max_tokens: int = 8000
    mind_map_max_tokens: int = 2600
    fetch_timeout: float = 60.0
    artifacts: frozenset[ArtifactKind] = ALL_ARTIFACTS
    dry_run: bool = False

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> PipelineConfig:
        """Build a config from loaded :class:`Settings`, applying *overrides*."""
        completion = CompletionConfig(
            model=settings.llm_model,
            api_key=settings.anthropic_api_key,
            max_retries=settings.max_retries,
            retry_base_delay=settings.retry_base_delay,
            timeout=settings.api_timeout,
            max_tokens=settings.max_output_tokens,
            temperature=settings.temperature,
        )
        values: dict[str, object] = {
            "completion": completion,
            "chunk_blocks": settings.chunk_blocks,
            "max_chunks": settings.max_chunks,
            "chunk_concurrency": settings.chunk_concurrency,
            "backfill_concurrency": settings.backfill_concurrency,
            "summary_max_tokens": settings.summary_max_tokens,
            "mind_map_max_tokens": settings.mind_map_max_tokens,
            "fetch_timeout": settings.fetch_timeout,
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]

    def wants(self, kind: ArtifactKind) -> bool:
        return kind in self.artifacts


def parse_artifacts(value: str) -> frozenset[ArtifactKind]:
    """Parse a comma-separated artifact list (``"full_text,tags"``).

    Raises:
        ValueError: If any name is not a known :class:`ArtifactKind`.
    """
    names = [part.strip() for part in value.split(",") if part.strip()]
    if not names:
        return ALL_ARTIFACTS
    return frozenset(ArtifactKind(name) for name in names)
