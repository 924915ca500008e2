"""Data models for transcript ingestion."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, field_validator


@dataclass(frozen=True)
class TranscriptBlock:
    """One timestamped subtitle unit, kept verbatim.

    ``index`` is the block's ordinal position in the transcript (1-based,
    strictly increasing); ``text`` includes the original sequence-number and
    time-range lines. Untimed blocks (leading or trailing text that matched
    no cue boundary) have ``None`` times.
    """

    index: int
    text: str
    start_time: float | None = None
    end_time: float | None = None


@dataclass(frozen=True)
class Chunk:
    """A contiguous run of blocks submitted to the completion service as one request."""

    position: int  # 1-based
    total: int
    blocks: tuple[TranscriptBlock, ...]

    @property
    def content(self) -> str:
        return "\n\n".join(block.text for block in self.blocks)

    @property
    def start_time(self) -> float | None:
        return self.blocks[0].start_time if self.blocks else None

    @property
    def end_time(self) -> float | None:
        return self.blocks[-1].end_time if self.blocks else None


class SourceRecord(BaseModel):
    """A backlog record as loaded from the analysis store."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    title: str = ""
    summary: str = ""
    summary_zh: str = ""
    summary_en: str = ""
    highlights: str = ""
    translation: str = ""
    transcript_url: str = ""
    source_reference: str = ""
    file_name: str = ""

    @field_validator(
        "title",
        "summary",
        "summary_zh",
        "summary_en",
        "highlights",
        "translation",
        "transcript_url",
        "source_reference",
        "file_name",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("record id is required")
        return str(value)
