from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime settings for the backfill CLI, read from the environment or `.env`.

    Only entry points read these; pipeline components receive a frozen
    :class:`~podsum.pipeline_config.PipelineConfig` built from them.
    """

    # Credentials
    anthropic_api_key: str = ""

    # Analysis store
    supabase_url: str = ""
    supabase_key: str = ""

    # Completion service
    llm_model: str = "claude-sonnet-4-20250514"
    max_retries: int = 2
    retry_base_delay: float = 1.0  # seconds, multiplied by the attempt number
    api_timeout: float = 120.0  # seconds per attempt
    max_output_tokens: int = 16000
    summary_max_tokens: int = 8000
    mind_map_max_tokens: int = 2600
    temperature: float = 0.3

    # Chunking
    chunk_blocks: int = 180
    max_chunks: int = 24

    # Concurrency
    chunk_concurrency: int = 3
    backfill_concurrency: int = 4

    # Blob fetch
    fetch_timeout: float = 60.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process.

    An unreadable `.env` is ignored and only the process environment is used.
    """
    try:
        return Settings()
    except Exception:
        return Settings(_env_file=None)  # type: ignore[call-arg]
