"""Claude completion client with per-attempt timeout and bounded linear retry."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from anthropic import Anthropic, APIConnectionError, APIError, APIStatusError, APITimeoutError
from anthropic.types import TextBlock

from podsum.errors import TransientServiceError
from podsum.pipeline_config import CompletionConfig

logger = logging.getLogger(__name__)


class CompletionErrorKind(StrEnum):
    """Why a single completion attempt failed."""

    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    TRANSPORT = "transport"
    INVALID_PAYLOAD = "invalid_payload"
    EMPTY_BODY = "empty_body"


@dataclass(frozen=True)
class CompletionRequest:
    """One system/user prompt pair for the completion service."""

    system_prompt: str
    user_prompt: str
    max_tokens: int | None = None
    temperature: float | None = None


class _AttemptError(Exception):
    def __init__(self, kind: CompletionErrorKind, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


def _response_text(response: Any) -> str:
    """Join the text blocks of a Messages API response."""
    content = getattr(response, "content", None)
    if not isinstance(content, list):
        return ""
    parts = [block.text for block in content if isinstance(block, TextBlock)]
    return "\n".join(p for p in parts if isinstance(p, str))


class CompletionClient:
    """Issue completion requests against Claude.

    Every attempt runs under ``config.timeout``. Any failure (timeout, error
    status, transport error, unparseable or empty body) is retried up to
    ``config.max_retries`` more times, sleeping ``retry_base_delay * n``
    seconds before attempt *n*. The SDK's own retries are disabled so this
    loop is the only retry policy.
    """

    def __init__(
        self,
        config: CompletionConfig,
        client: Anthropic | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.client = client or Anthropic(
            api_key=config.api_key,
            timeout=config.timeout,
            max_retries=0,
        )
        self._sleep = sleep

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Return the model's text for one prompt pair.

        Raises:
            TransientServiceError: When every attempt failed; carries the
                last attempt's error kind and status code.
        """
        last_error: _AttemptError | None = None
        attempts = self.config.max_retries + 1

        for attempt in range(attempts):
            if attempt > 0:
                delay = self.config.retry_base_delay * attempt
                logger.warning(
                    "Completion attempt %d/%d failed (%s: %s); retrying in %.1fs",
                    attempt,
                    attempts,
                    last_error.kind if last_error else "?",
                    last_error,
                    delay,
                )
                self._sleep(delay)
            try:
                return self._attempt(system_prompt, user_prompt, max_tokens, temperature)
            except _AttemptError as e:
                last_error = e

        assert last_error is not None
        raise TransientServiceError(
            f"Completion failed after {attempts} attempt(s): {last_error}",
            kind=last_error.kind,
            status_code=last_error.status_code,
            attempts=attempts,
        )

    def complete_request(self, request: CompletionRequest) -> str:
        return self.complete(
            request.system_prompt,
            request.user_prompt,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )

    def _attempt(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None,
        temperature: float | None,
    ) -> str:
        try:
            response = self.client.messages.create(
                model=self.config.model,
                max_tokens=max_tokens or self.config.max_tokens,
                temperature=self.config.temperature if temperature is None else temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                timeout=self.config.timeout,
            )
        except APITimeoutError as e:
            raise _AttemptError(CompletionErrorKind.TIMEOUT, f"timed out after {self.config.timeout}s") from e
        except APIConnectionError as e:
            raise _AttemptError(CompletionErrorKind.TRANSPORT, str(e)) from e
        except APIStatusError as e:
            raise _AttemptError(
                CompletionErrorKind.HTTP_STATUS,
                f"Claude error {e.status_code}: {e.message}",
                status_code=e.status_code,
            ) from e
        except APIError as e:
            raise _AttemptError(
                CompletionErrorKind.INVALID_PAYLOAD,
                f"Invalid response from Claude: {e.message}",
            ) from e

        text = _response_text(response).strip()
        if not text:
            raise _AttemptError(CompletionErrorKind.EMPTY_BODY, "Model returned empty content")
        return text
