"""Retrieve raw transcript text from blob storage."""

from __future__ import annotations

import httpx

from podsum.errors import FetchError


def fetch_text(url: str, timeout: float = 60.0) -> str:
    """Download *url* and return its body as text.

    Raises:
        FetchError: On transport failure or a non-2xx response.
    """
    if not url:
        raise FetchError("No transcript URL")
    try:
        r = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to fetch transcript: {e}") from e
    if not r.is_success:
        raise FetchError(f"Failed to fetch transcript ({r.status_code})", status_code=r.status_code)
    return r.text
