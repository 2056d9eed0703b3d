"""Shared HTTP helpers for the GitHub and OTX clients."""

from __future__ import annotations

import time
from typing import Any

import requests

from .config import REQUEST_DELAY, REQUEST_TIMEOUT


def make_session(headers: dict[str, str]) -> requests.Session:
    session = requests.Session()
    session.headers.update(headers)
    return session


def polite_get(
    session: requests.Session,
    url: str,
    params: dict[str, Any] | None = None,
    delay: float = REQUEST_DELAY,
) -> requests.Response:
    """GET with delay and timeout."""
    if delay:
        time.sleep(delay)
    resp = session.get(url, params=params, timeout=REQUEST_TIMEOUT)
    resp.raise_for_status()
    return resp


def describe_error(exc: Exception) -> str:
    """Summarize a failed request, including the server's error body if any."""
    response = getattr(exc, "response", None)
    if response is None:
        return str(exc)

    try:
        body = response.json()
    except ValueError:
        body = (response.text or "").strip()[:500]

    if body:
        return f"HTTP {response.status_code}: {body}"
    return f"HTTP {response.status_code}: {exc}"
