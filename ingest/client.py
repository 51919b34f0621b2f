"""
ingest/client.py

A minimal Carbon Intensity API client used by the live ingestion job to
fetch the current regional snapshot.

Responsibilities
---------------
- Perform a single HTTP GET against the regional endpoint with a bounded
  timeout and a custom User-Agent.
- Return the parsed JSON body; validation happens in `ingest/validate.py`.

Notes
-----
- There is deliberately no retry loop: a failed fetch is logged by the job
  and the next scheduled tick tries again.
"""

from __future__ import annotations

import requests

from .config import CARBON_API_URL

# HTTP client settings.
HTTP_TIMEOUT = 30  # seconds
USER_AGENT = "regional-carbon-intensity/0.1"


def fetch_regional(url: str | None = None) -> dict:
    """Fetch the current regional snapshot.

    Args:
        url: Optional override of :data:`ingest.config.CARBON_API_URL`.

    Returns:
        The parsed JSON response (`dict`).

    Raises:
        requests.RequestException: On connection errors or non-2xx status.
        ValueError: If the body is not JSON (via `Response.json()`).
    """
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    r = requests.get(url or CARBON_API_URL, headers=headers, timeout=HTTP_TIMEOUT)
    r.raise_for_status()
    return r.json()
