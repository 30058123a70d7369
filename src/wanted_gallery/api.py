"""
Async API wrapper around the FBI wanted listing.

Provides a typed interface for:
- Fetching one page of `/@wanted` (`get_wanted_page`)

A page that stays rate limited past the retry budget comes back as `None`
so the caller can carry on without it. Every other failure (non-2xx,
timeout, non-JSON body) is raised.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from http_client import HttpClient, RateLimitExhausted

from .models import WantedResultSet

logger = logging.getLogger(__name__)

WANTED_PATH = "/@wanted"

class UpstreamParseError(ValueError):
    """Upstream answered 2xx with a body that is not a result page."""

    def __init__(self, page: int, snippet: str):
        super().__init__(f"unparseable response for page {page}: {snippet!r}")
        self.page = page
        self.snippet = snippet

class WantedAPI:

    def __init__(self, http: HttpClient):
        self.http = http

    async def get_wanted_page(
        self, page: int, page_size: int, poster_classification: Optional[str] = None
    ) -> Optional[WantedResultSet]:
        params: Dict[str, Any] = {"pageSize": page_size, "page": page}
        if poster_classification:
            params["poster_classification"] = poster_classification
        try:
            resp = await self.http.request("GET", WANTED_PATH, params=params)
        except RateLimitExhausted as e:
            logger.error("Page %d rate limited after %d attempt(s), skipping it", page, e.attempts,
                         extra={"page": page, "attempt": e.attempts})
            return None

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamParseError(page, resp.text[:200]) from e
        if not isinstance(data, dict):
            raise UpstreamParseError(page, str(data)[:200])

        try:
            return {
                "total": int(data.get("total") or 0),
                "page": int(data.get("page") or page),
                "items": list(data.get("items") or []),
            }
        except (TypeError, ValueError) as e:
            raise UpstreamParseError(page, str(data)[:200]) from e
