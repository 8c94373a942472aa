"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from paper_discovery.domain.entities import Author, PaperSource, RawResult
from paper_discovery.infrastructure.sources.base_client import SourceOutcome
from paper_discovery.shared.async_utils import SourceRateLimiter
from paper_discovery.shared.settings import SearchSettings

# ============================================================
# Helpers
# ============================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubAdapter:
    """
    Stands in for a source adapter inside the orchestrator.

    ``by_query`` / ``delays`` override ``results`` / ``delay`` for specific
    query strings; ``peak_active`` is the most calls seen in flight at once.
    """

    def __init__(
        self,
        source: PaperSource,
        results: list[RawResult] | None = None,
        *,
        error: str | None = None,
        delay: float = 0.0,
        cache_hit: bool = False,
        raises: Exception | None = None,
        by_query: dict[str, list[RawResult]] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.source = source
        self.results = results or []
        self.error = error
        self.delay = delay
        self.cache_hit = cache_hit
        self.raises = raises
        self.by_query = by_query or {}
        self.delays = delays or {}
        self.calls: list[dict[str, Any]] = []
        self.cancelled = False
        self.closed = False
        self.active = 0
        self.peak_active = 0

    async def search_with_outcome(self, query: str, **kwargs: Any) -> SourceOutcome:
        self.calls.append({"query": query, **kwargs})
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            delay = self.delays.get(query, self.delay)
            if delay:
                try:
                    await asyncio.sleep(delay)
                except asyncio.CancelledError:
                    self.cancelled = True
                    raise
        finally:
            self.active -= 1
        if self.raises is not None:
            raise self.raises
        return SourceOutcome(
            source=self.source,
            results=list(self.by_query.get(query, self.results)),
            error=self.error,
            cache_hit=self.cache_hit,
        )

    async def close(self) -> None:
        self.closed = True


def make_response(
    status_code: int = 200,
    *,
    json: Any = None,
    text: str | None = None,
    headers: dict[str, str] | None = None,
    url: str = "https://api.example.org/works",
) -> httpx.Response:
    """Real httpx.Response bound to a request, as the client would return it."""
    request = httpx.Request("GET", url)
    if json is not None:
        return httpx.Response(status_code, json=json, headers=headers, request=request)
    return httpx.Response(status_code, text=text or "", headers=headers, request=request)


# ============================================================
# Fixtures
# ============================================================


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def no_wait_limiter():
    """Rate limiter that never waits."""
    return SourceRateLimiter(name="test", min_interval=0)


@pytest.fixture
def fake_sleep():
    return AsyncMock()


@pytest.fixture
def settings():
    return SearchSettings(
        email="test@example.com",
        semantic_scholar_api_key="s2-key",
        core_api_key="core-key",
        min_interval_ms=0,
    )


@pytest.fixture
def make_raw():
    """Factory for RawResult with sensible defaults."""

    def _make(
        title: str = "Test Paper",
        source: PaperSource = PaperSource.OPENALEX,
        *,
        authors: list[str] | None = None,
        **kwargs: Any,
    ) -> RawResult:
        return RawResult(
            title=title,
            source=source,
            authors=[Author(name=name) for name in (authors or [])],
            **kwargs,
        )

    return _make
