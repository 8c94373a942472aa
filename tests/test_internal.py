"""Tests for InternalSearchAdapter and build_source_adapters."""

from unittest.mock import AsyncMock

import pytest

from paper_discovery.domain.entities import PaperSource
from paper_discovery.infrastructure.cache import ResultCache
from paper_discovery.infrastructure.sources import (
    ArXivAdapter,
    InternalSearchAdapter,
    PaperStore,
    build_source_adapters,
)
from paper_discovery.shared.async_utils import RateLimiterRegistry
from paper_discovery.shared.settings import SearchSettings


class FakeStore:
    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    async def search(self, query, limit):
        self.calls.append((query, limit))
        return self.rows


ROWS = [
    {
        "title": "Local Paper",
        "authors": [{"name": "Ana Souza", "affiliation": "USP, Brazil"}, "Bruno Lima"],
        "year": 2022,
        "doi": "10.1/local",
        "citation_count": "12",
    },
    {"title": "Old Local Paper", "publication_date": "1995-04-01"},
    {"title": ""},
    "not a row",
]


class TestInternalSearchAdapter:
    def test_store_protocol(self):
        assert isinstance(FakeStore([]), PaperStore)

    async def test_maps_rows_and_filters_by_year(self, no_wait_limiter):
        store = FakeStore(ROWS)
        adapter = InternalSearchAdapter(store, rate_limiter=no_wait_limiter)
        results = await adapter.search("local", limit=5, from_year=2000)

        assert store.calls == [("local", 5)]
        assert [r.title for r in results] == ["Local Paper"]
        r = results[0]
        assert r.source is PaperSource.INTERNAL
        assert r.citation_count == 12
        assert r.authors[0].affiliation == "USP, Brazil"
        assert r.authors[1].name == "Bruno Lima"

    async def test_no_year_filter(self, no_wait_limiter):
        adapter = InternalSearchAdapter(FakeStore(ROWS), rate_limiter=no_wait_limiter)
        results = await adapter.search("local", from_year=None)
        assert [r.year for r in results] == [2022, 1995]

    async def test_mixed_batch_keeps_good_rows(self, no_wait_limiter):
        rows = [
            {"title": "Broken DOI", "doi": 5},
            {"title": "Loosely Typed", "authors": "Ana Souza", "year": ["unknown"]},
            ROWS[0],
        ]
        adapter = InternalSearchAdapter(FakeStore(rows), rate_limiter=no_wait_limiter)
        outcome = await adapter.search_with_outcome("local", from_year=2000)

        assert outcome.error is None
        assert [r.title for r in outcome.results] == ["Loosely Typed", "Local Paper"]
        assert outcome.results[0].authors == []
        assert outcome.results[0].year is None

    async def test_store_failure_recorded(self, no_wait_limiter):
        store = AsyncMock()
        store.search = AsyncMock(side_effect=RuntimeError("db down"))
        adapter = InternalSearchAdapter(store, rate_limiter=no_wait_limiter)
        outcome = await adapter.search_with_outcome("x")
        assert outcome.results == []
        assert "db down" in outcome.error


class TestBuildSourceAdapters:
    def test_all_sources_with_keys(self, settings):
        adapters = build_source_adapters(settings)
        assert list(adapters) == [
            PaperSource.OPENALEX,
            PaperSource.CROSSREF,
            PaperSource.SEMANTIC_SCHOLAR,
            PaperSource.ARXIV,
            PaperSource.CORE,
        ]

    def test_keyed_sources_skipped_without_keys(self):
        adapters = build_source_adapters(SearchSettings())
        assert PaperSource.SEMANTIC_SCHOLAR not in adapters
        assert PaperSource.CORE not in adapters
        assert isinstance(adapters[PaperSource.ARXIV], ArXivAdapter)

    def test_internal_registered_with_store(self, settings):
        adapters = build_source_adapters(settings, store=FakeStore([]), cache=ResultCache())
        internal = adapters[PaperSource.INTERNAL]
        assert isinstance(internal, InternalSearchAdapter)
        assert internal._cache is None
        assert adapters[PaperSource.OPENALEX]._cache is not None

    def test_shared_rate_limiters_and_ttls(self, settings):
        registry = RateLimiterRegistry(min_interval=0)
        adapters = build_source_adapters(settings, rate_limiters=registry)
        assert adapters[PaperSource.ARXIV]._rate_limiter is registry.get("arxiv")
        assert adapters[PaperSource.ARXIV]._cache_ttl == 15 * 60
        assert adapters[PaperSource.SEMANTIC_SCHOLAR]._cache_ttl == 60 * 60

    def test_each_source_has_own_breaker(self, settings):
        adapters = build_source_adapters(settings)
        breakers = {id(a._circuit_breaker) for a in adapters.values()}
        assert len(breakers) == len(adapters)

    @pytest.mark.parametrize("email", ["me@lab.org"])
    def test_email_propagates(self, email):
        adapters = build_source_adapters(SearchSettings(email=email))
        assert adapters[PaperSource.OPENALEX]._email == email
        assert adapters[PaperSource.CROSSREF]._email == email
