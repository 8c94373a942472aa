"""Tests for OpenAlexAdapter."""

from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_response
from paper_discovery.domain.entities import PaperSource
from paper_discovery.infrastructure.sources.openalex import OA_WORKS_URL, OpenAlexAdapter
from paper_discovery.shared.settings import DEFAULT_EMAIL


@pytest.fixture
def adapter(no_wait_limiter, fake_sleep):
    return OpenAlexAdapter(email="test@example.com", rate_limiter=no_wait_limiter, sleep=fake_sleep)


WORK = {
    "id": "https://openalex.org/W123",
    "title": "Attention Is All You Need",
    "publication_year": 2017,
    "publication_date": "2017-06-12",
    "doi": "https://doi.org/10.5555/3295222.3295349",
    "cited_by_count": 60000,
    "authorships": [
        {
            "author": {"display_name": "Ashish Vaswani"},
            "institutions": [{"display_name": "Google Brain"}],
        },
        {
            "author": {"display_name": "Noam Shazeer"},
            "raw_affiliation_strings": ["Google Research, Mountain View, USA"],
        },
    ],
    "primary_location": {
        "landing_page_url": "https://papers.nips.cc/paper/7181",
        "source": {"display_name": "NeurIPS"},
    },
    "best_oa_location": {"pdf_url": "https://papers.nips.cc/paper/7181.pdf"},
    "abstract_inverted_index": {"The": [0], "dominant": [1], "models": [3], "sequence": [2]},
}


# ============================================================
# Init
# ============================================================


class TestInit:
    async def test_defaults(self):
        a = OpenAlexAdapter()
        assert a._email == DEFAULT_EMAIL
        assert a.source is PaperSource.OPENALEX
        await a.close()

    async def test_context_manager(self):
        async with OpenAlexAdapter() as a:
            assert a is not None


# ============================================================
# search
# ============================================================


class TestSearch:
    @patch.object(OpenAlexAdapter, "_make_request")
    async def test_basic(self, mock_req, adapter):
        mock_req.return_value = {"results": [WORK]}
        results = await adapter.search("transformers", limit=5)

        assert len(results) == 1
        r = results[0]
        assert r.title == "Attention Is All You Need"
        assert r.source is PaperSource.OPENALEX
        assert r.year == 2017
        assert r.doi == "https://doi.org/10.5555/3295222.3295349"
        assert r.citation_count == 60000
        assert r.venue == "NeurIPS"
        assert r.url == "https://papers.nips.cc/paper/7181"
        assert r.pdf_url == "https://papers.nips.cc/paper/7181.pdf"
        assert r.abstract == "The dominant sequence models"
        assert [a.name for a in r.authors] == ["Ashish Vaswani", "Noam Shazeer"]
        assert r.authors[0].affiliation == "Google Brain"
        assert r.authors[1].affiliation == "Google Research, Mountain View, USA"

    @patch.object(OpenAlexAdapter, "_make_request")
    async def test_request_params(self, mock_req, adapter):
        mock_req.return_value = {"results": []}
        await adapter.search("deep learning", limit=7, from_year=2015)

        assert mock_req.call_args.args[0] == OA_WORKS_URL
        params = mock_req.call_args.kwargs["params"]
        assert params["search"] == "deep learning"
        assert params["per_page"] == "7"
        assert params["sort"] == "cited_by_count:desc"
        assert params["mailto"] == "test@example.com"
        assert params["filter"] == "from_publication_date:2015-01-01"

    @patch.object(OpenAlexAdapter, "_make_request")
    async def test_no_year_filter(self, mock_req, adapter):
        mock_req.return_value = {"results": []}
        await adapter.search("x", from_year=None)
        assert "filter" not in mock_req.call_args.kwargs["params"]

    @patch.object(OpenAlexAdapter, "_make_request")
    async def test_skips_untitled_and_uses_fallbacks(self, mock_req, adapter):
        mock_req.return_value = {
            "results": [
                {"id": "W1", "title": None},
                {"id": "https://openalex.org/W2", "display_name": "Fallback Title", "publication_date": "2019-01-01"},
            ]
        }
        results = await adapter.search("x")
        assert len(results) == 1
        assert results[0].title == "Fallback Title"
        assert results[0].year == 2019
        assert results[0].url == "https://openalex.org/W2"
        assert results[0].abstract is None

    @patch.object(OpenAlexAdapter, "_make_request")
    async def test_missing_results_is_error(self, mock_req, adapter):
        mock_req.return_value = {"meta": {}}
        outcome = await adapter.search_with_outcome("x")
        assert outcome.results == []
        assert "openalex" in outcome.error

    async def test_http_failure_end_to_end(self, adapter):
        adapter._client = AsyncMock()
        adapter._client.get = AsyncMock(return_value=make_response(403))
        outcome = await adapter.search_with_outcome("x")
        assert outcome.results == []
        assert "403" in outcome.error


class TestAbstract:
    def test_reconstructs_in_position_order(self):
        work = {"abstract_inverted_index": {"world": [1], "hello": [0, 2]}}
        assert OpenAlexAdapter._get_abstract(work) == "hello world hello"

    def test_missing(self):
        assert OpenAlexAdapter._get_abstract({}) is None
        assert OpenAlexAdapter._get_abstract({"abstract_inverted_index": {}}) is None


class TestMalformedRecords:
    @patch.object(OpenAlexAdapter, "_make_request")
    async def test_mixed_batch_keeps_good_records(self, mock_req, adapter):
        mock_req.return_value = {
            "results": [
                WORK,
                None,
                {
                    "title": "Loosely Typed",
                    "authorships": [
                        {"author": "Ada Lovelace", "institutions": [None, {"display_name": "UCL"}]},
                        "not an authorship",
                    ],
                    "primary_location": "https://example.org/landing",
                    "best_oa_location": None,
                    "ids": [],
                    "abstract_inverted_index": {"hello": "0"},
                },
                {"title": "Broken DOI", "doi": 42},
            ]
        }
        outcome = await adapter.search_with_outcome("x")

        assert outcome.error is None
        assert [r.title for r in outcome.results] == ["Attention Is All You Need", "Loosely Typed"]
        loose = outcome.results[1]
        assert loose.authors[0].name == "N/A"
        assert loose.authors[0].affiliation == "UCL"
        assert loose.url is None
        assert loose.pdf_url is None
        assert loose.abstract is None
