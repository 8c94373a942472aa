"""Tests for COREAdapter."""

from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_response
from paper_discovery.domain.entities import PaperSource
from paper_discovery.infrastructure.sources.core import CORE_SEARCH_URL, COREAdapter
from paper_discovery.shared.exceptions import ConfigurationError


@pytest.fixture
def adapter(no_wait_limiter, fake_sleep):
    return COREAdapter(api_key="core-key", rate_limiter=no_wait_limiter, sleep=fake_sleep)


WORK = {
    "id": 12345,
    "title": "Open Access Paper",
    "authors": [{"name": "Maria Silva"}],
    "yearPublished": 2021,
    "abstract": "An abstract.",
    "doi": "10.1234/oa.2021",
    "downloadUrl": "https://core.ac.uk/download/12345.pdf",
    "journals": [{"title": "Revista Brasileira"}],
    "links": [
        {"type": "download", "url": "https://core.ac.uk/download/12345.pdf"},
        {"type": "display", "url": "https://core.ac.uk/outputs/12345"},
    ],
    "citationCount": 7,
}


class TestInit:
    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            COREAdapter(api_key="")

    async def test_bearer_token(self, adapter):
        assert adapter._client.headers["Authorization"] == "Bearer core-key"
        await adapter.close()


class TestSearch:
    @patch.object(COREAdapter, "_make_request")
    async def test_basic(self, mock_req, adapter):
        mock_req.return_value = {"totalHits": 1, "results": [WORK]}
        results = await adapter.search("open access")

        r = results[0]
        assert r.source is PaperSource.CORE
        assert r.title == "Open Access Paper"
        assert r.year == 2021
        assert r.doi == "10.1234/oa.2021"
        assert r.venue == "Revista Brasileira"
        assert r.url == "https://core.ac.uk/outputs/12345"
        assert r.pdf_url == "https://core.ac.uk/download/12345.pdf"
        assert r.citation_count == 7

    @patch.object(COREAdapter, "_make_request")
    async def test_post_body(self, mock_req, adapter):
        mock_req.return_value = {"results": []}
        await adapter.search("malaria", limit=9, from_year=2010)
        assert mock_req.call_args.args[0] == CORE_SEARCH_URL
        assert mock_req.call_args.kwargs["method"] == "POST"
        assert mock_req.call_args.kwargs["json_body"] == {"q": "(malaria) AND yearPublished>=2010", "limit": 9}

    @patch.object(COREAdapter, "_make_request")
    async def test_fallbacks(self, mock_req, adapter):
        mock_req.return_value = {
            "results": [{"id": 9, "title": "T", "publishedDate": "2019-03-01", "publisher": "Elsevier"}]
        }
        r = (await adapter.search("t", from_year=None))[0]
        assert r.url == "https://core.ac.uk/works/9"
        assert r.year == 2019
        assert r.venue == "Elsevier"
        assert mock_req.call_args.kwargs["json_body"]["q"] == "t"

    async def test_uses_post_end_to_end(self, adapter):
        adapter._client = AsyncMock()
        adapter._client.post = AsyncMock(return_value=make_response(json={"results": [WORK]}))
        results = await adapter.search("open access")
        assert len(results) == 1
        adapter._client.get.assert_not_called()


class TestMalformedRecords:
    @patch.object(COREAdapter, "_make_request")
    async def test_mixed_batch_keeps_good_records(self, mock_req, adapter):
        mock_req.return_value = {
            "results": [
                {"title": "Loosely Typed", "journals": ["Revista"], "links": "https://x", "authors": "Maria"},
                WORK,
                ["not", "a", "record"],
                {"title": "Broken DOI", "doi": {"value": "10.1/x"}},
            ]
        }
        outcome = await adapter.search_with_outcome("open access", from_year=None)

        assert outcome.error is None
        assert [r.title for r in outcome.results] == ["Loosely Typed", "Open Access Paper"]
        loose = outcome.results[0]
        assert loose.venue is None
        assert loose.url is None
        assert loose.authors == []
