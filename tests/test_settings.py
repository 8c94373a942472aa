"""Tests for SearchSettings and the embedding helpers."""

import pytest

from paper_discovery.infrastructure.embeddings import Embedder, cosine_similarity
from paper_discovery.shared.exceptions import InvalidParameterError
from paper_discovery.shared.settings import DEFAULT_EMAIL, DEFAULT_FALLBACK_CHAIN, SearchSettings


class TestSearchSettings:
    def test_defaults(self):
        settings = SearchSettings.from_env({})
        assert settings.email == DEFAULT_EMAIL
        assert settings.semantic_scholar_api_key is None
        assert settings.core_api_key is None
        assert settings.fallback_chain == DEFAULT_FALLBACK_CHAIN
        assert settings.fallback_min_results == 5
        assert settings.min_interval_ms == 1000
        assert settings.broader_max_queries == 4
        assert settings.broader_concurrency == 3

    def test_from_env(self):
        settings = SearchSettings.from_env(
            {
                "PAPER_DISCOVERY_EMAIL": " me@example.com ",
                "SEMANTIC_API_KEY": "s2",
                "CORE_API_KEY": "core",
                "PAPER_DISCOVERY_MIN_INTERVAL_MS": "250",
                "PAPER_DISCOVERY_CACHE_TTL": "60.5",
                "PAPER_DISCOVERY_FALLBACK_SOURCES": "CrossRef, arxiv ,",
                "PAPER_DISCOVERY_FALLBACK_MIN_RESULTS": "10",
            }
        )
        assert settings.email == "me@example.com"
        assert settings.semantic_scholar_api_key == "s2"
        assert settings.core_api_key == "core"
        assert settings.min_interval_ms == 250
        assert settings.cache_ttl == 60.5
        assert settings.fallback_chain == ("crossref", "arxiv")
        assert settings.fallback_min_results == 10

    def test_blank_values_ignored(self):
        settings = SearchSettings.from_env({"SEMANTIC_API_KEY": "  ", "PAPER_DISCOVERY_FALLBACK_SOURCES": ""})
        assert settings.semantic_scholar_api_key is None
        assert settings.fallback_chain == DEFAULT_FALLBACK_CHAIN

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("PAPER_DISCOVERY_MIN_INTERVAL_MS", "fast"),
            ("PAPER_DISCOVERY_CACHE_TTL", "1h"),
            ("PAPER_DISCOVERY_FALLBACK_MIN_RESULTS", "2.5"),
        ],
    )
    def test_invalid_number(self, name, value):
        with pytest.raises(InvalidParameterError, match=name):
            SearchSettings.from_env({name: value})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("CORE_API_KEY", "from-env")
        assert SearchSettings.from_env().core_api_key == "from-env"

    def test_cache_ttl_for(self):
        settings = SearchSettings(cache_ttl=42.0)
        assert settings.cache_ttl_for("arxiv") == 15 * 60
        assert settings.cache_ttl_for("semantic_scholar") == 60 * 60
        assert settings.cache_ttl_for("internal") == 42.0


class TestEmbeddings:
    def test_cosine_similarity(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    @pytest.mark.parametrize(("a", "b"), [([], [1.0]), ([1.0], [1.0, 2.0]), ([0.0, 0.0], [1.0, 1.0])])
    def test_degenerate_vectors(self, a, b):
        assert cosine_similarity(a, b) == 0.0

    def test_protocol_is_runtime_checkable(self):
        class Fixed:
            async def embed(self, text):
                return [1.0]

        assert isinstance(Fixed(), Embedder)
        assert not isinstance(object(), Embedder)
