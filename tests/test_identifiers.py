"""Tests for identifier normalization and canonical ids."""

import uuid

import pytest

from paper_discovery.domain.identifiers import (
    PAPER_NAMESPACE,
    compute_canonical_id,
    is_arxiv_url,
    normalize_doi,
    normalize_title,
    parse_year,
)


class TestNormalizeTitle:
    def test_case_punctuation_whitespace_invariant(self):
        assert normalize_title("Machine Learning: A Survey!") == normalize_title("machine learning   a survey")
        assert normalize_title("Machine Learning: A Survey!") == "machine learning a survey"

    def test_collapses_whitespace(self):
        assert normalize_title("Deep   Learning \n Applications") == "deep learning applications"

    def test_idempotent(self):
        once = normalize_title("  MACHINE LEARNING - A SURVEY!  ")
        assert normalize_title(once) == once

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty(self, value):
        assert normalize_title(value) == ""

    def test_single_letter(self):
        assert normalize_title("A") == "a"


class TestNormalizeDoi:
    @pytest.mark.parametrize(
        "raw",
        [
            "https://doi.org/10.1234/TEST",
            "http://dx.doi.org/10.1234/test",
            "doi:10.1234/test",
            "10.1234/TEST",
            "  10.1234/test  ",
            "doi:https://doi.org/10.1234/test",
        ],
    )
    def test_strips_prefixes_and_lowercases(self, raw):
        assert normalize_doi(raw) == "10.1234/test"

    @pytest.mark.parametrize("value", [None, "", "   ", "https://doi.org/"])
    def test_empty_is_none(self, value):
        assert normalize_doi(value) is None


class TestParseYear:
    def test_int(self):
        assert parse_year(2021) == 2021

    def test_date_string(self):
        assert parse_year("2017-06-12T17:57:34Z") == 2017

    @pytest.mark.parametrize("value", [None, "", "n.d.", 0, True])
    def test_unusable(self, value):
        assert parse_year(value) is None


class TestArxivUrl:
    def test_detects_abs_and_pdf(self):
        assert is_arxiv_url("https://arxiv.org/abs/1706.03762")
        assert is_arxiv_url("http://arxiv.org/pdf/1706.03762v5")

    def test_other_urls(self):
        assert not is_arxiv_url("https://doi.org/10.1/a")
        assert not is_arxiv_url(None)


class TestCanonicalId:
    def test_deterministic(self):
        a = compute_canonical_id("10.1/abc", "Title")
        b = compute_canonical_id("10.1/abc", "Title")
        assert a == b
        assert uuid.UUID(a).version == 5

    def test_doi_wins_over_title(self):
        """Same DOI in any spelling maps to the same id, regardless of title."""
        assert compute_canonical_id("https://doi.org/10.1/ABC", "Title One") == compute_canonical_id(
            "10.1/abc", "A Different Title"
        )

    def test_doi_key(self):
        assert compute_canonical_id("10.1/abc", "x") == str(uuid.uuid5(PAPER_NAMESPACE, "10.1/abc"))

    def test_fallback_key_keeps_empty_parts(self):
        expected = str(uuid.uuid5(PAPER_NAMESPACE, "attention is all you need||2017"))
        assert compute_canonical_id(None, "Attention Is All You Need!", None, 2017) == expected

    def test_fallback_uses_author_and_year(self):
        base = compute_canonical_id(None, "Same Title", "Smith", 2020)
        assert base != compute_canonical_id(None, "Same Title", "Jones", 2020)
        assert base != compute_canonical_id(None, "Same Title", "Smith", 2021)
        assert base == compute_canonical_id(None, "same title.", "SMITH", 2020)

    def test_missing_author_and_missing_year_differ(self):
        """A year in the author slot must not collide with a real year."""
        by_year = compute_canonical_id(None, "Deep nets", None, 2020)
        by_author = compute_canonical_id(None, "Deep nets", "2020", None)
        assert by_year != by_author
        assert by_author == str(uuid.uuid5(PAPER_NAMESPACE, "deep nets|2020|"))
