"""Tests for RegionDetector and country normalization."""

import pytest

from paper_discovery.domain.entities import Author, PaperSource, RawResult
from paper_discovery.infrastructure.region import (
    Confidence,
    RegionDetector,
    RegionInputs,
    Signal,
    normalize_country,
)


@pytest.fixture
def detector():
    return RegionDetector()


class TestNormalizeCountry:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("USA", "United States"),
            ("usa", "United States"),
            ("UK", "United Kingdom"),
            ("brazil", "Brazil"),
            ("  South   Korea ", "South Korea"),
            ("Atlantis", "Atlantis"),
        ],
    )
    def test_aliases_and_casing(self, raw, expected):
        assert normalize_country(raw) == expected

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty(self, value):
        assert normalize_country(value) is None


class TestDetect:
    def test_url_tld_high_confidence(self, detector):
        result = detector.detect(RegionInputs(url="https://www.scielo.br/j/abc"))
        assert result.country == "Brazil"
        assert result.confidence is Confidence.HIGH
        assert result.signal is Signal.URL

    def test_generic_tld_falls_through(self, detector):
        result = detector.detect(RegionInputs(url="https://doi.org/10.1/x", venue="Journal of Japan Medicine"))
        assert result.country == "Japan"
        assert result.signal is Signal.VENUE
        assert result.confidence is Confidence.MEDIUM

    def test_affiliation(self, detector):
        result = detector.detect(RegionInputs(affiliations=["Dept. of Physics", "University of Sao Paulo, Brazil"]))
        assert result.country == "Brazil"
        assert result.signal is Signal.AFFILIATION
        assert result.matched_text == "University of Sao Paulo, Brazil"

    def test_title_low_confidence(self, detector):
        result = detector.detect(RegionInputs(title="Dengue outbreaks in Brazil, 2010-2020"))
        assert result.country == "Brazil"
        assert result.confidence is Confidence.LOW

    def test_longest_name_wins(self, detector):
        assert detector.detect(RegionInputs(affiliations=["KAIST, South Korea"])).country == "South Korea"

    def test_short_alias_requires_uppercase(self, detector):
        assert detector.detect(RegionInputs(affiliations=["MIT, Cambridge, USA"])).country == "United States"
        assert detector.detect(RegionInputs(title="Let us model protein folding")).country is None

    def test_nothing_found(self, detector):
        result = detector.detect(RegionInputs(title="A generic title"))
        assert result.country is None
        assert result.signal is None

    def test_override(self, detector):
        result = detector.detect(RegionInputs(url="https://www.scielo.br/x"), override_region="usa")
        assert result.country == "United States"
        assert result.was_overridden
        assert result.signal is Signal.USER

    def test_custom_order(self):
        detector = RegionDetector(order=(Signal.TITLE, Signal.URL))
        result = detector.detect(RegionInputs(url="https://x.fr/a", title="Malaria in Kenya"))
        assert result.country == "Kenya"

    def test_cached(self, detector):
        inputs = RegionInputs(venue="Japanese Journal of Kyoto, Japan")
        assert detector.detect(inputs) is detector.detect(inputs)


class TestDetectPaper:
    def test_from_raw_result(self, detector):
        paper = RawResult(
            title="Zika virus epidemiology",
            source=PaperSource.OPENALEX,
            authors=[Author("Ana", "Fiocruz, Rio de Janeiro, Brazil")],
            url="https://doi.org/10.1/zika",
        )
        assert detector.detect_paper(paper).country == "Brazil"
