"""
Region Detector

Maps a paper's URL, author affiliations, venue and title to a country with
a confidence level. Signals are checked in priority order:

    url (country TLD)  -> high
    affiliation text   -> high
    venue name         -> medium
    title mention      -> low

Results are memoized in a bounded LRU (cachetools) since the same venues
and hosts recur across searches.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from cachetools import LRUCache

if TYPE_CHECKING:
    from paper_discovery.domain.entities import RawResult

logger = logging.getLogger(__name__)


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Signal(str, Enum):
    URL = "url"
    AFFILIATION = "affiliation"
    VENUE = "venue"
    TITLE = "title"
    USER = "user"


DEFAULT_ORDER = (Signal.URL, Signal.AFFILIATION, Signal.VENUE, Signal.TITLE)

_CONFIDENCE_BY_SIGNAL = {
    Signal.URL: Confidence.HIGH,
    Signal.AFFILIATION: Confidence.HIGH,
    Signal.USER: Confidence.HIGH,
    Signal.VENUE: Confidence.MEDIUM,
    Signal.TITLE: Confidence.LOW,
}

# ISO 3166-1 alpha-2 code -> country name
COUNTRIES: dict[str, str] = {
    "ar": "Argentina",
    "au": "Australia",
    "at": "Austria",
    "bd": "Bangladesh",
    "be": "Belgium",
    "br": "Brazil",
    "ca": "Canada",
    "cl": "Chile",
    "cn": "China",
    "co": "Colombia",
    "cz": "Czech Republic",
    "dk": "Denmark",
    "eg": "Egypt",
    "et": "Ethiopia",
    "fi": "Finland",
    "fr": "France",
    "de": "Germany",
    "gh": "Ghana",
    "gr": "Greece",
    "hu": "Hungary",
    "in": "India",
    "id": "Indonesia",
    "ir": "Iran",
    "ie": "Ireland",
    "il": "Israel",
    "it": "Italy",
    "jp": "Japan",
    "ke": "Kenya",
    "my": "Malaysia",
    "mx": "Mexico",
    "ma": "Morocco",
    "nl": "Netherlands",
    "nz": "New Zealand",
    "ng": "Nigeria",
    "no": "Norway",
    "pk": "Pakistan",
    "pe": "Peru",
    "ph": "Philippines",
    "pl": "Poland",
    "pt": "Portugal",
    "ro": "Romania",
    "ru": "Russian Federation",
    "sa": "Saudi Arabia",
    "sg": "Singapore",
    "za": "South Africa",
    "kr": "South Korea",
    "es": "Spain",
    "se": "Sweden",
    "ch": "Switzerland",
    "tw": "Taiwan",
    "th": "Thailand",
    "tr": "Turkey",
    "ua": "Ukraine",
    "ae": "United Arab Emirates",
    "gb": "United Kingdom",
    "us": "United States",
    "vn": "Vietnam",
}

# Extra TLDs that are not the ISO code
_EXTRA_TLDS = {"uk": "United Kingdom", "eu": "European Union"}

ALIASES: dict[str, str] = {
    "usa": "United States",
    "us": "United States",
    "america": "United States",
    "uk": "United Kingdom",
    "britain": "United Kingdom",
    "great britain": "United Kingdom",
    "england": "United Kingdom",
    "korea": "South Korea",
    "russia": "Russian Federation",
}

# Short uppercase aliases only match in uppercase ("US", not "us")
_CASE_SENSITIVE_ALIASES = {"USA", "US", "UK"}


def _word_pattern(text: str, *, ignore_case: bool = True) -> re.Pattern[str]:
    body = r"\s+".join(re.escape(part) for part in text.split())
    return re.compile(rf"\b{body}\b", re.IGNORECASE if ignore_case else 0)


def _build_patterns() -> list[tuple[re.Pattern[str], str]]:
    patterns: list[tuple[re.Pattern[str], str]] = []
    # Longer names first so "South Korea" wins over "Korea"
    for name in sorted(set(COUNTRIES.values()), key=len, reverse=True):
        patterns.append((_word_pattern(name), name))
    for alias, canonical in sorted(ALIASES.items(), key=lambda kv: len(kv[0]), reverse=True):
        if alias.upper() in _CASE_SENSITIVE_ALIASES:
            patterns.append((_word_pattern(alias.upper(), ignore_case=False), canonical))
        else:
            patterns.append((_word_pattern(alias), canonical))
    return patterns


_PATTERNS = _build_patterns()
_CANONICAL_BY_LOWER = {name.lower(): name for name in COUNTRIES.values()}


def normalize_country(value: str | None) -> str | None:
    """Resolve aliases and casing to the canonical country name."""
    if not value or not value.strip():
        return None
    key = " ".join(value.split()).lower()
    return ALIASES.get(key) or _CANONICAL_BY_LOWER.get(key) or value.strip()


def _tld_country(url: str) -> str | None:
    hostname = urlparse(url).hostname or ""
    parts = hostname.split(".")
    if len(parts) < 2:
        return None
    tld = parts[-1].lower()
    return COUNTRIES.get(tld) or _EXTRA_TLDS.get(tld)


@dataclass(frozen=True)
class RegionResult:
    country: str | None
    confidence: Confidence = Confidence.LOW
    signal: Signal | None = None
    matched_text: str | None = None
    was_overridden: bool = False


@dataclass
class RegionInputs:
    url: str | None = None
    affiliations: list[str] = field(default_factory=list)
    venue: str | None = None
    title: str | None = None

    @classmethod
    def from_result(cls, paper: RawResult) -> RegionInputs:
        return cls(
            url=paper.url,
            affiliations=[a.affiliation for a in paper.authors if a.affiliation],
            venue=paper.venue,
            title=paper.title,
        )

    def cache_key(self) -> tuple:
        return (self.url, tuple(self.affiliations), self.venue, self.title)


class RegionDetector:
    """
    Detects the country a paper most plausibly originates from.

    Example:
        detector = RegionDetector()
        result = detector.detect(RegionInputs(affiliations=["University of Sao Paulo, Brazil"]))
        result.country      # "Brazil"
        result.confidence   # Confidence.HIGH
    """

    def __init__(self, order: tuple[Signal, ...] = DEFAULT_ORDER, cache_size: int = 1000) -> None:
        self._order = order
        self._cache: LRUCache[tuple, RegionResult] = LRUCache(maxsize=cache_size)

    def detect(self, inputs: RegionInputs, override_region: str | None = None) -> RegionResult:
        if override_region and override_region.strip():
            return RegionResult(
                country=normalize_country(override_region),
                confidence=Confidence.HIGH,
                signal=Signal.USER,
                matched_text=override_region,
                was_overridden=True,
            )

        key = inputs.cache_key()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = self._detect_uncached(inputs)
        self._cache[key] = result
        return result

    def detect_paper(self, paper: RawResult) -> RegionResult:
        return self.detect(RegionInputs.from_result(paper))

    def _detect_uncached(self, inputs: RegionInputs) -> RegionResult:
        for signal in self._order:
            country, text = None, None
            if signal is Signal.URL and inputs.url:
                country, text = _tld_country(inputs.url), inputs.url
            elif signal is Signal.AFFILIATION:
                for affiliation in inputs.affiliations:
                    country = self._match_text(affiliation)
                    if country:
                        text = affiliation
                        break
            elif signal is Signal.VENUE and inputs.venue:
                country, text = self._match_text(inputs.venue), inputs.venue
            elif signal is Signal.TITLE and inputs.title:
                country, text = self._match_text(inputs.title), inputs.title

            if country:
                logger.debug(f"Region detected from {signal.value}: {country}")
                return RegionResult(
                    country=country,
                    confidence=_CONFIDENCE_BY_SIGNAL[signal],
                    signal=signal,
                    matched_text=text,
                )
        return RegionResult(country=None)

    @staticmethod
    def _match_text(text: str) -> str | None:
        for pattern, country in _PATTERNS:
            if pattern.search(text):
                return country
        return None
