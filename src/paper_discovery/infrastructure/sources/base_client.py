"""
Base Source Adapter - common request pattern with retry, rate limiting,
caching and circuit breaker.

Every bibliographic source shares the same outer contract:

    search(query, limit=..., from_year=..., fast_mode=...) -> list[RawResult]

which never raises for ordinary failure. Subclasses only build the vendor
request and map the vendor payload (``_fetch``); everything else lives here:
- Result cache lookup / write-back (successful non-empty results only)
- Shared per-source rate limiter (atomic slot reservation)
- Retry on 429 / 5xx with exponential backoff and jitter, honouring Retry-After
- Circuit breaker that short-circuits a source after repeated failures
- Conversion of every failure into a recorded error string
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar

import httpx
from typing_extensions import Self

from paper_discovery.domain.entities import UNKNOWN_AUTHOR, Author, PaperSource, RawResult
from paper_discovery.shared.async_utils import CircuitBreaker, Sleeper, SourceRateLimiter
from paper_discovery.shared.exceptions import (
    HttpError,
    NetworkError,
    ParseError,
    RateLimitError,
    SourceError,
    get_retry_delay,
)

if TYPE_CHECKING:
    from paper_discovery.infrastructure.cache import ResultCache

logger = logging.getLogger(__name__)


@dataclass
class SourceOutcome:
    """What one adapter call produced, including its recorded failure."""

    source: PaperSource
    results: list[RawResult] = field(default_factory=list)
    error: str | None = None
    cache_hit: bool = False
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class BaseSourceAdapter:
    """
    Base class for external bibliographic sources.

    Subclasses set ``source`` / ``_service_name`` and implement ``_fetch``.
    They can override:
    - ``_execute_request()``: add service-specific params (e.g. mailto)
    - ``_handle_expected_status()``: short-circuit statuses such as 404
    - ``_parse_response()``: custom body extraction (e.g. XML)
    """

    source: ClassVar[PaperSource]
    _service_name: ClassVar[str] = "API"
    _MAX_RETRIES: ClassVar[int] = 3
    _RETRY_STATUSES: ClassVar[frozenset[int]] = frozenset({429, 500, 502, 503, 504})
    _MAX_LIMIT: ClassVar[int] = 100

    def __init__(
        self,
        *,
        timeout: float = 15.0,
        fast_timeout: float = 6.0,
        headers: dict[str, str] | None = None,
        rate_limiter: SourceRateLimiter | None = None,
        cache: ResultCache | None = None,
        cache_ttl: float | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """
        Initialize adapter.

        Args:
            timeout: Per-request timeout in seconds
            fast_timeout: Per-request timeout used in fast mode
            headers: Default headers for all requests
            rate_limiter: Shared limiter for this source (default: 1 request/s)
            cache: Optional result cache
            cache_ttl: TTL for this source's cache entries (default: cache default)
            circuit_breaker: Defaults to 3 failures / 5 minute cooldown
            sleep: Sleep used between retries (injectable for tests)
        """
        self._timeout = timeout
        self._fast_timeout = fast_timeout
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers or {},
            follow_redirects=True,
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )
        self._rate_limiter = rate_limiter or SourceRateLimiter(name=self.source.value, min_interval=1.0)
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=3, recovery_timeout=300.0)
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        *,
        limit: int = 10,
        from_year: int | None = None,
        fast_mode: bool = False,
    ) -> list[RawResult]:
        """Search this source. Returns [] on any ordinary failure."""
        outcome = await self.search_with_outcome(query, limit=limit, from_year=from_year, fast_mode=fast_mode)
        return outcome.results

    async def search_with_outcome(
        self,
        query: str,
        *,
        limit: int = 10,
        from_year: int | None = None,
        fast_mode: bool = False,
    ) -> SourceOutcome:
        """Search this source and report cache use and any recorded error."""
        started = time.perf_counter()
        limit = max(1, min(limit, self._MAX_LIMIT))

        cache_key: str | None = None
        if self._cache is not None:
            cache_key = self._cache.make_key(self.source.value, query, {"limit": limit, "from_year": from_year})
            cached = self._cache.get(cache_key)
            if cached is not None:
                return SourceOutcome(
                    source=self.source,
                    results=list(cached),
                    cache_hit=True,
                    elapsed_ms=(time.perf_counter() - started) * 1000,
                )

        timeout = self._fast_timeout if fast_mode else self._timeout
        try:
            async with self._circuit_breaker:
                results = await self._fetch(query, limit=limit, from_year=from_year, timeout=timeout)
        except SourceError as e:
            logger.warning(f"{self._service_name} search failed: {e}")
            return SourceOutcome(
                source=self.source,
                error=str(e),
                elapsed_ms=(time.perf_counter() - started) * 1000,
            )
        except Exception as e:
            logger.exception(f"{self._service_name} search failed unexpectedly: {e}")
            return SourceOutcome(
                source=self.source,
                error=f"Unexpected error: {e}",
                elapsed_ms=(time.perf_counter() - started) * 1000,
            )

        results = results[:limit]
        if cache_key is not None and results:
            self._cache.put(cache_key, results, ttl=self._cache_ttl)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f"{self._service_name}: {len(results)} results in {elapsed_ms:.0f}ms")
        return SourceOutcome(source=self.source, results=results, elapsed_ms=elapsed_ms)

    async def _fetch(
        self,
        query: str,
        *,
        limit: int,
        from_year: int | None,
        timeout: float,
    ) -> list[RawResult]:
        """Issue the vendor request and map the payload. May raise SourceError."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    async def _make_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        expect_json: bool = True,
    ) -> Any:
        """
        Make HTTP request with rate limiting and retry on 429 / 5xx.

        Transport errors and other statuses are not retried.

        Raises:
            NetworkError: connection, DNS or timeout failure
            RateLimitError: still 429 after all retries
            HttpError: any other non-2xx status
            ParseError: body could not be decoded
        """
        for attempt in range(self._MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                response = await self._execute_request(
                    url,
                    method=method,
                    params=params,
                    json_body=json_body,
                    headers=headers,
                    timeout=timeout,
                )
            except httpx.TimeoutException as e:
                raise NetworkError(f"{self._service_name} request timed out: {e}") from e
            except httpx.RequestError as e:
                raise NetworkError(f"{self._service_name} request error: {e}") from e

            expected = self._handle_expected_status(response, url)
            if expected is not _CONTINUE:
                return expected

            status = response.status_code
            if status in self._RETRY_STATUSES:
                error: SourceError
                if status == 429:
                    error = RateLimitError(f"{self._service_name}: rate limited (429)")
                else:
                    error = HttpError(status, f"{self._service_name} HTTP error {status}")
                if attempt < self._MAX_RETRIES:
                    delay = self._get_retry_after(response, error, attempt)
                    logger.warning(
                        f"{self._service_name}: HTTP {status}, retry {attempt + 1}/{self._MAX_RETRIES} in {delay:.1f}s"
                    )
                    await self._sleep(delay)
                    continue
                raise error

            if status >= 400:
                raise HttpError(status, f"{self._service_name} HTTP error {status}: {response.reason_phrase}")

            try:
                return self._parse_response(response, expect_json)
            except ValueError as e:
                raise ParseError(str(e), source=self.source.value) from e

        msg = f"{self._service_name}: retry loop exited unexpectedly"
        raise HttpError(0, msg)

    async def _execute_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Execute the actual HTTP request. Override for custom behavior."""
        kwargs: dict[str, Any] = {"headers": headers or {}}
        if params:
            kwargs["params"] = params
        if timeout is not None:
            kwargs["timeout"] = timeout
        if method == "POST":
            return await self._client.post(url, json=json_body, **kwargs)
        return await self._client.get(url, **kwargs)

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        """
        Handle expected non-200 status codes that shouldn't trigger retry.

        Return a value to short-circuit, or ``_CONTINUE`` for normal processing.
        """
        return _CONTINUE

    def _parse_response(self, response: httpx.Response, expect_json: bool) -> Any:
        """Parse response body. Override for custom extraction logic."""
        if expect_json:
            return response.json()
        return response.text

    @staticmethod
    def _get_retry_after(response: httpx.Response, error: SourceError, attempt: int) -> float:
        """Retry-After header when present, else exponential backoff with jitter."""
        header = response.headers.get("Retry-After")
        if header is not None:
            try:
                return min(float(header), 30.0)
            except (ValueError, TypeError):
                pass
        return get_retry_delay(error, attempt)

    def _normalize_records(
        self,
        records: list[Any],
        normalize: Callable[[dict[str, Any]], RawResult | None],
    ) -> list[RawResult]:
        """
        Map vendor records one at a time.

        A malformed record is logged and skipped so the rest of the batch
        survives; it never counts as a source failure.
        """
        results: list[RawResult] = []
        for record in records:
            if not isinstance(record, dict):
                logger.debug(f"{self._service_name}: skipping non-object record {record!r:.200}")
                continue
            try:
                result = normalize(record)
            except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
                logger.debug(f"{self._service_name}: skipping malformed record ({e}): {record!r:.200}")
                continue
            if result is not None:
                results.append(result)
        return results

    @staticmethod
    def _require_dict(data: Any, source: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise ParseError(f"expected JSON object, got {type(data).__name__}", source=source)
        return data

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


# Sentinel object to indicate "continue normal processing" from _handle_expected_status
_CONTINUE = object()


def make_author(name: Any, affiliation: Any = None) -> Author:
    """Author from loosely typed vendor values; missing names become "N/A"."""
    text = str(name).strip() if name else ""
    aff = str(affiliation).strip() if affiliation else ""
    return Author(name=text or UNKNOWN_AUTHOR, affiliation=aff or None)


def as_dict(value: Any) -> dict[str, Any]:
    """Nested vendor object, or {} when missing or of the wrong type."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def build_result(source: PaperSource, **fields: Any) -> RawResult | None:
    """Build a RawResult, skipping records without a usable title."""
    title = fields.pop("title", None)
    if isinstance(title, list):
        title = title[0] if title else None
    if not title or not str(title).strip():
        logger.debug(f"{source.value}: skipping record without title")
        return None
    return RawResult(title=" ".join(str(title).split()), source=source, **fields)
