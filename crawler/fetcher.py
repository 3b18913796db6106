import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Union
from urllib.parse import quote

import httpx
import structlog

from .config import FetcherConfig
from .errors import ErrorCategory, Retryable, ScrapeError, Terminal

logger = structlog.get_logger(__name__)

# Characters JavaScript's encodeURIComponent leaves untouched
URI_COMPONENT_SAFE = "-_.!~*'()"

TEXT_CONTENT_TYPES = (
    'text/',
    'application/xhtml+xml',
    'application/xml',
)

Sleep = Callable[[float], Awaitable[None]]


class FetchResult:
    def __init__(
        self,
        url: str,
        status_code: int,
        text: str = '',
        final_url: str = None,
        fetch_time: float = 0.0,
        content_type: str = None,
        size: int = 0,
        attempts: int = 1,
    ):
        """Initialize a FetchResult with HTTP response data and metadata."""
        self.url = url
        self.status_code = status_code
        self.text = text
        self.final_url = final_url or url
        self.fetch_time = fetch_time
        self.content_type = content_type
        self.size = size
        self.attempts = attempts
        self.timestamp = datetime.now(timezone.utc)

    def to_diagnostics(self) -> Dict[str, object]:
        return {
            'searchUrl': self.url,
            'finalUrl': self.final_url,
            'statusCode': self.status_code,
            'responseBytes': self.size,
            'attempts': self.attempts,
            'fetchTime': round(self.fetch_time, 3),
        }


class HTTPFetcher:
    def __init__(
        self,
        config: FetcherConfig = None,
        transport: httpx.AsyncBaseTransport = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize the HTTP fetcher from an immutable fetcher config."""
        self.config = config or FetcherConfig()
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            headers=dict(self.config.headers),
            transport=transport,
        )

    def build_search_url(self, keyword: str) -> str:
        encoded = quote(keyword, safe=URI_COMPONENT_SAFE)
        return f"{self.config.base_url}{self.config.search_path}?k={encoded}&ref=sr_pg_1"

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (from 1)."""
        return (2 ** attempt) * self.config.backoff_base_ms / 1000.0

    async def fetch(self, keyword: str) -> FetchResult:
        """Fetch the search page for a keyword, retrying with exponential backoff.

        Raises ScrapeError once retries are exhausted or on a failure that
        cannot be retried.
        """
        url = self.build_search_url(keyword)
        max_retries = self.config.max_retries
        last_failure: Optional[Retryable] = None

        for attempt in range(1, max_retries + 1):
            logger.info("fetch_attempt", attempt=attempt, max_retries=max_retries, keyword=keyword, url=url)
            outcome = await self._attempt(url)

            if isinstance(outcome, FetchResult):
                outcome.attempts = attempt
                return outcome

            if isinstance(outcome, Terminal):
                logger.error("fetch_failed", attempt=attempt, category=outcome.category.code, reason=outcome.reason)
                raise outcome.to_error()

            last_failure = outcome
            logger.warning(
                "fetch_attempt_failed",
                attempt=attempt,
                category=outcome.category.code,
                reason=outcome.reason,
            )

            if attempt < max_retries:
                delay = self.backoff_delay(attempt)
                logger.info("fetch_backoff", attempt=attempt, delay_ms=int(delay * 1000))
                await self._sleep(delay)

        logger.error(
            "fetch_retries_exhausted",
            attempts=max_retries,
            category=last_failure.category.code,
            reason=last_failure.reason,
        )
        raise ScrapeError(last_failure.category, last_failure.reason)

    async def _attempt(self, url: str) -> Union[FetchResult, Retryable, Terminal]:
        start_time = time.time()

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            return Retryable(f"Timeout after {self.config.timeout}s: {e}", ErrorCategory.TIMEOUT)
        except httpx.ConnectError as e:
            return Retryable(f"Connection error: {e}", ErrorCategory.CONNECTION)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            return Terminal(ErrorCategory.GENERIC, f"Invalid request: {e}")
        except httpx.TooManyRedirects as e:
            return Retryable(f"Too many redirects: {e}", ErrorCategory.GENERIC)
        except httpx.HTTPError as e:
            return Retryable(f"Transport error: {e}", ErrorCategory.GENERIC)

        fetch_time = time.time() - start_time
        return self._check_response(url, response, fetch_time)

    def _check_response(
        self, url: str, response: httpx.Response, fetch_time: float
    ) -> Union[FetchResult, Retryable]:
        status = response.status_code
        if status >= 400:
            return Retryable(f"HTTP {status}", self._classify_status(status))

        content_type = response.headers.get('content-type', '').lower()
        if not self._is_text_content(content_type):
            return Retryable(f"Invalid response: non-text content type {content_type!r}", ErrorCategory.CONNECTION)

        text = response.text
        if not text or not text.strip():
            return Retryable("Invalid response: empty body", ErrorCategory.CONNECTION)

        size = len(response.content)
        logger.info("fetch_response", status_code=status, bytes=size, fetch_time=round(fetch_time, 3))
        return FetchResult(
            url=url,
            status_code=status,
            text=text,
            final_url=str(response.url),
            fetch_time=fetch_time,
            content_type=content_type,
            size=size,
        )

    @staticmethod
    def _classify_status(status: int) -> ErrorCategory:
        if status == 429:
            return ErrorCategory.RATE_LIMITED
        if status == 503:
            return ErrorCategory.SERVICE_UNAVAILABLE
        return ErrorCategory.GENERIC

    @staticmethod
    def _is_text_content(content_type: str) -> bool:
        """Determine if a response body should be treated as text based on content type."""
        if not content_type:
            return True
        return content_type.startswith(TEXT_CONTENT_TYPES)

    async def aclose(self):
        await self._client.aclose()
