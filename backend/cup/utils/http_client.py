"""
Shared HTTP transport for registry and peer requests.

One aiohttp ClientSession is shared by every concurrent check of a run.
Transient failures (connection errors, timeouts, 429 and 5xx responses)
are retried with exponential backoff up to a fixed number of attempts.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import aiohttp
from multidict import CIMultiDict

from cup.updates.errors import ConnectionFailed, MalformedServerResponse, RegistryTimeout, RetriesExhausted

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass
class HttpResponse:
    """Status, headers and body of a completed request."""
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    def __post_init__(self):
        # Header lookups are case-insensitive, whatever mapping was passed in
        self.headers = CIMultiDict(self.headers)

    def json(self) -> Any:
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedServerResponse(f"Failed to parse response from {self.url} as JSON: {e}", self.url)

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class HttpClient:
    """
    Thin retrying wrapper around aiohttp.

    Usable as an async context manager; a session passed in by the caller
    is never closed by this class.

    Args:
        session: Optional existing ClientSession
        timeout: Total request timeout in seconds
        connect_timeout: Connection timeout in seconds
        max_retries: Retries after the first attempt (0 disables retrying)
        backoff_base: Delay before the first retry, doubled for each further retry
        sleep: Coroutine used for backoff delays (replaceable in tests)
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout, connect=connect_timeout)
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._sleep = sleep

    async def __aenter__(self) -> 'HttpClient':
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return await self.request(url, "GET", headers)

    async def head(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return await self.request(url, "HEAD", headers)

    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        """
        Perform a request, retrying transient failures.

        A response with a retryable status is returned as-is once the
        retries are used up, so callers can map the status themselves.

        Raises:
            ConnectionFailed: connection error with retrying disabled, or a
                non-transient client error
            RegistryTimeout: timeout with retrying disabled
            RetriesExhausted: every attempt failed with a transient error
        """
        if self._session is None:
            await self.__aenter__()

        headers = {name: value for name, value in (headers or {}).items() if value is not None}
        attempt = 0
        while True:
            try:
                async with self._session.request(method, url, headers=headers, timeout=self._timeout) as response:
                    body = await response.read()
                    result = HttpResponse(
                        status=response.status,
                        headers=response.headers,
                        body=body,
                        url=str(response.url),
                    )
                if result.status not in RETRYABLE_STATUSES or attempt >= self.max_retries:
                    return result
                logger.debug(f"{method} {url}: received {result.status}, retrying")
            except asyncio.TimeoutError as e:
                if attempt >= self.max_retries:
                    raise self._give_up(method, url, attempt, RegistryTimeout, "Connection timed out!", e)
                logger.debug(f"{method} {url}: timed out, retrying")
            except aiohttp.ClientConnectionError as e:
                if attempt >= self.max_retries:
                    raise self._give_up(method, url, attempt, ConnectionFailed, "Connection failed!", e)
                logger.debug(f"{method} {url}: connection error ({e}), retrying")
            except aiohttp.ClientError as e:
                logger.warning(f"{method} {url}: request failed: {e}")
                raise ConnectionFailed(f"{method} {url}: Request failed: {e}", url) from e

            await self._sleep(self.backoff_base * (2 ** attempt))
            attempt += 1

    def _give_up(self, method: str, url: str, attempt: int, error_type, message: str, cause: Exception):
        if attempt == 0:
            error = error_type(f"{method} {url}: {message}", url)
        else:
            error = RetriesExhausted(
                f"{method} {url}: {message[:-1]} after {attempt} retries!", url
            )
        logger.warning(error.message)
        error.__cause__ = cause
        return error
