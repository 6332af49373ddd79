"""Resilient HTTP fetch with bounded retries and rate-limit-aware backoff.

Retry protocol:
- 429: wait the Retry-After hint (seconds) if present, else the current
  backoff; double the backoff; retry. Exhaustion raises RateLimited.
- 5xx: wait the current backoff, double it, retry. Exhaustion raises ServerError.
- Other non-2xx: HttpError immediately. Malformed requests are not retried.
- Transport failures (connect errors, timeouts): wait, double, retry.
  Exhaustion re-raises the last transport error.
- 2xx: the body must be declared JSON, otherwise UnexpectedContentType,
  so an HTML error page is never treated as data.

Backoff doubles per attempt with no cap; the retry count bounds it.
"""

import asyncio
import json
from typing import Any

import httpx

from seasonal.exceptions import HttpError, RateLimited, ServerError, UnexpectedContentType
from seasonal.logging import get_logger
from seasonal.retry import RetryPolicy, Sleep

logger = get_logger(__name__)

BODY_EXCERPT_CHARS = 100


def _retry_after_seconds(response: httpx.Response) -> float | None:
    """Parse a delta-seconds Retry-After header. HTTP-date values are ignored."""
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _parse_json(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type")
    if not content_type or "application/json" not in content_type.lower():
        excerpt = response.text[:BODY_EXCERPT_CHARS]
        logger.error(
            "unexpected_content_type",
            url=str(response.request.url),
            content_type=content_type,
            body_excerpt=excerpt,
        )
        raise UnexpectedContentType(content_type, excerpt)
    try:
        return response.json()
    except json.JSONDecodeError as e:
        raise UnexpectedContentType(content_type, response.text[:BODY_EXCERPT_CHARS]) from e


class ResilientFetcher:
    """Performs HTTP requests against the market-data API with retries.

    Usage:
        async with httpx.AsyncClient(timeout=15.0) as http:
            fetcher = ResilientFetcher(http, RetryPolicy())
            data = await fetcher.fetch("https://.../api/v3/exchangeInfo")
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: RetryPolicy,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy
        self._sleep = sleep

    async def fetch(
        self,
        url: str,
        params: dict | None = None,
        method: str = "GET",
        json_body: Any = None,
        max_retries: int | None = None,
        initial_backoff: float | None = None,
    ) -> Any:
        """Request url and return the parsed JSON body.

        max_retries counts retries, so up to max_retries + 1 attempts are
        made. Both limits default to the fetcher's RetryPolicy.
        """
        retries = self._policy.max_retries if max_retries is None else max(0, max_retries)
        backoff = (
            self._policy.initial_backoff if initial_backoff is None else initial_backoff
        )
        attempts = retries + 1

        failure: Exception | None = None
        wait = backoff

        for attempt in range(attempts):
            if failure is not None:
                logger.warning(
                    "fetch_retry",
                    url=url,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    delay=wait,
                    error=str(failure),
                )
                await self._sleep(wait)
                backoff *= 2

            try:
                response = await self._client.request(
                    method, url, params=params, json=json_body
                )
            except httpx.TransportError as e:
                failure, wait = e, backoff
                continue

            status = response.status_code

            if status == 429:
                hint = _retry_after_seconds(response)
                failure = RateLimited(url, attempts)
                wait = hint if hint is not None else backoff
                continue

            if status >= 500:
                failure, wait = ServerError(url, status, attempts), backoff
                continue

            if not response.is_success:
                excerpt = response.text[:BODY_EXCERPT_CHARS]
                logger.error("http_error", url=url, status=status, body_excerpt=excerpt)
                raise HttpError(status, excerpt)

            return _parse_json(response)

        logger.error(
            "fetch_failed_permanently",
            url=url,
            attempts=attempts,
            error=str(failure),
        )
        raise failure
