"""HTTP transport that retries throttled calls with exponential backoff.

Only "429 Too Many Requests" is retried here. A server-provided Retry-After
delay is honoured when present, otherwise the delay grows exponentially; a
random jitter is always added so concurrent callers do not retry in lockstep.
A shared throttle counter spreads bursts out: while it is above zero every
call waits proactively before being issued, even calls that were never
throttled themselves.
"""

import logging
import asyncio
import math
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx

from figmadl.domain.errors import RateLimitExceededError, TransportError
from figmadl.domain.events.api_events import (
    RateLimitExhausted, RateLimitTelemetry, RetryScheduled, ThrottleCooldown,
)
from figmadl.domain.events.dispatcher import EventDispatcher
from figmadl.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = 429

DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF_SECONDS = 2.0
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_MAX_JITTER_SECONDS = 1.0
DEFAULT_THROTTLE_STEP_SECONDS = 2.0
DEFAULT_THROTTLE_CAP_SECONDS = 10.0

REMAINING_HEADERS = ("X-RateLimit-Remaining", "RateLimit-Remaining")
RESET_HEADERS = ("X-RateLimit-Reset", "RateLimit-Reset")


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parses a Retry-After header into seconds.

    Accepts both delta-seconds and HTTP-date values. Returns None when the
    header is missing, unparseable or not a finite number.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        if not math.isfinite(seconds):
            logger.debug(f"Ignoring non-finite Retry-After header: {value!r}")
            return None
        return max(0.0, seconds)
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable Retry-After header: {value!r}")
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())


def display_url(url: str) -> str:
    """Strips the query string so signed URLs never end up in logs."""
    return url.split("?", 1)[0]


def _first_header(headers: httpx.Headers, names) -> Optional[str]:
    for name in names:
        if name in headers:
            return headers[name]
    return None


class RetryingTransport:
    """Executes GET requests with rate limiting and retries on throttling."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        rate_limiter: Optional[RateLimiter] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        max_jitter_s: float = DEFAULT_MAX_JITTER_SECONDS,
        throttle_step_s: float = DEFAULT_THROTTLE_STEP_SECONDS,
        throttle_cap_s: float = DEFAULT_THROTTLE_CAP_SECONDS,
        events: Optional[EventDispatcher] = None,
    ):
        """Initializes the RetryingTransport.

        Args:
            client: The httpx client used to send requests.
            rate_limiter: Limiter acquired before every attempt, if given.
            max_retries: Maximum number of retries after the first attempt.
            initial_backoff_s: Delay before the first retry when no Retry-After is sent.
            backoff_factor: Multiplier applied per attempt (2 for exponential).
            max_jitter_s: Upper bound of the random delay added to every retry.
            throttle_step_s: Proactive delay per unit of the throttle counter.
            throttle_cap_s: Upper bound of the proactive delay.
            events: Dispatcher for governance events.
        """
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self._client = client
        self.rate_limiter = rate_limiter
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.max_jitter_s = max_jitter_s
        self.throttle_step_s = throttle_step_s
        self.throttle_cap_s = throttle_cap_s
        self._events = events or EventDispatcher()
        self._throttle_count = 0

        logger.debug(
            f"RetryingTransport initialized: max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}, jitter<={max_jitter_s}s"
        )

    async def fetch_with_retry(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Performs a GET request, retrying on 429 responses.

        Args:
            url: Absolute URL to fetch.
            headers: Extra request headers.
            params: Query parameters.
            stream: When True the body is not read; the caller must close the response.

        Returns:
            The first non-throttled response, whatever its status code.

        Raises:
            RateLimitExceededError: If every allowed attempt was throttled.
            TransportError: If the request could not be sent (network failure).
        """
        shown_url = display_url(url)

        for attempt in range(self.max_retries + 1):
            # 1. Back off proactively while the API has been throttling recently
            if self._throttle_count > 0:
                cooldown = min(self._throttle_count * self.throttle_step_s, self.throttle_cap_s)
                logger.debug(f"Recent throttling (count={self._throttle_count}); delaying {cooldown:.2f}s before {shown_url}")
                self._events.dispatch(ThrottleCooldown(url=shown_url, delay_seconds=cooldown, throttle_count=self._throttle_count))
                await asyncio.sleep(cooldown)

            # 2. Wait for rate limit permission
            if self.rate_limiter is not None:
                await self.rate_limiter.acquire()

            # 3. Execute the request
            response = await self._send(url, headers, params, stream)

            if response.status_code != TOO_MANY_REQUESTS:
                self._throttle_count = max(0, self._throttle_count - 1)
                self._record_telemetry(shown_url, response)
                return response

            # 4. Throttled
            self._throttle_count += 1
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            if stream:
                await response.aclose()

            if attempt >= self.max_retries:
                logger.error(f"Max retries ({self.max_retries}) reached for {shown_url}; still throttled.")
                self._events.dispatch(RateLimitExhausted(url=shown_url, attempts=attempt + 1))
                raise RateLimitExceededError(attempts=attempt + 1, url=shown_url)

            if retry_after is not None:
                delay = retry_after
            else:
                delay = self.initial_backoff_s * (self.backoff_factor ** attempt)
            delay += random.uniform(0, self.max_jitter_s)

            logger.warning(
                f"Rate limited (429) on {shown_url}, attempt {attempt + 1}/{self.max_retries + 1}. "
                f"Waiting {delay:.2f}s..."
            )
            self._events.dispatch(RetryScheduled(
                url=shown_url,
                attempt_number=attempt + 1,
                delay_seconds=delay,
                retry_after_seconds=retry_after,
            ))
            await asyncio.sleep(delay)

        raise RateLimitExceededError(attempts=self.max_retries + 1, url=shown_url)

    async def _send(
        self,
        url: str,
        headers: Optional[Dict[str, str]],
        params: Optional[Dict[str, Any]],
        stream: bool,
    ) -> httpx.Response:
        request = self._client.build_request("GET", url, headers=headers, params=params)
        try:
            return await self._client.send(request, stream=stream)
        except httpx.RequestError as e:
            logger.error(f"Request to {display_url(url)} failed: {e}")
            raise TransportError(f"Request to {display_url(url)} failed: {e}") from e

    def _record_telemetry(self, shown_url: str, response: httpx.Response) -> None:
        remaining = _first_header(response.headers, REMAINING_HEADERS)
        reset = _first_header(response.headers, RESET_HEADERS)
        if remaining is None and reset is None:
            return
        logger.debug(f"Rate limit telemetry for {shown_url}: remaining={remaining}, reset={reset}")
        self._events.dispatch(RateLimitTelemetry(url=shown_url, remaining=remaining, reset=reset))
