"""Composition of the download pipeline.

Each invocation gets its own HTTP client, rate limiter, throttle counter and
queue, so concurrent invocations never share quota bookkeeping.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from figmadl.core.services.download_service import DownloadOrchestrator
from figmadl.core.services.url_resolver import BatchedUrlResolver
from figmadl.domain.events.dispatcher import EventDispatcher, EventListener
from figmadl.domain.models.common import ApiKey
from figmadl.infrastructure.config.settings import GovernanceSettings
from figmadl.infrastructure.filesystem.local_fs import LocalFileSystem
from figmadl.infrastructure.resilience.api_retry import RetryingTransport
from figmadl.infrastructure.resilience.rate_limiter import RateLimiter
from figmadl.infrastructure.resilience.request_queue import ConcurrencyBoundedQueue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_downloader(
    api_key: str,
    settings: Optional[GovernanceSettings] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    event_listener: Optional[EventListener] = None,
) -> AsyncIterator[DownloadOrchestrator]:
    """Builds a fresh DownloadOrchestrator and closes its HTTP client on exit.

    Args:
        api_key: Figma personal access token.
        settings: Governance settings; defaults are used when omitted.
        http_transport: Optional httpx transport (tests pass a MockTransport).
        event_listener: Optional callback receiving every governance event.
    """
    settings = settings or GovernanceSettings()
    events = EventDispatcher()
    if event_listener is not None:
        events.subscribe(event_listener)

    async with httpx.AsyncClient(
        timeout=settings.http_timeout_seconds,
        follow_redirects=True,
        transport=http_transport,
    ) as client:
        rate_limiter = RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            time_window=settings.rate_limit_window_seconds,
            safety_margin=settings.rate_limit_safety_margin_seconds,
            events=events,
        )
        transport = RetryingTransport(
            client,
            rate_limiter=rate_limiter,
            max_retries=settings.max_retries,
            initial_backoff_s=settings.initial_backoff_seconds,
            max_jitter_s=settings.max_jitter_seconds,
            throttle_step_s=settings.throttle_step_seconds,
            throttle_cap_s=settings.throttle_cap_seconds,
            events=events,
        )
        resolver = BatchedUrlResolver(
            ApiKey(api_key),
            transport,
            batch_size=settings.batch_size,
            batch_cooldown_s=settings.batch_cooldown_seconds,
            api_base_url=settings.api_base_url,
            events=events,
        )
        queue = ConcurrencyBoundedQueue(
            concurrency=settings.queue_concurrency,
            interval=settings.queue_interval_seconds,
            events=events,
        )
        logger.debug("Download pipeline assembled.")
        yield DownloadOrchestrator(resolver, transport, queue, LocalFileSystem(), events=events)
