"""Core service resolving node ids to transient image download URLs.

Requests are split into fixed-size batches that are sent strictly one after
another through the retrying transport, with an extra cool-down between
batches on top of the rate limiter's own gating.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

# Domain Layer Imports
from figmadl.domain.errors import TransportError, VendorApiError
from figmadl.domain.events.api_events import BatchCompleted, BatchStarted
from figmadl.domain.events.dispatcher import EventDispatcher
from figmadl.domain.models.common import ApiKey, FileKey, ImageFormat, ImageUrl, NodeId, ResolvedUrlMap
from figmadl.domain.models.node_ids import canonicalize_all

# Infrastructure Layer Imports
from figmadl.infrastructure.resilience.api_retry import RetryingTransport

logger = logging.getLogger(__name__)

FIGMA_API_BASE = "https://api.figma.com/v1"
TOKEN_HEADER = "X-Figma-Token"
DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_COOLDOWN_SECONDS = 2.0


def chunked(items: Sequence[NodeId], size: int) -> List[List[NodeId]]:
    """Splits items into consecutive chunks of at most ``size``, keeping order."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchedUrlResolver:
    """Resolves export URLs for many nodes in sequential, governed batches."""

    def __init__(
        self,
        api_key: ApiKey,
        transport: RetryingTransport,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_cooldown_s: float = DEFAULT_BATCH_COOLDOWN_SECONDS,
        api_base_url: str = FIGMA_API_BASE,
        events: Optional[EventDispatcher] = None,
    ):
        """Initializes the resolver.

        Args:
            api_key: Figma personal access token sent with every API call.
            transport: Retrying transport shared with the downloads.
            batch_size: Number of node ids per images request.
            batch_cooldown_s: Pause between consecutive batches.
            api_base_url: Base URL of the Figma REST API.
            events: Dispatcher for batch boundary events.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._api_key = api_key
        self.transport = transport
        self.batch_size = batch_size
        self.batch_cooldown_s = batch_cooldown_s
        self.api_base_url = api_base_url.rstrip("/")
        self._events = events or EventDispatcher()

    async def resolve(
        self,
        file_key: FileKey,
        node_ids: Iterable[str],
        image_format: ImageFormat = ImageFormat.PNG,
        scale: int = 2,
    ) -> ResolvedUrlMap:
        """Resolves signed image URLs for every node id.

        Args:
            file_key: Key of the Figma document.
            node_ids: Node ids in display (``1-2``) or canonical (``1:2``) form.
            image_format: Requested export format.
            scale: Raster scale, only sent for PNG exports.

        Returns:
            Mapping of canonical node id to its signed URL, or None when the
            node cannot be exported in the requested format.

        Raises:
            TransportError: If a batch request fails at the HTTP level.
            VendorApiError: If Figma reports an error in the response body.
            RateLimitExceededError: If a batch stays throttled past the retry ceiling.
        """
        canonical_ids = canonicalize_all(node_ids)
        batches = chunked(canonical_ids, self.batch_size)
        resolved: ResolvedUrlMap = {}

        logger.info(f"Resolving {len(canonical_ids)} node(s) of {file_key} in {len(batches)} batch(es)")

        for index, batch in enumerate(batches, start=1):
            self._events.dispatch(BatchStarted(batch_index=index, batch_count=len(batches), size=len(batch)))
            images = await self._fetch_batch(file_key, batch, image_format, scale)
            for node_id, url in images.items():
                resolved.setdefault(NodeId(node_id), ImageUrl(url) if url else None)
            usable = sum(1 for node_id in batch if resolved.get(node_id))
            logger.debug(f"Batch {index}/{len(batches)} resolved {usable}/{len(batch)} URL(s)")
            self._events.dispatch(BatchCompleted(batch_index=index, batch_count=len(batches), resolved=usable))

            if index < len(batches) and self.batch_cooldown_s > 0:
                logger.debug(f"Cooling down {self.batch_cooldown_s:.2f}s before next batch")
                await asyncio.sleep(self.batch_cooldown_s)

        return resolved

    def build_params(self, batch: Sequence[NodeId], image_format: ImageFormat, scale: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {"ids": ",".join(batch), "format": image_format.value}
        if image_format is ImageFormat.PNG:
            params["scale"] = str(scale)
        return params

    async def _fetch_batch(
        self,
        file_key: FileKey,
        batch: Sequence[NodeId],
        image_format: ImageFormat,
        scale: int,
    ) -> Dict[str, Optional[str]]:
        url = f"{self.api_base_url}/images/{file_key}"
        response = await self.transport.fetch_with_retry(
            url,
            headers={TOKEN_HEADER: self._api_key},
            params=self.build_params(batch, image_format, scale),
        )

        if not response.is_success:
            raise TransportError(
                f"Figma API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Figma API returned invalid JSON: {e}", status_code=response.status_code) from e

        if not isinstance(data, dict):
            raise TransportError("Figma API returned an unexpected payload", status_code=response.status_code)
        if data.get("err"):
            raise VendorApiError(str(data["err"]))

        return data.get("images") or {}
