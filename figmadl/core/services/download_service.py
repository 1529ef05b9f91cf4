"""Core service orchestrating image downloads for a set of Figma nodes.

Resolves signed URLs in batches, then fetches every exportable node through
the bounded queue and streams its bytes to disk. Resolution failures abort the
whole invocation; download failures only mark the affected node as failed.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

# Domain Layer Imports
from figmadl.domain.errors import TransportError
from figmadl.domain.events.api_events import DownloadFailed, DownloadSucceeded, NodeUnexportable
from figmadl.domain.events.dispatcher import EventDispatcher
from figmadl.domain.interfaces.file_system import FileSystem
from figmadl.domain.models.common import (
    CANNOT_EXPORT_REASON, DEFAULT_SCALE, DownloadOutcome, ExportRequest, FileKey, ImageFormat, ImageUrl, NodeId,
)
from figmadl.domain.models.node_ids import canonicalize_all, to_file_name

# Core / Infrastructure Imports
from figmadl.core.services.url_resolver import BatchedUrlResolver
from figmadl.infrastructure.resilience.api_retry import RetryingTransport
from figmadl.infrastructure.resilience.request_queue import ConcurrencyBoundedQueue

logger = logging.getLogger(__name__)


class DownloadOrchestrator:
    """Downloads rendered node images from a Figma document."""

    def __init__(
        self,
        resolver: BatchedUrlResolver,
        transport: RetryingTransport,
        queue: ConcurrencyBoundedQueue,
        file_system: FileSystem,
        events: Optional[EventDispatcher] = None,
    ):
        self.resolver = resolver
        self.transport = transport
        self.queue = queue
        self.file_system = file_system
        self._events = events or EventDispatcher()

    async def download_images(
        self,
        file_key: str,
        node_ids: Sequence[str],
        output_dir: str,
        image_format: ImageFormat = ImageFormat.PNG,
        scale: int = DEFAULT_SCALE,
    ) -> List[DownloadOutcome]:
        """Downloads every requested node into ``output_dir``.

        Args:
            file_key: Key of the Figma document.
            node_ids: Node ids in display or canonical form.
            output_dir: Destination directory, created if missing.
            image_format: ``png`` or ``svg``.
            scale: PNG scale factor between 1 and 4.

        Returns:
            One outcome per distinct requested node, in request order.

        Raises:
            TransportError, VendorApiError, RateLimitExceededError: If URL
                resolution fails. No per-node outcomes are produced then.
        """
        request = ExportRequest(
            file_key=FileKey(file_key),
            node_ids=tuple(canonicalize_all(node_ids)),
            image_format=ImageFormat(image_format),
            scale=scale,
        )

        await self.file_system.ensure_directory(output_dir)

        logger.info(f"Fetching image URLs from Figma for {len(request.node_ids)} node(s)...")
        image_urls = await self.resolver.resolve(
            request.file_key, request.node_ids, request.image_format, request.scale,
        )

        outcomes: List[Optional[DownloadOutcome]] = [None] * len(request.node_ids)
        pending = []

        for index, node_id in enumerate(request.node_ids):
            image_url = image_urls.get(node_id)
            if not image_url:
                logger.warning(f"Node {node_id} cannot be exported")
                self._events.dispatch(NodeUnexportable(node_id=node_id))
                outcomes[index] = DownloadOutcome.failed(node_id, CANNOT_EXPORT_REASON)
                continue

            file_name = to_file_name(node_id, request.image_format)
            file_path = str(Path(output_dir) / file_name)
            logger.debug(f"Queueing download: {node_id} -> {file_name}")
            pending.append((index, self.queue.add(
                lambda n=node_id, u=image_url, name=file_name, path=file_path: self._download_one(n, u, name, path)
            )))

        for index, task in pending:
            outcomes[index] = await task

        return [outcome for outcome in outcomes if outcome is not None]

    async def _download_one(self, node_id: NodeId, image_url: ImageUrl, file_name: str, file_path: str) -> DownloadOutcome:
        """Fetches one image and writes it to disk, converting any failure into an outcome."""
        try:
            response = await self.transport.fetch_with_retry(image_url, stream=True)
            try:
                if not response.is_success:
                    raise TransportError(f"HTTP {response.status_code}", status_code=response.status_code)
                await self.file_system.write_stream(file_path, response.aiter_bytes())
            finally:
                await response.aclose()

            size = await self.file_system.file_size(file_path)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Download failed: {node_id} - {message}")
            self._events.dispatch(DownloadFailed(node_id=node_id, error_message=message))
            return DownloadOutcome.failed(node_id, message)

        logger.info(f"Done: {file_name} ({size} bytes)")
        self._events.dispatch(DownloadSucceeded(node_id=node_id, file_path=file_path, size=size))
        return DownloadOutcome.succeeded(node_id, file_name=file_name, file_path=file_path, size=size)
