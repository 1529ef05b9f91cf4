"""Command Handler: Orchestrates CLI command execution.

Receives parsed commands from the main entry point (main.py), runs the
download pipeline and reports results through the UserInterface. Returns
process exit codes instead of exiting so it stays testable.
"""

import logging
from typing import List, Optional, Sequence

from figmadl.core.bootstrap import open_downloader
from figmadl.domain.errors import FigmaDownloadError
from figmadl.domain.interfaces.user_interface import UserInterface
from figmadl.domain.models.common import DownloadOutcome, ImageFormat
from figmadl.domain.models.node_ids import canonicalize_all
from figmadl.infrastructure.config.settings import GovernanceSettings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def split_node_ids(raw: str) -> List[str]:
    """Splits a comma separated id list, ignoring blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]


class CommandHandler:
    """Handles incoming commands and delegates to the download pipeline."""

    def __init__(self, ui: UserInterface, settings: Optional[GovernanceSettings] = None):
        self.ui = ui
        self.settings = settings or GovernanceSettings()

    async def handle_download(
        self,
        api_key: Optional[str],
        file_key: str,
        node_ids: Sequence[str],
        output_dir: str,
        image_format: ImageFormat = ImageFormat.PNG,
        scale: int = 2,
    ) -> int:
        """Handles the 'download' command.

        Returns:
            0 if every node was downloaded, 1 if any node failed or the run
            could not start (missing credential, resolution failure).
        """
        if not api_key:
            self.ui.display_error("No API key provided. Use --api-key or set the FIGMA_API_KEY env var.")
            return EXIT_FAILURE
        if not node_ids:
            self.ui.display_error("No node ids provided.")
            return EXIT_FAILURE

        duplicates = len(node_ids) - len(canonicalize_all(node_ids))
        if duplicates:
            self.ui.display_warning(f"Ignoring {duplicates} duplicate or blank node id(s).")

        self.ui.display_download_header(file_key, node_ids, image_format.value, scale, output_dir)
        self.ui.display_info("Fetching image URLs from Figma...")
        logger.info(f"Handling 'download' for {len(node_ids)} node(s) of file {file_key}")

        try:
            async with open_downloader(api_key, self.settings) as downloader:
                outcomes: List[DownloadOutcome] = await downloader.download_images(
                    file_key, node_ids, output_dir, image_format=image_format, scale=scale,
                )
        except (FigmaDownloadError, ValueError, OSError) as e:
            logger.error(f"Download command failed: {e}", exc_info=True)
            self.ui.display_error(f"Download failed: {e}")
            return EXIT_FAILURE

        self.ui.display_download_report(outcomes)
        return EXIT_OK if all(outcome.success for outcome in outcomes) else EXIT_FAILURE
