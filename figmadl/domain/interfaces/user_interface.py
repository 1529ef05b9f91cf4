"""Interface for interacting with the user (output only).

Defines the contract for displaying information, errors, warnings and
download reports, allowing different UI implementations.
"""

import abc
from typing import Any, Sequence

from figmadl.domain.models.common import DownloadOutcome


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_download_header(self, file_key: str, node_ids: Sequence[str], image_format: str,
                                scale: int, output_dir: str) -> None:
        """Displays the parameters of a download before it starts."""
        pass

    @abc.abstractmethod
    def display_download_report(self, outcomes: Sequence[DownloadOutcome]) -> None:
        """Displays per-node results and success/failure totals.

        Args:
            outcomes: One outcome per requested node.
        """
        pass
