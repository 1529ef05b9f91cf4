"""Interface for interacting with the file system.

Defines the contract for creating output directories, streaming downloaded
bytes to disk and inspecting written files, allowing the core application to
be independent of the specific file system implementation.
"""

import abc
from typing import AsyncIterator


class FileSystem(abc.ABC):
    """Abstract Base Class for file system operations."""

    @abc.abstractmethod
    async def ensure_directory(self, directory: str) -> None:
        """Creates a directory and any missing parents.

        Args:
            directory: The directory to create. Existing directories are not an error.
        """
        pass

    @abc.abstractmethod
    async def write_stream(self, file_path: str, chunks: AsyncIterator[bytes]) -> None:
        """Writes an asynchronous stream of byte chunks to a file, overwriting it.

        The destination is only replaced once the whole stream has been
        written; a failure part way through leaves no partial file behind.

        Args:
            file_path: Destination path.
            chunks: Async iterator yielding the file content piece by piece.

        Raises:
            PermissionError: If write permissions are denied.
            IOError: For other file system errors.
        """
        pass

    @abc.abstractmethod
    async def file_size(self, file_path: str) -> int:
        """Returns the size of a file in bytes."""
        pass
