"""Concrete implementation of the FileSystem interface for the local disk.

Uses `pathlib` for path handling and `aiofiles` for async I/O so image bytes
are streamed to disk without blocking the event loop.
"""

import logging
import asyncio
from pathlib import Path
from typing import AsyncIterator

import aiofiles
import aiofiles.os

# Domain Layer Imports
from figmadl.domain.interfaces.file_system import FileSystem

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"


class LocalFileSystem(FileSystem):
    """Implementation of FileSystem for the local disk."""

    async def ensure_directory(self, directory: str) -> None:
        """Creates the directory tree if missing (idempotent)."""
        path = Path(directory)
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
        logger.debug(f"Ensured output directory exists: {path}")

    async def write_stream(self, file_path: str, chunks: AsyncIterator[bytes]) -> None:
        """Streams chunks into a sibling ``.part`` file, then moves it over ``file_path``.

        The destination only ever holds a complete body. Any failure while
        writing or while reading the chunks removes the partial file and
        re-raises.
        """
        path = Path(file_path)
        partial = path.with_name(path.name + PARTIAL_SUFFIX)
        written = 0
        try:
            async with aiofiles.open(partial, mode='wb') as f:
                async for chunk in chunks:
                    await f.write(chunk)
                    written += len(chunk)
            await aiofiles.os.replace(partial, path)
            logger.debug(f"Streamed {written} bytes to {path}")
        except PermissionError as e:
            await self._discard(partial)
            logger.error(f"Permission denied writing file: {path}")
            raise PermissionError(f"Permission denied: {file_path}") from e
        except OSError as e:
            await self._discard(partial)
            logger.error(f"Error writing file {path}: {e}", exc_info=True)
            raise IOError(f"Failed to write file {file_path}: {e}") from e
        except BaseException:
            await self._discard(partial)
            raise

    async def _discard(self, partial: Path) -> None:
        try:
            await aiofiles.os.remove(partial)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial file {partial}: {e}")

    async def file_size(self, file_path: str) -> int:
        stat_result = await asyncio.to_thread(Path(file_path).stat)
        return stat_result.st_size
