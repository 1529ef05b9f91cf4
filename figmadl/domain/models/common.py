"""Defines common Value Objects used across the download workflow.

These objects represent simple values or concepts like file keys, node ids,
signed URLs and per-node outcomes, ensuring consistency and type safety.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType, Dict, Optional, Tuple

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
ApiKey = NewType("ApiKey", str)                # Figma personal access token
FileKey = NewType("FileKey", str)              # Document key taken from the Figma URL
NodeId = NewType("NodeId", str)                # Canonical node id, e.g. "3228:9855"
ImageUrl = NewType("ImageUrl", str)            # Transient signed download URL

# Canonical node id -> signed URL, or None when the node cannot be exported
ResolvedUrlMap = Dict[NodeId, Optional[ImageUrl]]

MIN_SCALE = 1
MAX_SCALE = 4
DEFAULT_SCALE = 2

CANNOT_EXPORT_REASON = "Cannot export"


class ImageFormat(str, Enum):
    """Export formats supported by the images endpoint."""
    PNG = "png"
    SVG = "svg"

    @property
    def extension(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExportRequest:
    """One image export request, immutable once issued."""
    file_key: FileKey
    node_ids: Tuple[NodeId, ...]
    image_format: ImageFormat = ImageFormat.PNG
    scale: int = DEFAULT_SCALE

    def __post_init__(self):
        if not MIN_SCALE <= self.scale <= MAX_SCALE:
            raise ValueError(f"Scale must be between {MIN_SCALE} and {MAX_SCALE}, got {self.scale}")


@dataclass(frozen=True)
class DownloadOutcome:
    """Result of downloading a single node.

    Exactly one outcome exists per requested node id. On success the file
    fields are populated; on failure only ``error`` is.
    """
    node_id: NodeId
    success: bool
    file_name: Optional[str] = None
    file_path: Optional[str] = None
    size: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, node_id: NodeId, file_name: str, file_path: str, size: int) -> "DownloadOutcome":
        return cls(node_id=node_id, success=True, file_name=file_name, file_path=file_path, size=size)

    @classmethod
    def failed(cls, node_id: NodeId, error: str) -> "DownloadOutcome":
        return cls(node_id=node_id, success=False, error=error)
