"""Conversions between the node id forms used by Figma.

Figma URLs show node ids in a hyphenated display form (``3228-9855``) while
the REST API expects the colon-separated canonical form (``3228:9855``).
Output files use an underscore instead (``3228_9855.png``).
"""

from typing import Iterable, List

from figmadl.domain.models.common import NodeId, ImageFormat

DISPLAY_SEPARATOR = "-"
CANONICAL_SEPARATOR = ":"
FILE_SEPARATOR = "_"


def to_canonical(node_id: str) -> NodeId:
    """Converts a display id to canonical form. Canonical ids pass through unchanged."""
    return NodeId(node_id.strip().replace(DISPLAY_SEPARATOR, CANONICAL_SEPARATOR))


def to_display(node_id: str) -> str:
    """Converts a canonical id back to the hyphenated form seen in Figma URLs."""
    return node_id.replace(CANONICAL_SEPARATOR, DISPLAY_SEPARATOR)


def to_file_stem(node_id: str) -> str:
    return to_canonical(node_id).replace(CANONICAL_SEPARATOR, FILE_SEPARATOR)


def to_file_name(node_id: str, image_format: ImageFormat) -> str:
    """Builds the output file name, e.g. ``3228_9855.png``."""
    return f"{to_file_stem(node_id)}.{image_format.extension}"


def canonicalize_all(node_ids: Iterable[str]) -> List[NodeId]:
    """Canonicalizes ids, dropping blanks and duplicates while keeping first-seen order."""
    canonical = (to_canonical(node_id) for node_id in node_ids if node_id and node_id.strip())
    return list(dict.fromkeys(canonical))
