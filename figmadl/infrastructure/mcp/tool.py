"""The ``download_images`` tool exposed over the Model Context Protocol.

Holds the tool definition (name, description, JSON schema), argument
validation and the plain-text summary returned to the client. The protocol
plumbing lives in ``server.py``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from figmadl.core.bootstrap import open_downloader
from figmadl.domain.models.common import DEFAULT_SCALE, MAX_SCALE, MIN_SCALE, DownloadOutcome, ImageFormat
from figmadl.infrastructure.config.settings import GovernanceSettings

logger = logging.getLogger(__name__)

TOOL_NAME = "download_images"
TOOL_DESCRIPTION = "Download images from Figma by node IDs. Supports PNG and SVG formats."

INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "fileKey": {
            "type": "string",
            "description": 'Figma file key (from URL, e.g., "otEuB83cLByEVzqDwg3T4r")',
        },
        "nodeIds": {
            "type": "array",
            "items": {"type": "string"},
            "description": 'Array of node IDs (e.g., ["3228-9855", "3228-10044"])',
        },
        "outputDir": {
            "type": "string",
            "description": "Output directory path",
        },
        "format": {
            "type": "string",
            "enum": [f.value for f in ImageFormat],
            "default": ImageFormat.PNG.value,
            "description": "Image format (default: png)",
        },
        "scale": {
            "type": "number",
            "minimum": MIN_SCALE,
            "maximum": MAX_SCALE,
            "default": DEFAULT_SCALE,
            "description": f"PNG scale factor {MIN_SCALE}-{MAX_SCALE} (default: {DEFAULT_SCALE})",
        },
    },
    "required": ["fileKey", "nodeIds", "outputDir"],
}


@dataclass(frozen=True)
class DownloadToolArguments:
    file_key: str
    node_ids: List[str]
    output_dir: str
    image_format: ImageFormat = ImageFormat.PNG
    scale: int = DEFAULT_SCALE


def parse_tool_arguments(arguments: Optional[Mapping[str, Any]]) -> DownloadToolArguments:
    """Validates raw tool arguments and applies defaults.

    Raises:
        ValueError: If a required argument is missing or a value is out of range.
    """
    arguments = arguments or {}
    missing = [name for name in INPUT_SCHEMA["required"] if arguments.get(name) in (None, "")]
    if missing:
        raise ValueError(f"Missing required argument(s): {', '.join(missing)}")

    node_ids = arguments["nodeIds"]
    if isinstance(node_ids, str) or not isinstance(node_ids, Sequence):
        raise ValueError("nodeIds must be an array of strings")
    if not all(isinstance(node_id, str) for node_id in node_ids):
        raise ValueError("nodeIds must be an array of strings")

    try:
        image_format = ImageFormat(arguments.get("format") or ImageFormat.PNG.value)
    except ValueError:
        raise ValueError(f"format must be one of: {', '.join(f.value for f in ImageFormat)}") from None

    scale_value = arguments.get("scale", DEFAULT_SCALE)
    if isinstance(scale_value, bool) or not isinstance(scale_value, (int, float)) or scale_value != int(scale_value):
        raise ValueError("scale must be an integer")
    scale = int(scale_value)
    if not MIN_SCALE <= scale <= MAX_SCALE:
        raise ValueError(f"scale must be between {MIN_SCALE} and {MAX_SCALE}")

    return DownloadToolArguments(
        file_key=str(arguments["fileKey"]),
        node_ids=list(node_ids),
        output_dir=str(arguments["outputDir"]),
        image_format=image_format,
        scale=scale,
    )


def format_summary(outcomes: Sequence[DownloadOutcome]) -> str:
    """Renders the plain-text summary returned to the tool caller."""
    succeeded = [outcome for outcome in outcomes if outcome.success]
    failed = [outcome for outcome in outcomes if not outcome.success]

    summary = f"Downloaded {len(succeeded)} images:\n"
    for outcome in succeeded:
        summary += f"- {outcome.file_name}: {outcome.size} bytes\n"

    if failed:
        summary += f"\nFailed {len(failed)} images:\n"
        for outcome in failed:
            summary += f"- {outcome.node_id}: {outcome.error}\n"

    return summary


async def run_download_tool(
    arguments: Optional[Mapping[str, Any]],
    api_key: str,
    settings: Optional[GovernanceSettings] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Runs one ``download_images`` call with a fresh downloader and returns its summary.

    Raises:
        ValueError: On invalid arguments.
        FigmaDownloadError: If URL resolution fails for the whole request.
    """
    args = parse_tool_arguments(arguments)
    logger.info(f"Tool call {TOOL_NAME}: {len(args.node_ids)} node(s) from {args.file_key}")
    async with open_downloader(api_key, settings, http_transport=http_transport) as downloader:
        outcomes = await downloader.download_images(
            args.file_key, args.node_ids, args.output_dir, image_format=args.image_format, scale=args.scale,
        )
    return format_summary(outcomes)
