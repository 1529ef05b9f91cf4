"""Main entry point for the figma-dl application.

Sets up the Typer CLI application, loads configuration and logging, defines
the CLI commands and delegates execution to the CommandHandler or the MCP
server.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from figmadl.core.command_handler import CommandHandler, split_node_ids
from figmadl.domain.errors import ConfigurationError
from figmadl.domain.models.common import DEFAULT_SCALE, MAX_SCALE, MIN_SCALE, ImageFormat
from figmadl.infrastructure.cli.display import ConsoleDisplay
from figmadl.infrastructure.config.settings import (
    GovernanceSettings,
    get_config,
    get_figma_api_key,
    get_log_level_name,
    load_configuration,
    load_governance_settings,
)
from figmadl.infrastructure.mcp.server import serve as serve_mcp
from figmadl.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="figma-dl",
    help="Download rendered images of Figma nodes while staying inside Figma's rate limits.",
    add_completion=False,
)


def _initialize(verbose: bool = False) -> GovernanceSettings:
    """Loads configuration, configures logging and reads governance settings."""
    load_configuration()
    setup_logging(
        log_level=resolve_log_level(get_log_level_name(), verbose),
        log_file=get_config('logging_file'),
    )
    return load_governance_settings()


@app.command()
def download(
    file_key: Annotated[str, typer.Option("--file-key", "-f", help="Figma file key (from the file URL).")],
    node_ids: Annotated[List[str], typer.Option(
        "--node-ids", "-n",
        help="Node id(s), comma separated or repeated (e.g. 3228-9855,3228-10044).")],
    output: Annotated[Path, typer.Option("--output", "-o", file_okay=False,
                                         help="Directory to write images into.")],
    image_format: Annotated[ImageFormat, typer.Option("--format", case_sensitive=False,
                                                      help="Image format.")] = ImageFormat.PNG,
    scale: Annotated[int, typer.Option("--scale", min=MIN_SCALE, max=MAX_SCALE,
                                       help="PNG scale factor.")] = DEFAULT_SCALE,
    api_key: Annotated[Optional[str], typer.Option("--api-key", help="Figma API key (or set FIGMA_API_KEY).")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Download images for the given Figma nodes."""
    ui = ConsoleDisplay()
    try:
        settings = _initialize(verbose)
    except ConfigurationError as e:
        ui.display_error(str(e))
        raise typer.Exit(code=1)

    ids = [node_id for raw in node_ids for node_id in split_node_ids(raw)]
    handler = CommandHandler(ui, settings)
    exit_code = asyncio.run(handler.handle_download(
        api_key or get_figma_api_key(), file_key, ids, str(output), image_format=image_format, scale=scale,
    ))
    raise typer.Exit(code=exit_code)


@app.command()
def serve(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Run the MCP server on stdio, exposing the download_images tool."""
    try:
        settings = _initialize(verbose)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise typer.Exit(code=1)

    api_key = get_figma_api_key()
    if not api_key:
        print("Error: FIGMA_API_KEY environment variable is required", file=sys.stderr)
        raise typer.Exit(code=1)

    asyncio.run(serve_mcp(api_key, settings))


def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
