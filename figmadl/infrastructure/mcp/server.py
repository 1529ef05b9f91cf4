"""Model Context Protocol server exposing the image downloader over stdio.

stdout carries the protocol stream, so everything human-readable goes to
stderr through logging.
"""

import logging
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from figmadl.domain.errors import FigmaDownloadError
from figmadl.infrastructure.config.settings import GovernanceSettings
from figmadl.infrastructure.mcp.tool import INPUT_SCHEMA, TOOL_DESCRIPTION, TOOL_NAME, run_download_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "figma-dl"
SERVER_VERSION = "1.0.0"


class ToolInvocationError(Exception):
    """Raised from the tool handler; the server reports its message with isError set."""


def build_tool() -> types.Tool:
    return types.Tool(name=TOOL_NAME, description=TOOL_DESCRIPTION, inputSchema=INPUT_SCHEMA)


def create_server(api_key: str, settings: Optional[GovernanceSettings] = None) -> Server:
    """Creates a server with the download tool registered.

    Every tool call builds its own downloader, so concurrent calls keep
    separate rate-limit bookkeeping.
    """
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [build_tool()]

    @server.call_tool()
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[types.TextContent]:
        if name != TOOL_NAME:
            raise ToolInvocationError(f"Unknown tool: {name}")
        try:
            summary = await run_download_tool(arguments, api_key, settings)
        except (FigmaDownloadError, ValueError, OSError) as e:
            logger.error(f"Tool call {name} failed: {e}")
            raise ToolInvocationError(f"Error: {e}") from e
        return [types.TextContent(type="text", text=summary)]

    return server


async def serve(api_key: str, settings: Optional[GovernanceSettings] = None) -> None:
    """Runs the server on stdin/stdout until the client disconnects."""
    server = create_server(api_key, settings)
    logger.info(f"{SERVER_NAME} MCP server running on stdio")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
