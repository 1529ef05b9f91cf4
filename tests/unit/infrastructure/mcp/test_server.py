import mcp.types as types
import pytest

from figmadl.core.bootstrap import open_downloader
from figmadl.domain.errors import VendorApiError
from figmadl.infrastructure.mcp import server as server_module
from figmadl.infrastructure.mcp.server import SERVER_NAME, build_tool, create_server
from figmadl.infrastructure.mcp.tool import INPUT_SCHEMA, TOOL_NAME


def tool_call(name, arguments):
    return types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )


async def call(server, name, arguments):
    """Sends a tools/call request through the server's registered handler."""
    handler = server.request_handlers[types.CallToolRequest]
    result = await handler(tool_call(name, arguments))
    return result.root


def test_build_tool_exposes_schema():
    tool = build_tool()
    assert tool.name == TOOL_NAME
    assert tool.inputSchema == INPUT_SCHEMA


def test_create_server_uses_fixed_name():
    server = create_server("figd_test")
    assert server.name == SERVER_NAME == "figma-dl"


@pytest.mark.asyncio
async def test_list_tools_returns_download_tool():
    server = create_server("figd_test")
    handler = server.request_handlers[types.ListToolsRequest]

    result = await handler(types.ListToolsRequest(method="tools/list"))

    assert [tool.name for tool in result.root.tools] == [TOOL_NAME]
    assert result.root.tools[0].inputSchema == INPUT_SCHEMA


@pytest.mark.asyncio
async def test_call_tool_returns_summary_text(mocker):
    run = mocker.patch.object(server_module, "run_download_tool", return_value="Downloaded 0 images:\n")
    server = create_server("figd_test")
    arguments = {"fileKey": "abc", "nodeIds": ["1-1"], "outputDir": "/tmp/out"}

    result = await call(server, TOOL_NAME, arguments)

    assert not result.isError
    assert result.content[0].type == "text"
    assert result.content[0].text == "Downloaded 0 images:\n"
    run.assert_awaited_once_with(arguments, "figd_test", None)


@pytest.mark.asyncio
async def test_call_tool_unknown_name_is_an_error_result():
    server = create_server("figd_test")

    result = await call(server, "other", {})

    assert result.isError
    assert result.content[0].text == "Unknown tool: other"


@pytest.mark.asyncio
async def test_call_tool_failure_is_prefixed(mocker):
    mocker.patch.object(server_module, "run_download_tool", side_effect=VendorApiError("Invalid token"))
    server = create_server("figd_test")

    result = await call(server, TOOL_NAME, {"fileKey": "abc", "nodeIds": ["1-1"], "outputDir": "/tmp/out"})

    assert result.isError
    assert result.content[0].text == "Error: Figma API error: Invalid token"


@pytest.mark.asyncio
async def test_call_tool_downloads_through_pipeline(mocker, figma_api, signed_url, fast_settings, output_dir):
    def factory(api_key, settings, http_transport=None):
        return open_downloader(api_key, fast_settings, http_transport=figma_api.transport)

    mocker.patch("figmadl.infrastructure.mcp.tool.open_downloader", side_effect=factory)
    figma_api.images = {"1:1": signed_url("1:1"), "1:2": None}
    server = create_server("figd_test", fast_settings)

    result = await call(server, TOOL_NAME, {"fileKey": "abc", "nodeIds": ["1-1", "1-2"], "outputDir": str(output_dir)})

    assert not result.isError
    text = result.content[0].text
    assert "1_1.png" in text
    assert "Cannot export" in text
    assert (output_dir / "1_1.png").read_bytes() == figma_api.image_bytes
    assert figma_api.api_requests[0].headers["X-Figma-Token"] == "figd_test"
