import pytest
from pathlib import Path
from typer.testing import CliRunner

from figmadl.core.bootstrap import open_downloader
from figmadl.main import app

# These fixtures are defined in tests/conftest.py:
# runner: CliRunner
# figma_api: FigmaApiStub (in-memory Figma API and image host)
# signed_url: builds the stub's signed image URL for a node id
# isolated_configuration: keeps user config and FIGMA_* env vars out


@pytest.fixture(autouse=True)
def quiet_logging(mocker):
    """Leaves pytest's logging handlers alone."""
    return mocker.patch("figmadl.main.setup_logging")


@pytest.fixture
def stubbed_pipeline(mocker, figma_api, fast_settings):
    """Runs the real pipeline against the stub API with millisecond waits."""
    def factory(api_key, settings):
        return open_downloader(api_key, fast_settings, http_transport=figma_api.transport)

    return mocker.patch("figmadl.core.command_handler.open_downloader", side_effect=factory)


def test_download_command_flow(runner: CliRunner, stubbed_pipeline, figma_api, signed_url, output_dir: Path):
    figma_api.images = {"3228:9855": signed_url("3228:9855"), "3228:10044": signed_url("3228:10044")}

    result = runner.invoke(app, [
        "download",
        "--file-key", "abc",
        "--node-ids", "3228-9855,3228-10044",
        "--output", str(output_dir),
        "--api-key", "figd_test",
    ])

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    assert (output_dir / "3228_9855.png").read_bytes() == figma_api.image_bytes
    assert (output_dir / "3228_10044.png").exists()
    assert "Success: 2" in result.output
    assert figma_api.api_requests[0].headers["X-Figma-Token"] == "figd_test"


def test_download_reads_key_from_environment(runner: CliRunner, stubbed_pipeline, figma_api, signed_url,
                                             output_dir: Path, monkeypatch):
    monkeypatch.setenv("FIGMA_API_KEY", "figd_env")
    figma_api.images = {"1:1": signed_url("1:1")}

    result = runner.invoke(app, ["download", "-f", "abc", "-n", "1-1", "-o", str(output_dir), "--format", "svg"])

    assert result.exit_code == 0, result.output
    assert (output_dir / "1_1.svg").exists()
    assert figma_api.api_requests[0].headers["X-Figma-Token"] == "figd_env"


def test_download_with_unexportable_node_exits_one(runner: CliRunner, stubbed_pipeline, figma_api, signed_url,
                                                   output_dir: Path):
    figma_api.images = {"1:1": signed_url("1:1"), "1:2": None}

    result = runner.invoke(app, [
        "download", "-f", "abc", "-n", "1-1", "-n", "1-2", "-o", str(output_dir), "--api-key", "k",
    ])

    assert result.exit_code == 1
    assert "Cannot export" in result.output
    assert "Failed: 1" in result.output


def test_download_without_api_key_fails(runner: CliRunner, stubbed_pipeline, output_dir: Path):
    result = runner.invoke(app, ["download", "-f", "abc", "-n", "1-1", "-o", str(output_dir)])

    assert result.exit_code == 1
    assert "No API key provided" in result.output
    stubbed_pipeline.assert_not_called()


def test_download_rejects_out_of_range_scale(runner: CliRunner, stubbed_pipeline, output_dir: Path):
    result = runner.invoke(app, [
        "download", "-f", "abc", "-n", "1-1", "-o", str(output_dir), "--api-key", "k", "--scale", "5",
    ])

    assert result.exit_code != 0
    stubbed_pipeline.assert_not_called()


def test_serve_without_api_key_fails(runner: CliRunner, mocker):
    serve = mocker.patch("figmadl.main.serve_mcp")

    result = runner.invoke(app, ["serve"])

    assert result.exit_code == 1
    assert "FIGMA_API_KEY" in result.output
    serve.assert_not_called()


def test_serve_starts_server_with_key(runner: CliRunner, mocker, monkeypatch):
    monkeypatch.setenv("FIGMA_API_KEY", "figd_env")
    serve = mocker.patch("figmadl.main.serve_mcp")

    result = runner.invoke(app, ["serve"])

    assert result.exit_code == 0, result.output
    serve.assert_called_once()
    assert serve.call_args.args[0] == "figd_env"
