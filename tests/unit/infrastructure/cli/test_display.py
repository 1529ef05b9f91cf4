import pytest
from io import StringIO
from unittest.mock import MagicMock

from rich.console import Console
from rich.panel import Panel

from figmadl.domain.models.common import DownloadOutcome
from figmadl.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleDisplay instance with a mocked console."""
    return ConsoleDisplay(console=mock_console)


@pytest.fixture
def recording_display():
    """ConsoleDisplay writing plain text into a buffer."""
    buffer = StringIO()
    console = Console(file=buffer, width=120, color_system=None, force_terminal=False)
    return ConsoleDisplay(console=console), buffer


def test_display_error(console_display: ConsoleDisplay, mock_console: MagicMock):
    """Test that display_error prints a panel holding the message."""
    console_display.display_error("Something went wrong")
    mock_console.print.assert_called_once()
    args, _ = mock_console.print.call_args
    assert isinstance(args[0], Panel)
    assert "Something went wrong" in str(args[0].renderable)


def test_display_info(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_info("Process completed")
    mock_console.print.assert_called_once_with("[blue][INFO][/blue] Process completed")


def test_download_header_mentions_parameters(recording_display):
    display, buffer = recording_display
    display.display_download_header("abc123", ["3228:9855", "3228:10044"], "png", 2, "./out")

    output = buffer.getvalue()
    assert "abc123" in output
    assert "3228:9855, 3228:10044" in output
    assert "png (scale 2x)" in output
    assert "./out" in output


def test_download_report_counts(recording_display):
    display, buffer = recording_display
    outcomes = [
        DownloadOutcome.succeeded("1:1", file_name="1_1.png", file_path="out/1_1.png", size=2048),
        DownloadOutcome.failed("1:2", "Cannot export"),
    ]

    display.display_download_report(outcomes)

    output = buffer.getvalue()
    assert "1_1.png" in output
    assert "2048" in output
    assert "Cannot export" in output
    assert "Success: 1" in output
    assert "Failed: 1" in output


def test_download_report_omits_failed_line_when_all_succeed(recording_display):
    display, buffer = recording_display
    display.display_download_report([
        DownloadOutcome.succeeded("1:1", file_name="1_1.png", file_path="out/1_1.png", size=1),
    ])
    assert "Failed:" not in buffer.getvalue()


def test_bracketed_text_is_printed_literally(recording_display):
    display, buffer = recording_display
    display.display_download_header("key[/x]", ["[bold]1:1"], "svg", 1, "out[/]")
    display.display_download_report([
        DownloadOutcome.succeeded("2:2", file_name="[i]2_2.svg", file_path="out/2_2.svg", size=3),
        DownloadOutcome.failed("[/x]", "[bold]oops"),
    ])
    display.display_info("fetched [/red] done")

    output = buffer.getvalue()
    assert "key[/x]" in output
    assert "[bold]1:1" in output
    assert "out[/]" in output
    assert "[i]2_2.svg" in output
    assert "[/x]" in output
    assert "[bold]oops" in output
    assert "fetched [/red] done" in output
