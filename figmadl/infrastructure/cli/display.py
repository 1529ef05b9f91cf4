import logging
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.text import Text
from rich.table import Table

from figmadl.domain.interfaces.user_interface import UserInterface
from figmadl.domain.models.common import DownloadOutcome
from figmadl.domain.models.node_ids import to_display

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self.console = console or Console()

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self.console.print(f"[blue][INFO][/blue] {escape(info_message)}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_download_header(self, file_key: str, node_ids: Sequence[str], image_format: str,
                                scale: int, output_dir: str) -> None:
        """Displays a stylized header describing the download about to run."""
        table = Table(show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
        table.add_row("File key", escape(file_key))
        table.add_row("Node ids", escape(", ".join(node_ids)))
        format_label = f"{image_format} (scale {scale}x)" if image_format == "png" else image_format
        table.add_row("Format", format_label)
        table.add_row("Output", escape(output_dir))

        self.console.print("")
        self.console.print(Panel(table, title="[bold cyan]Figma Image Downloader[/bold cyan]", box=SIMPLE))

    def display_download_report(self, outcomes: Sequence[DownloadOutcome]) -> None:
        """Displays one row per node followed by success/failure totals."""
        table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Node", style="bold")
        table.add_column("Status")
        table.add_column("File")
        table.add_column("Bytes / Error")

        for outcome in outcomes:
            if outcome.success:
                table.add_row(
                    escape(to_display(outcome.node_id)), "[green]OK[/green]",
                    escape(outcome.file_name or ""), str(outcome.size),
                )
            else:
                table.add_row(escape(to_display(outcome.node_id)), "[red]FAIL[/red]", "-", escape(outcome.error or ""))

        succeeded = sum(1 for outcome in outcomes if outcome.success)
        failed = len(outcomes) - succeeded

        self.console.print("")
        self.console.print(table)
        self.console.print(f"[bold green][OK][/bold green] Success: {succeeded}")
        if failed:
            self.console.print(f"[bold red][FAIL][/bold red] Failed: {failed}")
