"""Reporting components for bulk operations.

This module logs the final tally of every batch and renders summary and
error reports with Rich formatting for console output.

Classes:
    ReportGenerator: Generates formatted reports for batch outcomes
"""

import time
from pathlib import Path
from typing import Dict, List, Optional

from rich.columns import Columns
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..logging_config import get_logger
from .batch import BatchOutcome, ItemResult

logger = get_logger(__name__)


class ReportGenerator:
    """Generates summary and detailed reports for batch outcomes."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize report generator.

        Args:
            console: Rich console for output
        """
        self.console = console or Console()

    def log_summary(self, outcome: BatchOutcome, title: Optional[str] = None):
        """Emit the structured summary event of a finished batch.

        Logged at warning severity when any item failed, info otherwise.
        """
        extra = {
            "operation": outcome.operation,
            "collection": outcome.collection,
            **outcome.counts(),
            "duration": round(outcome.duration, 3),
        }
        message = f"{title or self._title(outcome)} completed"
        if outcome.failed:
            logger.warning(message, extra=extra)
        else:
            logger.info(message, extra=extra)

    def generate_summary_report(self, outcome: BatchOutcome, title: Optional[str] = None):
        """Generate and display summary report.

        Args:
            outcome: Batch outcome
            title: Panel title, derived from the operation when omitted
        """
        summary_table = Table(show_header=False, box=None, padding=(0, 1))
        summary_table.add_column("Metric", style="bold cyan")
        summary_table.add_column("Value", style="bold")

        summary_table.add_row("Operation", (outcome.operation or "batch").title())
        if outcome.collection:
            summary_table.add_row("Collection", outcome.collection)
        summary_table.add_row("Fetched", str(outcome.fetched))
        summary_table.add_row("Attempted", str(outcome.attempted))
        summary_table.add_row("Successful", f"[green]{outcome.succeeded}[/green]")
        summary_table.add_row("Failed", f"[red]{outcome.failed}[/red]")
        summary_table.add_row("Skipped", f"[yellow]{outcome.skipped}[/yellow]")
        summary_table.add_row("Success Rate", f"{outcome.success_rate:.1f}%")
        summary_table.add_row("Duration", self._format_duration(outcome.duration))

        status_panels = []

        if outcome.succeeded > 0:
            status_panels.append(
                Panel(
                    f"[bold green]{outcome.succeeded}[/bold green]\nSuccessful",
                    style="green",
                    width=15,
                )
            )

        if outcome.failed > 0:
            status_panels.append(
                Panel(f"[bold red]{outcome.failed}[/bold red]\nFailed", style="red", width=15)
            )

        if outcome.skipped > 0:
            status_panels.append(
                Panel(
                    f"[bold yellow]{outcome.skipped}[/bold yellow]\nSkipped",
                    style="yellow",
                    width=15,
                )
            )

        self.console.print()
        self.console.print(
            Panel(
                summary_table,
                title=f"[bold]{title or self._title(outcome)} Summary[/bold]",
                border_style="blue",
            )
        )

        if status_panels:
            self.console.print()
            self.console.print(Columns(status_panels, equal=True, expand=True))

        if outcome.start_time and outcome.end_time:
            timing_table = Table(show_header=False, box=None, padding=(0, 1))
            timing_table.add_column("Metric", style="dim")
            timing_table.add_column("Value", style="dim")
            timing_table.add_row("Started", self._format_timestamp(outcome.start_time))
            timing_table.add_row("Completed", self._format_timestamp(outcome.end_time))

            self.console.print()
            self.console.print(
                Panel(timing_table, title="[dim]Timing Information[/dim]", border_style="dim")
            )

    def generate_error_summary(self, outcome: BatchOutcome):
        """Generate summary of errors encountered during processing.

        Args:
            outcome: Batch outcome
        """
        if not outcome.failures:
            self.console.print("[green]No errors encountered![/green]")
            return

        error_groups = self.group_errors(outcome.failures)

        error_table = Table(title="Error Summary", show_header=True, header_style="bold red")
        error_table.add_column("Error Type", style="red", width=30)
        error_table.add_column("Count", justify="right", width=8)
        error_table.add_column("Examples", style="dim", width=50)

        for error_type, error_results in error_groups.items():
            examples = [result.label for result in error_results[:3]]
            if len(error_results) > 3:
                examples.append(f"... and {len(error_results) - 3} more")

            error_table.add_row(error_type, str(len(error_results)), "; ".join(examples))

        self.console.print()
        self.console.print(error_table)

    @staticmethod
    def group_errors(failures: List[ItemResult]) -> Dict[str, List[ItemResult]]:
        """Group failed results by the part of their message before the first colon."""
        error_groups: Dict[str, List[ItemResult]] = {}
        for result in failures:
            error_msg = result.error_message or "Unknown error"
            error_type = error_msg.split(":")[0].strip()
            error_groups.setdefault(error_type, []).append(result)
        return error_groups

    def save_detailed_report(self, outcome: BatchOutcome, output_file: Path) -> bool:
        """Save a plain-text report of every item to a file.

        Args:
            outcome: Batch outcome
            output_file: Path to save the report

        Returns:
            True if the report was written
        """
        try:
            output_file = Path(output_file)
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(f"{self._title(outcome)} Detailed Report\n")
                f.write("=" * 50 + "\n\n")

                f.write(f"Fetched: {outcome.fetched}\n")
                f.write(f"Attempted: {outcome.attempted}\n")
                f.write(f"Successful: {outcome.succeeded}\n")
                f.write(f"Failed: {outcome.failed}\n")
                f.write(f"Skipped: {outcome.skipped}\n")
                f.write(f"Success Rate: {outcome.success_rate:.1f}%\n")
                f.write(f"Duration: {self._format_duration(outcome.duration)}\n\n")

                for i, result in enumerate(outcome.get_all_results(), 1):
                    f.write(f"{i}. {result.status.upper()}: {result.label}")
                    if result.key and result.key != result.label:
                        f.write(f" ({result.key})")
                    if result.processing_time:
                        f.write(f" [{result.processing_time:.3f}s]")
                    if result.error_message:
                        f.write(f"\n   Error: {result.error_message}")
                    f.write("\n")

            self.console.print(f"[green]Detailed report saved to: {output_file}[/green]")
            return True

        except OSError as e:
            logger.error("Failed to save detailed report", extra={"error": str(e)})
            self.console.print(f"[red]Failed to save detailed report: {str(e)}[/red]")
            return False

    @staticmethod
    def _title(outcome: BatchOutcome) -> str:
        parts = [outcome.operation.title() if outcome.operation else "Batch"]
        if outcome.collection:
            parts.append(outcome.collection.replace("_", " ").title())
        return " ".join(parts)

    @staticmethod
    def _format_timestamp(value: float) -> str:
        return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(value))

    def _format_duration(self, seconds: float) -> str:
        """Format duration in seconds to human-readable string.

        Args:
            seconds: Duration in seconds

        Returns:
            Formatted duration string
        """
        if seconds < 0:
            return "N/A"

        if seconds < 1:
            return f"{seconds*1000:.0f}ms"
        elif seconds < 60:
            return f"{seconds:.2f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            remaining_seconds = seconds % 60
            return f"{minutes}m {remaining_seconds:.1f}s"
        else:
            hours = int(seconds // 3600)
            remaining_minutes = int((seconds % 3600) // 60)
            remaining_seconds = seconds % 60
            return f"{hours}h {remaining_minutes}m {remaining_seconds:.1f}s"
