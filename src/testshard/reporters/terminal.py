"""Terminal reporter with rich output formatting.

Everything goes to stderr: stdout carries the test list consumed by the
downstream test runner.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from testshard.sharding.output import format_duration, format_index

if TYPE_CHECKING:
    from testshard.sharding.report import PartitionSummary

console = Console(stderr=True)

_BALANCED_RATIO = 1.1
_ACCEPTABLE_RATIO = 1.5
_MAX_TESTS_PREVIEW = 3


def _ratio_color(ratio: float) -> str:
    """Return a Rich color name for an imbalance ratio."""
    if ratio <= _BALANCED_RATIO:
        return "green"
    if ratio <= _ACCEPTABLE_RATIO:
        return "yellow"
    return "red"


def _format_ratio(ratio: float) -> str:
    return f"{ratio:.3f}" if math.isfinite(ratio) else "∞"


class CLIReporter:
    """Rich terminal output reporter for split runs."""

    def __init__(self) -> None:
        """Initialize the CLI reporter."""
        self.console = console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def print_partition_banner(self, summary: PartitionSummary) -> None:
        """Print a one-panel overview of the partition balance."""
        ratio = summary.imbalance_ratio
        color = _ratio_color(ratio)
        self.console.print(
            Panel(
                f"[bold white]{summary.test_count}[/bold white] tests across "
                f"[bold white]{summary.group_count}[/bold white] shards  "
                f"[dim]slowest {format_duration(summary.max_total_ms)}, "
                f"fastest {format_duration(summary.min_total_ms)}[/dim]  "
                f"imbalance [bold {color}]{_format_ratio(ratio)}[/bold {color}]",
                border_style="cyan",
                padding=(0, 2),
            )
        )

    def print_partition_table(self, summary: PartitionSummary) -> None:
        """Print one row per shard, slowest first."""
        table = Table(title="Test Shards", title_style="bold cyan")
        table.add_column("Shard", justify="right")
        table.add_column("Tests", justify="right")
        table.add_column("Estimated", justify="right")
        table.add_column("First tests")

        for group in sorted(summary.groups, key=lambda g: (-g.total_ms, g.index)):
            preview = ", ".join(group.tests[:_MAX_TESTS_PREVIEW])
            if group.test_count > _MAX_TESTS_PREVIEW:
                preview += f" [dim](+{group.test_count - _MAX_TESTS_PREVIEW} more)[/dim]"
            marker = " [red]▲[/red]" if group.index == summary.slowest_index else ""
            table.add_row(
                f"#{format_index(group.index)}{marker}",
                str(group.test_count),
                format_duration(group.total_ms),
                preview or "[dim]-[/dim]",
            )

        self.console.print(table)


# Singleton instance for easy import
reporter = CLIReporter()
