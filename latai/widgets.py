"""Custom widgets for the Latai TUI."""

from rich.markup import escape as rich_escape
from rich.table import Table
from textual.widgets import RichLog, Static

from latai.table import Row, RowStatus
from latai.utils import calculate_statistics, format_duration


def latency_cell(row: Row) -> str:
    """Text for the latency column."""
    status = row.status
    if status is RowStatus.MEASURING:
        return "..."
    if status is RowStatus.FAILED:
        return "err"
    if status is RowStatus.MEASURED and row.latency_ms is not None:
        return str(int(row.latency_ms))
    return " "


class InfoPanel(Static):
    """Details of the highlighted model."""

    DEFAULT_CSS = """
    InfoPanel {
        height: auto;
        border: round $primary;
        padding: 0 1;
    }
    """

    def show_row(self, row: Row) -> None:
        """Render model identity and, once measured, latency statistics."""
        model = row.model

        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold")
        grid.add_column()
        grid.add_row("Family", rich_escape(model.family.value))
        grid.add_row("Name", rich_escape(model.name))
        grid.add_row("Provider", rich_escape(model.provider.value))
        grid.add_row("Vendor", rich_escape(model.vendor.value))

        state = row.state
        if state.status is RowStatus.MEASURED and state.samples:
            stats = calculate_statistics(list(state.samples))
            grid.add_row("", "")
            grid.add_row("Mean", format_duration(stats.mean))
            grid.add_row("Median", format_duration(stats.median))
            grid.add_row("Jitter", format_duration(stats.jitter))
            grid.add_row("Min", format_duration(stats.min_val))
            grid.add_row("Max", format_duration(stats.max_val))
            grid.add_row("P95", format_duration(stats.p95))
            grid.add_row(
                "95% CI",
                f"{format_duration(stats.confidence_interval_95[0])} - "
                f"{format_duration(stats.confidence_interval_95[1])}",
            )
            grid.add_row("Samples", str(stats.sample_size))
        elif state.status is RowStatus.FAILED and state.error:
            grid.add_row("", "")
            grid.add_row("Error", f"[red]{rich_escape(state.error)}[/red]")

        self.update(grid)


class LogPanel(RichLog):
    """Latest operator-facing messages."""

    DEFAULT_CSS = """
    LogPanel {
        height: 8;
        border: round $secondary;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(wrap=True, markup=True, max_lines=200, **kwargs)
        self.can_focus = False

    def info(self, text: str) -> None:
        self.write(rich_escape(text))

    def error(self, text: str) -> None:
        self.write(f"[bold red]{rich_escape(text)}[/bold red]")
