"""
Latai - Terminal Application.

Live, sortable table of LLM response latencies across OpenAI, Groq and
AWS Bedrock models.
"""

import argparse
import logging
from pathlib import Path
from typing import Iterable, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DataTable, Footer, Header

from config import (
    AppConfig,
    EvaluatorConfig,
    LoggingConfig,
    PromptConfig,
    ProviderConfig,
    get_config,
    update_config,
)
from latai import __version__
from latai.exceptions import InvalidTransitionError
from latai.orchestrator import (
    LatencyFailed,
    LatencyUpdated,
    MeasurementOrchestrator,
    Outcome,
)
from latai.prompts import FilePromptSource, PromptSource, load_default_prompts
from latai.providers import PROVIDER_FACTORIES, load_providers
from latai.table import RankedTable
from latai.utils import truncate_text
from latai.widgets import InfoPanel, LogPanel, latency_cell

logger = logging.getLogger(__name__)

COLUMNS = ("ID", "Name", "Provider", "Vendor", "Latency")


class LataiApp(App[None]):
    """Main Latai TUI application."""

    TITLE = "Latai"
    SUB_TITLE = "LLM latency benchmark"

    CSS = """
    #main {
        height: 1fr;
    }
    #models {
        width: 3fr;
    }
    #side {
        width: 2fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False),
        Binding("A", "measure_all", "Measure all"),
        Binding("s", "sort", "Sort"),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("J", "cursor_top", "Top", show=False),
        Binding("K", "cursor_bottom", "Bottom", show=False),
        Binding("escape", "toggle_focus", "Focus", priority=True),
    ]

    def __init__(
        self,
        table: RankedTable,
        prompt_source: PromptSource,
        sample_size: Optional[int] = None,
        notices: Iterable[str] = (),
    ) -> None:
        """
        Initialize the application.

        Args:
            table: Rows to display and measure
            prompt_source: Prompts for every measurement
            sample_size: Calls per measurement; None uses the prompt pool size
            notices: Startup messages for the log panel
        """
        super().__init__()
        self.table = table
        self.prompt_source = prompt_source
        self.sample_size = sample_size
        self.orchestrator: Optional[MeasurementOrchestrator] = None
        self._notices = list(notices)

        self._grid = DataTable(id="models", cursor_type="row", zebra_stripes=True)
        self._info_panel = InfoPanel(id="info")
        self._log_panel = LogPanel(id="log")

    def compose(self) -> ComposeResult:
        """Create child widgets."""
        yield Header()
        with Horizontal(id="main"):
            yield self._grid
            with Vertical(id="side"):
                yield self._info_panel
                yield self._log_panel
        yield Footer()

    def on_mount(self) -> None:
        """Build the orchestrator and start consuming outcomes."""
        self.orchestrator = MeasurementOrchestrator(
            self.table,
            self.prompt_source,
            sample_size=self.sample_size,
        )

        self._grid.add_columns(*COLUMNS)
        self._render_rows()

        for notice in self._notices:
            self._log_panel.info(notice)
        if len(self.table) == 0:
            self._log_panel.error("No models available, check provider credentials and filter")
        else:
            self._log_panel.info(f"{len(self.table)} models loaded, press enter to measure")

        self._grid.focus()
        self.run_worker(self._consume_outcomes(), exclusive=True, group="outcomes")

    # ── outcome consumer ─────────────────────────────────

    async def _consume_outcomes(self) -> None:
        """Apply outcomes one at a time, for the lifetime of the app."""
        while True:
            outcome = await self.orchestrator.next_outcome()
            self.handle_outcome(outcome)

    def handle_outcome(self, outcome: Outcome) -> None:
        """Apply an outcome to the table and refresh the display."""
        try:
            self.orchestrator.apply(outcome)
        except InvalidTransitionError as e:
            logger.error("Dropped outcome %r: %s", outcome, e)
            self._log_panel.error(str(e))
            return

        if isinstance(outcome, LatencyUpdated):
            message = f"{outcome.model_name} latency {int(outcome.average_latency_ms)} ms"
            logger.info(message)
            self._log_panel.info(message)
        elif isinstance(outcome, LatencyFailed):
            message = f"{outcome.model_name} failed: {truncate_text(outcome.error, 200)}"
            logger.error(message)
            self._log_panel.error(message)

        self._render_rows()

    # ── rendering ────────────────────────────────────────

    def _render_rows(self) -> None:
        """Redraw every row in display order, keeping the selection."""
        selected = self.selected_row_id()

        self._grid.clear()
        for row in self.table.rows:
            self._grid.add_row(
                str(row.row_id),
                row.model.name,
                row.model.provider.value,
                row.model.vendor.value,
                latency_cell(row),
                key=str(row.row_id),
            )

        if selected is not None:
            self._grid.move_cursor(row=self.table.index_of(selected))
            self._info_panel.show_row(self.table.get(selected))
        elif len(self.table) > 0:
            self._info_panel.show_row(self.table.rows[0])

    def selected_row_id(self) -> Optional[int]:
        """Row ID under the cursor, if any."""
        if self._grid.row_count == 0:
            return None
        row_key, _ = self._grid.coordinate_to_cell_key(self._grid.cursor_coordinate)
        return int(row_key.value)

    # ── table events ─────────────────────────────────────

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Enter on a row: measure that model."""
        self.measure_row(int(event.row_key.value))

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        """Show details of the highlighted model."""
        if event.row_key is None or event.row_key.value is None:
            return
        self._info_panel.show_row(self.table.get(int(event.row_key.value)))

    def measure_row(self, row_id: int) -> None:
        row = self.table.get(row_id)
        if self.orchestrator.measure_one(row_id):
            message = f"Measuring {row.model.name}"
            logger.info(message)
            self._log_panel.info(message)
        else:
            self._log_panel.info(f"{row.model.name} is already being measured")
        self._render_rows()

    # ── actions ──────────────────────────────────────────

    def action_measure_all(self) -> None:
        """Measure every model concurrently."""
        if not self._grid.has_focus:
            return
        count = self.orchestrator.measure_all()
        message = f"Measuring {count} models"
        logger.info(message)
        self._log_panel.info(message)
        self._render_rows()

    def action_sort(self) -> None:
        """Toggle latency sort direction."""
        if not self._grid.has_focus:
            return
        direction = self.table.sort_by_latency()
        self._log_panel.info(f"Sorted by latency, {direction.value}")
        self._render_rows()

    def action_cursor_down(self) -> None:
        if self._grid.has_focus:
            self._grid.action_cursor_down()

    def action_cursor_up(self) -> None:
        if self._grid.has_focus:
            self._grid.action_cursor_up()

    def action_cursor_top(self) -> None:
        if self._grid.has_focus and self._grid.row_count:
            self._grid.move_cursor(row=0)

    def action_cursor_bottom(self) -> None:
        if self._grid.has_focus and self._grid.row_count:
            self._grid.move_cursor(row=self._grid.row_count - 1)

    def action_toggle_focus(self) -> None:
        """Escape: focus or blur the table."""
        if self._grid.has_focus:
            self.set_focus(None)
        else:
            self._grid.focus()


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be 1 or more, got {number}")
    return number


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="latai",
        description="Measure and rank LLM response latency across providers.",
    )
    parser.add_argument(
        "-f", "--filter",
        default="",
        help="Only show models whose name contains this text (case-insensitive)",
    )
    parser.add_argument(
        "-n", "--sample-size",
        type=positive_int,
        default=None,
        help="Calls per measurement (default: one per prompt)",
    )
    parser.add_argument(
        "--providers",
        default=",".join(PROVIDER_FACTORIES),
        help="Comma-separated providers to load (default: %(default)s)",
    )
    parser.add_argument(
        "--prompts-dir",
        type=Path,
        default=None,
        help="Directory with *.prompt files",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log file verbosity",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AppConfig:
    """Merge command line arguments into the application config."""
    current = get_config()

    prompts = current.prompts
    if args.prompts_dir is not None:
        prompts = PromptConfig(user_prompts_dir=args.prompts_dir)

    log_settings = current.logging
    if args.log_level is not None:
        log_settings = LoggingConfig(log_file=log_settings.log_file, level=args.log_level)

    enabled = [p.strip().lower() for p in args.providers.split(",") if p.strip()]

    return update_config(
        providers=ProviderConfig.from_env(),
        evaluator=EvaluatorConfig(sample_size=args.sample_size),
        prompts=prompts,
        logging=log_settings,
        enabled_providers=enabled,
        model_filter=args.filter,
    )


def setup_logging(settings: LoggingConfig) -> None:
    """Send logs to a file; the terminal belongs to the UI."""
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
    )

    root = logging.getLogger()
    root.setLevel(settings.level)
    root.addHandler(handler)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the `latai` command."""
    args = parse_args(argv)
    config = build_config(args)
    setup_logging(config.logging)

    logger.info("Starting latai %s", __version__)

    catalog = load_providers(config)
    notices = [f"{p.name.value} loaded" for p in catalog.providers]
    notices += [f"{name} not loaded: {reason}" for name, reason in catalog.unavailable.items()]

    table = RankedTable.from_providers(catalog.providers, config.model_filter)
    prompt_source = FilePromptSource(
        config.prompts.user_prompts_dir,
        load_default_prompts(),
    )

    app = LataiApp(
        table,
        prompt_source,
        sample_size=config.evaluator.sample_size,
        notices=notices,
    )
    app.run()


if __name__ == "__main__":
    main()
