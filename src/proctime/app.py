"""proctime - Main Textual application."""

import logging

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Input

from proctime.config import APP_SUBTITLE, APP_TITLE, TrackerSettings
from proctime.logging_setup import setup_logging
from proctime.models import ProcessUsageRecord
from proctime.monitor import ProcessEnumerator, UsageTracker

logger = logging.getLogger(__name__)


class UsageTable(Container):
    """Container for the table of per-process running times."""

    DEFAULT_CSS = """
    UsageTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize UsageTable."""
        super().__init__(*args, **kwargs)
        self._row_keys: list[str] = []

    @property
    def row_keys(self) -> list[str]:
        """Keys of the displayed rows, in display order."""
        return list(self._row_keys)

    def compose(self) -> ComposeResult:
        """Compose the usage table."""
        yield DataTable(id="usage-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#usage-table", DataTable)
        table.cursor_type = "row"

        table.add_column("Process", key="name", width=40)
        table.add_column("Total", key="total", width=14)
        table.add_column("Session", key="session", width=14)

    def show_records(self, records: list[ProcessUsageRecord]) -> None:
        """
        Display the given records, which must already be filtered and sorted.

        Rows are updated in place with update_cell while the set of rows is
        unchanged; otherwise the table is rebuilt to keep name order.
        """
        table = self.query_one("#usage-table", DataTable)
        keys = [record.key for record in records]

        if keys == self._row_keys:
            for record in records:
                table.update_cell(record.key, "total", record.formatted_total)
                table.update_cell(record.key, "session", record.formatted_session)
            return

        table.clear()
        for record in records:
            table.add_row(
                record.name,
                record.formatted_total,
                record.formatted_session,
                key=record.key,
            )
        self._row_keys = keys

    def refresh_records(self, records: list[ProcessUsageRecord], visible_keys: set[str]) -> None:
        """Update only the rows of changed records that are currently shown."""
        table = self.query_one("#usage-table", DataTable)
        for record in records:
            if record.key in visible_keys:
                table.update_cell(record.key, "total", record.formatted_total)
                table.update_cell(record.key, "session", record.formatted_session)


class ProcTimeApp(App):
    """Main proctime application."""

    TITLE = APP_TITLE
    SUB_TITLE = APP_SUBTITLE

    CSS = """
    Screen {
        layout: vertical;
    }

    #filter {
        dock: top;
    }
    """

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+s", "save", "Save"),
        ("escape", "clear_filter", "Clear filter"),
    ]

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        enumerator: ProcessEnumerator | None = None,
    ) -> None:
        """Initialize the ProcTimeApp."""
        super().__init__()
        self._tracker = UsageTracker(settings, enumerator)
        self._check_timer: Timer | None = None
        self._save_timer: Timer | None = None
        self._table_ready = False
        self._unsubscribe = self._tracker.subscribe(self._on_usage_changed)

    @property
    def tracker(self) -> UsageTracker:
        """Get the tracker driven by this app."""
        return self._tracker

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Input(placeholder="Filter: chrome, code, ...", id="filter")
        yield UsageTable()
        yield Footer()

    def on_mount(self) -> None:
        """Load saved totals and start the sampling and save timers."""
        result = self._tracker.start()
        if result.warning:
            self.notify(result.warning, title="Load Error", severity="warning")

        self.query_one("#filter", Input).value = self._tracker.filter_text
        # Columns are added in UsageTable.on_mount, so render once that has run
        self.call_after_refresh(self._render_table)

        settings = self._tracker.settings
        self._check_timer = self.set_interval(
            settings.check_interval.total_seconds(), self._on_check_timer
        )
        self._save_timer = self.set_interval(
            settings.save_interval.total_seconds(), self._on_save_timer
        )
        logger.info("Timers started")

    def on_input_changed(self, event: Input.Changed) -> None:
        """Apply the filter as it is typed."""
        if event.input.id != "filter":
            return
        self._tracker.filter_text = event.value
        if self._table_ready:
            self._render_table()

    def _on_check_timer(self) -> None:
        """Sample the process list once."""
        try:
            self._tracker.sample()
        except Exception:
            # The sampling loop must keep running whatever a single tick does
            logger.exception("Error checking processes")

    def _on_save_timer(self) -> None:
        """Persist totals on the save interval."""
        self._tracker.save()

    def _on_usage_changed(self, records: list[ProcessUsageRecord]) -> None:
        """Re-render after the tracker's records change."""
        if not self._table_ready:
            return
        table = self.query_one(UsageTable)
        visible = self._tracker.visible_records()
        if [record.key for record in visible] != table.row_keys:
            table.show_records(visible)
        else:
            table.refresh_records(records, set(table.row_keys))

    def _render_table(self) -> None:
        """Redraw the table from the filtered records."""
        self._table_ready = True
        self.query_one(UsageTable).show_records(self._tracker.visible_records())

    def _stop_timers(self) -> None:
        """Stop the check and save timers."""
        for timer in (self._check_timer, self._save_timer):
            if timer is not None:
                timer.stop()
        self._check_timer = None
        self._save_timer = None

    def action_save(self) -> None:
        """Save now instead of waiting for the save timer."""
        if self._tracker.save():
            self.notify("Saved")
        else:
            self.notify("Save failed, will retry", severity="error")

    def action_clear_filter(self) -> None:
        """Empty the filter box."""
        self.query_one("#filter", Input).value = ""

    def action_quit(self) -> None:
        """Stop sampling, write the final save and exit."""
        self._stop_timers()
        self._unsubscribe()
        self._tracker.shutdown()
        self.exit()


def main() -> None:
    """Entry point for the proctime application."""
    settings = TrackerSettings()
    setup_logging(settings.log_file)
    app = ProcTimeApp(settings)
    app.run()


if __name__ == "__main__":
    main()
