"""krueger - Textual status application."""

from datetime import datetime
from queue import Empty, Queue

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from krueger.models import (
    Armed,
    IPAddress,
    KillFailed,
    MonitorEvent,
    MonitorFailed,
    ProcessRecord,
    SweepComplete,
    Tick,
    Triggered,
)
from krueger.monitor import VpnMonitor

SAFE_MESSAGE = "Monitoring connection. You are currently [black on green] SAFE [/]."


class StatsPanel(Static):
    """Statistics area: time, watch list, protected process count and address."""

    DEFAULT_CSS = """
    StatsPanel {
        height: auto;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, watching: str, *args, **kwargs) -> None:
        """Initialize StatsPanel."""
        super().__init__(*args, **kwargs)
        self._watching = watching
        self._timestamp: datetime | None = None
        self._protected: int = 0
        self._total: int = 0
        self._current_ip: IPAddress | None = None

    @property
    def protected(self) -> tuple[int, int]:
        return self._protected, self._total

    @property
    def current_ip(self) -> IPAddress | None:
        return self._current_ip

    def update_stats(self, protected: int, total: int) -> None:
        """Update the process counts and the clock."""
        self._timestamp = datetime.now()
        self._protected = protected
        self._total = total
        self.update(self._render_stats())

    def update_ip(self, address: IPAddress) -> None:
        """Update the displayed address."""
        self._current_ip = address
        self.update(self._render_stats())

    def _render_stats(self) -> str:
        timestamp = self._timestamp.strftime("%A, %d-%b-%y %H:%M:%S") if self._timestamp else "-"
        address = str(self._current_ip) if self._current_ip is not None else "-"
        return (
            f"Time: [yellow]{timestamp}[/yellow]\n\n"
            f"Watching: [blue]{escape(self._watching)}[/blue]\n"
            f"Protecting [green]{self._protected}[/green]/[dim]{self._total}[/dim] Processes\n"
            f"Current IP: [magenta]{address}[/magenta]"
        )


class ProtectedTable(Container):
    """Table of running processes covered by the watch list."""

    DEFAULT_CSS = """
    ProtectedTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="protected-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#protected-table", DataTable)
        table.cursor_type = "row"
        table.add_column("PID", key="pid", width=8)
        table.add_column("Process Name", key="name")

    def update_processes(self, processes: list[ProcessRecord]) -> None:
        """Replace the table contents with the given processes, sorted by PID."""
        table = self.query_one("#protected-table", DataTable)
        table.clear()
        for proc in sorted(processes, key=lambda p: p.pid):
            table.add_row(str(proc.pid), proc.name, key=str(proc.pid))


class KruegerApp(App):
    """Main krueger application."""

    TITLE = "krueger"
    SUB_TITLE = "VPN companion"

    CSS = """
    Screen {
        layout: vertical;
    }

    #status-line {
        height: auto;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        monitor: VpnMonitor,
        update_queue: Queue[MonitorEvent],
        show_processes: bool = False,
        stats_interval: float = 60.0,
    ) -> None:
        """Initialize the KruegerApp."""
        super().__init__()
        self._monitor = monitor
        self._update_queue = update_queue
        self._show_processes = show_processes
        self._stats_interval = stats_interval

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatsPanel(str(self._monitor.watch_list), id="stats")
        if self._show_processes:
            yield ProtectedTable()
        yield Static(SAFE_MESSAGE, id="status-line")
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.call_after_refresh(self._refresh_stats)
        self.set_interval(0.1, self._check_for_updates)
        self.set_interval(self._stats_interval, self._refresh_stats)

    def _refresh_stats(self) -> None:
        """Recount protected processes off the event loop."""
        self.run_worker(self._collect_stats, thread=True, exclusive=True, group="stats", exit_on_error=False)

    def _collect_stats(self) -> None:
        records = self._monitor.directory.list_processes()
        protected = [record for record in records if self._monitor.watch_list.matches(record.name)]
        self.call_from_thread(self._show_stats, protected, len(records))

    def _show_stats(self, protected: list[ProcessRecord], total: int) -> None:
        """Refresh the statistics area and, in debug mode, the process table."""
        stats = self.query_one("#stats", StatsPanel)
        stats.update_stats(len(protected), total)
        if self._monitor.baseline is not None and stats.current_ip is None:
            stats.update_ip(self._monitor.baseline)
        if self._show_processes:
            self.query_one(ProtectedTable).update_processes(protected)

    def _check_for_updates(self) -> None:
        """Drain the event queue and apply each event in order."""
        while True:
            try:
                event = self._update_queue.get_nowait()
            except Empty:
                break
            self.handle_event(event)

    def handle_event(self, event: MonitorEvent) -> None:
        """Apply one monitor event to the UI."""
        status = self.query_one("#status-line", Static)
        stats = self.query_one("#stats", StatsPanel)

        if isinstance(event, Armed):
            stats.update_ip(event.baseline)
            status.update(SAFE_MESSAGE)
        elif isinstance(event, Tick):
            stats.update_ip(event.current)
        elif isinstance(event, Triggered):
            stats.update_ip(event.new)
            status.update(
                f"[white on red] ATTENTION [/] Your IP has changed from: "
                f"[magenta]{event.old}[/magenta] to: [red]{event.new}[/red]\n"
                "[white on grey30] GOODNIGHT [/] Terminating Processes and Krueger..."
            )
        elif isinstance(event, KillFailed):
            self.notify(
                f"Could not kill {escape(event.name)} (pid {event.pid}): {escape(event.reason)}",
                severity="warning",
            )
        elif isinstance(event, SweepComplete):
            self.exit(event.report)
        elif isinstance(event, MonitorFailed):
            self.exit(event.error, return_code=1)

    def action_quit(self) -> None:
        """Handle quit action; a sweep in progress still completes."""
        self._monitor.stop(timeout=None)
        self.exit()
