"""Command-line entry point for krueger."""

import argparse
import logging
from functools import partial
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from queue import Empty, Queue

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from krueger.app import KruegerApp
from krueger.config import KruegerConfig, load_config, save_config
from krueger.errors import ConfigError, EmptyWatchList, KruegerError, SamplingFailure
from krueger.logging_ import setup_logging
from krueger.models import (
    Armed,
    KillFailed,
    MonitorEvent,
    MonitorFailed,
    SweepComplete,
    Tick,
    Triggered,
)
from krueger.monitor import SweepOptions, VpnMonitor
from krueger.network import sample_outbound_ip
from krueger.paths import default_config_path
from krueger.processes import matching_processes, protected_counts
from krueger.sweep import SweepReport
from krueger.watchlist import WatchList

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SAMPLING_FAILURE = 1
EXIT_CONFIG_ERROR = 2

DESCRIPTION = """\
Krueger is designed to run alongside your VPN connection.
If for any reason your IP changes while you are connected to a VPN,
all the processes that you've set will be shut down immediately.
"""


def get_version() -> str:
    try:
        return version("krueger")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="krueger",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="config file (default is $HOME/.config/.krueger.yaml; .yml and .json also work)",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="debug mode")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="log to the console instead of showing the status screen",
    )
    parser.add_argument(
        "--interval",
        type=int,
        metavar="MS",
        help="polling interval in milliseconds (default 100)",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="save process names typed at the prompt to the config file",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return parser


def prompt_for_processes(console: Console) -> WatchList:
    """Ask the user for the process names to watch."""
    console.print(f"No config file found at: [yellow]{default_config_path()}[/yellow]")
    console.print("Please type the processes you want to monitor below.")
    console.print("Typical use: [cyan]brave,firefox,chrome,safari,signal,keybase[/cyan]")
    console.print()
    answer = Prompt.ask("Type process names", console=console, default="", show_default=False)
    console.print()
    return WatchList.parse(answer)


def log_event(event: MonitorEvent) -> None:
    """Write one monitor event to the log."""
    if isinstance(event, Armed):
        logger.info("Monitoring connection from %s. You are currently SAFE.", event.baseline)
    elif isinstance(event, Tick):
        logger.debug("Current IP: %s", event.current)
    elif isinstance(event, Triggered):
        logger.warning("ATTENTION Your IP has changed from: %s to: %s", event.old, event.new)
        logger.warning("GOODNIGHT Terminating processes and krueger...")
    elif isinstance(event, KillFailed):
        logger.warning("Could not kill %s (pid %s): %s", event.name, event.pid, event.reason)
    elif isinstance(event, SweepComplete):
        logger.info("Sweep complete, killed: %s", ", ".join(event.report.names_killed) or "nothing")
    elif isinstance(event, MonitorFailed):
        logger.error("Monitoring failed: %s", event.error)


def run_headless(monitor: VpnMonitor, update_queue: Queue[MonitorEvent], poll_timeout: float = 0.5) -> int:
    """
    Run the monitor without the status screen, logging every event.

    Returns once the sweep completed, monitoring failed, or the monitor was
    stopped. Ctrl+C stops the monitor; a sweep already running is finished.
    """
    protected, total = protected_counts(monitor.directory, monitor.watch_list)
    logger.info("Watching: %s", monitor.watch_list)
    logger.info("Protecting %d/%d processes", protected, total)
    if logger.isEnabledFor(logging.DEBUG):
        for record in matching_processes(monitor.directory, monitor.watch_list):
            logger.debug("Protected: %s (pid %d)", record.name, record.pid)

    monitor.start()
    try:
        while True:
            try:
                event = update_queue.get(timeout=poll_timeout)
            except Empty:
                if not monitor.is_running and update_queue.empty():
                    return EXIT_OK
                continue

            log_event(event)
            if isinstance(event, SweepComplete):
                return EXIT_OK
            if isinstance(event, MonitorFailed):
                return EXIT_SAMPLING_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping monitor")
        monitor.stop(timeout=None)
        while not update_queue.empty():
            log_event(update_queue.get_nowait())
        return EXIT_OK


def print_report(console: Console, report: SweepReport, monitor: VpnMonitor) -> None:
    console.print(
        "[white on red] ATTENTION [/] Your IP has changed from: "
        f"[magenta]{monitor.baseline}[/magenta] to: [red]{monitor.changed_to}[/red]"
    )
    console.print("[white on grey30] GOODNIGHT [/] Terminated Processes and Krueger.")
    for name in report.names_killed:
        console.print(f"  killed [red]{escape(name)}[/red]")
    for failure in report.failures:
        console.print(f"  [yellow]could not kill[/yellow] {escape(failure.name)}: {escape(failure.reason)}")
    for name in report.exhausted:
        console.print(f"  [yellow]still running[/yellow] {escape(name)}")


def main(argv: list[str] | None = None) -> int:
    """Entry point for krueger."""
    args = build_parser().parse_args(argv)
    console = Console()
    err_console = Console(stderr=True)

    try:
        config, config_path = load_config(args.config)
        if args.interval is not None:
            config = KruegerConfig.model_validate({**config.model_dump(), "poll_interval_ms": args.interval})
    except ConfigError as exc:
        err_console.print(f"[red]krueger:[/red] {exc}")
        return EXIT_CONFIG_ERROR
    except ValidationError as exc:
        err_console.print(f"[red]krueger:[/red] invalid --interval: {exc}")
        return EXIT_CONFIG_ERROR

    debug = args.debug or config.debug
    setup_logging(debug=debug, console=args.headless)
    if config_path is not None:
        console.print(f"Using config file: [yellow]{config_path}[/yellow]\n")

    watch_list = config.watch_list()
    if not watch_list and console.is_terminal:
        watch_list = prompt_for_processes(console)
        if watch_list and args.save:
            target = config_path or default_config_path()
            save_config(config.model_copy(update={"processes": list(watch_list)}), Path(target))
            console.print(f"Saved process names to [yellow]{target}[/yellow]\n")

    update_queue: Queue[MonitorEvent] = Queue()
    try:
        monitor = VpnMonitor(
            watch_list,
            update_queue,
            sampler=partial(sample_outbound_ip, config.probe_host, config.probe_port),
            poll_rate=config.poll_rate,
            emit_ticks=args.headless and debug,
            sweep_options=SweepOptions(max_kills_per_name=config.max_kills_per_name),
        )
        monitor.arm()
    except EmptyWatchList as exc:
        err_console.print(f"[red]krueger:[/red] {exc}; set 'processes' in the config file or KRUEGER_PROCESSES")
        return EXIT_CONFIG_ERROR
    except SamplingFailure as exc:
        logger.error("%s", exc)
        err_console.print(f"[red]krueger:[/red] {exc}")
        return EXIT_SAMPLING_FAILURE

    if args.headless:
        return run_headless(monitor, update_queue)

    app = KruegerApp(monitor, update_queue, show_processes=debug)
    result = app.run()
    monitor.stop(timeout=None)

    if isinstance(result, SweepReport):
        print_report(console, result, monitor)
        return EXIT_OK
    if isinstance(result, KruegerError):
        err_console.print(f"[red]krueger:[/red] {result}")
        return EXIT_SAMPLING_FAILURE
    return app.return_code or EXIT_OK
