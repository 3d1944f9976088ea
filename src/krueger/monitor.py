"""Change-detection loop for krueger."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from queue import Queue

from krueger.errors import EmptyWatchList, KillFailure, SamplingFailure
from krueger.models import (
    Armed,
    IPAddress,
    KillFailed,
    MonitorEvent,
    MonitorFailed,
    MonitorState,
    SweepComplete,
    Tick,
    Triggered,
)
from krueger.network import sample_outbound_ip
from krueger.processes import ProcessDirectory, PsutilProcessDirectory
from krueger.sweep import (
    DEFAULT_MAX_KILLS_PER_NAME,
    DEFAULT_MAX_PASSES,
    DEFAULT_SETTLE_TIMEOUT,
    SweepReport,
    sweep,
)
from krueger.watchlist import WatchList

logger = logging.getLogger(__name__)

MIN_POLL_RATE = 0.01
MAX_POLL_RATE = 1.0


@dataclass(slots=True, frozen=True)
class SweepOptions:
    """Bounds passed through to the termination sweep."""

    max_kills_per_name: int = DEFAULT_MAX_KILLS_PER_NAME
    max_passes: int = DEFAULT_MAX_PASSES
    settle_timeout: float = DEFAULT_SETTLE_TIMEOUT


class VpnMonitor:
    """
    Watches the outbound address and kills watched processes when it changes.

    The baseline address is captured once by ``arm()``. The loop then polls on
    a fixed cadence and, on the first address that differs from the baseline,
    runs one termination sweep and stops for good. Events are pushed to a
    thread-safe Queue for the UI.
    """

    def __init__(
        self,
        watch_list: WatchList,
        update_queue: Queue[MonitorEvent],
        sampler: Callable[[], IPAddress] = sample_outbound_ip,
        directory: ProcessDirectory | None = None,
        poll_rate: float = 0.1,
        emit_ticks: bool = False,
        sweep_options: SweepOptions | None = None,
    ) -> None:
        """
        Initialize the VpnMonitor.

        Args:
            watch_list: Process-name terms to protect. Must not be empty.
            update_queue: Thread-safe queue to push events to.
            sampler: Returns the current outbound address.
            directory: Process directory used by the sweep.
            poll_rate: Seconds between polls. Default 0.1s.
            emit_ticks: Push a Tick event on every poll.
            sweep_options: Bounds for the termination sweep.

        Raises:
            EmptyWatchList: watch_list has no terms.
        """
        if not watch_list:
            raise EmptyWatchList()

        self._watch_list = watch_list
        self._queue = update_queue
        self._sampler = sampler
        self._directory = directory if directory is not None else PsutilProcessDirectory()
        self.poll_rate = poll_rate
        self._emit_ticks = emit_ticks
        self._sweep_options = sweep_options or SweepOptions()

        self._baseline: IPAddress | None = None
        self._state = MonitorState.ARMED
        self._changed_to: IPAddress | None = None
        self._report: SweepReport | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = min(MAX_POLL_RATE, max(MIN_POLL_RATE, value))

    @property
    def watch_list(self) -> WatchList:
        return self._watch_list

    @property
    def directory(self) -> ProcessDirectory:
        return self._directory

    @property
    def baseline(self) -> IPAddress | None:
        """The address captured at arming, or None before arming."""
        return self._baseline

    @property
    def changed_to(self) -> IPAddress | None:
        """The address that triggered the sweep, if any."""
        return self._changed_to

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def report(self) -> SweepReport | None:
        """Result of the sweep, once triggered."""
        return self._report

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def arm(self) -> IPAddress:
        """
        Capture the baseline address.

        Only the first call samples; later calls return the same baseline.

        Raises:
            SamplingFailure: The outbound address could not be determined.
        """
        if self._baseline is None:
            self._baseline = self._sampler()
            logger.info("Armed with baseline address %s", self._baseline)
            self._queue.put(Armed(self._baseline))
        return self._baseline

    def check(self) -> bool:
        """
        Run one poll. Returns True once the monitor has triggered.

        Raises:
            SamplingFailure: The outbound address could not be determined.
        """
        if self._state is MonitorState.TRIGGERED:
            return True

        baseline = self.arm()
        current = self._sampler()
        if self._emit_ticks:
            self._queue.put(Tick(current))

        if current == baseline:
            return False

        self._state = MonitorState.TRIGGERED
        self._changed_to = current
        logger.warning("Outbound address changed from %s to %s", baseline, current)
        self._queue.put(Triggered(baseline, current))

        self._report = sweep(
            self._watch_list,
            self._directory,
            max_kills_per_name=self._sweep_options.max_kills_per_name,
            max_passes=self._sweep_options.max_passes,
            settle_timeout=self._sweep_options.settle_timeout,
            on_kill_failed=self._on_kill_failed,
        )
        self._queue.put(SweepComplete(self._report))
        return True

    def _on_kill_failed(self, failure: KillFailure) -> None:
        self._queue.put(KillFailed(failure.name, failure.pid, failure.reason))

    def run(self) -> MonitorState:
        """
        Poll until the address changes or stop() is called.

        The stop request is only honoured between polls, so a sweep that has
        started always runs to completion.
        """
        self.arm()
        while not self._stop_event.is_set():
            try:
                if self.check():
                    return self._state
            except SamplingFailure as exc:
                logger.error("Lost the outbound address: %s", exc)
                self._state = MonitorState.FAILED
                self._queue.put(MonitorFailed(exc))
                return self._state

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)

        self._state = MonitorState.STOPPED
        logger.info("Monitoring stopped before any address change")
        return self._state

    def start(self) -> None:
        """
        Arm and start the monitoring thread.

        Arming happens in the calling thread so a sampling failure surfaces
        here rather than in the background.
        """
        if self.is_running:
            return

        self.arm()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run,
            daemon=True,
            name="VpnMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the monitoring thread ends. Returns True if it ended."""
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()
