"""Termination sweep: kill every running process covered by a watch list."""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from krueger.errors import KillFailure, ProcessNotFound
from krueger.models import ProcessRecord
from krueger.processes import ProcessDirectory
from krueger.watchlist import matches

logger = logging.getLogger(__name__)

DEFAULT_MAX_KILLS_PER_NAME = 64
DEFAULT_MAX_PASSES = 3
DEFAULT_SETTLE_TIMEOUT = 2.0
SETTLE_POLL_INTERVAL = 0.05


@dataclass(slots=True)
class SweepReport:
    """Outcome of a termination sweep."""

    killed: list[ProcessRecord] = field(default_factory=list)
    failures: list[KillFailure] = field(default_factory=list)
    exhausted: list[str] = field(default_factory=list)
    passes: int = 0

    @property
    def names_killed(self) -> list[str]:
        """Distinct killed process names, in kill order."""
        return list(dict.fromkeys(record.name for record in self.killed))

    @property
    def ok(self) -> bool:
        """True if every matched process was killed."""
        return not self.failures and not self.exhausted


def _matched_names(
    directory: ProcessDirectory,
    terms: list[str],
    skip: set[str],
) -> list[str]:
    """Distinct names of running processes matching the terms, first-seen order."""
    names: dict[str, None] = {}
    for record in directory.list_processes():
        if record.name not in skip and matches(terms, record.name):
            names.setdefault(record.name)
    return list(names)


def _wait_for_exit(
    directory: ProcessDirectory,
    name: str,
    signalled: set[int],
    report: SweepReport,
    timeout: float,
) -> bool:
    """Wait until no signalled process named ``name`` is listed any more."""
    deadline = time.monotonic() + timeout
    while True:
        remaining = sorted(
            record.pid for record in directory.list_processes() if record.name == name and record.pid in signalled
        )
        if not remaining:
            return True
        if time.monotonic() >= deadline:
            logger.warning("%s still running %.1fs after kill (pids %s)", name, timeout, remaining)
            report.exhausted.append(name)
            return False
        time.sleep(SETTLE_POLL_INTERVAL)


def drain(
    directory: ProcessDirectory,
    name: str,
    report: SweepReport,
    max_kills: int = DEFAULT_MAX_KILLS_PER_NAME,
    settle_timeout: float = DEFAULT_SETTLE_TIMEOUT,
) -> bool:
    """
    Kill processes named ``name`` until none is left.

    Every process is signalled once. A killed process can stay listed while
    the OS tears it down, so later kills skip PIDs already signalled and the
    drain then waits up to ``settle_timeout`` seconds for them to go away.

    Returns False if the drain stopped early: a kill failed, ``max_kills``
    distinct processes were killed and more remain, or a killed process was
    still listed when the timeout ran out.
    """
    signalled: set[int] = set()
    for _ in range(max_kills):
        try:
            record = directory.kill_by_name(name, exclude=signalled)
        except ProcessNotFound:
            break
        except KillFailure as exc:
            logger.warning("Could not kill %s: %s", name, exc.reason)
            report.failures.append(exc)
            return False
        logger.info("Killed %s (pid %d)", record.name, record.pid)
        report.killed.append(record)
        signalled.add(record.pid)
    else:
        if any(record.name == name and record.pid not in signalled for record in directory.list_processes()):
            logger.warning("Gave up on %s after killing %d processes", name, max_kills)
            report.exhausted.append(name)
            return False

    if not signalled:
        return True
    return _wait_for_exit(directory, name, signalled, report, settle_timeout)


def sweep(
    watch_list: Iterable[str],
    directory: ProcessDirectory,
    max_kills_per_name: int = DEFAULT_MAX_KILLS_PER_NAME,
    max_passes: int = DEFAULT_MAX_PASSES,
    settle_timeout: float = DEFAULT_SETTLE_TIMEOUT,
    on_kill_failed: Callable[[KillFailure], None] | None = None,
) -> SweepReport:
    """
    Force-kill every running process whose name matches the watch list.

    Processes are killed by their own reported name, so a term like ``fire``
    reaches ``firefox``. Each name is drained completely before the next.
    The process table is rescanned after each pass to catch helpers spawned
    meanwhile; names that failed are not retried.

    Args:
        watch_list: Watch terms.
        directory: Process directory to enumerate and kill through.
        max_kills_per_name: Upper bound on distinct processes killed per name.
        settle_timeout: Seconds to wait for killed processes to leave the table.
        max_passes: Upper bound on rescans of the process table.
        on_kill_failed: Called with each KillFailure as it happens.
    """
    terms = list(watch_list)
    report = SweepReport()
    if not terms:
        return report

    given_up: set[str] = set()
    for _ in range(max(1, max_passes)):
        names = _matched_names(directory, terms, given_up)
        if not names:
            break

        report.passes += 1
        logger.debug("Sweep pass %d: %s", report.passes, ", ".join(names))
        for name in names:
            failures_before = len(report.failures)
            if not drain(directory, name, report, max_kills_per_name, settle_timeout):
                given_up.add(name)
                if on_kill_failed is not None:
                    for failure in report.failures[failures_before:]:
                        on_kill_failed(failure)

    logger.info(
        "Sweep finished: %d killed, %d failed, %d exhausted",
        len(report.killed),
        len(report.failures),
        len(report.exhausted),
    )
    return report
