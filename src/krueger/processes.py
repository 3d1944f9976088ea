"""Process directory access backed by psutil."""

import logging
from collections.abc import Collection, Iterable
from typing import Protocol

import psutil

from krueger.errors import KillFailure, ProcessNotFound
from krueger.models import ProcessRecord
from krueger.watchlist import matches

logger = logging.getLogger(__name__)


class ProcessDirectory(Protocol):
    """Anything that can enumerate processes and kill them by name."""

    def list_processes(self) -> list[ProcessRecord]: ...

    def kill_by_name(self, name: str, exclude: Collection[int] = ()) -> ProcessRecord: ...


class PsutilProcessDirectory:
    """
    Process directory for the local machine.

    Every call enumerates the process table from scratch. Processes that exit
    mid-enumeration, deny access to their name, or are zombies are skipped.
    """

    def list_processes(self) -> list[ProcessRecord]:
        """Return a record for every visible process with a resolvable name."""
        records: list[ProcessRecord] = []
        unresolved = 0

        for proc in psutil.process_iter(attrs=["pid", "name", "status"]):
            try:
                info = proc.info
                name = info.get("name")
                status = info.get("status")
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                unresolved += 1
                continue

            if name is None:
                unresolved += 1
                continue
            # Already dead, only waiting to be reaped
            if status == psutil.STATUS_ZOMBIE:
                continue

            records.append(ProcessRecord(pid=info.get("pid", proc.pid), name=name))

        if unresolved:
            logger.debug("Skipped %d processes with unresolvable names", unresolved)
        return records

    def kill_by_name(self, name: str, exclude: Collection[int] = ()) -> ProcessRecord:
        """
        Force-kill the first process whose name equals ``name`` exactly.

        Processes whose PID is in ``exclude`` are passed over, so a caller can
        move on while an already signalled process is still being torn down.

        Does not wait for the process to exit and does not retry.

        Raises:
            ProcessNotFound: No running, non-excluded process has that name.
            KillFailure: The kill request itself failed.
        """
        for record in self.list_processes():
            if record.name != name or record.pid in exclude:
                continue
            try:
                psutil.Process(record.pid).kill()
            except psutil.NoSuchProcess:
                # Exited between enumeration and kill
                pass
            except psutil.AccessDenied as exc:
                raise KillFailure(name, record.pid, "access denied") from exc
            except (psutil.Error, OSError) as exc:
                raise KillFailure(name, record.pid, str(exc) or type(exc).__name__) from exc
            return record

        raise ProcessNotFound(name)


def matching_processes(directory: ProcessDirectory, watch_list: Iterable[str]) -> list[ProcessRecord]:
    """Return running processes covered by the watch list."""
    terms = list(watch_list)
    return [record for record in directory.list_processes() if matches(terms, record.name)]


def protected_counts(directory: ProcessDirectory, watch_list: Iterable[str]) -> tuple[int, int]:
    """Return (matching processes, total processes)."""
    terms = list(watch_list)
    records = directory.list_processes()
    protected = sum(1 for record in records if matches(terms, record.name))
    return protected, len(records)
