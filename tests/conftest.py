"""Shared fakes for krueger tests."""

from ipaddress import ip_address

import pytest

from krueger.errors import KillFailure, ProcessNotFound, SamplingFailure
from krueger.models import ProcessRecord


class FakeDirectory:
    """In-memory process table that records every kill request."""

    def __init__(self, records=(), denied=(), immortal=()):
        self.records = list(records)
        self.denied = set(denied)
        self.immortal = set(immortal)
        self.kill_calls: list[str] = []
        self.list_calls = 0

    def list_processes(self) -> list[ProcessRecord]:
        self.list_calls += 1
        return list(self.records)

    def kill_by_name(self, name: str, exclude=()) -> ProcessRecord:
        self.kill_calls.append(name)
        for record in self.records:
            if record.name != name or record.pid in exclude:
                continue
            if name in self.denied:
                raise KillFailure(name, record.pid, "access denied")
            if name not in self.immortal:
                self.records.remove(record)
            return record
        raise ProcessNotFound(name)

    def names(self) -> list[str]:
        return [record.name for record in self.records]


class ScriptedSampler:
    """Returns the scripted addresses in order, then repeats the last one."""

    def __init__(self, *addresses):
        self._addresses = [ip_address(a) if isinstance(a, str) else a for a in addresses]
        self.calls = 0

    def __call__(self):
        index = min(self.calls, len(self._addresses) - 1)
        self.calls += 1
        value = self._addresses[index]
        if isinstance(value, Exception):
            raise value
        return value


class FailingSampler:
    def __call__(self):
        raise SamplingFailure("network is unreachable")


@pytest.fixture
def fake_directory():
    return FakeDirectory(
        [
            ProcessRecord(pid=1, name="systemd"),
            ProcessRecord(pid=42, name="signal-desktop"),
            ProcessRecord(pid=77, name="bash"),
        ]
    )
