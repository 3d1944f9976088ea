"""Data models for krueger."""

from dataclasses import dataclass, field
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from krueger.errors import KruegerError
    from krueger.sweep import SweepReport

IPAddress = Union[IPv4Address, IPv6Address]


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable snapshot of one running process."""

    pid: int
    name: str


class MonitorState(Enum):
    """States of the change-detection loop."""

    ARMED = "armed"
    TRIGGERED = "triggered"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class Armed:
    """The baseline address was captured and monitoring began."""

    baseline: IPAddress


@dataclass(slots=True, frozen=True)
class Tick:
    """One poll of the outbound address."""

    current: IPAddress


@dataclass(slots=True, frozen=True)
class Triggered:
    """The outbound address changed; the sweep is about to run."""

    old: IPAddress
    new: IPAddress


@dataclass(slots=True, frozen=True)
class KillFailed:
    """A matched process could not be killed."""

    name: str
    pid: int | None
    reason: str


@dataclass(slots=True, frozen=True)
class SweepComplete:
    """The termination sweep finished."""

    report: "SweepReport" = field(compare=False)


@dataclass(slots=True, frozen=True)
class MonitorFailed:
    """The loop stopped because the outbound address could not be sampled."""

    error: "KruegerError" = field(compare=False)


MonitorEvent = Union[Armed, Tick, Triggered, KillFailed, SweepComplete, MonitorFailed]
