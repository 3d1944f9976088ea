"""Exceptions raised by krueger."""


class KruegerError(Exception):
    """Base class for all krueger errors."""


class SamplingFailure(KruegerError):
    """The outbound-facing local address could not be determined."""


class ProcessNotFound(KruegerError):
    """No running process has the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"process not found: {name}")
        self.name = name


class KillFailure(KruegerError):
    """The operating system refused or failed to kill a process."""

    def __init__(self, name: str, pid: int | None, reason: str) -> None:
        super().__init__(f"failed to kill {name} (pid {pid}): {reason}")
        self.name = name
        self.pid = pid
        self.reason = reason


class EmptyWatchList(KruegerError):
    """There are no process names to protect."""

    def __init__(self, message: str = "no processes to watch") -> None:
        super().__init__(message)


class ConfigError(KruegerError):
    """The configuration file or environment could not be read."""
