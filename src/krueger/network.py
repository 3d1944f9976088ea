"""Outbound network identity sampling."""

import ipaddress
import logging
import socket

from krueger.errors import SamplingFailure
from krueger.models import IPAddress

logger = logging.getLogger(__name__)

DEFAULT_PROBE_HOST = "8.8.8.8"
DEFAULT_PROBE_PORT = 80


def sample_outbound_ip(
    probe_host: str = DEFAULT_PROBE_HOST,
    probe_port: int = DEFAULT_PROBE_PORT,
) -> IPAddress:
    """
    Return the local address the OS would use for a new outbound connection.

    A UDP socket is connected toward the probe address, which only makes the
    routing layer pick a source interface; no datagram is sent.

    Args:
        probe_host: Any routable address. Only used for the route lookup.
        probe_port: Port paired with the probe host.

    Raises:
        SamplingFailure: No route or interface is available.
    """
    family = socket.AF_INET6 if ":" in probe_host else socket.AF_INET
    try:
        with socket.socket(family, socket.SOCK_DGRAM) as sock:
            sock.connect((probe_host, probe_port))
            local_address = sock.getsockname()[0]
    except OSError as exc:
        raise SamplingFailure(
            f"cannot determine outbound address via {probe_host}:{probe_port}: {exc}"
        ) from exc

    # Scoped IPv6 addresses carry a "%iface" suffix
    local_address = local_address.split("%", 1)[0]
    try:
        return ipaddress.ip_address(local_address)
    except ValueError as exc:
        raise SamplingFailure(f"unexpected local address {local_address!r}") from exc
