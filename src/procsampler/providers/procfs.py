"""Direct /proc readers for fields psutil does not expose.

All paths go through a :class:`HostFSResolver` so a host /proc mounted
under an alternate root is read instead of the container's own.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from procsampler.resolve import HostFSResolver

logger = logging.getLogger(__name__)

# Files holding "Proto: name name ...\nProto: value value ..." line pairs.
_NETWORK_FILES = ("net/snmp", "net/netstat")

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


@dataclass(frozen=True, slots=True)
class ProcStat:
    """Selected fields of /proc/<pid>/stat."""

    state: str
    ppid: int
    pgrp: int
    starttime: int  # clock ticks since boot


def read_proc_stat(resolver: HostFSResolver, pid: int) -> ProcStat | None:
    """Parse /proc/<pid>/stat, or return None if it cannot be read.

    Uses rfind(')') to handle comm fields containing spaces or parentheses.
    """
    path = resolver.resolve(f"/proc/{pid}/stat")
    try:
        with open(path) as f:
            stat = f.read()
        end_comm = stat.rfind(")")
        fields = stat[end_comm + 2 :].split()
        return ProcStat(
            state=fields[0],
            ppid=int(fields[1]),
            pgrp=int(fields[2]),
            starttime=int(fields[19]),  # field 22, index 19 after comm
        )
    except (FileNotFoundError, ProcessLookupError, PermissionError, IndexError, ValueError):
        return None


def _group_name(proto: str) -> str:
    """Group key for a table prefix, split at lower-to-upper case boundaries.

    ``Ip`` -> ``ip``, ``TcpExt`` -> ``tcp_ext``, ``IcmpMsg`` -> ``icmp_msg``,
    ``UdpLite`` -> ``udp_lite``, ``MPTcpExt`` -> ``mptcp_ext``.  Only group keys are
    renamed; counter names inside a group keep their kernel spelling, and
    those are what the network metric patterns match.
    """
    return _CAMEL_RE.sub("_", proto).lower()


def parse_network_table(content: str) -> dict[str, dict[str, int]]:
    """Parse the header/value line pairs of /proc/net/{snmp,netstat}.

    Pure function, no filesystem access.  Lines that do
    not pair up (mismatched prefix or column count) are skipped.
    """
    result: dict[str, dict[str, int]] = {}
    lines = [line for line in content.splitlines() if line.strip()]
    for header, values in zip(lines[::2], lines[1::2]):
        h_proto, _, h_rest = header.partition(":")
        v_proto, _, v_rest = values.partition(":")
        if h_proto != v_proto:
            logger.debug("Mismatched network table lines %r / %r", h_proto, v_proto)
            continue
        names = h_rest.split()
        raw_values = v_rest.split()
        if len(names) != len(raw_values):
            continue
        group = result.setdefault(_group_name(h_proto.strip()), {})
        for name, raw in zip(names, raw_values):
            try:
                group[name] = int(raw)
            except ValueError:
                continue
    return result


def read_network_counters(resolver: HostFSResolver, pid: int) -> dict[str, dict[str, int]] | None:
    """Read the network namespace counters visible to *pid*.

    Returns None when none of the source files could be read.
    """
    result: dict[str, dict[str, int]] = {}
    found = False
    for name in _NETWORK_FILES:
        path = resolver.resolve(f"/proc/{pid}/{name}")
        try:
            with open(path) as f:
                content = f.read()
        except (FileNotFoundError, ProcessLookupError, PermissionError):
            continue
        found = True
        for group, metrics in parse_network_table(content).items():
            result.setdefault(group, {}).update(metrics)
    return result if found else None
