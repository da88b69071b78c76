"""Host facts: display metadata derived from the fact probes.

Nothing here is classified; the values only feed the report header and the
OS-family capability.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field

from readiness.checks.models import ProbeSet

logger = logging.getLogger(__name__)

# Fact probe names (see battery.py)
HOSTNAME = "hostname"
FQDN = "fqdn"
DEFAULT_IP = "default_ip"
OS_RELEASE = "os_release"
KERNEL = "kernel"
ARCHITECTURE = "architecture"
CPU_COUNT = "cpu_count"
MEMINFO = "meminfo"
UPTIME = "uptime_seconds"

_DISTRIBUTIONS = {
    "alpine": "Alpine",
    "debian": "Debian",
    "ubuntu": "Ubuntu",
    "raspbian": "Debian",
    "linuxmint": "Linux Mint",
    "centos": "CentOS",
    "rhel": "RedHat",
    "fedora": "Fedora",
    "rocky": "Rocky",
    "almalinux": "AlmaLinux",
}

_FAMILIES = {
    "alpine": "Alpine",
    "debian": "Debian",
    "ubuntu": "Debian",
    "rhel": "RedHat",
    "fedora": "RedHat",
    "centos": "RedHat",
    "suse": "Suse",
    "arch": "Archlinux",
}


@dataclass
class HostMeta:
    """Opaque display fields for the report header."""

    hostname: str = "unknown"
    fqdn: str = ""
    ip_address: str = "N/A"
    os_family: str = "unknown"
    distribution: str = "unknown"
    version: str = ""
    kernel: str = ""
    architecture: str = ""
    memory_mb: int = 0
    cpu_count: int = 0
    uptime_seconds: int = 0
    groups: list[str] = field(default_factory=list)


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``/etc/os-release`` KEY=value lines (values may be shell-quoted)."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw = line.split("=", 1)
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def os_family(probes: ProbeSet) -> str:
    """Map os-release ``ID`` / ``ID_LIKE`` onto an OS family name."""
    outcome = probes.get(OS_RELEASE)
    if not outcome.ok:
        return "unknown"
    release = parse_os_release(outcome.stdout)
    candidates = [release.get("ID", "")] + release.get("ID_LIKE", "").split()
    for candidate in candidates:
        family = _FAMILIES.get(candidate.lower())
        if family:
            return family
    return release.get("ID", "unknown").capitalize() or "unknown"


def _first_line(probes: ProbeSet, name: str, default: str = "") -> str:
    outcome = probes.get(name)
    if not outcome.ok or not outcome.lines:
        return default
    return outcome.lines[0].strip()


def _memory_mb(probes: ProbeSet) -> int:
    # "MemTotal:       16337376 kB"
    for line in probes.get(MEMINFO).lines:
        if line.startswith("MemTotal:"):
            fields = line.split()
            try:
                return int(fields[1]) // 1024
            except (IndexError, ValueError):
                logger.debug("Unparseable MemTotal line: %r", line)
    return 0


def _uptime_seconds(probes: ProbeSet) -> int:
    # "350735.47 234388.90"
    text = _first_line(probes, UPTIME)
    try:
        return int(float(text.split()[0]))
    except (IndexError, ValueError):
        return 0


def gather_host_meta(
    probes: ProbeSet,
    groups: list[str] | None = None,
    fallback_hostname: str = "unknown",
) -> HostMeta:
    """Build ``HostMeta`` from fact probes, falling back to neutral values."""
    release = parse_os_release(probes.get(OS_RELEASE).stdout) if probes.get(OS_RELEASE).ok else {}
    distro_id = release.get("ID", "").lower()

    hostname = _first_line(probes, HOSTNAME, fallback_hostname)
    return HostMeta(
        hostname=hostname,
        fqdn=_first_line(probes, FQDN, hostname),
        ip_address=_first_line(probes, DEFAULT_IP, "N/A"),
        os_family=os_family(probes),
        distribution=_DISTRIBUTIONS.get(distro_id, release.get("NAME", "unknown")),
        version=release.get("VERSION_ID", ""),
        kernel=_first_line(probes, KERNEL),
        architecture=_first_line(probes, ARCHITECTURE),
        memory_mb=_memory_mb(probes),
        cpu_count=probes.get(CPU_COUNT).count() if probes.get(CPU_COUNT).ok else 0,
        uptime_seconds=_uptime_seconds(probes),
        groups=list(groups or []),
    )
