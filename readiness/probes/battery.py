"""The probe battery: the fixed, ordered list of read-only diagnostic commands.

Probes that need a capability (OS family, Docker daemon) are skipped when the
capability is missing; they are simply absent from the collected
``ProbeSet`` and read as ``NOT_RUN`` afterwards.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass

from readiness.checks.capabilities import ALPINE, DEBIAN, DOCKER, DOCKER_DAEMON, DOCKER_IMAGE, detect_capabilities
from readiness.checks.models import ProbeSet
from readiness.checks.rules import TOOL_PROBE_PREFIX
from readiness.config import Settings, settings as default_settings
from readiness.probes import facts
from readiness.probes.executor import Executor

logger = logging.getLogger(__name__)

CONNECTIVITY_PROBE = "ping"
DOCKER_PROBE_TIMEOUT = 30

_AUTH_METHOD_SCRIPT = """\
if [ -n "$SSH_AUTH_SOCK" ]; then
  echo "SSH Agent authentication"
elif [ -f ~/.ssh/authorized_keys ] && [ -s ~/.ssh/authorized_keys ]; then
  echo "SSH key authentication ($(wc -l < ~/.ssh/authorized_keys) keys)"
else
  echo "Authentication method unclear"
fi"""


@dataclass(frozen=True)
class ProbeSpec:
    """One diagnostic command in the battery."""

    name: str
    command: str
    timeout_s: int | None = None
    become: bool = False
    requires: str | None = None


def _process_count(pattern: str) -> str:
    return f"ps aux | grep -v grep | grep {shlex.quote(pattern)} | wc -l"


def _http_code(url: str, max_time: int) -> str:
    return f"curl -s -k -I -o /dev/null --max-time {max_time} -w '%{{http_code}}' {shlex.quote(url)}"


def build_battery(cfg: Settings | None = None) -> list[ProbeSpec]:
    """Return the probe battery in execution order."""
    cfg = cfg or default_settings
    image = shlex.quote(cfg.docker_test_image)

    battery = [
        ProbeSpec(CONNECTIVITY_PROBE, "echo pong", timeout_s=cfg.ssh_connect_timeout + 5),
        # User and authentication
        ProbeSpec("whoami", "whoami"),
        ProbeSpec("user_id", "id"),
        ProbeSpec("effective_user", "whoami", become=True),
        ProbeSpec("sudo", "sudo -n -l"),
        ProbeSpec("user_home", "echo $HOME"),
        ProbeSpec("user_shell", "echo $SHELL"),
        ProbeSpec("auth_method", _AUTH_METHOD_SCRIPT),
        # Host facts
        ProbeSpec(facts.HOSTNAME, "hostname"),
        ProbeSpec(facts.FQDN, "hostname -f 2>/dev/null || hostname"),
        ProbeSpec(
            facts.DEFAULT_IP,
            "ip route get 1.1.1.1 2>/dev/null | awk '{for (i = 1; i < NF; i++) if ($i == \"src\") print $(i + 1)}'",
        ),
        ProbeSpec(facts.OS_RELEASE, "cat /etc/os-release"),
        ProbeSpec(facts.KERNEL, "uname -r"),
        ProbeSpec(facts.ARCHITECTURE, "uname -m"),
        ProbeSpec(facts.CPU_COUNT, "nproc"),
        ProbeSpec(facts.MEMINFO, "grep MemTotal /proc/meminfo"),
        ProbeSpec(facts.UPTIME, "cat /proc/uptime"),
        # Python
        ProbeSpec("python3", "python3 --version"),
        ProbeSpec("pip", "python3 -m pip --version"),
        # Package managers
        ProbeSpec("apk_version", "apk --version", requires=ALPINE),
        ProbeSpec("apk_update", "apk update --quiet", become=True, requires=ALPINE),
        ProbeSpec("apt_version", "apt --version", requires=DEBIAN),
        ProbeSpec(
            "apt_lists_fresh",
            "find /var/lib/apt/lists -maxdepth 1 -type f -mtime -1 | wc -l",
            requires=DEBIAN,
        ),
        # Resources
        ProbeSpec("disk_space", "df -h | grep -E '^/dev|^overlay' | awk '{print $1\":\"$4\":\"$5}'"),
        ProbeSpec(
            "memory",
            "free -m | awk 'NR==2{printf \"Total:%sMB Used:%sMB Available:%sMB Usage:%.1f%%\", "
            "$2, $3, $7, ($3/$2)*100}'",
        ),
        ProbeSpec("load", "uptime | awk -F'load average:' '{print $2}' | sed 's/^[ \\t]*//'"),
        # Network
        ProbeSpec("external_http", _http_code(cfg.external_check_url, 5), timeout_s=15),
        ProbeSpec("dns", f"nslookup {shlex.quote(cfg.dns_lookup_host)}"),
        ProbeSpec("https", _http_code(cfg.https_check_url, 10), timeout_s=20),
        # SSH and security
        ProbeSpec("sshd_config", "test -f /etc/ssh/sshd_config"),
        ProbeSpec("sshd_process", _process_count("sshd")),
        ProbeSpec("firewall", "iptables -L -n", become=True),
    ]

    battery += [
        ProbeSpec(f"{TOOL_PROBE_PREFIX}{tool}", f"which {shlex.quote(tool)}")
        for tool in cfg.essential_tools
    ]

    battery += [
        # Alpine specific
        ProbeSpec("alpine_release", "cat /etc/alpine-release", requires=ALPINE),
        ProbeSpec("apk_repositories", "cat /etc/apk/repositories", requires=ALPINE),
        ProbeSpec("openrc", "rc-status", requires=ALPINE),
        # Debian specific
        ProbeSpec("lsb_release", "lsb_release -a", requires=DEBIAN),
        ProbeSpec("systemd", "systemctl is-system-running", requires=DEBIAN),
        ProbeSpec("apt_sources", "find /etc/apt/sources.list* -type f 2>/dev/null", requires=DEBIAN),
        # Docker
        ProbeSpec("docker_version", "docker --version"),
        ProbeSpec("dockerd_process", _process_count("dockerd"), requires=DOCKER),
        ProbeSpec("docker_info", "docker info", requires=DOCKER),
        ProbeSpec("docker_pull", f"docker pull {image}", timeout_s=DOCKER_PROBE_TIMEOUT, requires=DOCKER_DAEMON),
        ProbeSpec("docker_run", f"docker run --rm {image}", timeout_s=DOCKER_PROBE_TIMEOUT, requires=DOCKER_DAEMON),
        ProbeSpec("docker_rmi", f"docker rmi {image}", requires=DOCKER_IMAGE),
        ProbeSpec("docker_disk_usage", "docker system df", requires=DOCKER_DAEMON),
        ProbeSpec("docker_networks", "docker network ls", requires=DOCKER_DAEMON),
        ProbeSpec("docker_volumes", "docker volume ls", requires=DOCKER_DAEMON),
        ProbeSpec(
            "docker_containers",
            "docker ps --format 'table {{.Names}}\\t{{.Status}}\\t{{.Ports}}'",
            requires=DOCKER_DAEMON,
        ),
        # Time
        ProbeSpec("timedatectl", "timedatectl status"),
    ]
    return battery


def collect(executor: Executor, battery: list[ProbeSpec] | None = None) -> ProbeSet:
    """Run the battery in order against one target.

    Collection stops after a failed connectivity probe; everything after it
    stays ``NOT_RUN``.
    """
    probes = ProbeSet()
    for spec in battery if battery is not None else build_battery():
        if spec.requires and spec.requires not in detect_capabilities(probes):
            logger.debug("%s: skipping %s (needs %s)", executor.target, spec.name, spec.requires)
            continue

        outcome = executor.run(spec.command, timeout_s=spec.timeout_s, become=spec.become)
        probes.record(spec.name, outcome)

        if spec.name == CONNECTIVITY_PROBE and not outcome.ok:
            logger.warning(
                "%s unreachable (rc=%d): %s", executor.target, outcome.rc, outcome.stderr or "no output",
            )
            break

    logger.info("%s: collected %d probes", executor.target, len(probes))
    return probes
