"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from readiness.checks.models import ProbeOutcome, ProbeSet
from readiness.probes.executor import Executor

DEBIAN_OS_RELEASE = """\
PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
NAME="Debian GNU/Linux"
VERSION_ID="12"
VERSION="12 (bookworm)"
ID=debian
"""

ALPINE_OS_RELEASE = """\
NAME="Alpine Linux"
ID=alpine
VERSION_ID=3.19.1
PRETTY_NAME="Alpine Linux v3.19"
"""

IPTABLES_WITH_RULES = """\
Chain INPUT (policy DROP)
target     prot opt source               destination
ACCEPT     tcp  --  0.0.0.0/0            0.0.0.0/0            tcp dpt:22
Chain FORWARD (policy DROP)
Chain OUTPUT (policy ACCEPT)"""


def ok(stdout: str = "") -> ProbeOutcome:
    return ProbeOutcome(0, stdout)


def failed(rc: int = 1, stderr: str = "") -> ProbeOutcome:
    return ProbeOutcome(rc, "", stderr)


def _base_outcomes() -> dict[str, ProbeOutcome]:
    return {
        "ping": ok("pong"),
        "whoami": ok("deploy"),
        "user_id": ok("uid=1000(deploy) gid=1000(deploy) groups=1000(deploy),27(sudo)"),
        "effective_user": ok("root"),
        "sudo": ok("(ALL : ALL) ALL"),
        "user_home": ok("/home/deploy"),
        "user_shell": ok("/bin/bash"),
        "auth_method": ok("SSH key authentication (2 keys)"),
        "hostname": ok("web-01"),
        "fqdn": ok("web-01.example.internal"),
        "default_ip": ok("10.0.0.21"),
        "kernel": ok("6.1.0-18-amd64"),
        "architecture": ok("x86_64"),
        "cpu_count": ok("4"),
        "meminfo": ok("MemTotal:        8147484 kB"),
        "uptime_seconds": ok("356400.52 1200000.10"),
        "python3": ok("Python 3.11.2"),
        "pip": ok("pip 23.0.1 from /usr/lib/python3/dist-packages/pip (python 3.11)"),
        "disk_space": ok("/dev/sda1:41G:12%\n/dev/sdb1:900G:40%"),
        "memory": ok("Total:7956MB Used:1200MB Available:6400MB Usage:15.1%"),
        "load": ok("0.08, 0.03, 0.01"),
        "external_http": ok("200"),
        "dns": ok("Name:\tgoogle.com\nAddress: 142.250.74.46"),
        "https": ok("200"),
        "sshd_config": ok(),
        "sshd_process": ok("2"),
        "firewall": ok(IPTABLES_WITH_RULES),
        "tool:curl": ok("/usr/bin/curl"),
        "tool:git": ok("/usr/bin/git"),
        "tool:rsync": failed(),
        "timedatectl": ok("Local time: Sat 2026-10-17\nSystem clock synchronized: yes\nNTP service: active"),
    }


def _debian_outcomes() -> dict[str, ProbeOutcome]:
    outcomes = _base_outcomes()
    outcomes.update({
        "os_release": ok(DEBIAN_OS_RELEASE),
        "apt_version": ok("apt 2.6.1 (amd64)\n"),
        "apt_lists_fresh": ok("14"),
        "lsb_release": ok("Distributor ID:\tDebian\nDescription:\tDebian GNU/Linux 12 (bookworm)"),
        "systemd": ok("running"),
        "apt_sources": ok("/etc/apt/sources.list\n/etc/apt/sources.list.d/docker.list"),
    })
    return outcomes


def _docker_outcomes() -> dict[str, ProbeOutcome]:
    return {
        "docker_version": ok("Docker version 24.0.7, build afdd53b"),
        "dockerd_process": ok("1"),
        "docker_info": ok("Server Version: 24.0.7"),
        "docker_pull": ok("Status: Image is up to date for hello-world:latest"),
        "docker_run": ok("Hello from Docker!"),
        "docker_rmi": ok("Untagged: hello-world:latest"),
        "docker_disk_usage": ok("TYPE  TOTAL  ACTIVE  SIZE  RECLAIMABLE"),
        "docker_networks": ok("NETWORK ID     NAME      DRIVER    SCOPE\nabc  bridge  bridge  local\ndef  host  host  local\n123  none  null  local"),
        "docker_volumes": ok("DRIVER    VOLUME NAME\nlocal     pgdata"),
        "docker_containers": ok("NAMES     STATUS         PORTS\npostgres  Up 3 days      5432/tcp\nnginx     Up 3 days      80/tcp"),
    }


@pytest.fixture
def debian_probes() -> ProbeSet:
    """A healthy Debian host without Docker."""
    outcomes = _debian_outcomes()
    outcomes["docker_version"] = failed(127, "sh: docker: not found")
    return ProbeSet(outcomes)


@pytest.fixture
def debian_docker_probes() -> ProbeSet:
    """A healthy Debian host with a working Docker engine."""
    outcomes = _debian_outcomes()
    outcomes.update(_docker_outcomes())
    return ProbeSet(outcomes)


@pytest.fixture
def alpine_probes() -> ProbeSet:
    """An Alpine host (no systemd, no timedatectl, no Docker)."""
    outcomes = _base_outcomes()
    outcomes.update({
        "os_release": ok(ALPINE_OS_RELEASE),
        "apk_version": ok("apk-tools 2.14.0, compiled for x86_64."),
        "apk_update": ok(),
        "alpine_release": ok("3.19.1"),
        "apk_repositories": ok("https://dl-cdn.alpinelinux.org/alpine/v3.19/main\n#https://dl-cdn.alpinelinux.org/alpine/v3.19/testing\nhttps://dl-cdn.alpinelinux.org/alpine/v3.19/community"),
        "openrc": ok("Runlevel: default\n sshd  [ started ]"),
        "timedatectl": failed(127, "sh: timedatectl: not found"),
        "docker_version": failed(127, "sh: docker: not found"),
    })
    return ProbeSet(outcomes)


class FakeExecutor(Executor):
    """Answers commands from a table of substring → outcome; records calls."""

    def __init__(
        self,
        responses: dict[str, ProbeOutcome] | None = None,
        default: ProbeOutcome | None = None,
    ) -> None:
        self.responses = responses or {}
        self.default = default or ProbeOutcome(0, "")
        self.calls: list[tuple[str, bool, str | None]] = []

    @property
    def target(self) -> str:
        return "fake-host"

    def run(
        self,
        command: str,
        timeout_s: int | None = None,
        become: bool = False,
        stdin: str | None = None,
    ) -> ProbeOutcome:
        self.calls.append((command, become, stdin))
        return self._execute(command, timeout_s or 0)

    def _execute(self, script: str, timeout_s: int, stdin: str | None = None) -> ProbeOutcome:
        for needle, outcome in self.responses.items():
            if needle in script:
                return outcome
        return self.default

    @property
    def commands(self) -> list[str]:
        return [c for c, _, _ in self.calls]


@pytest.fixture
def fake_executor() -> Callable[..., FakeExecutor]:
    """Factory for scripted executors."""
    return FakeExecutor


@pytest.fixture
def stub_commands(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[[str, str], None]:
    """Install shell stubs ahead of the real PATH for LocalExecutor tests."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    def install(name: str, body: str) -> None:
        stub = bin_dir / name
        stub.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        stub.chmod(0o755)

    return install
