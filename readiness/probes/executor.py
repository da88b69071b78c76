"""Command executors: run one probe command and return its outcome.

Executors never raise for a failing command. Timeouts, missing binaries and
unreachable hosts come back as ``ProbeOutcome`` values with conventional exit
codes (124, 127, 255).
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from abc import ABC, abstractmethod

from readiness.checks.models import NOT_FOUND_RC, TIMEOUT_RC, ProbeOutcome
from readiness.config import settings
from readiness.inventory import HostEntry

logger = logging.getLogger(__name__)


def _become(command: str) -> str:
    """Wrap a command for non-interactive privilege escalation.

    A root login runs the command as is; anyone else goes through ``sudo -n``.
    """
    quoted = shlex.quote(command)
    return f'if [ "$(id -u)" -eq 0 ]; then sh -c {quoted}; else sudo -n sh -c {quoted}; fi'


def _run_subprocess(argv: list[str], timeout_s: int, stdin: str | None = None) -> ProbeOutcome:
    """Run argv without a shell and capture the result."""
    try:
        proc = subprocess.run(
            argv,
            input=stdin,
            stdin=None if stdin is not None else subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
        return ProbeOutcome(proc.returncode, (proc.stdout or "").rstrip(), (proc.stderr or "").rstrip())
    except FileNotFoundError:
        return ProbeOutcome(NOT_FOUND_RC, "", f"Command not found: {argv[0]}")
    except subprocess.TimeoutExpired:
        return ProbeOutcome(TIMEOUT_RC, "", f"Timed out after {timeout_s}s")


class Executor(ABC):
    """Transport for probe commands."""

    def run(
        self,
        command: str,
        timeout_s: int | None = None,
        become: bool = False,
        stdin: str | None = None,
    ) -> ProbeOutcome:
        """Run ``command`` through ``sh -c`` on the target.

        ``stdin`` is fed to the command and never logged; secrets go there
        rather than into the command line.
        """
        timeout = timeout_s or settings.probe_timeout
        script = _become(command) if become else command
        t0 = time.perf_counter()
        outcome = self._execute(script, timeout, stdin)
        logger.debug(
            "%s: %s%s → rc=%d (%.0fms)",
            self.target,
            command,
            " <stdin>" if stdin is not None else "",
            outcome.rc,
            (time.perf_counter() - t0) * 1000,
        )
        return outcome

    @property
    @abstractmethod
    def target(self) -> str:
        ...

    @abstractmethod
    def _execute(self, script: str, timeout_s: int, stdin: str | None = None) -> ProbeOutcome:
        ...


class LocalExecutor(Executor):
    """Runs commands on this machine."""

    @property
    def target(self) -> str:
        return "localhost"

    def _execute(self, script: str, timeout_s: int, stdin: str | None = None) -> ProbeOutcome:
        return _run_subprocess(["sh", "-c", script], timeout_s, stdin)


class SshExecutor(Executor):
    """Runs commands on a remote host through the system ``ssh`` client.

    Batch mode is always on: a host that wants a password is reported as
    unreachable (ssh exits 255) instead of hanging the run.
    """

    def __init__(
        self,
        address: str,
        user: str = "",
        port: int = 22,
        identity_file: str = "",
        connect_timeout: int = 10,
    ) -> None:
        self.address = address
        self.user = user
        self.port = port
        self.identity_file = identity_file
        self.connect_timeout = connect_timeout

    @property
    def target(self) -> str:
        return f"{self.user}@{self.address}" if self.user else self.address

    def ssh_argv(self, script: str) -> list[str]:
        argv = [
            "ssh",
            "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={self.connect_timeout}",
            "-o", "StrictHostKeyChecking=accept-new",
            "-p", str(self.port),
        ]
        if self.identity_file:
            argv += ["-i", self.identity_file]
        argv += [self.target, f"sh -c {shlex.quote(script)}"]
        return argv

    def _execute(self, script: str, timeout_s: int, stdin: str | None = None) -> ProbeOutcome:
        return _run_subprocess(self.ssh_argv(script), timeout_s, stdin)


def executor_for(host: HostEntry) -> Executor:
    """Pick the transport for an inventory host."""
    if host.connection == "local":
        return LocalExecutor()
    return SshExecutor(
        address=host.address or host.name,
        user=host.user or settings.ssh_user,
        port=host.port or settings.ssh_port,
        identity_file=host.identity_file or settings.ssh_identity_file,
        connect_timeout=settings.ssh_connect_timeout,
    )
