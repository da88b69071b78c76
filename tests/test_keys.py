"""Tests for SSH private key formatting and deployment."""

import stat
from collections.abc import Callable
from pathlib import Path

import pytest

from readiness.checks.models import ProbeOutcome
from readiness.inventory import HostEntry
from readiness.keys import (
    BEGIN_MARKER,
    END_MARKER,
    KeyDeployment,
    KeyDeploymentError,
    deploy_key,
    deploy_to_hosts,
    format_private_key,
    render_deployment,
)
from readiness.probes.executor import LocalExecutor

from conftest import FakeExecutor

BODY = "b3BlbnNzaC1rZXktdjEAAAAABG5vbmUAAAAEbm9uZQAAAAAAAAABAAAAMwAAAAtzc2gtZW" * 2


@pytest.fixture
def target() -> HostEntry:
    return HostEntry(
        name="lxc-101",
        address="10.0.0.101",
        groups=["debian_migration_targets"],
        vars={"alpine_source": "alpine-01"},
    )


# ── Formatting ───────────────────────────────────────────────────────────────


class TestFormatPrivateKey:
    def test_mangled_input_is_rebuilt(self) -> None:
        mangled = f"{BEGIN_MARKER} {BODY[:50]}\r\n  {BODY[50:]} {END_MARKER}"
        formatted = format_private_key(mangled)
        lines = formatted.splitlines()

        assert lines[0] == BEGIN_MARKER
        assert lines[-1] == END_MARKER
        assert "".join(lines[1:-1]) == BODY
        assert all(len(line) == 64 for line in lines[1:-2])
        assert 0 < len(lines[-2]) <= 64
        assert formatted.endswith("\n")

    def test_idempotent(self) -> None:
        once = format_private_key(BODY)
        assert format_private_key(once) == once

    @pytest.mark.parametrize("content", ["", "   \n", f"{BEGIN_MARKER}\n{END_MARKER}"])
    def test_empty_body_rejected(self, content: str) -> None:
        with pytest.raises(KeyDeploymentError, match="empty"):
            format_private_key(content)


# ── Single host ──────────────────────────────────────────────────────────────


class TestDeployKey:
    def test_successful_deployment(self, target: HostEntry) -> None:
        executor = FakeExecutor({"ssh-keygen": ProbeOutcome(0, "ssh-ed25519 AAAAC3Nza root@alpine-01")})
        result = deploy_key(executor, target, BODY, key_path="/root/.ssh/id_rsa")

        assert result == KeyDeployment(
            host="lxc-101",
            alpine_source="alpine-01",
            key_path="/root/.ssh/id_rsa",
            valid=True,
            fingerprint_output="ssh-ed25519 AAAAC3Nza root@alpine-01",
        )
        commands = executor.commands
        assert commands[0] == "mkdir -p /root/.ssh && chmod 0700 /root/.ssh && chown root:root /root/.ssh"
        assert commands[1] == "umask 077 && cat > /root/.ssh/id_rsa"
        assert commands[2] == "chmod 0600 /root/.ssh/id_rsa && chown root:root /root/.ssh/id_rsa"
        assert commands[3] == "ssh-keygen -y -f /root/.ssh/id_rsa"
        assert all(become for _, become, _ in executor.calls)

    def test_key_travels_on_stdin(self, target: HostEntry) -> None:
        executor = FakeExecutor()
        deploy_key(executor, target, BODY)
        fed = [stdin for _, _, stdin in executor.calls if stdin is not None]
        assert fed == [format_private_key(BODY)]
        assert BODY[:64] not in " ".join(executor.commands)

    def test_root_login_without_sudo(self, tmp_path: Path, stub_commands: Callable[[str, str], None]) -> None:
        stub_commands("id", "echo 0")
        stub_commands("sudo", "echo 'sh: 1: sudo: not found' >&2; exit 127")
        stub_commands("chown", "exit 0")
        stub_commands("ssh-keygen", "echo 'ssh-ed25519 AAAAC3Nza root@alpine-01'")
        key_path = tmp_path / "ssh" / "id_rsa"

        result = deploy_key(LocalExecutor(), HostEntry(name="lxc", vars={"alpine_source": "alpine-01"}), BODY, str(key_path))

        assert result.valid
        assert key_path.read_text(encoding="utf-8") == format_private_key(BODY)
        assert stat.S_IMODE(key_path.stat().st_mode) == 0o600
        assert stat.S_IMODE(key_path.parent.stat().st_mode) == 0o700

    def test_missing_alpine_source(self) -> None:
        executor = FakeExecutor()
        host = HostEntry(name="lxc-102", groups=["debian_migration_targets"])
        with pytest.raises(KeyDeploymentError, match="alpine_source must be defined for lxc-102"):
            deploy_key(executor, host, BODY)
        assert executor.calls == []

    def test_invalid_key_reported(self, target: HostEntry) -> None:
        executor = FakeExecutor({"ssh-keygen": ProbeOutcome(255, "", "Load key: invalid format")})
        result = deploy_key(executor, target, BODY)
        assert not result.valid
        assert result.fingerprint_output == "Load key: invalid format"
        assert "✗ Invalid" in render_deployment(result)

    def test_failed_step_raises(self, target: HostEntry) -> None:
        executor = FakeExecutor({"umask 077": ProbeOutcome(1, "", "Read-only file system")})
        with pytest.raises(KeyDeploymentError, match="key write failed"):
            deploy_key(executor, target, BODY)
        assert not any(c.startswith("ssh-keygen") for c in executor.commands)

    def test_render(self, target: HostEntry) -> None:
        text = render_deployment(deploy_key(FakeExecutor(), target, BODY))
        assert "Target: lxc-101" in text
        assert "SSH Key: ✓ Deployed to /root/.ssh/id_rsa" in text
        assert "Alpine Source: alpine-01" in text
        assert "Key Status: ✓ Valid" in text


# ── Fan-out ──────────────────────────────────────────────────────────────────


class TestDeployToHosts:
    def test_per_host_results_in_order(self, target: HostEntry) -> None:
        orphan = HostEntry(name="lxc-102")
        results = deploy_to_hosts(
            [target, orphan], BODY, executor_factory=lambda _h: FakeExecutor(), max_workers=2,
        )
        assert isinstance(results[0], KeyDeployment)
        assert results[0].valid
        assert isinstance(results[1], KeyDeploymentError)
        assert "lxc-102" in str(results[1])

    @pytest.mark.parametrize("content", ["", "  \n\t"])
    def test_missing_key_fails_before_any_host(self, target: HostEntry, content: str) -> None:
        created: list[HostEntry] = []

        def factory(host: HostEntry) -> FakeExecutor:
            created.append(host)
            return FakeExecutor()

        with pytest.raises(KeyDeploymentError, match="must be provided"):
            deploy_to_hosts([target], content, executor_factory=factory)
        assert created == []

    def test_no_hosts(self) -> None:
        assert deploy_to_hosts([], BODY) == []
