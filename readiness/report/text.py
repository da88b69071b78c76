"""Plain-text readiness report for a single host.

The output is line oriented and deterministic for a given report and host
metadata: no timestamps, no colour codes. Routing the text to a console,
log or file is up to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from readiness.checks.models import CheckResult, Report, Status
from readiness.probes.facts import HostMeta

logger = logging.getLogger(__name__)

RULE = "=" * 64
DEFAULT_NAME_WIDTH = 30

SUCCESS_MESSAGE = "✅ Excellent! All critical checks passed. Server is ready for automation."
QUALIFIED_SUCCESS_MESSAGE = "✅ Good! No critical issues found. Address warnings when convenient."


def coerce_status(result: CheckResult) -> Status:
    """Return the result's status, treating unrecognized values as INFO."""
    if isinstance(result.status, Status):
        return result.status
    try:
        return Status(str(result.status).upper())
    except ValueError:
        logger.warning("Unrecognized status %r on check %r; rendering as INFO", result.status, result.name)
        return Status.INFO


def partition(
    results: Iterable[CheckResult],
) -> tuple[list[CheckResult], list[CheckResult], list[CheckResult]]:
    """Stable split into (FAIL, WARN, everything else)."""
    failed: list[CheckResult] = []
    warned: list[CheckResult] = []
    other: list[CheckResult] = []
    for result in results:
        status = coerce_status(result)
        if status == Status.FAIL:
            failed.append(result)
        elif status == Status.WARN:
            warned.append(result)
        else:
            other.append(result)
    return failed, warned, other


def closing_message(failed: list[CheckResult], warned: list[CheckResult]) -> str | None:
    """Success, qualified success, or nothing when there are failures."""
    if failed:
        return None
    if warned:
        return QUALIFIED_SUCCESS_MESSAGE
    return SUCCESS_MESSAGE


def verdict(report: Iterable[CheckResult]) -> Status:
    """Overall host verdict: FAIL beats WARN beats PASS."""
    failed, warned, _ = partition(report)
    if failed:
        return Status.FAIL
    if warned:
        return Status.WARN
    return Status.PASS


def _one_line(details: str) -> str:
    # Probe output (ssh warnings, stderr) may span lines
    return " / ".join(line.strip() for line in details.splitlines() if line.strip())


def format_check_line(result: CheckResult, name_width: int = DEFAULT_NAME_WIDTH) -> str:
    name = f"{result.name:<{name_width}.{name_width}}"
    return f"{name} [{coerce_status(result).value}] {_one_line(result.details)}"


def _header(meta: HostMeta) -> list[str]:
    days, remainder = divmod(meta.uptime_seconds, 86400)
    hours = remainder // 3600
    lines = [
        RULE,
        f"INFRASTRUCTURE READINESS REPORT FOR {meta.hostname}",
        RULE,
        "",
        "Server Details:",
        f"- Hostname: {meta.hostname} ({meta.fqdn or meta.hostname})",
        f"- IP Address: {meta.ip_address}",
        f"- OS: {meta.distribution} {meta.version}".rstrip(),
        f"- Kernel: {meta.kernel}",
        f"- Architecture: {meta.architecture}",
        f"- Memory: {meta.memory_mb / 1024:.1f}GB",
        f"- CPU Cores: {meta.cpu_count}",
        f"- Uptime: {days} days, {hours} hours",
        "",
        "Group Memberships:",
    ]
    lines.extend(f"- {group}" for group in meta.groups)
    return lines


def _section(title: str, results: list[CheckResult]) -> list[str]:
    lines = ["", f"{title} ({len(results)}):"]
    lines.extend(f"- {r.name}: {_one_line(r.details)}" for r in results)
    return lines


def render(report: Report, meta: HostMeta, name_width: int = DEFAULT_NAME_WIDTH) -> str:
    """Render one host's report as text."""
    lines = _header(meta)
    lines.append(RULE)
    lines.extend(format_check_line(r, name_width) for r in report)
    lines.append(RULE)

    failed, warned, _ = partition(report)
    if failed:
        lines.extend(_section("🚨 CRITICAL ISSUES", failed))
    if warned:
        lines.extend(_section("⚠️  WARNINGS", warned))

    closing = closing_message(failed, warned)
    if closing:
        lines.extend(["", closing])

    return "\n".join(lines) + "\n"
