"""Check models: severity tags, probe outcomes, check results and the report.

A ``ProbeOutcome`` is raw data from one diagnostic command. Rules turn
outcomes into ``CheckResult`` records which are appended, in order, to a
per-host ``Report``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum


# ── Severity ─────────────────────────────────────────────────────────────────


class Status(str, Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"
    INFO = "INFO"


# ── Probe outcomes ───────────────────────────────────────────────────────────

TIMEOUT_RC = 124
NOT_FOUND_RC = 127
UNREACHABLE_RC = 255


@dataclass(frozen=True)
class ProbeOutcome:
    """Exit code and captured output of a single probe command."""

    rc: int
    stdout: str = ""
    stderr: str = ""
    ran: bool = True

    @property
    def ok(self) -> bool:
        return self.ran and self.rc == 0

    @property
    def lines(self) -> list[str]:
        """Non-blank stdout lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]

    def count(self, default: int = 0) -> int:
        """Parse stdout as an integer (``wc -l`` style output)."""
        try:
            return int(self.stdout.strip())
        except ValueError:
            return default


NOT_RUN = ProbeOutcome(rc=-1, ran=False)
NOT_AVAILABLE = "not available"


class ProbeSet:
    """Probe name → outcome. Absent probes read as ``NOT_RUN``."""

    def __init__(self, outcomes: Mapping[str, ProbeOutcome] | None = None) -> None:
        self._outcomes: dict[str, ProbeOutcome] = dict(outcomes or {})

    def record(self, name: str, outcome: ProbeOutcome) -> None:
        self._outcomes[name] = outcome

    def get(self, name: str) -> ProbeOutcome:
        return self._outcomes.get(name, NOT_RUN)

    def __getitem__(self, name: str) -> ProbeOutcome:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._outcomes

    def __len__(self) -> int:
        return len(self._outcomes)

    def names(self, prefix: str = "") -> list[str]:
        """Recorded probe names in execution order, optionally filtered by prefix."""
        return [n for n in self._outcomes if n.startswith(prefix)]


# ── Check results ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CheckResult:
    """Normalized outcome of classifying one probe (or probe group)."""

    name: str
    status: Status
    details: str = ""


class Report:
    """Ordered, append-only collection of check results for one host."""

    def __init__(self) -> None:
        self._results: list[CheckResult] = []

    def add(self, result: CheckResult) -> None:
        self._results.append(result)

    def __iter__(self) -> Iterator[CheckResult]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __getitem__(self, index: int) -> CheckResult:
        return self._results[index]

    @property
    def results(self) -> tuple[CheckResult, ...]:
        return tuple(self._results)

    def by_status(self, status: Status) -> list[CheckResult]:
        return [r for r in self._results if r.status == status]
