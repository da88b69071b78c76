"""Check aggregator: applies registered rules and accumulates the report."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from readiness.checks.capabilities import detect_capabilities
from readiness.checks.models import NOT_AVAILABLE, CheckResult, ProbeSet, Report, Status
from readiness.checks.rules import CHECK_ORDER, REGISTRY, CheckDefinition

logger = logging.getLogger(__name__)


class ReportSchemaError(Exception):
    """Raised when a rule key is unknown or a rule breaks its promised names."""


class CheckAggregator:
    """Owns one host's report and appends rule output to it in call order."""

    def __init__(self, registry: Mapping[str, CheckDefinition] | None = None) -> None:
        self._registry = REGISTRY if registry is None else registry
        self.report = Report()

    def apply(
        self,
        key: str,
        probes: ProbeSet,
        capabilities: frozenset[str] = frozenset(),
    ) -> list[CheckResult]:
        """Classify the probes for rule ``key`` and append the records."""
        definition = self._registry.get(key)
        if definition is None:
            raise ReportSchemaError(f"No classification rule registered for {key!r}")

        if not self._can_evaluate(definition, probes, capabilities):
            results = [CheckResult(name, Status.INFO, NOT_AVAILABLE) for name in definition.names]
        else:
            results = list(definition.classify(probes))
            produced = tuple(r.name for r in results)
            if produced != definition.names:
                raise ReportSchemaError(
                    f"Rule {key!r} produced {produced}, expected {definition.names}"
                )

        for result in results:
            self.report.add(result)
        return results

    def run(self, probes: ProbeSet, order: Iterable[str] = CHECK_ORDER) -> Report:
        """Apply every rule in ``order`` and return the finished report."""
        capabilities = detect_capabilities(probes)
        logger.debug("Capabilities: %s", ", ".join(sorted(capabilities)) or "none")
        for key in order:
            self.apply(key, probes, capabilities)
        return self.report

    @staticmethod
    def _can_evaluate(
        definition: CheckDefinition,
        probes: ProbeSet,
        capabilities: frozenset[str],
    ) -> bool:
        if definition.requires and definition.requires not in capabilities:
            logger.debug("Rule %s skipped: missing capability %s", definition.key, definition.requires)
            return False
        if definition.probes and not any(probes.get(p).ran for p in definition.probes):
            logger.debug("Rule %s skipped: none of its probes ran", definition.key)
            return False
        return True


def aggregate(probes: ProbeSet) -> Report:
    """Build a full report for one host's probe set."""
    return CheckAggregator().run(probes)
