"""Per-host readiness runs and the concurrent fan-out across hosts.

Each host run owns its probe set and report; nothing is shared between
hosts, so the pool needs no synchronization beyond collecting results.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from readiness.checks.aggregator import CheckAggregator
from readiness.checks.models import Report, Status
from readiness.config import settings
from readiness.inventory import HostEntry
from readiness.probes.battery import ProbeSpec, build_battery, collect
from readiness.probes.executor import Executor, executor_for
from readiness.probes.facts import HostMeta, gather_host_meta
from readiness.report.text import render, verdict

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[HostEntry], Executor]


@dataclass
class HostRun:
    """Finished readiness run for one host."""

    host: HostEntry
    report: Report
    meta: HostMeta
    text: str

    @property
    def verdict(self) -> Status:
        return verdict(self.report)


def check_host(
    host: HostEntry,
    executor: Executor,
    battery: list[ProbeSpec] | None = None,
    name_width: int | None = None,
) -> HostRun:
    """Collect, classify and render one host."""
    probes = collect(executor, battery)
    report = CheckAggregator().run(probes)
    meta = gather_host_meta(probes, groups=host.groups, fallback_hostname=host.name)
    text = render(report, meta, name_width=name_width or settings.name_width)
    run = HostRun(host=host, report=report, meta=meta, text=text)
    logger.info("%s: %d checks, verdict %s", host.name, len(report), run.verdict.value)
    return run


def check_hosts(
    hosts: list[HostEntry],
    executor_factory: ExecutorFactory = executor_for,
    max_workers: int | None = None,
) -> list[HostRun]:
    """Run every host concurrently; results come back in inventory order."""
    if not hosts:
        return []

    battery = build_battery()
    workers = max(1, min(max_workers or settings.max_workers, len(hosts)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="readiness") as pool:
        futures = [
            pool.submit(check_host, host, executor_factory(host), battery)
            for host in hosts
        ]
        return [f.result() for f in futures]
