from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from readiness.report.text import coerce_status, verdict

if TYPE_CHECKING:
    from readiness.runner import HostRun


def run_to_dict(run: HostRun) -> dict[str, Any]:
    return {
        "host": run.host.name,
        "verdict": verdict(run.report).value,
        "meta": asdict(run.meta),
        "checks": [
            {"name": r.name, "status": coerce_status(r).value, "details": r.details}
            for r in run.report
        ],
    }


def to_json(runs: list[HostRun]) -> str:
    return json.dumps([run_to_dict(r) for r in runs], indent=2, ensure_ascii=False)
