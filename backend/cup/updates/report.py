"""
JSON report served at /api/v3/json and consumed by peer servers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from cup.status import Status
from cup.updates.types import CheckResult


def build_metrics(results: Iterable[CheckResult]) -> Dict[str, int]:
    """
    Count results by outcome.

    Unknown results are only counted under `unknown` and never as updates.
    """
    metrics = {
        "monitored_images": 0,
        "up_to_date": 0,
        "updates_available": 0,
        "major_updates": 0,
        "minor_updates": 0,
        "patch_updates": 0,
        "other_updates": 0,
        "unknown": 0,
    }
    for result in results:
        metrics["monitored_images"] += 1
        status = result.status
        if status is Status.UNKNOWN:
            metrics["unknown"] += 1
        elif status is Status.UP_TO_DATE:
            metrics["up_to_date"] += 1
        else:
            metrics["updates_available"] += 1
            if status is Status.MAJOR:
                metrics["major_updates"] += 1
            elif status is Status.MINOR:
                metrics["minor_updates"] += 1
            elif status is Status.PATCH:
                metrics["patch_updates"] += 1
            else:
                metrics["other_updates"] += 1
    return metrics


def build_report(results: List[CheckResult], last_updated: Optional[datetime] = None) -> Dict[str, Any]:
    """Report document: metrics, one entry per image, and the refresh time."""
    last_updated = last_updated or datetime.now(timezone.utc)
    return {
        "metrics": build_metrics(results),
        "images": [result.to_report_entry() for result in results],
        "last_updated": last_updated.isoformat(),
    }
