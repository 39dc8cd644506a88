"""Run report: summary counts, configuration and per-scenario detail."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import ClaimResult, ResultStatus, ScenarioResult


REPORT_PREFIX = "agglayer_test_results_"


def _success_rate(successful: int, total: int) -> str:
    if total == 0:
        return "0"
    return f"{successful / total * 100:.1f}"


def build_report(
    results: List[ScenarioResult],
    claim_results: Iterable[ClaimResult] = (),
    *,
    dry_run: bool,
    configuration: Dict[str, Any],
    pending_claims: int = 0,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    claims = list(claim_results)
    successful = sum(1 for r in results if r.succeeded)
    failed = sum(1 for r in results if r.status == ResultStatus.FAILED)
    skipped = sum(1 for r in results if r.status == ResultStatus.SKIPPED)
    timestamp = now or datetime.now(timezone.utc)

    return {
        "timestamp": timestamp.isoformat(),
        "mode": "DRY_RUN" if dry_run else "LIVE",
        "summary": {
            "total": len(results),
            "successful": successful,
            "failed": failed,
            "skipped": skipped,
            "successRate": _success_rate(successful, len(results)),
        },
        "claims": {
            "attempted": len(claims),
            "successful": sum(1 for c in claims if c.success),
            "failed": sum(1 for c in claims if not c.success),
            "pending": pending_claims,
            "results": [c.to_dict() for c in claims],
        },
        "configuration": configuration,
        "results": [r.to_dict() for r in results],
    }


def write_report(report: Dict[str, Any], results_dir: Path, now: Optional[datetime] = None) -> Path:
    """Write ``report`` as ``agglayer_test_results_<timestamp>.json`` under ``results_dir``."""

    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    stamp = (now or datetime.now(timezone.utc)).isoformat().replace(":", "-").replace(".", "-").replace("+", "_")
    path = results_dir / f"{REPORT_PREFIX}{stamp}.json"
    path.write_text(json.dumps(report, default=str, indent=2), encoding="utf-8")
    return path


def format_summary(report: Dict[str, Any]) -> str:
    """Human-readable summary block for the console."""

    summary = report["summary"]
    lines = [
        "=" * 80,
        "TEST RESULTS SUMMARY",
        "=" * 80,
        f"Mode: {report['mode']}",
        f"Total Tests: {summary['total']}",
        f"Successful: {summary['successful']}",
        f"Failed: {summary['failed']}",
        f"Skipped: {summary['skipped']}",
        f"Success Rate: {summary['successRate']}%",
        "-" * 80,
    ]
    for index, result in enumerate(report["results"], start=1):
        lines.append(f"{index}. [{result['status']}] {result['scenario']}")
        if result["status"] == ResultStatus.FAILED.value:
            lines.append(f"   Error: {result['error']}")
        elif result["status"] == ResultStatus.SKIPPED.value:
            lines.append(f"   Reason: {result['skipReason'] or 'N/A'}")
        elif result["txHash"]:
            lines.append(f"   TX Hash: {result['txHash']}")
            if result["method"]:
                lines.append(f"   Method: {result['method']}")
            if result["blockNumber"]:
                lines.append(f"   Block: {result['blockNumber']}")
            if result["gasUsed"]:
                lines.append(f"   Gas Used: {result['gasUsed']}")

    claims = report.get("claims") or {}
    if claims.get("attempted") or claims.get("pending"):
        lines.append("-" * 80)
        lines.append(
            f"Claims: {claims['successful']} succeeded, {claims['failed']} failed, {claims['pending']} pending"
        )
    lines.append("=" * 80)
    return "\n".join(lines)
