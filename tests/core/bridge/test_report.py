"""
Tests for the run report.
"""

import json
from datetime import datetime, timezone

from bridge_harness.core.bridge.models import (
    BridgeScenario,
    ClaimResult,
    PendingClaim,
    ResultStatus,
    RouteMethod,
    ScenarioResult,
)
from bridge_harness.core.bridge.report import REPORT_PREFIX, build_report, format_summary, write_report


NOW = datetime(2024, 5, 1, 12, 30, 15, 123000, tzinfo=timezone.utc)
ETH_OUT = BridgeScenario("katana", "okx", "ETH", label="ETH: Katana -> OKX")
WBTC_OUT = BridgeScenario("katana", "ethereum", "WBTC", label="WBTC: Katana -> Ethereum")
ASTEST_OUT = BridgeScenario("katana", "base", "ASTEST", label="ASTEST: Katana -> Base")


def _results():
    return [
        ScenarioResult(
            ETH_OUT,
            ResultStatus.SUCCESS,
            method=RouteMethod.PRIMARY,
            amount="0.01",
            tx_hash="0xaa",
            block_number=1234,
            gas_used=61000,
            claim_registered=True,
        ),
        ScenarioResult(WBTC_OUT, ResultStatus.FAILED, error="no route", error_category="routing"),
        ScenarioResult(ASTEST_OUT, ResultStatus.SKIPPED, skip_reason="Token not deployed"),
    ]


def _claim_result(success: bool) -> ClaimResult:
    claim = PendingClaim(
        source_tx_hash="0xaa",
        source_chain="katana",
        destination_chain="okx",
        source_chain_id=747474,
        source_network_id=20,
        destination_chain_id=196,
        destination_network_id=2,
        token="ETH",
        amount="0.01",
        deposit_count=42,
    )
    return ClaimResult(claim, success=success, tx_hash="0xbb" if success else None)


def test_summary_counts():
    report = build_report(_results(), dry_run=False, configuration={"slippage": 0.5}, now=NOW)

    assert report["mode"] == "LIVE"
    assert report["timestamp"] == NOW.isoformat()
    assert report["summary"] == {
        "total": 3,
        "successful": 1,
        "failed": 1,
        "skipped": 1,
        "successRate": "33.3",
    }
    assert report["configuration"] == {"slippage": 0.5}
    assert report["results"][0]["gasUsed"] == "61000"
    assert report["results"][0]["method"] == "PRIMARY"
    assert report["results"][2]["skipReason"] == "Token not deployed"


def test_dry_run_successes_count():
    results = [
        ScenarioResult(ETH_OUT, ResultStatus.SUCCESS_DRY_RUN),
        ScenarioResult(WBTC_OUT, ResultStatus.SUCCESS_DRY_RUN),
        ScenarioResult(ASTEST_OUT, ResultStatus.FAILED, error="x"),
    ]

    report = build_report(results, dry_run=True, configuration={})

    assert report["mode"] == "DRY_RUN"
    assert report["summary"]["successful"] == 2
    assert report["summary"]["successRate"] == "66.7"
    assert report["results"][0]["status"] == "SUCCESS (DRY RUN)"


def test_empty_run_rate_is_zero():
    report = build_report([], dry_run=False, configuration={})
    assert report["summary"]["successRate"] == "0"
    assert report["claims"]["attempted"] == 0


def test_claim_section():
    report = build_report(
        _results(),
        [_claim_result(True), _claim_result(False)],
        dry_run=False,
        configuration={},
        pending_claims=1,
    )

    assert report["claims"]["attempted"] == 2
    assert report["claims"]["successful"] == 1
    assert report["claims"]["failed"] == 1
    assert report["claims"]["pending"] == 1
    assert report["claims"]["results"][0]["claimTxHash"] == "0xbb"
    assert report["claims"]["results"][0]["depositCount"] == 42


def test_write_report(tmp_path):
    report = build_report(_results(), dry_run=False, configuration={}, now=NOW)

    path = write_report(report, tmp_path / "test-results", now=NOW)

    assert path.parent == tmp_path / "test-results"
    assert path.name.startswith(REPORT_PREFIX)
    assert path.suffix == ".json"
    assert ":" not in path.name
    assert json.loads(path.read_text())["summary"]["total"] == 3


def test_format_summary():
    report = build_report(_results(), [_claim_result(True)], dry_run=False, configuration={})

    text = format_summary(report)

    assert "Mode: LIVE" in text
    assert "Success Rate: 33.3%" in text
    assert "1. [SUCCESS] ETH: Katana -> OKX" in text
    assert "   TX Hash: 0xaa" in text
    assert "   Method: PRIMARY" in text
    assert "   Block: 1234" in text
    assert "   Error: no route" in text
    assert "   Reason: Token not deployed" in text
    assert "Claims: 1 succeeded, 0 failed, 0 pending" in text


def test_format_summary_without_claims():
    report = build_report([ScenarioResult(ETH_OUT, ResultStatus.SKIPPED)], dry_run=True, configuration={})

    text = format_summary(report)

    assert "Reason: N/A" in text
    assert "Claims:" not in text
