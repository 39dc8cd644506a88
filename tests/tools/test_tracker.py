"""
Tests for bridge transaction tracking.
"""

from typing import Any, Dict, Optional

import pytest
from unittest.mock import AsyncMock

from bridge_harness.core.errors import ConfigurationError
from bridge_harness.core.execution.tx_builder import BRIDGE_EVENT_SIGNATURE, event_topic
from bridge_harness.tools.tracker import TransactionTracker, format_track_report, validate_tx_hash


TX_HASH = "0x" + "ab" * 32


def _word(value: int) -> str:
    return format(value, "064x")


def bridge_receipt(*, origin_network=20, destination_network=0, deposit_count=4321, status="0x1") -> Dict[str, Any]:
    data = (
        _word(0)
        + _word(origin_network)
        + _word(0)
        + _word(destination_network)
        + _word(0x19E7E376E7C213B7E7E7E46CC70A5DD086DAFF2A)
        + _word(10**16)
        + _word(8 * 32)
        + _word(deposit_count)
        + _word(0)
    )
    return {
        "transactionHash": TX_HASH,
        "blockNumber": "0x10",
        "gasUsed": "0x5208",
        "status": status,
        "logs": [{"topics": [event_topic(BRIDGE_EVENT_SIGNATURE)], "data": "0x" + data}],
    }


class FakeClient:
    def __init__(self, receipts):
        self.receipts = receipts
        self.lookups = 0

    async def get_transaction_receipt(self, tx_hash):
        self.lookups += 1
        if callable(self.receipts):
            return self.receipts(self.lookups)
        return self.receipts.get(tx_hash)


class FakePool:
    """Per-chain clients keyed by chain key; chains without an entry see no receipts."""

    def __init__(self, clients: Optional[Dict[str, FakeClient]] = None) -> None:
        self.clients = clients or {}

    def client_for(self, chain):
        return self.clients.setdefault(chain.key, FakeClient({}))


@pytest.fixture
def make_tracker(chains, bridge, router):
    def _make(pool, **kwargs):
        return TransactionTracker(chains, pool, bridge, router, sleep=AsyncMock(), **kwargs)
    return _make


class TestTrack:
    @pytest.mark.asyncio
    async def test_bridge_transaction_auto_detects_chain(self, make_tracker, router, bridge, chains):
        router.transactions = [{"transactionHash": TX_HASH.upper().replace("0X", "0x"), "status": "READY_TO_CLAIM"}]
        tracker = make_tracker(FakePool({"katana": FakeClient({TX_HASH: bridge_receipt()})}))

        report = await tracker.track(TX_HASH)

        assert report["chain"] == "katana"
        assert report["chainId"] == 747474
        assert report["status"] == "CONFIRMED"
        assert report["blockNumber"] == 16
        assert report["gasUsed"] == 21000
        assert report["bridge"]["depositCount"] == 4321
        assert report["bridge"]["destinationChain"] == "ethereum"
        assert report["bridge"]["claimed"] is False
        assert report["indexer"]["status"] == "READY_TO_CLAIM"
        assert report["explorer"] == f"https://katana-explorer.com/tx/{TX_HASH}"
        ethereum = chains.get("ethereum")
        contract = bridge.bridge(ethereum.bridge_address, ethereum.chain_id)
        assert contract.claim_checks == [(4321, 20)]

    @pytest.mark.asyncio
    async def test_reverted_transaction(self, make_tracker):
        tracker = make_tracker(FakePool({"ethereum": FakeClient({TX_HASH: bridge_receipt(status="0x0")})}))

        report = await tracker.track(TX_HASH, 1)

        assert report["status"] == "FAILED"

    @pytest.mark.asyncio
    async def test_plain_transfer_has_no_bridge_section(self, make_tracker):
        receipt = dict(bridge_receipt(), logs=[])
        tracker = make_tracker(FakePool({"okx": FakeClient({TX_HASH: receipt})}))

        report = await tracker.track(TX_HASH)

        assert report["bridge"] is None
        assert "Not a bridge transaction" in format_track_report(report)

    @pytest.mark.asyncio
    async def test_unknown_hash(self, make_tracker):
        report = await make_tracker(FakePool()).track(TX_HASH)

        assert report["status"] == "NOT_FOUND"
        assert report["chain"] is None
        assert report["indexer"] is None

    @pytest.mark.asyncio
    async def test_pending_on_given_chain(self, make_tracker):
        report = await make_tracker(FakePool()).track(TX_HASH, 8453)

        assert report["status"] == "PENDING"
        assert report["chain"] == "base"

    @pytest.mark.asyncio
    async def test_unconfigured_chain(self, make_tracker):
        with pytest.raises(ConfigurationError):
            await make_tracker(FakePool()).track(TX_HASH, 137)

    @pytest.mark.parametrize("value", ["", "0x1234", "ab" * 32, "0x" + "zz" * 32])
    def test_invalid_hash(self, value):
        with pytest.raises(ConfigurationError):
            validate_tx_hash(value)


class TestWatch:
    @pytest.mark.asyncio
    async def test_polls_until_mined(self, make_tracker):
        client = FakeClient(lambda lookups: bridge_receipt() if lookups >= 3 else None)
        tracker = make_tracker(FakePool({"katana": client}), poll_interval=5.0)

        report = await tracker.watch(TX_HASH, 747474)

        assert report["status"] == "CONFIRMED"
        assert [c.args for c in tracker._sleep.await_args_list] == [(5.0,), (5.0,)]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_polls(self, make_tracker):
        tracker = make_tracker(FakePool())

        report = await tracker.watch(TX_HASH, 747474, max_polls=2)

        assert report["status"] == "PENDING"
        assert tracker._sleep.await_count == 1


def test_format_claimed_transfer():
    report = {
        "txHash": TX_HASH,
        "chain": "katana",
        "status": "CONFIRMED",
        "blockNumber": 16,
        "gasUsed": 21000,
        "bridge": {
            "originNetwork": 20,
            "destinationNetwork": 0,
            "depositCount": 7,
            "destinationChain": "ethereum",
            "claimed": True,
        },
        "indexer": {"status": "CLAIMED"},
        "explorer": None,
    }

    text = format_track_report(report)

    assert "Deposit Count: 7" in text
    assert "Claim: already claimed on destination chain" in text
    assert "API Status: CLAIMED" in text
    assert "Explorer" not in text
