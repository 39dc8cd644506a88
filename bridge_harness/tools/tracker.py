"""
Bridge transaction tracking.

Given a source transaction hash, reports its on-chain status, decodes the
``BridgeEvent`` log, checks whether the deposit was claimed on the
destination bridge and looks the hash up in the router's transaction index.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..core.chains import ChainDescriptor, ChainRegistry
from ..core.errors import ConfigurationError
from ..core.execution.tx_builder import find_bridge_event
from ..providers.base import BridgeProvider, RouterProvider
from ..providers.rpc import ChainClientPool, _to_int


logger = logging.getLogger(__name__)

TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
WATCH_INTERVAL_SECONDS = 5.0


def validate_tx_hash(tx_hash: str) -> str:
    if not TX_HASH_PATTERN.match(tx_hash or ""):
        raise ConfigurationError(f"Invalid transaction hash: {tx_hash!r}")
    return tx_hash


class TransactionTracker:
    def __init__(
        self,
        chains: ChainRegistry,
        clients: ChainClientPool,
        bridge: BridgeProvider,
        router: RouterProvider,
        *,
        poll_interval: float = WATCH_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.chains = chains
        self.clients = clients
        self.bridge = bridge
        self.router = router
        self.poll_interval = poll_interval
        self._sleep = sleep

    def _candidates(self, chain_id: Optional[int]) -> list:
        if chain_id is None:
            return list(self.chains)
        chain = self.chains.by_chain_id(chain_id)
        if chain is None:
            raise ConfigurationError(f"Chain {chain_id} is not configured")
        return [chain]

    async def find_receipt(
        self, tx_hash: str, chain_id: Optional[int] = None
    ) -> Tuple[Optional[ChainDescriptor], Optional[Dict[str, Any]]]:
        """Return ``(chain, receipt)``; the chain is auto-detected when ``chain_id`` is None."""

        for chain in self._candidates(chain_id):
            try:
                receipt = await self.clients.client_for(chain).get_transaction_receipt(tx_hash)
            except Exception as exc:
                logger.debug("Receipt lookup on %s failed: %s", chain.key, exc)
                continue
            if receipt:
                return chain, receipt
        if chain_id is not None:
            return self.chains.by_chain_id(chain_id), None
        return None, None

    async def claim_status(self, receipt: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Decode the bridge event and check ``isClaimed`` on the destination chain."""

        event = find_bridge_event(receipt.get("logs") or [])
        if event is None:
            return None

        status: Dict[str, Any] = dict(event)
        destination = self.chains.by_network_id(event["destinationNetwork"])
        status["destinationChain"] = destination.key if destination else None
        status["claimed"] = None
        if destination is not None and destination.bridge_address:
            try:
                contract = self.bridge.bridge(destination.bridge_address, destination.chain_id)
                status["claimed"] = await contract.is_claimed(event["depositCount"], event["originNetwork"])
            except Exception as exc:
                logger.warning("isClaimed check on %s failed: %s", destination.key, exc)
        return status

    async def indexer_entry(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self.router.get_transactions(limit=100)
        except Exception as exc:
            logger.warning("Router transaction lookup failed: %s", exc)
            return None
        wanted = tx_hash.lower()
        for entry in response.get("transactions") or []:
            if str(entry.get("transactionHash") or entry.get("hash") or "").lower() == wanted:
                return entry
        return None

    async def track(self, tx_hash: str, chain_id: Optional[int] = None) -> Dict[str, Any]:
        validate_tx_hash(tx_hash)
        chain, receipt = await self.find_receipt(tx_hash, chain_id)

        report: Dict[str, Any] = {
            "txHash": tx_hash,
            "chain": chain.key if chain else None,
            "chainId": chain.chain_id if chain else chain_id,
            "status": "PENDING",
            "blockNumber": None,
            "gasUsed": None,
            "bridge": None,
            "indexer": None,
            "explorer": chain.explorer_link(tx_hash) if chain else None,
        }
        if receipt is None:
            report["status"] = "NOT_FOUND" if chain is None else "PENDING"
        else:
            report["status"] = "CONFIRMED" if _to_int(receipt.get("status", "0x1")) == 1 else "FAILED"
            report["blockNumber"] = _to_int(receipt["blockNumber"])
            report["gasUsed"] = _to_int(receipt.get("gasUsed", "0x0"))
            report["bridge"] = await self.claim_status(receipt)

        report["indexer"] = await self.indexer_entry(tx_hash)
        return report

    async def watch(self, tx_hash: str, chain_id: Optional[int] = None, max_polls: Optional[int] = None) -> Dict[str, Any]:
        """Poll until a receipt appears, then return the full report."""

        validate_tx_hash(tx_hash)
        polls = 0
        while True:
            chain, receipt = await self.find_receipt(tx_hash, chain_id)
            if receipt is not None:
                logger.info("Transaction confirmed in block %s", _to_int(receipt["blockNumber"]))
                return await self.track(tx_hash, chain.chain_id if chain else chain_id)

            polls += 1
            if max_polls is not None and polls >= max_polls:
                return await self.track(tx_hash, chain_id)
            logger.info("Transaction pending, checking again in %ss", self.poll_interval)
            await self._sleep(self.poll_interval)


def format_track_report(report: Dict[str, Any]) -> str:
    lines = [
        "=" * 70,
        f"Transaction: {report['txHash']}",
        f"Chain: {report['chain'] or 'unknown'}",
        f"Status: {report['status']}",
    ]
    if report["blockNumber"] is not None:
        lines.append(f"Block: {report['blockNumber']}")
        lines.append(f"Gas Used: {report['gasUsed']}")

    bridge = report.get("bridge")
    if bridge:
        lines.append("-" * 70)
        lines.append(f"Origin Network ID: {bridge['originNetwork']}")
        lines.append(f"Destination Network ID: {bridge['destinationNetwork']}")
        lines.append(f"Deposit Count: {bridge['depositCount']}")
        if bridge.get("destinationChain"):
            lines.append(f"Destination Chain: {bridge['destinationChain']}")
        if bridge.get("claimed") is True:
            lines.append("Claim: already claimed on destination chain")
        elif bridge.get("claimed") is False:
            lines.append("Claim: ready to claim on destination chain")
    elif report["blockNumber"] is not None:
        lines.append("Not a bridge transaction (no BridgeEvent found)")

    indexer = report.get("indexer")
    if indexer:
        lines.append("-" * 70)
        lines.append(f"API Status: {indexer.get('status', 'UNKNOWN')}")
    if report.get("explorer"):
        lines.append(f"Explorer: {report['explorer']}")
    lines.append("=" * 70)
    return "\n".join(lines)
