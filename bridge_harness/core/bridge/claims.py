"""
Deferred destination-chain claims.

Transfers that settle through the bridge protocol are registered here once
their source transaction confirms. Deposit identifiers come from the router's
transaction index, which may lag; unresolved identifiers are retried with a
wider window at claim time. Each claim is processed in isolation and leaves
the pending set once attempted, whatever the outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..chains import ChainDescriptor, ChainRegistry
from ..errors import DepositNotIndexedError, classify_error
from ..execution.executor import TransactionExecutor
from ..execution.models import ExecutionResult
from .models import CLAIMING_PROVIDER_TAG, BridgeScenario, ClaimResult, PendingClaim
from ...providers.base import RouterProvider


logger = logging.getLogger(__name__)

READY_TO_CLAIM = "READY_TO_CLAIM"

ClaimListener = Callable[[str, PendingClaim], Awaitable[None]]


def _tx_hash_of(entry: Dict[str, Any]) -> str:
    return str(entry.get("transactionHash") or entry.get("hash") or "")


def _token_symbol_of(entry: Dict[str, Any]) -> str:
    token = entry.get("token")
    if isinstance(token, dict):
        return str(token.get("symbol") or "")
    return str(token or "")


def _protocols_of(entry: Dict[str, Any]) -> List[str]:
    protocols = entry.get("protocols") or entry.get("protocol") or []
    if isinstance(protocols, str):
        protocols = [protocols]
    return [str(p).lower() for p in protocols]


class ClaimTracker:
    """Pending-claim bookkeeping and claim submission."""

    def __init__(
        self,
        router: RouterProvider,
        chains: ChainRegistry,
        executor: TransactionExecutor,
        *,
        lookup_limit: int = 50,
        retry_lookup_limit: int = 200,
        listeners: Optional[List[ClaimListener]] = None,
        verbose: bool = False,
    ) -> None:
        self.router = router
        self.chains = chains
        self.executor = executor
        self.lookup_limit = lookup_limit
        self.retry_lookup_limit = retry_lookup_limit
        self.verbose = verbose
        self.pending: List[PendingClaim] = []
        self.results: List[ClaimResult] = []
        self._listeners: List[ClaimListener] = list(listeners or [])

    @property
    def wallet_address(self) -> str:
        return self.executor.wallet.address

    def add_listener(self, listener: ClaimListener) -> None:
        self._listeners.append(listener)

    async def _notify(self, event: str, claim: PendingClaim) -> None:
        for listener in self._listeners:
            try:
                await listener(event, claim)
            except Exception as exc:
                logger.error("Claim listener error: %s", exc)

    async def find_deposit_count(self, tx_hash: str, limit: int) -> Optional[int]:
        """Look ``tx_hash`` up in the router's transaction index (case-insensitive)."""

        response = await self.router.get_transactions(address=self.wallet_address, limit=limit)
        wanted = tx_hash.lower()
        for entry in response.get("transactions") or []:
            if _tx_hash_of(entry).lower() != wanted:
                continue
            deposit_count = entry.get("depositCount")
            if deposit_count is not None:
                return int(deposit_count)
        return None

    def _is_pending(self, tx_hash: str) -> bool:
        return any(claim.source_tx_hash.lower() == tx_hash.lower() for claim in self.pending)

    async def add(self, claim: PendingClaim) -> bool:
        """Add an already-built claim (e.g. restored from a checkpoint). False if it is a duplicate."""

        if self._is_pending(claim.source_tx_hash):
            return False
        self.pending.append(claim)
        await self._notify("registered", claim)
        return True

    async def register_pending(
        self,
        scenario: BridgeScenario,
        execution: ExecutionResult,
        amount: str,
    ) -> Optional[PendingClaim]:
        """
        Register a confirmed transfer for claiming.

        Simulated transfers are never registered. A deposit identifier the
        indexer does not know yet is stored as None and resolved later.
        """
        if execution.simulated:
            logger.debug("Not registering simulated transfer %s for claiming", execution.hash)
            return None

        source = self.chains.get(scenario.from_chain)
        destination = self.chains.get(scenario.to_chain)

        try:
            deposit_count = await self.find_deposit_count(execution.hash, self.lookup_limit)
        except Exception as exc:
            logger.warning("Deposit lookup for %s failed, deferring: %s", execution.hash, exc)
            deposit_count = None

        claim = PendingClaim(
            source_tx_hash=execution.hash,
            source_chain=source.key,
            destination_chain=destination.key,
            source_chain_id=source.chain_id,
            source_network_id=source.network_id,
            destination_chain_id=destination.chain_id,
            destination_network_id=destination.network_id,
            token=scenario.token,
            amount=amount,
            deposit_count=deposit_count,
            scenario=scenario.name,
        )
        if not await self.add(claim):
            logger.info("Claim for %s already pending", execution.hash)
            return None

        if deposit_count is None:
            logger.info("Registered claim for %s; deposit not indexed yet", execution.hash)
        else:
            logger.info("Registered claim for %s (deposit %s)", execution.hash, deposit_count)
        return claim

    async def _claim(self, claim: PendingClaim) -> ClaimResult:
        if claim.deposit_count is None:
            claim.deposit_count = await self.find_deposit_count(claim.source_tx_hash, self.retry_lookup_limit)
            if claim.deposit_count is None:
                raise DepositNotIndexedError(claim.source_tx_hash)

        destination: ChainDescriptor = self.chains.get(claim.destination_chain)
        raw_tx = await self.router.get_claim_unsigned_transaction(claim.source_network_id, claim.deposit_count)
        execution = await self.executor.execute(raw_tx, destination)
        return ClaimResult(
            claim=claim,
            success=True,
            tx_hash=execution.hash,
            block_number=execution.block_number,
            gas_used=execution.gas_used,
            simulated=execution.simulated,
        )

    async def process_claims(self, claims: Optional[List[PendingClaim]] = None) -> List[ClaimResult]:
        """
        Attempt every claim in ``claims`` (default: all pending), one at a time.

        A failing claim is recorded and logged; the remaining claims are still
        attempted. Attempted claims leave the pending set.
        """
        batch = list(self.pending if claims is None else claims)
        results: List[ClaimResult] = []
        if not batch:
            return results

        logger.info("Processing %s claim(s)", len(batch))
        for index, claim in enumerate(batch, start=1):
            label = claim.scenario or claim.source_tx_hash
            logger.info("Claim %s/%s: %s -> %s (%s)", index, len(batch), claim.source_chain, claim.destination_chain, label)
            try:
                result = await self._claim(claim)
                if result.simulated:
                    logger.info("[DRY RUN] Claim for %s simulated", claim.source_tx_hash)
                else:
                    logger.info("Claim for %s confirmed: %s", claim.source_tx_hash, result.tx_hash)
            except Exception as exc:
                context = classify_error(exc)
                logger.error(
                    "Claim for %s failed: %s", claim.source_tx_hash, exc, exc_info=self.verbose
                )
                result = ClaimResult(
                    claim=claim,
                    success=False,
                    error=str(exc),
                    error_category=context.category.value,
                )
            finally:
                if claim in self.pending:
                    self.pending.remove(claim)

            results.append(result)
            self.results.append(result)
            await self._notify("attempted", claim)

        return results

    def _claim_from_index(self, entry: Dict[str, Any]) -> Optional[PendingClaim]:
        tx_hash = _tx_hash_of(entry)
        deposit_count = entry.get("depositCount")
        if not tx_hash or deposit_count is None:
            return None

        source = self._chain_of(entry.get("sending") or {})
        destination = self._chain_of(entry.get("receiving") or {})
        if source is None or destination is None:
            logger.info("Skipping unclaimed transfer %s on an unconfigured chain", tx_hash)
            return None

        return PendingClaim(
            source_tx_hash=tx_hash,
            source_chain=source.key,
            destination_chain=destination.key,
            source_chain_id=source.chain_id,
            source_network_id=source.network_id,
            destination_chain_id=destination.chain_id,
            destination_network_id=destination.network_id,
            token=_token_symbol_of(entry),
            amount=str(entry.get("amount") or ""),
            deposit_count=int(deposit_count),
            scenario="existing",
        )

    def _chain_of(self, side: Dict[str, Any]) -> Optional[ChainDescriptor]:
        network = side.get("network") if isinstance(side.get("network"), dict) else side
        chain_id = network.get("chainId")
        if chain_id is not None:
            try:
                return self.chains.by_chain_id(int(chain_id))
            except (TypeError, ValueError):
                pass
        network_id = network.get("networkId")
        if network_id is not None:
            try:
                return self.chains.by_network_id(int(network_id))
            except (TypeError, ValueError):
                pass
        return None

    async def check_for_existing_claims(self) -> List[ClaimResult]:
        """Claim transfers left ready-to-claim by previous runs."""

        logger.info("Checking for unclaimed transfers from previous runs")
        response = await self.router.get_transactions(address=self.wallet_address, limit=self.retry_lookup_limit)

        found: List[PendingClaim] = []
        for entry in response.get("transactions") or []:
            if str(entry.get("status", "")).upper() != READY_TO_CLAIM:
                continue
            if CLAIMING_PROVIDER_TAG not in _protocols_of(entry):
                continue
            claim = self._claim_from_index(entry)
            if claim is None or self._is_pending(claim.source_tx_hash):
                continue
            found.append(claim)

        if not found:
            logger.info("No unclaimed transfers found")
            return []

        logger.info("Found %s unclaimed transfer(s)", len(found))
        return await self.process_claims(found)
