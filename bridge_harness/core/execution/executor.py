"""
Transaction executor for on-chain execution.

Handles the submission half of a transfer:
- Gas limit resolution (transaction value, estimate, or fixed fallback)
- Safety multiplier
- Signing and submission through the connected wallet
- Waiting for one confirmation

Dry-run mode replaces all of the above with a synthetic hash. The executor
never retries; errors propagate to the caller unchanged.
"""

import logging
import secrets
from typing import Any, Mapping

from ..chains import ChainDescriptor
from .models import ExecutionResult
from .normalizer import normalize_transaction
from .wallet import ConnectedWallet, Wallet
from ...providers.rpc import ChainClientPool, _to_int


logger = logging.getLogger(__name__)


def apply_gas_multiplier(gas_limit: int, multiplier: float) -> int:
    """Scale ``gas_limit`` by ``multiplier`` using integer math on hundredths."""
    return gas_limit * int(multiplier * 100) // 100


class TransactionExecutor:
    """
    Executes transactions on EVM chains.

    Responsibilities:
    - Resolve the gas limit, falling back to ``default_gas_limit`` when estimation fails
    - Apply the configured gas multiplier
    - Submit through the shared wallet and wait for inclusion
    - Produce synthetic results in dry-run mode
    """

    def __init__(
        self,
        wallet: Wallet,
        clients: ChainClientPool,
        *,
        dry_run: bool = False,
        gas_multiplier: float = 1.2,
        default_gas_limit: int = 800_000,
        poll_interval: float = 2.0,
    ):
        self.wallet = wallet
        self.clients = clients
        self.dry_run = dry_run
        self.gas_multiplier = gas_multiplier
        self.default_gas_limit = default_gas_limit
        self.poll_interval = poll_interval

    def wallet_for(self, chain: ChainDescriptor) -> ConnectedWallet:
        """Wallet view bound to ``chain``'s RPC client."""
        return self.wallet.connect(self.clients.client_for(chain), poll_interval=self.poll_interval)

    async def resolve_gas_limit(self, tx: Mapping[str, Any], signer: ConnectedWallet) -> int:
        if tx.get("gasLimit") is not None:
            return _to_int(tx["gasLimit"])
        try:
            return await signer.estimate_gas(tx)
        except Exception as e:
            logger.warning(
                f"Gas estimation failed on chain {signer.chain_id}, "
                f"using default {self.default_gas_limit}: {e}"
            )
            return self.default_gas_limit

    async def execute(self, unsigned_tx: Mapping[str, Any], source_chain: ChainDescriptor) -> ExecutionResult:
        """
        Submit (or simulate) ``unsigned_tx`` on ``source_chain``.

        Args:
            unsigned_tx: Transaction as returned by the router or bridge
            source_chain: Chain the transaction is sent on

        Returns:
            ExecutionResult with hash, block and gas used (simulated=True in dry-run)
        """
        tx = normalize_transaction(unsigned_tx, source_chain.chain_id)

        if self.dry_run:
            fake_hash = "0x" + secrets.token_hex(32)
            logger.info(
                "[DRY RUN] Would send tx to %s on %s (value=%s), simulated hash %s",
                tx["to"], source_chain.name, tx.get("value"), fake_hash,
            )
            return ExecutionResult(hash=fake_hash, simulated=True, chain_id=source_chain.chain_id)

        signer = self.wallet_for(source_chain)
        gas_limit = await self.resolve_gas_limit(tx, signer)
        tx = {**tx, "gasLimit": hex(apply_gas_multiplier(gas_limit, self.gas_multiplier))}

        logger.info(
            "Sending tx to %s on %s (gasLimit=%s)", tx["to"], source_chain.name, int(tx["gasLimit"], 16)
        )
        sent = await signer.send_transaction(tx)
        logger.info("Waiting for confirmation of %s", sent.hash)
        receipt = await sent.wait(1)
        if not receipt.tx_hash:
            receipt.tx_hash = sent.hash

        logger.info(
            "Confirmed %s in block %s (gas used %s)", sent.hash, receipt.block_number, receipt.gas_used
        )
        return ExecutionResult.from_receipt(receipt, source_chain.chain_id)
