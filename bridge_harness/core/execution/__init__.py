"""
Transaction Execution Layer

Provides the infrastructure for submitting bridge transactions:
- normalize_transaction: Canonical tx shape for the signing wallet
- ApprovalManager: Idempotent ERC20 allowance grants
- TransactionExecutor: Gas resolution, submission and confirmation (or dry-run simulation)
- Wallet: The single signing key, bound per chain

Usage:
    from bridge_harness.core.execution import TransactionExecutor, Wallet

    executor = TransactionExecutor(Wallet(key), clients, dry_run=True)
    result = await executor.execute(unsigned_tx, chains.get("katana"))
"""

from .approvals import ApprovalManager
from .executor import TransactionExecutor, apply_gas_multiplier
from .models import ExecutionResult, TransactionReceipt
from .normalizer import normalize_transaction
from .wallet import ConnectedWallet, SentTransaction, Wallet

__all__ = [
    "ApprovalManager",
    "ConnectedWallet",
    "ExecutionResult",
    "SentTransaction",
    "TransactionExecutor",
    "TransactionReceipt",
    "Wallet",
    "apply_gas_multiplier",
    "normalize_transaction",
]
