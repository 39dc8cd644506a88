"""
Transaction execution models and types.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


# Canonical field set accepted by the signing layer
CANONICAL_TX_FIELDS = ("to", "data", "value", "gasLimit", "gasPrice", "nonce", "chainId")


@dataclass
class TransactionReceipt:
    """Confirmed transaction as reported by the chain."""
    tx_hash: str
    block_number: int
    gas_used: int
    status: int = 1
    logs: List[Dict[str, Any]] = field(default_factory=list)
    contract_address: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, receipt: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            tx_hash=receipt.get("transactionHash", ""),
            block_number=int(receipt["blockNumber"], 16),
            gas_used=int(receipt.get("gasUsed", "0x0"), 16),
            status=int(receipt.get("status", "0x1"), 16),
            logs=list(receipt.get("logs") or []),
            contract_address=receipt.get("contractAddress"),
        )


@dataclass
class ExecutionResult:
    """Outcome of submitting (or simulating) one transaction."""
    hash: str
    simulated: bool = False
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    chain_id: Optional[int] = None
    confirmed_at: Optional[datetime] = None

    @classmethod
    def from_receipt(cls, receipt: TransactionReceipt, chain_id: int) -> "ExecutionResult":
        return cls(
            hash=receipt.tx_hash,
            simulated=False,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
            chain_id=chain_id,
            confirmed_at=datetime.now(timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "simulated": self.simulated,
            "blockNumber": self.block_number,
            "gasUsed": str(self.gas_used) if self.gas_used is not None else None,
            "chainId": self.chain_id,
        }
