"""
Bridge Scenario Models

Scenarios, route outcomes, pending claims and per-scenario results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4


CLAIMING_PROVIDER_TAG = "agglayer"


class RouteMethod(str, Enum):
    """Which backend produced the transfer transaction."""

    PRIMARY = "PRIMARY"      # Routing API
    FALLBACK = "FALLBACK"    # Direct bridge contract


class ScenarioState(str, Enum):
    """Lifecycle of one scenario."""

    PENDING = "pending"
    ROUTING = "routing"
    APPROVING = "approving"
    EXECUTING = "executing"
    REGISTERED_FOR_CLAIM = "registered_for_claim"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


class ResultStatus(str, Enum):
    SUCCESS = "SUCCESS"
    SUCCESS_DRY_RUN = "SUCCESS (DRY RUN)"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class BridgeScenario:
    """A planned transfer: source chain, destination chain and token symbol."""

    from_chain: str
    to_chain: str
    token: str
    label: Optional[str] = None
    amount: Optional[Decimal] = None  # human units; None uses the configured test amount

    @property
    def name(self) -> str:
        return self.label or f"{self.from_chain} -> {self.to_chain} ({self.token})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_chain,
            "to": self.to_chain,
            "token": self.token,
            "name": self.name,
        }


@dataclass
class PrimaryRoute:
    """The routing API produced an executable transaction."""

    unsigned_tx: Dict[str, Any]
    route: Dict[str, Any] = field(default_factory=dict)
    approval_target: Optional[str] = None

    method = RouteMethod.PRIMARY

    @property
    def provider(self) -> Optional[str]:
        provider = self.route.get("provider")
        if isinstance(provider, dict):
            provider = provider.get("name") or provider.get("key")
        return provider

    @property
    def requires_claim(self) -> bool:
        """Only the native bridge protocol needs a destination claim; others settle atomically."""
        return CLAIMING_PROVIDER_TAG in str(self.provider or "").lower()


@dataclass
class FallbackRoute:
    """The direct bridge contract call, used after the router failed."""

    unsigned_tx: Dict[str, Any]
    primary_error: Optional[str] = None
    approval_target: Optional[str] = None

    method = RouteMethod.FALLBACK
    requires_claim = True


@dataclass
class RouteUnavailable:
    """Neither backend produced a transaction."""

    reason: str
    primary_error: Optional[str] = None
    fallback_error: Optional[str] = None

    method = None


RouteOutcome = Union[PrimaryRoute, FallbackRoute, RouteUnavailable]


@dataclass
class PendingClaim:
    """A confirmed transfer still awaiting its destination-chain claim.

    ``deposit_count`` may be unknown at registration; it is resolved from
    the indexer lazily, at claim time at the latest.
    """

    source_tx_hash: str
    source_chain: str
    destination_chain: str
    source_chain_id: int
    source_network_id: int
    destination_chain_id: int
    destination_network_id: int
    token: str
    amount: str
    deposit_count: Optional[int] = None
    scenario: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceTxHash": self.source_tx_hash,
            "sourceChain": self.source_chain,
            "destinationChain": self.destination_chain,
            "sourceChainId": self.source_chain_id,
            "sourceNetworkId": self.source_network_id,
            "destinationChainId": self.destination_chain_id,
            "destinationNetworkId": self.destination_network_id,
            "token": self.token,
            "amount": self.amount,
            "depositCount": self.deposit_count,
            "scenario": self.scenario,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingClaim":
        created = data.get("createdAt")
        return cls(
            source_tx_hash=data["sourceTxHash"],
            source_chain=data["sourceChain"],
            destination_chain=data["destinationChain"],
            source_chain_id=int(data["sourceChainId"]),
            source_network_id=int(data["sourceNetworkId"]),
            destination_chain_id=int(data["destinationChainId"]),
            destination_network_id=int(data["destinationNetworkId"]),
            token=data.get("token", ""),
            amount=str(data.get("amount", "")),
            deposit_count=data.get("depositCount"),
            scenario=data.get("scenario"),
            created_at=datetime.fromisoformat(created) if created else datetime.now(timezone.utc),
        )


@dataclass
class ClaimResult:
    """Outcome of one claim attempt."""

    claim: PendingClaim
    success: bool
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    simulated: bool = False
    error: Optional[str] = None
    error_category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceTxHash": self.claim.source_tx_hash,
            "sourceChain": self.claim.source_chain,
            "destinationChain": self.claim.destination_chain,
            "depositCount": self.claim.deposit_count,
            "success": self.success,
            "claimTxHash": self.tx_hash,
            "blockNumber": self.block_number,
            "gasUsed": str(self.gas_used) if self.gas_used is not None else None,
            "simulated": self.simulated,
            "error": self.error,
            "errorCategory": self.error_category,
        }


@dataclass
class StateTransition:
    """Record of a scenario state change, delivered to listeners."""

    scenario: BridgeScenario
    from_state: ScenarioState
    to_state: ScenarioState
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "scenario": self.scenario.name,
            "fromState": self.from_state.value,
            "toState": self.to_state.value,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
            "context": self.context,
        }


@dataclass
class ScenarioResult:
    """One record per scenario, appended by the orchestrator."""

    scenario: BridgeScenario
    status: ResultStatus
    method: Optional[RouteMethod] = None
    amount: Optional[str] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    claim_registered: bool = False
    error: Optional[str] = None
    error_category: Optional[str] = None
    skip_reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    transitions: List[StateTransition] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status in (ResultStatus.SUCCESS, ResultStatus.SUCCESS_DRY_RUN)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.name,
            "from": self.scenario.from_chain,
            "to": self.scenario.to_chain,
            "token": self.scenario.token,
            "status": self.status.value,
            "method": self.method.value if self.method else None,
            "amount": self.amount,
            "txHash": self.tx_hash,
            "blockNumber": self.block_number,
            "gasUsed": str(self.gas_used) if self.gas_used is not None else None,
            "claimRegistered": self.claim_registered,
            "error": self.error,
            "errorCategory": self.error_category,
            "skipReason": self.skip_reason,
            "timestamp": self.timestamp.isoformat(),
        }
