"""
Append-only checkpoint log.

One JSON object per line, written after every scenario and every
pending-claim change. On startup the log tells the orchestrator which
scenarios already completed live and which claims are still outstanding.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Set

from .models import BridgeScenario, PendingClaim, ResultStatus, ScenarioResult


logger = logging.getLogger(__name__)


def scenario_key(scenario: BridgeScenario) -> str:
    return f"{scenario.from_chain}->{scenario.to_chain}:{scenario.token.upper()}"


@dataclass
class CheckpointState:
    completed: Set[str] = field(default_factory=set)
    pending_claims: List[PendingClaim] = field(default_factory=list)


class CheckpointLog:
    """JSON-lines log at ``path``; the file and its parent are created on first write."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _append(self, record: Dict[str, Any]) -> None:
        record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fp:
            fp.write(json.dumps(record, default=str) + "\n")

    def record_scenario(self, result: ScenarioResult, *, simulated: bool) -> None:
        self._append({
            "type": "scenario",
            "key": scenario_key(result.scenario),
            "scenario": result.scenario.name,
            "status": result.status.value,
            "txHash": result.tx_hash,
            "simulated": simulated,
        })

    async def record_claim(self, event: str, claim: PendingClaim) -> None:
        """Claim-tracker listener: ``event`` is ``registered`` or ``attempted``."""
        self._append({"type": "claim", "event": event, "claim": claim.to_dict()})

    def load(self) -> CheckpointState:
        state = CheckpointState()
        if not self.path.exists():
            return state

        claims: Dict[str, PendingClaim] = {}
        with self.path.open("r", encoding="utf-8") as fp:
            for line_number, line in enumerate(fp, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                    kind = record.get("type")
                    if kind == "scenario":
                        if record.get("status") == ResultStatus.SUCCESS.value and not record.get("simulated"):
                            state.completed.add(record["key"])
                    elif kind == "claim":
                        claim = PendingClaim.from_dict(record["claim"])
                        tx_key = claim.source_tx_hash.lower()
                        if record.get("event") == "registered":
                            claims[tx_key] = claim
                        else:
                            claims.pop(tx_key, None)
                except (ValueError, KeyError, TypeError) as exc:
                    logger.warning("Ignoring malformed checkpoint line %s in %s: %s", line_number, self.path, exc)

        state.pending_claims = list(claims.values())
        return state
