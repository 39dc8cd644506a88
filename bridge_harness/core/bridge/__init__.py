"""Bridge scenario orchestration components."""

from typing import TYPE_CHECKING

from .models import (
    BridgeScenario,
    ClaimResult,
    FallbackRoute,
    PendingClaim,
    PrimaryRoute,
    ResultStatus,
    RouteMethod,
    RouteOutcome,
    RouteUnavailable,
    ScenarioResult,
    ScenarioState,
)

if TYPE_CHECKING:  # pragma: no cover
    from .orchestrator import ScenarioOrchestrator, create_orchestrator

__all__ = [
    "BridgeScenario",
    "ClaimResult",
    "FallbackRoute",
    "PendingClaim",
    "PrimaryRoute",
    "ResultStatus",
    "RouteMethod",
    "RouteOutcome",
    "RouteUnavailable",
    "ScenarioOrchestrator",
    "ScenarioResult",
    "ScenarioState",
    "create_orchestrator",
]


def __getattr__(name: str):  # pragma: no cover - simple thunk
    if name in ("ScenarioOrchestrator", "create_orchestrator"):
        from . import orchestrator

        return getattr(orchestrator, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
