"""
Scenario State Machine

Validates per-scenario state transitions and emits each one as an event.
Logging is one listener among others; the machine itself has no output.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .models import BridgeScenario, ScenarioState, StateTransition


TransitionListener = Callable[[StateTransition], Awaitable[None]]


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        from_state: ScenarioState,
        to_state: ScenarioState,
        message: Optional[str] = None,
    ):
        self.from_state = from_state
        self.to_state = to_state
        self.message = message or f"Cannot transition from {from_state.value} to {to_state.value}"
        super().__init__(self.message)


class ScenarioStateMachine:
    """
    Tracks one scenario from PENDING to a terminal state.

    PENDING -> ROUTING -> (APPROVING) -> EXECUTING -> (REGISTERED_FOR_CLAIM) -> DONE,
    PENDING -> SKIPPED, or any non-terminal state -> FAILED.
    """

    TRANSITIONS: Dict[ScenarioState, Set[ScenarioState]] = {
        ScenarioState.PENDING: {
            ScenarioState.ROUTING,
            ScenarioState.SKIPPED,
            ScenarioState.FAILED,
        },
        ScenarioState.ROUTING: {
            ScenarioState.APPROVING,
            ScenarioState.EXECUTING,
            ScenarioState.FAILED,
        },
        ScenarioState.APPROVING: {
            ScenarioState.EXECUTING,
            ScenarioState.FAILED,
        },
        ScenarioState.EXECUTING: {
            ScenarioState.REGISTERED_FOR_CLAIM,
            ScenarioState.DONE,
            ScenarioState.FAILED,
        },
        ScenarioState.REGISTERED_FOR_CLAIM: {
            ScenarioState.DONE,
            ScenarioState.FAILED,
        },
        ScenarioState.DONE: set(),
        ScenarioState.SKIPPED: set(),
        ScenarioState.FAILED: set(),
    }

    TERMINAL_STATES = frozenset({ScenarioState.DONE, ScenarioState.SKIPPED, ScenarioState.FAILED})

    def __init__(
        self,
        scenario: BridgeScenario,
        listeners: Optional[List[TransitionListener]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.scenario = scenario
        self.current_state = ScenarioState.PENDING
        self.history: List[StateTransition] = []
        self._listeners: List[TransitionListener] = list(listeners or [])
        self.logger = logger or logging.getLogger(__name__)

    @property
    def is_terminal(self) -> bool:
        return self.current_state in self.TERMINAL_STATES

    def can_transition_to(self, to_state: ScenarioState) -> bool:
        return to_state in self.TRANSITIONS.get(self.current_state, set())

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    async def transition_to(
        self,
        to_state: ScenarioState,
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Move to ``to_state`` and notify listeners.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        from_state = self.current_state
        if not self.can_transition_to(to_state):
            allowed = sorted(s.value for s in self.TRANSITIONS.get(from_state, set()))
            raise InvalidTransitionError(
                from_state=from_state,
                to_state=to_state,
                message=f"Invalid transition from {from_state.value} to {to_state.value}. Allowed: {allowed}",
            )

        transition = StateTransition(
            scenario=self.scenario,
            from_state=from_state,
            to_state=to_state,
            reason=reason,
            context=context or {},
        )
        self.current_state = to_state
        self.history.append(transition)

        for listener in self._listeners:
            try:
                await listener(transition)
            except Exception as e:
                self.logger.error(f"Transition listener error: {e}")

        return transition

    async def fail(self, reason: str, context: Optional[Dict[str, Any]] = None) -> Optional[StateTransition]:
        """Move to FAILED unless already terminal."""
        if self.is_terminal:
            return None
        return await self.transition_to(ScenarioState.FAILED, reason=reason, context=context)


def logging_listener(logger: Optional[logging.Logger] = None) -> TransitionListener:
    """Listener that writes each transition to ``logger``."""

    log = logger or logging.getLogger(__name__)

    async def _log(transition: StateTransition) -> None:
        level = logging.WARNING if transition.to_state == ScenarioState.FAILED else logging.INFO
        log.log(
            level,
            "%s: %s -> %s%s",
            transition.scenario.name,
            transition.from_state.value,
            transition.to_state.value,
            f" ({transition.reason})" if transition.reason else "",
        )

    return _log
