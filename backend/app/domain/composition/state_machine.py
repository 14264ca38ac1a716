from __future__ import annotations

import enum
from dataclasses import dataclass, field

from app.models.article import AiStatus


class CompositionState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    PROMPTED = "PROMPTED"
    AI_CALLED = "AI_CALLED"
    PARSE_RETRY = "PARSE_RETRY"
    PARSED = "PARSED"
    PARSE_FAILED = "PARSE_FAILED"
    LENGTH_RETRY = "LENGTH_RETRY"
    LENGTH_OK = "LENGTH_OK"
    SANITIZED = "SANITIZED"
    PERSISTED = "PERSISTED"
    ABORTED = "ABORTED"


COMPOSITION_TRANSITIONS: dict[CompositionState, set[CompositionState]] = {
    CompositionState.RECEIVED: {CompositionState.PROMPTED, CompositionState.SANITIZED, CompositionState.ABORTED},
    CompositionState.PROMPTED: {CompositionState.AI_CALLED, CompositionState.ABORTED},
    CompositionState.AI_CALLED: {
        CompositionState.PARSED,
        CompositionState.PARSE_RETRY,
        CompositionState.ABORTED,
    },
    CompositionState.PARSE_RETRY: {
        CompositionState.PARSED,
        CompositionState.PARSE_FAILED,
        CompositionState.ABORTED,
    },
    CompositionState.PARSED: {
        CompositionState.LENGTH_OK,
        CompositionState.LENGTH_RETRY,
        CompositionState.ABORTED,
    },
    CompositionState.LENGTH_RETRY: {CompositionState.LENGTH_OK, CompositionState.ABORTED},
    CompositionState.LENGTH_OK: {CompositionState.SANITIZED, CompositionState.ABORTED},
    CompositionState.SANITIZED: {CompositionState.PERSISTED, CompositionState.ABORTED},
    CompositionState.PARSE_FAILED: set(),
    CompositionState.PERSISTED: set(),
    CompositionState.ABORTED: set(),
}

# AI job lifecycle on the base article. Terminal states are never resurrected.
AI_STATUS_TRANSITIONS: dict[AiStatus, set[AiStatus]] = {
    AiStatus.PENDING: {AiStatus.PROCESSING, AiStatus.DONE, AiStatus.FAILED},
    AiStatus.PROCESSING: {AiStatus.DONE, AiStatus.FAILED},
    AiStatus.DONE: set(),
    AiStatus.FAILED: set(),
}


@dataclass(slots=True)
class TransitionValidationResult:
    valid: bool
    from_state: CompositionState
    to_state: CompositionState
    allowed_targets: list[CompositionState]


def allowed_targets(from_state: CompositionState) -> set[CompositionState]:
    return set(COMPOSITION_TRANSITIONS.get(from_state, set()))


def can_transition(from_state: CompositionState, to_state: CompositionState) -> bool:
    return to_state in allowed_targets(from_state)


def validate_transition(from_state: CompositionState, to_state: CompositionState) -> TransitionValidationResult:
    targets = sorted(allowed_targets(from_state), key=lambda item: item.value)
    return TransitionValidationResult(
        valid=can_transition(from_state, to_state),
        from_state=from_state,
        to_state=to_state,
        allowed_targets=targets,
    )


def can_transition_ai_status(from_status: AiStatus, to_status: AiStatus) -> bool:
    return to_status in AI_STATUS_TRANSITIONS.get(from_status, set())


class InvalidCompositionTransition(RuntimeError):
    pass


@dataclass
class CompositionTrace:
    """Records the path one composition attempt takes through the state machine."""

    states: list[CompositionState] = field(default_factory=lambda: [CompositionState.RECEIVED])

    @property
    def current(self) -> CompositionState:
        return self.states[-1]

    def advance(self, target: CompositionState) -> CompositionState:
        check = validate_transition(self.current, target)
        if not check.valid:
            raise InvalidCompositionTransition(
                f"{check.from_state.value} -> {check.to_state.value} "
                f"(allowed: {[s.value for s in check.allowed_targets]})"
            )
        self.states.append(target)
        return target

    def as_list(self) -> list[str]:
        return [state.value for state in self.states]
