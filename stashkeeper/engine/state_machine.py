from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TransitionError(ValueError):
    pass


class SessionState(str, Enum):
    CLEAN = "clean"
    STASHED = "stashed"
    APPLIED = "applied"
    CONFLICTED = "conflicted"


TRANSITIONS: dict[SessionState, tuple[SessionState, ...]] = {
    SessionState.CLEAN: (SessionState.STASHED,),
    SessionState.STASHED: (SessionState.APPLIED, SessionState.CONFLICTED),
    SessionState.APPLIED: (SessionState.CLEAN,),
    SessionState.CONFLICTED: (SessionState.CLEAN,),
}


@dataclass(frozen=True)
class ResolvedTransition:
    from_state: SessionState
    to_state: SessionState


def resolve_transition(from_state: SessionState, to_state: SessionState) -> ResolvedTransition:
    allowed = TRANSITIONS.get(from_state, ())
    if to_state not in allowed:
        raise TransitionError(
            f"Transition not allowed: {from_state.value} -> {to_state.value}. "
            f"Allowed from {from_state.value}: {[s.value for s in allowed]}"
        )
    return ResolvedTransition(from_state=from_state, to_state=to_state)
