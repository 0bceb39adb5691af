"""Session status transitions. completed and cancelled are terminal."""

from typing import Dict, FrozenSet

from fastapi import status

from app.core.enums import SessionStatus
from app.core.exceptions import ServiceError

S = SessionStatus

TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    S.SCHEDULED: frozenset({S.ACTIVE, S.CANCELLED}),
    S.ACTIVE: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return current == target or target in TRANSITIONS[current]


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(S(current), S(target)):
        raise ServiceError(
            f"Cannot change session status from {current} to {target}",
            status.HTTP_409_CONFLICT,
        )


def ensure_markable(current: str) -> None:
    """Marking is open in every state but cancelled; it finalizes the session."""
    if current == S.CANCELLED.value:
        raise ServiceError("Cannot mark attendance for a cancelled session", status.HTTP_409_CONFLICT)
