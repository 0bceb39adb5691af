import pytest

from app.api.v1.attendance.lifecycle import can_transition, ensure_markable, ensure_transition
from app.core.enums import SessionStatus as S
from app.core.exceptions import ServiceError


@pytest.mark.parametrize(
    "current,target",
    [
        (S.SCHEDULED, S.ACTIVE),
        (S.SCHEDULED, S.CANCELLED),
        (S.ACTIVE, S.COMPLETED),
        (S.ACTIVE, S.CANCELLED),
        (S.COMPLETED, S.COMPLETED),
    ],
)
def test_allowed_transitions(current, target) -> None:
    assert can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.COMPLETED, S.ACTIVE),
        (S.COMPLETED, S.CANCELLED),
        (S.CANCELLED, S.SCHEDULED),
        (S.ACTIVE, S.SCHEDULED),
    ],
)
def test_rejected_transitions(current, target) -> None:
    assert not can_transition(current, target)


def test_ensure_transition_reports_both_states() -> None:
    with pytest.raises(ServiceError) as exc:
        ensure_transition("completed", "active")
    assert exc.value.status_code == 409
    assert exc.value.message == "Cannot change session status from completed to active"


def test_only_cancelled_sessions_refuse_marks() -> None:
    for status in ("scheduled", "active", "completed"):
        ensure_markable(status)
    with pytest.raises(ServiceError) as exc:
        ensure_markable("cancelled")
    assert exc.value.status_code == 409
