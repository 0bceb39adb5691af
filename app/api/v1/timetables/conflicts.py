"""
Timetable collision rules.

Two slots overlap when they share a weekday and existing.start <= new.end and
existing.end >= new.start, so back-to-back slots (one ends 10:00, next starts 10:00) collide.
Each conflict class yields at most one message.
"""

from dataclasses import dataclass
from datetime import time
from typing import Iterable, List, Optional
from uuid import UUID


@dataclass(frozen=True)
class SlotView:
    day_of_week: int
    start_time: time
    end_time: time
    id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    teacher_name: Optional[str] = None
    room: Optional[str] = None
    section: Optional[str] = None
    semester: Optional[int] = None
    subject_code: Optional[str] = None


def overlaps(existing: SlotView, new: SlotView) -> bool:
    return (
        existing.day_of_week == new.day_of_week
        and existing.start_time <= new.end_time
        and existing.end_time >= new.start_time
    )


def _room_key(room: Optional[str]) -> Optional[str]:
    if room is None or not room.strip():
        return None
    return room.strip()


def find_conflicts(new: SlotView, existing: Iterable[SlotView]) -> List[str]:
    """Human-readable conflicts of `new` against `existing`; `new` itself (by id) is ignored."""
    candidates = [s for s in existing if (new.id is None or s.id != new.id) and overlaps(s, new)]
    conflicts: List[str] = []

    if new.teacher_id is not None:
        clash = next((s for s in candidates if s.teacher_id == new.teacher_id), None)
        if clash:
            conflicts.append(
                f"{clash.teacher_name or 'This teacher'} is already teaching "
                f"{clash.subject_code or 'another class'} in Section {clash.section or '-'} at this time"
            )

    room = _room_key(new.room)
    if room is not None:
        clash = next((s for s in candidates if _room_key(s.room) == room), None)
        if clash:
            conflicts.append(
                f"Room {new.room.strip()} is already booked for {clash.subject_code or 'another class'} "
                f"(Section {clash.section or '-'}) at this time"
            )

    if new.section:
        clash = next(
            (s for s in candidates if s.section == new.section and s.semester == new.semester),
            None,
        )
        if clash:
            conflicts.append(
                f"This time slot already has {clash.subject_code or 'a class'} scheduled for "
                f"Section {new.section}"
            )

    return conflicts
