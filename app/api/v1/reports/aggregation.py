"""
Attendance folds over (student_id, subject_id, status) triples.

Every percentage in the service comes from here: attended = present + late, total = all records
of non-cancelled sessions, percentage rounded half-up to an integer and None when there is no data.
Threshold checks run on the rounded value.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar
from uuid import UUID

from app.core.enums import AttendanceStatus

AttendanceTriple = Tuple[UUID, UUID, str]

K = TypeVar("K", bound=Hashable)


def percentage(attended: int, total: int) -> Optional[int]:
    """round-half-up(100 * attended / total) in integer arithmetic; None for total == 0."""
    if total <= 0:
        return None
    return (200 * attended + total) // (2 * total)


def is_below_threshold(pct: Optional[int], threshold: int) -> bool:
    # No data is never at risk
    return pct is not None and pct < threshold


@dataclass
class Tally:
    present: int = 0
    absent: int = 0
    late: int = 0

    def add(self, status: str) -> None:
        if status == AttendanceStatus.PRESENT.value:
            self.present += 1
        elif status == AttendanceStatus.LATE.value:
            self.late += 1
        else:
            self.absent += 1

    @property
    def attended(self) -> int:
        return self.present + self.late

    @property
    def total(self) -> int:
        return self.present + self.absent + self.late

    @property
    def percentage(self) -> Optional[int]:
        return percentage(self.attended, self.total)


def tally_statuses(statuses: Iterable[str]) -> Tally:
    tally = Tally()
    for status in statuses:
        tally.add(status)
    return tally


def _fold(pairs: Iterable[Tuple[K, str]]) -> Dict[K, Tally]:
    out: Dict[K, Tally] = {}
    for key, status in pairs:
        out.setdefault(key, Tally()).add(status)
    return out


def by_student(triples: Iterable[AttendanceTriple]) -> Dict[UUID, Tally]:
    return _fold((student_id, status) for student_id, _, status in triples)


def by_subject(triples: Iterable[AttendanceTriple]) -> Dict[UUID, Tally]:
    return _fold((subject_id, status) for _, subject_id, status in triples)


def by_student_subject(triples: Iterable[AttendanceTriple]) -> Dict[Tuple[UUID, UUID], Tally]:
    return _fold(((student_id, subject_id), status) for student_id, subject_id, status in triples)


def average_percentage(values: Iterable[Optional[int]]) -> Optional[int]:
    """Round-half-up mean of the non-None values."""
    known = [v for v in values if v is not None]
    if not known:
        return None
    return (2 * sum(known) + len(known)) // (2 * len(known))


@dataclass
class Standing:
    """One student's overall position, the unit of defaulter and risk lists."""

    student_id: UUID
    roll_number: str
    tally: Tally = field(default_factory=Tally)

    @property
    def percentage(self) -> Optional[int]:
        return self.tally.percentage


def standings(
    students: Sequence[Tuple[UUID, str]], tallies: Dict[UUID, Tally]
) -> List[Standing]:
    return [Standing(sid, roll, tallies.get(sid, Tally())) for sid, roll in students]


def select_defaulters(rows: Iterable[Standing], threshold: int) -> List[Standing]:
    """Students strictly below threshold, worst first, ties by roll number."""
    below = [r for r in rows if is_below_threshold(r.percentage, threshold)]
    below.sort(key=lambda r: (r.percentage, r.roll_number))
    return below


@dataclass
class CohortHealth:
    total_students: int
    students_with_data: int
    average_percentage: Optional[int]
    defaulters_count: int


def cohort_health(rows: Sequence[Standing], threshold: int) -> CohortHealth:
    pcts = [r.percentage for r in rows]
    return CohortHealth(
        total_students=len(rows),
        students_with_data=sum(1 for p in pcts if p is not None),
        average_percentage=average_percentage(pcts),
        defaulters_count=sum(1 for p in pcts if is_below_threshold(p, threshold)),
    )


@dataclass
class MatrixRow:
    student_id: UUID
    cells: List[Tally]
    overall: Tally


def compiled_matrix(
    students: Sequence[Tuple[UUID, str]],
    subject_ids: Sequence[UUID],
    triples: Iterable[AttendanceTriple],
) -> List[MatrixRow]:
    """
    Pivot per-student-per-subject tallies: one row per student with a cell per subject (in the
    given order) and an overall tally over those subjects only.
    """
    wanted = set(subject_ids)
    scoped = [t for t in triples if t[1] in wanted]
    cells = by_student_subject(scoped)
    overall = by_student(scoped)
    return [
        MatrixRow(
            student_id=student_id,
            cells=[cells.get((student_id, subject_id), Tally()) for subject_id in subject_ids],
            overall=overall.get(student_id, Tally()),
        )
        for student_id, _ in students
    ]
