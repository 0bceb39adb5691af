from uuid import uuid4

from app.api.v1.reports import aggregation
from app.api.v1.reports.aggregation import Standing, Tally


def test_present_absent_late_present_is_75_and_not_below_75() -> None:
    tally = aggregation.tally_statuses(["present", "absent", "late", "present"])
    assert tally.total == 4
    assert tally.attended == 3
    assert tally.percentage == 75
    assert aggregation.is_below_threshold(tally.percentage, 75) is False


def test_percentage_is_none_without_records() -> None:
    assert aggregation.percentage(0, 0) is None
    assert Tally().percentage is None
    assert aggregation.average_percentage([None, None]) is None


def test_percentage_rounds_half_up() -> None:
    assert aggregation.percentage(1, 8) == 13  # 12.5
    assert aggregation.percentage(2, 3) == 67  # 66.67
    assert aggregation.percentage(1, 3) == 33  # 33.33
    assert aggregation.percentage(149, 200) == 75  # 74.5


def test_threshold_uses_rounded_value() -> None:
    # 74.5% rounds to 75, which is not below 75
    pct = aggregation.percentage(149, 200)
    assert aggregation.is_below_threshold(pct, 75) is False
    assert aggregation.is_below_threshold(74, 75) is True
    assert aggregation.is_below_threshold(None, 75) is False


def test_present_never_lowers_and_absent_never_raises() -> None:
    statuses = []
    for extra in ["absent", "present", "late", "absent", "absent", "present", "present"]:
        statuses.append(extra)
        before = aggregation.tally_statuses(statuses).percentage
        with_present = aggregation.tally_statuses(statuses + ["present"]).percentage
        with_absent = aggregation.tally_statuses(statuses + ["absent"]).percentage
        assert with_present >= before
        assert with_absent <= before
        if before < 100:
            assert with_present > before
        if before > 0:
            assert with_absent < before


def test_folds_group_by_student_and_subject() -> None:
    s1, s2, math, physics = uuid4(), uuid4(), uuid4(), uuid4()
    triples = [
        (s1, math, "present"),
        (s1, math, "absent"),
        (s1, physics, "late"),
        (s2, math, "absent"),
    ]
    assert aggregation.by_student(triples)[s1].total == 3
    assert aggregation.by_subject(triples)[math].total == 3
    cell = aggregation.by_student_subject(triples)[(s1, math)]
    assert (cell.present, cell.absent, cell.percentage) == (1, 1, 50)


def test_cohort_of_ten_counts_two_defaulters() -> None:
    rows = []
    for i in range(6):
        rows.append(Standing(uuid4(), f"R{i:02d}", Tally(present=4)))
    rows.append(Standing(uuid4(), "R06", Tally(present=1, absent=3)))
    rows.append(Standing(uuid4(), "R07", Tally(present=2, absent=2)))
    rows.append(Standing(uuid4(), "R08"))
    rows.append(Standing(uuid4(), "R09"))

    health = aggregation.cohort_health(rows, 75)
    assert health.total_students == 10
    assert health.students_with_data == 8
    assert health.defaulters_count == 2
    # (6 * 100 + 25 + 50) / 8 = 84.375
    assert health.average_percentage == 84


def test_defaulters_sorted_worst_first_then_roll_number() -> None:
    a = Standing(uuid4(), "B02", Tally(present=1, absent=1))
    b = Standing(uuid4(), "A01", Tally(present=1, absent=1))
    c = Standing(uuid4(), "C03", Tally(absent=2))
    ok = Standing(uuid4(), "D04", Tally(present=3, absent=1))
    empty = Standing(uuid4(), "E05")

    result = aggregation.select_defaulters([a, ok, b, empty, c], 75)
    assert [r.roll_number for r in result] == ["C03", "A01", "B02"]


def test_compiled_matrix_overall_is_limited_to_listed_subjects() -> None:
    s1, s2 = uuid4(), uuid4()
    math, physics, elective = uuid4(), uuid4(), uuid4()
    triples = [
        (s1, math, "present"),
        (s1, physics, "absent"),
        (s1, elective, "absent"),
        (s2, math, "late"),
    ]
    rows = aggregation.compiled_matrix([(s1, "R1"), (s2, "R2")], [math, physics], triples)

    assert [r.student_id for r in rows] == [s1, s2]
    assert [c.percentage for c in rows[0].cells] == [100, 0]
    assert rows[0].overall.total == 2
    assert rows[1].cells[1].percentage is None
    assert rows[1].overall.percentage == 100
