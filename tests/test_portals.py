import csv
import io
from datetime import date, time

import pytest
from httpx import AsyncClient

from conftest import Factory, auth_headers


@pytest.mark.asyncio
async def test_teacher_classes_lists_allocations_and_todays_sessions(client: AsyncClient, factory: Factory) -> None:
    dept = await factory.department()
    subject = await factory.subject(department=dept)
    user, teacher = await factory.teacher()
    await factory.allocation(teacher, subject)
    await factory.session(subject, teacher)

    response = await client.get("/api/v1/teacher/classes", headers=auth_headers(user))
    assert response.status_code == 200
    data = response.json()
    assert [a["subject_code"] for a in data["allocations"]] == ["CS301"]
    assert len(data["today_sessions"]) == 1


@pytest.mark.asyncio
async def test_teacher_timetable_pairs_slots_with_todays_session(client: AsyncClient, factory: Factory) -> None:
    subject = await factory.subject()
    user, teacher = await factory.teacher()
    today = date.today().weekday()
    started = await factory.slot(subject, teacher, day_of_week=today, start=time(9, 0), end=time(10, 0))
    await factory.slot(subject, teacher, day_of_week=today, start=time(11, 0), end=time(12, 0))
    session = await factory.session(subject, teacher, status="active", start=time(9, 0), section="A")

    response = await client.get("/api/v1/teacher/timetable", headers=auth_headers(user))
    assert response.status_code == 200
    entries = response.json()
    assert [e["slot"]["start_time"] for e in entries] == ["09:00", "11:00"]
    assert entries[0]["slot"]["id"] == str(started.id)
    assert entries[0]["session_id"] == str(session.id)
    assert entries[0]["session_status"] == "active"
    assert entries[1]["session_id"] is None


@pytest.mark.asyncio
async def test_teacher_reports_per_allocated_subject(client: AsyncClient, factory: Factory) -> None:
    dept = await factory.department()
    subject = await factory.subject(department=dept)
    user, teacher = await factory.teacher()
    await factory.allocation(teacher, subject)
    _, s1 = await factory.student("CS01", department=dept)
    _, s2 = await factory.student("CS02", department=dept)
    first = await factory.session(subject, teacher, status="completed", start=time(9, 0))
    second = await factory.session(subject, teacher, status="completed", start=time(10, 0))
    await factory.session(subject, teacher, status="cancelled", start=time(11, 0))
    await factory.records(first, {s1: "present", s2: "absent"})
    await factory.records(second, {s1: "present", s2: "present"})

    response = await client.get("/api/v1/teacher/reports", headers=auth_headers(user))
    assert response.status_code == 200
    [report] = response.json()
    assert report["subject_code"] == "CS301"
    assert report["department"] == "Computer Science"
    assert report["total_sessions"] == 2
    assert report["total_students"] == 2
    # mean of 100 and 50
    assert report["avg_attendance"] == 75
    assert report["students_below_threshold"] == 1


@pytest.mark.asyncio
async def test_teacher_portal_needs_teacher_profile(client: AsyncClient, factory: Factory) -> None:
    user = await factory.user("teacher")
    response = await client.get("/api/v1/teacher/classes", headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json()["detail"] == "Teacher profile not found"


@pytest.mark.asyncio
async def test_student_sees_own_attendance(client: AsyncClient, factory: Factory) -> None:
    subject = await factory.subject()
    user, student = await factory.student("CS01")
    for hour, status in zip((9, 10, 11, 12), ("present", "absent", "late", "present")):
        session = await factory.session(subject, status="completed", start=time(hour, 0))
        await factory.records(session, {student: status})

    response = await client.get("/api/v1/student/attendance", headers=auth_headers(user))
    assert response.status_code == 200
    data = response.json()
    assert data["student"]["roll_number"] == "CS01"
    assert data["overall"]["percentage"] == 75
    [per_subject] = data["subjects"]
    assert (per_subject["present"], per_subject["absent"], per_subject["late"]) == (2, 1, 1)


@pytest.mark.asyncio
async def test_student_timetable_filters_batch_and_shows_own_mark(client: AsyncClient, factory: Factory) -> None:
    dept = await factory.department()
    theory = await factory.subject(department=dept)
    lab = await factory.subject(code="CS301L", name="OS Lab", department=dept)
    user, student = await factory.student("CS01", department=dept, batch="B1")
    today = date.today().weekday()
    await factory.slot(theory, day_of_week=today, start=time(9, 0), end=time(10, 0))
    await factory.slot(lab, day_of_week=today, start=time(10, 0), end=time(12, 0), batch="B1")
    await factory.slot(lab, day_of_week=today, start=time(13, 0), end=time(15, 0), batch="B2")
    await factory.slot(theory, day_of_week=today, start=time(15, 0), end=time(16, 0), section="B")
    session = await factory.session(theory, status="completed", start=time(9, 0), section="A")
    await factory.records(session, {student: "late"})

    response = await client.get("/api/v1/student/timetable", headers=auth_headers(user))
    assert response.status_code == 200
    entries = response.json()
    assert [e["slot"]["start_time"] for e in entries] == ["09:00", "10:00"]
    assert entries[0]["session_id"] == str(session.id)
    assert entries[0]["attendance_status"] == "late"
    assert entries[1]["attendance_status"] is None


@pytest.mark.asyncio
async def test_student_subject_history_newest_first_without_cancelled(client: AsyncClient, factory: Factory) -> None:
    subject = await factory.subject()
    user, student = await factory.student("CS01", section="A")
    marked_early = await factory.session(subject, status="completed", session_date=date(2026, 3, 2), section="A")
    marked_elsewhere = await factory.session(subject, status="completed", session_date=date(2026, 3, 3), section="B")
    unmarked = await factory.session(subject, status="completed", session_date=date(2026, 3, 4))
    await factory.session(subject, status="cancelled", session_date=date(2026, 3, 5), section="A")
    await factory.session(subject, status="completed", session_date=date(2026, 3, 6), section="B")
    await factory.records(marked_early, {student: "absent"})
    await factory.records(marked_elsewhere, {student: "present"})

    response = await client.get(
        f"/api/v1/student/attendance/subjects/{subject.id}/history", headers=auth_headers(user)
    )
    assert response.status_code == 200
    data = response.json()
    assert data["subject_code"] == "CS301"
    assert [e["session_id"] for e in data["sessions"]] == [
        str(unmarked.id),
        str(marked_elsewhere.id),
        str(marked_early.id),
    ]
    assert [e["status"] for e in data["sessions"]] == [None, "present", "absent"]
    assert data["sessions"][0]["marked_at"] is None
    assert data["sessions"][1]["marked_at"] is not None
    assert (data["summary"]["total"], data["summary"]["percentage"]) == (2, 50)


@pytest.mark.asyncio
async def test_staff_reads_student_subject_history(client: AsyncClient, factory: Factory) -> None:
    subject = await factory.subject()
    _, student = await factory.student("CS01")
    session = await factory.session(subject, status="completed")
    await factory.records(session, {student: "late"})
    user, _ = await factory.teacher()
    headers = auth_headers(user)

    response = await client.get(f"/api/v1/students/{student.id}/subjects/{subject.id}/history", headers=headers)
    assert response.status_code == 200
    assert [e["status"] for e in response.json()["sessions"]] == ["late"]

    missing = await client.get(f"/api/v1/students/{student.id}/subjects/{student.id}/history", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Subject not found"


@pytest.mark.asyncio
async def test_student_portal_is_student_only(client: AsyncClient, factory: Factory) -> None:
    user, _ = await factory.teacher()
    response = await client.get("/api/v1/student/attendance", headers=auth_headers(user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_stats(client: AsyncClient, factory: Factory) -> None:
    dept = await factory.department()
    subject = await factory.subject(department=dept)
    _, teacher = await factory.teacher()
    await factory.allocation(teacher, subject)
    await factory.student("CS01", department=dept)
    admin = await factory.admin()

    response = await client.get("/api/v1/admin/stats", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["users"] == 3
    assert data["students"] == 1
    assert data["teachers"] == 1
    assert data["departments"] == 1
    assert data["subjects"] == 1
    assert data["allocations"] == 1
    assert data["sessions"] == 0


@pytest.mark.asyncio
async def test_advisor_assignment_upserts_and_promotes_role(client: AsyncClient, factory: Factory) -> None:
    dept = await factory.department()
    admin = await factory.admin()
    user, _ = await factory.teacher()

    first = await client.post(
        "/api/v1/admin/advisors",
        json={"user_id": str(user.id), "department_id": str(dept.id), "semester": 3, "section": "A"},
        headers=auth_headers(admin),
    )
    assert first.status_code == 200
    second = await client.post(
        "/api/v1/admin/advisors",
        json={"user_id": str(user.id), "department_id": str(dept.id), "semester": 5, "section": "B"},
        headers=auth_headers(admin),
    )
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["semester"] == 5

    listed = (await client.get("/api/v1/admin/advisors", headers=auth_headers(admin))).json()
    assert len(listed) == 1

    me = (await client.get("/api/v1/auth/me", headers=auth_headers(user))).json()
    assert me["user"]["role"] == "advisor"
    assert me["advisor_id"] == first.json()["id"]

    deleted = await client.delete(f"/api/v1/admin/advisors/{first.json()['id']}", headers=auth_headers(admin))
    assert deleted.status_code == 204


@pytest.mark.asyncio
async def test_students_cannot_become_advisors(client: AsyncClient, factory: Factory) -> None:
    admin = await factory.admin()
    user, _ = await factory.student("CS01")
    response = await client.post(
        "/api/v1/admin/advisors", json={"user_id": str(user.id)}, headers=auth_headers(admin)
    )
    assert response.status_code == 400


async def _advised_class(factory: Factory):
    """Ten students in CSE semester 3 section A: six at 100, two at 25, two with no records."""
    dept = await factory.department()
    subject = await factory.subject(department=dept)
    students = [
        (await factory.student(f"CS{i:02d}", department=dept, batch="B1" if i <= 5 else "B2"))[1]
        for i in range(1, 11)
    ]
    # Different section, outside the cohort
    _, outsider = await factory.student("CS99", department=dept, section="B")
    for hour in range(9, 13):
        session = await factory.session(subject, status="completed", start=time(hour, 0))
        marks = {s: "present" for s in students[:6]}
        marks.update({s: ("present" if hour == 9 else "absent") for s in students[6:8]})
        marks[outsider] = "absent"
        await factory.records(session, marks)
    user, advisor = await factory.advisor(department=dept, semester=3, section="A")
    return user, students, outsider


@pytest.mark.asyncio
async def test_advisor_health_of_cohort_of_ten(client: AsyncClient, factory: Factory) -> None:
    user, _, _ = await _advised_class(factory)

    response = await client.get("/api/v1/advisor/health", headers=auth_headers(user))
    assert response.status_code == 200
    data = response.json()
    assert data["total_students"] == 10
    assert data["students_with_data"] == 8
    assert data["defaulters_count"] == 2
    # (6 * 100 + 2 * 25) / 8 = 81.25
    assert data["average_percentage"] == 81
    assert data["threshold"] == 75


@pytest.mark.asyncio
async def test_advisor_students_and_risks(client: AsyncClient, factory: Factory) -> None:
    user, _, _ = await _advised_class(factory)

    students = (await client.get("/api/v1/advisor/students", headers=auth_headers(user))).json()
    assert len(students["students"]) == 10
    at_risk = [s["roll_number"] for s in students["students"] if s["at_risk"]]
    assert at_risk == ["CS07", "CS08"]
    assert students["students"][9]["percentage"] is None

    risks = (await client.get("/api/v1/advisor/risks", headers=auth_headers(user))).json()
    assert risks["total_students"] == 10
    assert [d["roll_number"] for d in risks["defaulters"]] == ["CS07", "CS08"]


@pytest.mark.asyncio
async def test_advisor_notes_and_student_detail(client: AsyncClient, factory: Factory) -> None:
    user, students, outsider = await _advised_class(factory)
    target = students[6]

    created = await client.post(
        "/api/v1/advisor/notes",
        json={"student_id": str(target.id), "note": "Called parents", "action_taken": "Meeting set"},
        headers=auth_headers(user),
    )
    assert created.status_code == 201
    assert created.json()["advisor_user_id"] == str(user.id)

    refused = await client.post(
        "/api/v1/advisor/notes",
        json={"student_id": str(outsider.id), "note": "Not mine"},
        headers=auth_headers(user),
    )
    assert refused.status_code == 403

    notes = (await client.get(f"/api/v1/advisor/notes?student_id={target.id}", headers=auth_headers(user))).json()
    assert [n["note"] for n in notes] == ["Called parents"]

    detail = await client.get(f"/api/v1/advisor/students/{target.id}", headers=auth_headers(user))
    assert detail.status_code == 200
    body = detail.json()
    assert body["overall"]["percentage"] == 25
    assert len(body["notes"]) == 1

    outside = await client.get(f"/api/v1/advisor/students/{outsider.id}", headers=auth_headers(user))
    assert outside.status_code == 403


@pytest.mark.asyncio
async def test_advisor_reports(client: AsyncClient, factory: Factory) -> None:
    user, _, _ = await _advised_class(factory)

    full = await client.get("/api/v1/advisor/reports", headers=auth_headers(user))
    assert full.status_code == 200
    assert "report_full_" in full.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(full.text)))
    assert rows[0] == ["Roll No", "Name", "CS301 (Att/Tot)", "CS301 %", "Total (Att/Tot)", "Total %"]
    assert len(rows) == 11
    assert rows[1] == ["CS01", "Student CS01", "4/4", "100%", "4/4", "100%"]
    assert rows[10][-1] == "-"

    defaulters = await client.get("/api/v1/advisor/reports?type=defaulter", headers=auth_headers(user))
    rows = list(csv.reader(io.StringIO(defaulters.text)))
    assert [r[0] for r in rows[1:]] == ["CS07", "CS08"]

    batch = await client.get("/api/v1/advisor/reports?type=batch&batch=B1", headers=auth_headers(user))
    rows = list(csv.reader(io.StringIO(batch.text)))
    assert [r[0] for r in rows[1:]] == ["CS01", "CS02", "CS03", "CS04", "CS05"]

    missing_batch = await client.get("/api/v1/advisor/reports?type=batch", headers=auth_headers(user))
    assert missing_batch.status_code == 400


@pytest.mark.asyncio
async def test_advisor_without_scope_is_400(client: AsyncClient, factory: Factory) -> None:
    user, _ = await factory.advisor(semester=None, section=None)
    response = await client.get("/api/v1/advisor/health", headers=auth_headers(user))
    assert response.status_code == 400
