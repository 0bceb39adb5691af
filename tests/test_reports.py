import csv
import io
from datetime import time

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook

from conftest import Factory, auth_headers


async def _semester_with_marks(factory: Factory):
    """
    CS01: 4/4, CS02: 3/4 (75, on the line), CS03: 1/4, CS04: no records.
    Sessions are CS301 only; CS302 has none.
    """
    dept = await factory.department()
    os_subject = await factory.subject(code="CS301", name="Operating Systems", department=dept)
    await factory.subject(code="CS302", name="Databases", department=dept)
    students = [(await factory.student(f"CS0{i}", department=dept))[1] for i in range(1, 5)]
    s1, s2, s3, _ = students
    plan = [
        {s1: "present", s2: "present", s3: "absent"},
        {s1: "present", s2: "absent", s3: "absent"},
        {s1: "late", s2: "late", s3: "present"},
        {s1: "present", s2: "present", s3: "absent"},
    ]
    for hour, marks in zip(range(8, 12), plan):
        session = await factory.session(os_subject, status="completed", start=time(hour, 0))
        await factory.records(session, marks)
    # Cancelled sessions never count
    cancelled = await factory.session(os_subject, status="cancelled", start=time(13, 0))
    await factory.records(cancelled, {s2: "absent", s3: "absent"})
    return dept, os_subject, students


@pytest.mark.asyncio
async def test_defaulters_strictly_below_threshold(client: AsyncClient, factory: Factory) -> None:
    await _semester_with_marks(factory)
    admin = await factory.admin()

    response = await client.get("/api/v1/reports/defaulters?semester=3", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["threshold"] == 75
    assert data["total_students"] == 4
    assert data["defaulters_count"] == 1
    only = data["defaulters"][0]
    assert (only["roll_number"], only["attended"], only["total_classes"], only["percentage"]) == ("CS03", 1, 4, 25)


@pytest.mark.asyncio
async def test_defaulters_threshold_override(client: AsyncClient, factory: Factory) -> None:
    await _semester_with_marks(factory)
    admin = await factory.admin()

    data = (
        await client.get("/api/v1/reports/defaulters?threshold=80", headers=auth_headers(admin))
    ).json()
    assert [d["roll_number"] for d in data["defaulters"]] == ["CS03", "CS02"]


@pytest.mark.asyncio
async def test_defaulters_export_csv(client: AsyncClient, factory: Factory) -> None:
    await _semester_with_marks(factory)
    admin = await factory.admin()

    response = await client.get("/api/v1/reports/defaulters/export", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.headers["content-disposition"] == "attachment; filename=defaulters_below_75.csv"
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][0] == "Roll Number"
    assert rows[1][0] == "CS03"
    assert rows[1][-1] == "25%"


@pytest.mark.asyncio
async def test_compiled_matrix(client: AsyncClient, factory: Factory) -> None:
    _, os_subject, students = await _semester_with_marks(factory)
    admin = await factory.admin()

    response = await client.get("/api/v1/reports/compiled?semester=3", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert [s["code"] for s in data["subjects"]] == ["CS301", "CS302"]
    rows = {r["roll_number"]: r for r in data["students"]}
    assert rows["CS02"]["subject_attendance"][str(os_subject.id)]["percentage"] == 75
    assert rows["CS02"]["overall"]["late"] == 1
    assert rows["CS04"]["overall"]["percentage"] is None


@pytest.mark.asyncio
async def test_compiled_requires_semester(client: AsyncClient, factory: Factory) -> None:
    admin = await factory.admin()
    response = await client.get("/api/v1/reports/compiled", headers=auth_headers(admin))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_compiled_export_csv(client: AsyncClient, factory: Factory) -> None:
    await _semester_with_marks(factory)
    admin = await factory.admin()

    response = await client.get("/api/v1/reports/compiled/export?semester=3", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Roll Number", "Name", "Section", "Batch", "CS301", "CS302", "Overall %"]
    assert rows[1] == ["CS01", "Student CS01", "A", "", "100%", "-", "100%"]
    assert rows[4][-1] == "-"


@pytest.mark.asyncio
async def test_compiled_export_xlsx(client: AsyncClient, factory: Factory) -> None:
    await _semester_with_marks(factory)
    admin = await factory.admin()

    response = await client.get(
        "/api/v1/reports/compiled/export?semester=3&format=xlsx", headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.headers["content-disposition"].endswith(".xlsx")
    ws = load_workbook(io.BytesIO(response.content)).active
    assert ws["A1"].value == "Roll Number"
    assert ws["A3"].value == "CS02"
    assert ws["E3"].value == "75%"


@pytest.mark.asyncio
async def test_compiled_export_without_students_is_404(client: AsyncClient, factory: Factory) -> None:
    admin = await factory.admin()
    response = await client.get("/api/v1/reports/compiled/export?semester=6", headers=auth_headers(admin))
    assert response.status_code == 404
    assert response.json()["detail"] == "No data found"


@pytest.mark.asyncio
async def test_subject_export_is_limited_to_allocated_teacher(client: AsyncClient, factory: Factory) -> None:
    _, os_subject, _ = await _semester_with_marks(factory)
    owner, teacher = await factory.teacher()
    await factory.allocation(teacher, os_subject)
    outsider, _ = await factory.teacher()

    response = await client.get(f"/api/v1/reports/subjects/{os_subject.id}/export", headers=auth_headers(owner))
    assert response.status_code == 200
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Roll No", "Name", "CS301 (Att/Tot)", "CS301 %"]
    assert rows[3] == ["CS03", "Student CS03", "1/4", "25%"]

    response = await client.get(
        f"/api/v1/reports/subjects/{os_subject.id}/export", headers=auth_headers(outsider)
    )
    assert response.status_code == 403
