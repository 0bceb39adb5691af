import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date, time
from typing import AsyncGenerator, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.models import User
from app.auth.security import create_access_token, hash_password
from app.core.models import (
    AttendanceRecord,
    AttendanceSession,
    ClassAdvisor,
    Department,
    Student,
    Subject,
    Teacher,
    TeacherSubjectAllocation,
    TimetableSlot,
)
from app.db.init_db import create_tables
from app.db.session import get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "Secret123"
# bcrypt is slow on purpose; hash once for every fixture user
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test, shared by the app through the get_db override."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


class Factory:
    """Insert rows straight through the ORM so tests only exercise the endpoint under test."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def department(self, code: str = "CSE", name: str = "Computer Science") -> Department:
        return await self._save(Department(code=code, name=name))

    async def subject(
        self,
        code: str = "CS301",
        name: str = "Operating Systems",
        department: Optional[Department] = None,
        semester: Optional[int] = 3,
    ) -> Subject:
        return await self._save(
            Subject(
                code=code,
                name=name,
                department_id=department.id if department else None,
                semester=semester,
            )
        )

    async def user(self, role: str, full_name: Optional[str] = None, email: Optional[str] = None) -> User:
        n = self._next()
        return await self._save(
            User(
                email=email or f"{role}{n}@college.edu",
                full_name=full_name or f"{role.title()} {n}",
                password_hash=TEST_PASSWORD_HASH,
                role=role,
                is_active=True,
            )
        )

    async def admin(self) -> User:
        return await self.user("admin")

    async def teacher(self, full_name: Optional[str] = None, department: Optional[Department] = None):
        user = await self.user("teacher", full_name=full_name)
        teacher = await self._save(
            Teacher(user_id=user.id, department_id=department.id if department else None)
        )
        return user, teacher

    async def student(
        self,
        roll_number: str,
        department: Optional[Department] = None,
        semester: int = 3,
        section: Optional[str] = "A",
        batch: Optional[str] = None,
        full_name: Optional[str] = None,
    ):
        user = await self.user("student", full_name=full_name or f"Student {roll_number}")
        student = await self._save(
            Student(
                user_id=user.id,
                roll_number=roll_number,
                semester=semester,
                section=section,
                batch=batch,
                department_id=department.id if department else None,
            )
        )
        return user, student

    async def advisor(
        self,
        department: Optional[Department] = None,
        semester: Optional[int] = 3,
        section: Optional[str] = "A",
    ):
        user = await self.user("advisor")
        advisor = await self._save(
            ClassAdvisor(
                user_id=user.id,
                department_id=department.id if department else None,
                semester=semester,
                section=section,
            )
        )
        return user, advisor

    async def allocation(self, teacher: Teacher, subject: Subject, section: str = "A") -> TeacherSubjectAllocation:
        return await self._save(
            TeacherSubjectAllocation(
                teacher_id=teacher.id, subject_id=subject.id, section=section, academic_year="2025-26"
            )
        )

    async def slot(
        self,
        subject: Subject,
        teacher: Optional[Teacher] = None,
        day_of_week: int = 0,
        start: time = time(9, 0),
        end: time = time(10, 0),
        room: Optional[str] = None,
        section: Optional[str] = "A",
        semester: Optional[int] = 3,
        batch: Optional[str] = None,
    ) -> TimetableSlot:
        return await self._save(
            TimetableSlot(
                subject_id=subject.id,
                teacher_id=teacher.id if teacher else None,
                day_of_week=day_of_week,
                start_time=start,
                end_time=end,
                room=room,
                section=section,
                semester=semester,
                batch=batch,
            )
        )

    async def session(
        self,
        subject: Subject,
        teacher: Optional[Teacher] = None,
        status: str = "scheduled",
        session_date: Optional[date] = None,
        start: Optional[time] = time(9, 0),
        section: Optional[str] = None,
        batch: Optional[str] = None,
    ) -> AttendanceSession:
        return await self._save(
            AttendanceSession(
                subject_id=subject.id,
                teacher_id=teacher.id if teacher else None,
                session_date=session_date or date.today(),
                start_time=start,
                end_time=time(start.hour + 1, start.minute) if start else None,
                section=section,
                batch=batch,
                status=status,
            )
        )

    async def records(self, session: AttendanceSession, marks: Dict[Student, str]) -> None:
        for student, status in marks.items():
            self.db.add(AttendanceRecord(session_id=session.id, student_id=student.id, status=status))
        await self.db.commit()


@pytest.fixture()
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)
