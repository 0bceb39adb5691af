import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import RefreshToken
from app.db.seed_admin import seed_admin

from conftest import TEST_PASSWORD, Factory, auth_headers


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, factory: Factory) -> None:
    user = await factory.user("teacher", email="priya@college.edu")

    response = await client.post(
        "/api/v1/auth/login", json={"email": "Priya@College.edu", "password": TEST_PASSWORD}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["user"]["id"] == str(user.id)
    assert data["user"]["role"] == "teacher"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, factory: Factory) -> None:
    await factory.user("teacher", email="priya@college.edu")
    response = await client.post(
        "/api/v1/auth/login", json={"email": "priya@college.edu", "password": "nope"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_inactive_user_cannot_log_in(client: AsyncClient, factory: Factory, db_session: AsyncSession) -> None:
    user = await factory.user("student", email="old@college.edu")
    user.is_active = False
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login", json={"email": "old@college.edu", "password": TEST_PASSWORD}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_me_reports_profiles(client: AsyncClient, factory: Factory) -> None:
    user, teacher = await factory.teacher(full_name="Dr. Rao")

    response = await client.get("/api/v1/auth/me", headers=auth_headers(user))
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["full_name"] == "Dr. Rao"
    assert data["teacher_id"] == str(teacher.id)
    assert data["student_id"] is None
    assert data["advisor_id"] is None


@pytest.mark.asyncio
async def test_requests_without_valid_token_are_rejected(client: AsyncClient) -> None:
    assert (await client.get("/api/v1/auth/me")).status_code == 401
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rotates_token(client: AsyncClient, factory: Factory, db_session: AsyncSession) -> None:
    await factory.user("admin", email="root@college.edu")
    login = await client.post(
        "/api/v1/auth/login", json={"email": "root@college.edu", "password": TEST_PASSWORD}
    )
    old_refresh = login.json()["refresh_token"]

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": old_refresh})
    assert response.status_code == 200
    new_refresh = response.json()["refresh_token"]
    assert new_refresh != old_refresh

    # The consumed token cannot be replayed
    replay = await client.post("/api/v1/auth/refresh", json={"refresh_token": old_refresh})
    assert replay.status_code == 401

    tokens = (await db_session.execute(select(RefreshToken.token))).scalars().all()
    assert tokens == [new_refresh]


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(client: AsyncClient, factory: Factory) -> None:
    user = await factory.user("admin", email="root@college.edu")
    login = await client.post(
        "/api/v1/auth/login", json={"email": "root@college.edu", "password": TEST_PASSWORD}
    )
    refresh_token = login.json()["refresh_token"]

    response = await client.post(
        "/api/v1/auth/logout", json={"refresh_token": refresh_token}, headers=auth_headers(user)
    )
    assert response.status_code == 204
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_role_gate_returns_403(client: AsyncClient, factory: Factory) -> None:
    user, _ = await factory.student("CS01")
    response = await client.get("/api/v1/users", headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


@pytest.mark.asyncio
async def test_seed_admin_creates_then_promotes(
    client: AsyncClient, factory: Factory, db_session: AsyncSession
) -> None:
    await seed_admin(db_session, "Root@College.edu", "Bootstrap1")
    response = await client.post(
        "/api/v1/auth/login", json={"email": "root@college.edu", "password": "Bootstrap1"}
    )
    assert response.status_code == 200

    user = await factory.user("teacher", email="hod@college.edu")
    await seed_admin(db_session, "hod@college.edu", "Bootstrap2")
    await db_session.refresh(user)
    assert user.role == "admin"
    response = await client.post(
        "/api/v1/auth/login", json={"email": "hod@college.edu", "password": "Bootstrap2"}
    )
    assert response.status_code == 200
