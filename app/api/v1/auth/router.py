from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.profiles import find_advisor_for_user, find_student_for_user, find_teacher_for_user
from app.auth.schemas import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RefreshRequest,
    UserInfo,
)
from app.auth.services import login_user, logout, refresh_session
from app.core.exceptions import ServiceError
from app.db.session import get_db

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    try:
        return await login_user(db, payload)
    except ServiceError as e:
        if e.status_code == http_status.HTTP_500_INTERNAL_SERVER_ERROR:
            raise HTTPException(status_code=e.status_code, detail="Internal server error")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    payload = LoginRequest(
        email=form_data.username.strip(),
        password=form_data.password,
    )
    try:
        result = await login_user(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
    }


@router.post("/refresh", response_model=LoginResponse)
async def refresh(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    try:
        return await refresh_session(db, payload.refresh_token)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/logout", status_code=http_status.HTTP_204_NO_CONTENT)
async def sign_out(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    await logout(db, current_user.id, payload.refresh_token)


@router.get("/me", response_model=ProfileResponse)
async def me(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProfileResponse:
    teacher = await find_teacher_for_user(db, current_user.id)
    student = await find_student_for_user(db, current_user.id)
    advisor = await find_advisor_for_user(db, current_user.id)
    return ProfileResponse(
        user=UserInfo(
            id=current_user.id,
            email=current_user.email,
            full_name=current_user.full_name,
            role=current_user.role,
        ),
        teacher_id=teacher.id if teacher else None,
        student_id=student.id if student else None,
        advisor_id=advisor.id if advisor else None,
    )
