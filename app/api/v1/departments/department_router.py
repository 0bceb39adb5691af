from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import ADMIN_ONLY, STAFF, require_roles
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import DepartmentCreate, DepartmentResponse, DepartmentUpdate
from . import service

router = APIRouter(prefix="/api/v1/departments", tags=["departments"])


@router.post(
    "",
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def create_department(
    payload: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
) -> DepartmentResponse:
    try:
        return await service.create_department(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[DepartmentResponse],
    dependencies=[Depends(require_roles(STAFF))],
)
async def list_departments(
    db: AsyncSession = Depends(get_db),
) -> List[DepartmentResponse]:
    return await service.list_departments(db)


@router.get(
    "/{department_id}",
    response_model=DepartmentResponse,
    dependencies=[Depends(require_roles(STAFF))],
)
async def get_department(
    department_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> DepartmentResponse:
    dept = await service.get_department(db, department_id)
    if not dept:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
    return dept


@router.put(
    "/{department_id}",
    response_model=DepartmentResponse,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def update_department(
    department_id: UUID,
    payload: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
) -> DepartmentResponse:
    dept = await service.update_department(db, department_id, payload)
    if not dept:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
    return dept


@router.delete(
    "/{department_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def delete_department(
    department_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_department(db, department_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
