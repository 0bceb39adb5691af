from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import ADMIN_ONLY, STAFF, require_roles
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import AllocationCreate, AllocationResponse
from . import service

router = APIRouter(prefix="/api/v1/allocations", tags=["allocations"])


@router.post(
    "",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def create_allocation(
    payload: AllocationCreate,
    db: AsyncSession = Depends(get_db),
) -> AllocationResponse:
    try:
        return await service.create_allocation(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[AllocationResponse],
    dependencies=[Depends(require_roles(STAFF))],
)
async def list_allocations(
    academic_year: Optional[str] = Query(None),
    teacher_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[AllocationResponse]:
    return await service.list_allocations(db, academic_year=academic_year, teacher_id=teacher_id)


@router.delete(
    "/{allocation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)
async def delete_allocation(
    allocation_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_allocation(db, allocation_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allocation not found")
