from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import ADMIN_ONLY, require_roles
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import AdvisorAssign, AdvisorResponse, StatsResponse
from . import service

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_roles(ADMIN_ONLY))],
)


@router.get("/stats", response_model=StatsResponse)
async def stats(db: AsyncSession = Depends(get_db)) -> StatsResponse:
    return await service.get_stats(db)


@router.get("/advisors", response_model=List[AdvisorResponse])
async def list_advisors(db: AsyncSession = Depends(get_db)) -> List[AdvisorResponse]:
    return await service.list_advisors(db)


@router.post("/advisors", response_model=AdvisorResponse)
async def assign_advisor(
    payload: AdvisorAssign,
    db: AsyncSession = Depends(get_db),
) -> AdvisorResponse:
    """Upsert on user: a second assignment for the same user replaces the first."""
    try:
        return await service.assign_advisor(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/advisors/{advisor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_advisor(advisor_id: UUID, db: AsyncSession = Depends(get_db)):
    deleted = await service.remove_advisor(db, advisor_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Advisor assignment not found")
    return None
