import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InvalidCode, NotFound, StockError
from core.terminals import list_terminals
from db.database import get_async_session
from db.department import Department as DepartmentModel
from routers.common import http_error
from schemas.departments import DepartmentRead, TerminalDescriptor

logger = logging.getLogger(__name__)

router = APIRouter()
pos_router = APIRouter()


@router.get("", response_model=List[DepartmentRead])
async def get_departments(
    active: Optional[bool] = Query(default=None),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(DepartmentModel).order_by(DepartmentModel.code)
    if active is not None:
        stmt = stmt.where(DepartmentModel.is_active.is_(active))
    res = await db.execute(stmt)
    departments = []
    for d in res.scalars().all():
        try:
            departments.append(DepartmentRead.from_department(d))
        except InvalidCode as e:
            logger.warning(f"skipping department {d.id} in listing: {e}")
    return departments


@router.get("/{department_id}", response_model=DepartmentRead)
async def get_department(department_id: UUID, db: AsyncSession = Depends(get_async_session)):
    department = await db.get(DepartmentModel, department_id)
    try:
        if not department:
            raise NotFound("Department", department_id)
        return DepartmentRead.from_department(department)
    except StockError as e:
        raise http_error(e)


@pos_router.get("/terminals", response_model=List[TerminalDescriptor])
async def get_terminals(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(DepartmentModel).order_by(DepartmentModel.code))
    try:
        return list_terminals(res.scalars().all())
    except StockError as e:
        raise http_error(e)
