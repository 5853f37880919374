from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import StockError
from db.database import get_async_session
from routers.common import http_error
from schemas.reconciliation import DriftReportRead
from services.reconciliation import ReconciliationEngine

router = APIRouter()


@router.get("", response_model=List[DriftReportRead])
async def get_drift_reports(db: AsyncSession = Depends(get_async_session)):
    engine = ReconciliationEngine(db)
    return [DriftReportRead.from_report(report) async for report in engine.audit_all()]


@router.get("/items/{item_id}", response_model=DriftReportRead)
async def get_item_report(item_id: UUID, db: AsyncSession = Depends(get_async_session)):
    try:
        report = await ReconciliationEngine(db).report_item(item_id)
    except StockError as e:
        raise http_error(e)
    return DriftReportRead.from_report(report)
