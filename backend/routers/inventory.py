from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.department_codes import department_section_id
from core.errors import NotFound, StockError
from db.database import get_async_session
from db.department import Department as DepartmentModel
from db.inventory.item import InventoryItem as InventoryItemModel
from routers.common import http_error
from schemas.inventory import (
    ItemStockRead,
    LedgerQuantityRead,
    LedgerRowRead,
    ReceiptCreate,
    StockAdjustmentCreate,
)
from services.ledger import InventoryLedger

router = APIRouter()


async def _section_for(db: AsyncSession, department_id: UUID, section_id: Optional[str]) -> Optional[str]:
    # An explicit section wins; otherwise use the one encoded in the department code.
    department = await db.get(DepartmentModel, department_id)
    if not department:
        raise NotFound("Department", department_id)
    if section_id:
        return section_id
    return department_section_id(department)


@router.get("/departments/{department_id}/items/{item_id}", response_model=LedgerQuantityRead)
async def get_ledger_quantity(
    department_id: UUID,
    item_id: UUID,
    section_id: Optional[str] = Query(default=None, alias="sectionId"),
    db: AsyncSession = Depends(get_async_session),
):
    ledger = InventoryLedger(db)
    try:
        section = await _section_for(db, department_id, section_id)
        await ledger.global_quantity(item_id)
        quantity = await ledger.get_quantity(department_id, item_id, section)
    except StockError as e:
        raise http_error(e)
    return LedgerQuantityRead(department_id=department_id, section_id=section, item_id=item_id, quantity=quantity)


@router.post("/adjust", response_model=LedgerQuantityRead)
async def adjust_stock(payload: StockAdjustmentCreate, db: AsyncSession = Depends(get_async_session)):
    ledger = InventoryLedger(db)
    try:
        section = await _section_for(db, payload.department_id, payload.section_id)
        quantity = await ledger.adjust(
            payload.department_id,
            payload.item_id,
            payload.delta,
            section,
            reason=payload.reason or "adjustment",
            source_type="manual",
        )
        await db.commit()
    except StockError as e:
        await db.rollback()
        raise http_error(e)
    return LedgerQuantityRead(
        department_id=payload.department_id, section_id=section, item_id=payload.item_id, quantity=quantity
    )


@router.post("/receipts", response_model=LedgerQuantityRead, status_code=status.HTTP_201_CREATED)
async def receive_stock(payload: ReceiptCreate, db: AsyncSession = Depends(get_async_session)):
    ledger = InventoryLedger(db)
    try:
        section = await _section_for(db, payload.department_id, payload.section_id)
        quantity = await ledger.record_receipt(
            payload.department_id,
            payload.item_id,
            payload.quantity,
            section,
            source_id=payload.reference,
        )
        await db.commit()
    except StockError as e:
        await db.rollback()
        raise http_error(e)
    return LedgerQuantityRead(
        department_id=payload.department_id, section_id=section, item_id=payload.item_id, quantity=quantity
    )


@router.get("/items/{item_id}", response_model=ItemStockRead)
async def get_item_stock(item_id: UUID, db: AsyncSession = Depends(get_async_session)):
    ledger = InventoryLedger(db)
    item = await db.get(InventoryItemModel, item_id)
    if not item:
        raise http_error(NotFound("InventoryItem", item_id))

    rows = await ledger.rows_for_item(item_id)
    canonical = int(item.quantity or 0)
    summed = await ledger.summed_quantity(item_id)
    return ItemStockRead(
        item_id=item.id,
        sku=item.sku,
        name=item.name,
        category=item.category,
        canonical=canonical,
        summed=summed,
        drift=summed - canonical,
        departments=[LedgerRowRead(**r.to_schema) for r in rows],
    )
