from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import StockError
from db.database import get_async_session
from routers.common import http_error
from schemas.transfers import TransferApprove, TransferCreate, TransferRead, TransferReject
from services.transfers import TransferWorkflow

router = APIRouter()


@router.post("", response_model=TransferRead, status_code=status.HTTP_201_CREATED)
async def create_transfer(payload: TransferCreate, db: AsyncSession = Depends(get_async_session)):
    workflow = TransferWorkflow(db)
    try:
        return await workflow.create(
            payload.from_department_id,
            payload.to_department_id,
            [line.model_dump() for line in payload.items],
            created_by=payload.created_by,
            notes=payload.notes,
        )
    except StockError as e:
        await db.rollback()
        raise http_error(e)


@router.get("", response_model=List[TransferRead])
async def list_transfers(
    department_id: UUID = Query(alias="departmentId"),
    direction: str = Query(default="any"),
    transfer_status: Optional[str] = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        return await TransferWorkflow(db).list_for_department(department_id, direction, transfer_status)
    except StockError as e:
        raise http_error(e)


@router.get("/{transfer_id}", response_model=TransferRead)
async def get_transfer(transfer_id: UUID, db: AsyncSession = Depends(get_async_session)):
    try:
        return await TransferWorkflow(db).get(transfer_id)
    except StockError as e:
        raise http_error(e)


@router.post("/{transfer_id}/approve", response_model=TransferRead)
async def approve_transfer(
    transfer_id: UUID,
    payload: Optional[TransferApprove] = Body(default=None),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        return await TransferWorkflow(db).approve(transfer_id, actor=payload.actor if payload else None)
    except StockError as e:
        raise http_error(e)


@router.post("/{transfer_id}/reject", response_model=TransferRead)
async def reject_transfer(
    transfer_id: UUID,
    payload: Optional[TransferReject] = Body(default=None),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        return await TransferWorkflow(db).reject(
            transfer_id,
            reason=payload.reason if payload else None,
            actor=payload.actor if payload else None,
        )
    except StockError as e:
        raise http_error(e)
