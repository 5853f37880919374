"""
Department transfer workflow.

    pending --approve--> completed
    pending --reject---> rejected

``approved`` exists as a stored status only; approval moves stock and
completes the transfer in the same transaction.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from core.config import settings
from core.department_codes import department_section_id
from core.errors import InvalidState, InvalidTransfer, LockConflict, NotFound, StockError
from db.department import Department
from db.inventory.item import InventoryItem
from db.transfer import COMPLETED, PENDING, REJECTED, TRANSFER_STATUSES, DepartmentTransfer, DepartmentTransferItem
from services.ledger import InventoryLedger

logger = logging.getLogger(__name__)

PRODUCT_TYPES = ("inventoryItem", "drink")
DIRECTIONS = ("any", "outgoing", "incoming")


def _as_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidTransfer(f"{field} is not a valid id: {value!r}")


def _line_value(line: Any, key: str) -> Any:
    if isinstance(line, Mapping):
        return line.get(key)
    return getattr(line, key, None)


class TransferWorkflow:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    async def _load(self, transfer_id: UUID, lock: bool = False) -> DepartmentTransfer:
        stmt = select(DepartmentTransfer).where(DepartmentTransfer.id == transfer_id)
        if lock:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        transfer = (await self.db.execute(stmt)).scalar_one_or_none()
        if not transfer:
            raise NotFound("DepartmentTransfer", transfer_id)
        return transfer

    async def _department(self, department_id: UUID) -> Department:
        department = await self.db.get(Department, department_id)
        if not department:
            raise NotFound("Department", department_id)
        return department

    def _validate_lines(self, items: Iterable[Any]) -> List[Dict[str, Any]]:
        lines: List[Dict[str, Any]] = []
        for position, line in enumerate(items or []):
            product_type = _line_value(line, "product_type")
            if product_type not in PRODUCT_TYPES:
                raise InvalidTransfer(f"Line {position}: unsupported product type {product_type!r}")
            quantity = _line_value(line, "quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise InvalidTransfer(f"Line {position}: quantity must be a positive integer, got {quantity!r}")
            lines.append(
                {
                    "position": position,
                    "product_type": product_type,
                    "product_id": _as_uuid(_line_value(line, "product_id"), f"line {position} productId"),
                    "quantity": quantity,
                }
            )
        if not lines:
            raise InvalidTransfer("Transfer must contain at least one item")
        return lines

    async def create(
        self,
        from_department_id: Any,
        to_department_id: Any,
        items: Iterable[Any],
        created_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> DepartmentTransfer:
        from_id = _as_uuid(from_department_id, "fromDepartmentId")
        to_id = _as_uuid(to_department_id, "toDepartmentId")
        if from_id == to_id:
            raise InvalidTransfer("Source and destination departments must differ")
        lines = self._validate_lines(items)

        await self._department(from_id)
        await self._department(to_id)
        for product_id in {line["product_id"] for line in lines}:
            if not await self.db.get(InventoryItem, product_id):
                raise NotFound("InventoryItem", product_id)

        transfer = DepartmentTransfer(
            from_department_id=from_id,
            to_department_id=to_id,
            status=PENDING,
            created_by=created_by,
            notes=notes,
            items=[DepartmentTransferItem(**line) for line in lines],
        )
        self.db.add(transfer)
        await self.db.commit()
        logger.info(f"transfer {transfer.id} created: {from_id} -> {to_id}, {len(lines)} line(s)")
        return transfer

    async def _approve_once(self, transfer_id: UUID, actor: Optional[str]) -> DepartmentTransfer:
        transfer = await self._load(transfer_id, lock=True)
        if transfer.status != PENDING:
            raise InvalidState(transfer.id, transfer.status, "approve")

        source = await self._department(transfer.from_department_id)
        destination = await self._department(transfer.to_department_id)
        source_section = department_section_id(source)
        destination_section = department_section_id(destination)

        # (department_id, item_id) -> signed quantity, plus canonical shifts for untracked sides
        ledger_deltas: Dict[tuple, int] = defaultdict(int)
        sections: Dict[UUID, Optional[str]] = {source.id: source_section, destination.id: destination_section}
        canonical_deltas: Dict[UUID, int] = defaultdict(int)
        for line in transfer.items:
            if source.tracks_inventory:
                ledger_deltas[(source.id, line.product_id)] -= line.quantity
            else:
                canonical_deltas[line.product_id] += line.quantity
            if destination.tracks_inventory:
                ledger_deltas[(destination.id, line.product_id)] += line.quantity
            else:
                canonical_deltas[line.product_id] -= line.quantity

        for (department_id, item_id) in sorted(ledger_deltas, key=lambda k: (str(k[0]), str(k[1]))):
            delta = ledger_deltas[(department_id, item_id)]
            if delta == 0:
                continue
            await self.ledger.adjust(
                department_id,
                item_id,
                delta,
                sections[department_id],
                reason="transfer-out" if delta < 0 else "transfer-in",
                source_type="transfer",
                source_id=str(transfer.id),
            )

        for item_id in sorted(canonical_deltas, key=str):
            if canonical_deltas[item_id]:
                await self.ledger.adjust_global_quantity(item_id, canonical_deltas[item_id])

        now = utcnow()
        transfer.status = COMPLETED
        transfer.approved_by = actor
        transfer.completed_at = now
        transfer.updated_at = now
        await self.db.flush()
        return transfer

    async def approve(self, transfer_id: Any, actor: Optional[str] = None) -> DepartmentTransfer:
        """
        Apply every line of a pending transfer and mark it completed.

        One transaction covers all lines: any failure rolls back every ledger
        change and the transfer stays pending. Lock conflicts and database
        operational errors are retried with linear backoff.
        """
        transfer_id = _as_uuid(transfer_id, "transferId")
        attempts = max(1, settings.transfer_max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                transfer = await self._approve_once(transfer_id, actor)
                await self.db.commit()
            except (LockConflict, OperationalError) as e:
                await self.db.rollback()
                if attempt >= attempts:
                    logger.error(f"transfer {transfer_id} approval gave up after {attempt} attempt(s): {e}")
                    if isinstance(e, LockConflict):
                        raise
                    raise LockConflict(f"Transfer {transfer_id} could not be approved: {e}") from e
                logger.warning(f"transfer {transfer_id} approval attempt {attempt} conflicted, retrying: {e}")
                await asyncio.sleep(settings.transfer_retry_backoff * attempt)
                continue
            except StockError as e:
                await self.db.rollback()
                logger.info(f"transfer {transfer_id} not approved: {e.code} {e.message}")
                raise
            logger.info(f"transfer {transfer_id} completed")
            return transfer
        raise LockConflict(f"Transfer {transfer_id} could not be approved")

    async def reject(self, transfer_id: Any, reason: Optional[str] = None, actor: Optional[str] = None) -> DepartmentTransfer:
        transfer_id = _as_uuid(transfer_id, "transferId")
        transfer = await self._load(transfer_id, lock=True)
        if transfer.status != PENDING:
            status = transfer.status
            await self.db.rollback()
            raise InvalidState(transfer_id, status, "reject")
        transfer.status = REJECTED
        transfer.rejection_reason = reason
        transfer.approved_by = actor
        transfer.updated_at = utcnow()
        await self.db.commit()
        logger.info(f"transfer {transfer_id} rejected: {reason or 'no reason given'}")
        return transfer

    async def get(self, transfer_id: Any) -> DepartmentTransfer:
        return await self._load(_as_uuid(transfer_id, "transferId"))

    async def list_for_department(
        self,
        department_id: Any,
        direction: str = "any",
        status: Optional[str] = None,
    ) -> List[DepartmentTransfer]:
        department_id = _as_uuid(department_id, "departmentId")
        if direction not in DIRECTIONS:
            raise InvalidTransfer(f"Unknown direction {direction!r}, expected one of {', '.join(DIRECTIONS)}")
        if status is not None and status not in TRANSFER_STATUSES:
            raise InvalidTransfer(f"Unknown status {status!r}")

        stmt = select(DepartmentTransfer)
        if direction == "outgoing":
            stmt = stmt.where(DepartmentTransfer.from_department_id == department_id)
        elif direction == "incoming":
            stmt = stmt.where(DepartmentTransfer.to_department_id == department_id)
        else:
            stmt = stmt.where(
                or_(
                    DepartmentTransfer.from_department_id == department_id,
                    DepartmentTransfer.to_department_id == department_id,
                )
            )
        if status:
            stmt = stmt.where(DepartmentTransfer.status == status)
        stmt = stmt.order_by(DepartmentTransfer.created_at.desc(), DepartmentTransfer.id)
        res = await self.db.execute(stmt)
        return list(res.scalars().all())
