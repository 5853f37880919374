"""
Inventory Ledger - per-department stock rows and the canonical item total.

All mutations take row locks (SELECT ... FOR UPDATE) and flush, but never
commit: the caller owns the unit of work and decides when to commit or
roll back.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InsufficientStock, LockConflict, NotFound
from db.department import Department
from db.inventory.item import InventoryItem
from db.inventory.movement import InventoryMovement
from db.inventory.stock import NO_SECTION, DepartmentInventory

logger = logging.getLogger(__name__)


def _section_key(section_id: Optional[str]) -> str:
    return section_id or NO_SECTION


def _as_quantity(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an integer, got {value!r}")
    return value


class InventoryLedger:
    """Read and mutate department ledger rows and canonical item totals."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_item(self, item_id: UUID, lock: bool = False) -> InventoryItem:
        stmt = select(InventoryItem).where(InventoryItem.id == item_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        item = (await self.db.execute(stmt)).scalar_one_or_none()
        if not item:
            raise NotFound("InventoryItem", item_id)
        return item

    async def _ensure_department(self, department_id: UUID) -> None:
        res = await self.db.execute(select(Department.id).where(Department.id == department_id))
        if res.scalar_one_or_none() is None:
            raise NotFound("Department", department_id)

    async def _get_row(
        self,
        department_id: UUID,
        item_id: UUID,
        section_id: Optional[str],
        lock: bool = False,
    ) -> Optional[DepartmentInventory]:
        stmt = select(DepartmentInventory).where(
            DepartmentInventory.department_id == department_id,
            DepartmentInventory.section_id == _section_key(section_id),
            DepartmentInventory.inventory_item_id == item_id,
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_quantity(self, department_id: UUID, item_id: UUID, section_id: Optional[str] = None) -> int:
        res = await self.db.execute(
            select(DepartmentInventory.quantity).where(
                DepartmentInventory.department_id == department_id,
                DepartmentInventory.section_id == _section_key(section_id),
                DepartmentInventory.inventory_item_id == item_id,
            )
        )
        qty = res.scalar_one_or_none()
        return int(qty or 0)

    async def has_row(self, department_id: UUID, item_id: UUID, section_id: Optional[str] = None) -> bool:
        res = await self.db.execute(
            select(DepartmentInventory.id).where(
                DepartmentInventory.department_id == department_id,
                DepartmentInventory.section_id == _section_key(section_id),
                DepartmentInventory.inventory_item_id == item_id,
            )
        )
        return res.scalar_one_or_none() is not None

    async def adjust(
        self,
        department_id: UUID,
        item_id: UUID,
        delta: int,
        section_id: Optional[str] = None,
        *,
        reason: str = "adjustment",
        source_type: str = "manual",
        source_id: Optional[str] = None,
    ) -> int:
        """
        Apply ``delta`` to one ledger row and return the new quantity.

        The row is locked for the read-modify-write and created when absent.
        Raises InsufficientStock (state untouched) when the result would be
        negative, LockConflict when a concurrent writer created the same row
        first. On LockConflict the session must be rolled back.
        """
        delta = _as_quantity(delta, "delta")
        await self._get_item(item_id)
        await self._ensure_department(department_id)

        row = await self._get_row(department_id, item_id, section_id, lock=True)
        current = int(row.quantity or 0) if row else 0
        if delta == 0:
            return current

        new_quantity = current + delta
        if new_quantity < 0:
            raise InsufficientStock(
                item_id,
                available=current,
                requested=-delta,
                department_id=department_id,
                section_id=section_id,
            )

        if row is None:
            row = DepartmentInventory(
                department_id=department_id,
                section_id=_section_key(section_id),
                inventory_item_id=item_id,
                quantity=new_quantity,
            )
            self.db.add(row)
        else:
            row.quantity = new_quantity

        self.db.add(
            InventoryMovement(
                department_id=department_id,
                section_id=_section_key(section_id),
                inventory_item_id=item_id,
                change=delta,
                reason=reason,
                source_type=source_type,
                source_id=str(source_id) if source_id is not None else None,
            )
        )

        try:
            await self.db.flush()
        except IntegrityError as e:
            raise LockConflict(
                f"Concurrent write on ledger row department={department_id} "
                f"section={section_id!r} item={item_id}"
            ) from e

        logger.debug(
            f"ledger adjust department={department_id} section={section_id!r} "
            f"item={item_id} {current} -> {new_quantity} ({reason})"
        )
        return new_quantity

    async def ensure_row(self, department_id: UUID, item_id: UUID, section_id: Optional[str] = None) -> DepartmentInventory:
        """Return the ledger row, creating it at zero when absent."""
        await self._get_item(item_id)
        await self._ensure_department(department_id)
        row = await self._get_row(department_id, item_id, section_id, lock=True)
        if row is not None:
            return row
        row = DepartmentInventory(
            department_id=department_id,
            section_id=_section_key(section_id),
            inventory_item_id=item_id,
            quantity=0,
        )
        self.db.add(row)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise LockConflict(
                f"Concurrent write on ledger row department={department_id} "
                f"section={section_id!r} item={item_id}"
            ) from e
        return row

    async def set_quantity(
        self,
        department_id: UUID,
        item_id: UUID,
        value: int,
        section_id: Optional[str] = None,
        *,
        reason: str = "maintenance",
        source_type: str = "maintenance",
    ) -> int:
        """Overwrite one ledger row; the difference is recorded as a movement."""
        value = _as_quantity(value, "value")
        if value < 0:
            raise InsufficientStock(
                item_id,
                available=0,
                requested=-value,
                department_id=department_id,
                section_id=section_id,
            )
        row = await self.ensure_row(department_id, item_id, section_id)
        return await self.adjust(
            department_id,
            item_id,
            value - int(row.quantity or 0),
            section_id,
            reason=reason,
            source_type=source_type,
        )

    async def global_quantity(self, item_id: UUID) -> int:
        res = await self.db.execute(select(InventoryItem.quantity).where(InventoryItem.id == item_id))
        qty = res.scalar_one_or_none()
        if qty is None:
            raise NotFound("InventoryItem", item_id)
        return int(qty)

    async def set_global_quantity(self, item_id: UUID, value: int) -> int:
        value = _as_quantity(value, "value")
        item = await self._get_item(item_id, lock=True)
        current = int(item.quantity or 0)
        if value < 0:
            raise InsufficientStock(item_id, available=current, requested=current - value)
        item.quantity = value
        await self.db.flush()
        logger.info(f"canonical quantity item={item_id} {current} -> {value}")
        return value

    async def adjust_global_quantity(self, item_id: UUID, delta: int) -> int:
        """Shift the canonical total by ``delta`` under the item row lock."""
        delta = _as_quantity(delta, "delta")
        item = await self._get_item(item_id, lock=True)
        current = int(item.quantity or 0)
        if current + delta < 0:
            raise InsufficientStock(item_id, available=current, requested=-delta)
        item.quantity = current + delta
        await self.db.flush()
        return current + delta

    async def summed_quantity(self, item_id: UUID) -> int:
        res = await self.db.execute(
            select(func.coalesce(func.sum(DepartmentInventory.quantity), 0)).where(
                DepartmentInventory.inventory_item_id == item_id
            )
        )
        return int(res.scalar_one() or 0)

    async def rows_for_item(self, item_id: UUID) -> List[DepartmentInventory]:
        res = await self.db.execute(
            select(DepartmentInventory)
            .where(DepartmentInventory.inventory_item_id == item_id)
            .order_by(DepartmentInventory.department_id, DepartmentInventory.section_id)
        )
        return list(res.scalars().all())

    async def rows_for_department(self, department_id: UUID, section_id: Optional[str] = None) -> List[DepartmentInventory]:
        res = await self.db.execute(
            select(DepartmentInventory)
            .where(
                DepartmentInventory.department_id == department_id,
                DepartmentInventory.section_id == _section_key(section_id),
            )
            .order_by(DepartmentInventory.inventory_item_id)
        )
        return list(res.scalars().all())

    async def record_receipt(
        self,
        department_id: UUID,
        item_id: UUID,
        quantity: int,
        section_id: Optional[str] = None,
        *,
        source_id: Optional[str] = None,
    ) -> int:
        """
        Receive stock from outside the ledger into one department.

        The department row and the canonical total move together, so a
        receipt never introduces drift.
        """
        quantity = _as_quantity(quantity, "quantity")
        if quantity <= 0:
            raise ValueError("receipt quantity must be > 0")
        new_quantity = await self.adjust(
            department_id,
            item_id,
            quantity,
            section_id,
            reason="receipt",
            source_type="receiving",
            source_id=source_id,
        )
        await self.adjust_global_quantity(item_id, quantity)
        logger.info(f"received {quantity} of item={item_id} into department={department_id}")
        return new_quantity
