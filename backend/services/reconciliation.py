"""
Reconciliation Engine - compare department ledger sums with canonical totals.

Read-only: drift is returned as data, never raised and never corrected here.
Which side is right is an operator decision (see scripts/normalize_inventories.py).

An audit that runs while a transfer approval is in flight may see a transient
mismatch between the two sides. That window is accepted; rerun the audit.
"""
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.department_codes import department_category, department_section_id, parse_code
from core.errors import InvalidCode, NotFound, StockError
from db.department import Department
from db.inventory.item import InventoryItem
from services.ledger import InventoryLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemAudit:
    item_id: UUID
    name: str
    sku: str
    category: str
    summed: int
    canonical: int

    @property
    def drift(self) -> int:
        return self.summed - self.canonical


@dataclass(frozen=True)
class MissingLedgerRow:
    department_id: UUID
    department_code: str
    kind: str = "missingLedgerRow"


@dataclass(frozen=True)
class QuantityDrift:
    delta: int
    kind: str = "quantityDrift"


Finding = Union[MissingLedgerRow, QuantityDrift]


@dataclass(frozen=True)
class DriftReport:
    audit: ItemAudit
    diagnosis: List[Finding] = field(default_factory=list)

    @property
    def item_id(self) -> UUID:
        return self.audit.item_id

    @property
    def drift(self) -> int:
        return self.audit.drift


class ReconciliationEngine:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = InventoryLedger(db)

    async def audit_item(self, item_id: UUID) -> ItemAudit:
        item = await self.db.get(InventoryItem, item_id, populate_existing=True)
        if not item:
            raise NotFound("InventoryItem", item_id)
        return ItemAudit(
            item_id=item.id,
            name=item.name,
            sku=item.sku,
            category=item.category,
            summed=await self.ledger.summed_quantity(item.id),
            canonical=int(item.quantity or 0),
        )

    async def mapped_departments(self, category: str) -> List[Department]:
        """Active departments whose (stored or inferred) category is ``category``.

        Departments with a malformed code are logged and skipped.
        """
        res = await self.db.execute(
            select(Department).where(Department.is_active.is_(True)).order_by(Department.code)
        )
        wanted = (category or "").strip().lower()
        mapped: List[Department] = []
        for d in res.scalars().all():
            try:
                parse_code(d.code)
                if department_category(d) == wanted:
                    mapped.append(d)
            except InvalidCode as e:
                logger.warning(f"skipping department {d.id} in diagnosis: {e}")
        return mapped

    async def diagnose(self, item_id: UUID, drift: int) -> List[Finding]:
        if drift == 0:
            return []
        item = await self.db.get(InventoryItem, item_id)
        if not item:
            raise NotFound("InventoryItem", item_id)

        missing: List[Finding] = []
        for d in await self.mapped_departments(item.category):
            if not await self.ledger.has_row(d.id, item.id, department_section_id(d)):
                missing.append(MissingLedgerRow(department_id=d.id, department_code=d.code))
        if missing:
            return missing
        return [QuantityDrift(delta=drift)]

    async def report_item(self, item_id: UUID) -> DriftReport:
        audit = await self.audit_item(item_id)
        return DriftReport(audit=audit, diagnosis=await self.diagnose(audit.item_id, audit.drift))

    async def audit_all(self) -> AsyncIterator[DriftReport]:
        """
        Yield a DriftReport for every item whose ledger sum differs from its canonical total.

        Each item is audited inside its own savepoint, so a database error on one
        item rolls back only that item. A failed diagnosis still reports the
        drift, with an empty diagnosis.
        """
        res = await self.db.execute(select(InventoryItem.id).order_by(InventoryItem.sku))
        item_ids = list(res.scalars().all())
        logger.debug(f"auditing {len(item_ids)} inventory item(s)")

        for item_id in item_ids:
            try:
                async with self.db.begin_nested():
                    audit = await self.audit_item(item_id)
            except (StockError, SQLAlchemyError) as e:
                logger.error(f"audit of item {item_id} failed, skipping: {e}")
                continue
            if audit.drift == 0:
                continue

            try:
                async with self.db.begin_nested():
                    diagnosis = await self.diagnose(audit.item_id, audit.drift)
            except (StockError, SQLAlchemyError) as e:
                logger.error(f"diagnosis of {audit.sku} failed, reporting drift without it: {e}")
                diagnosis = []

            logger.warning(
                f"drift on {audit.sku}: summed={audit.summed} canonical={audit.canonical} drift={audit.drift}"
            )
            yield DriftReport(audit=audit, diagnosis=diagnosis)
