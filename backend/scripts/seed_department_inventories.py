import argparse
import asyncio
import sys
from pathlib import Path
from typing import Dict

"""
Create department ledger rows for every item in departments of the item's category.

--assign strategies:
- zero         rows start at 0 (default)
- single       the whole canonical quantity goes to the first matching department
- even         canonical quantity split evenly (floor division)
- from-global  same split as even, named after the canonical total it starts from

Existing rows are skipped unless --force is given.

Run inside the api container:
  docker compose exec -T api uv run python scripts/seed_department_inventories.py --assign=even
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from core.department_codes import department_section_id  # noqa: E402
from core.logging_config import configure_logging  # noqa: E402
from db.database import async_session_maker  # noqa: E402
from db.inventory.item import InventoryItem  # noqa: E402
from services.ledger import InventoryLedger  # noqa: E402
from services.reconciliation import ReconciliationEngine  # noqa: E402

ASSIGN_STRATEGIES = ("zero", "single", "even", "from-global")


def _targets(assign: str, canonical: int, count: int) -> list:
    if assign == "single":
        return [canonical] + [0] * (count - 1)
    if assign in ("even", "from-global"):
        return [canonical // count] * count
    return [0] * count


async def seed_department_inventories(db: AsyncSession, assign: str = "zero", force: bool = False) -> Dict[str, int]:
    if assign not in ASSIGN_STRATEGIES:
        raise ValueError(f"unknown assign strategy {assign!r}")

    ledger = InventoryLedger(db)
    engine = ReconciliationEngine(db)
    res = await db.execute(select(InventoryItem).order_by(InventoryItem.sku))
    items = res.scalars().all()

    created = 0
    updated = 0
    for item in items:
        matching = await engine.mapped_departments(item.category)
        if not matching:
            continue
        if assign == "single":
            # only the first department is seeded, as in a fresh single-store setup
            matching = matching[:1]
        targets = _targets(assign, int(item.quantity or 0), len(matching))

        for department, target in zip(matching, targets):
            section = department_section_id(department)
            if await ledger.has_row(department.id, item.id, section):
                if not force:
                    continue
                await ledger.set_quantity(department.id, item.id, target, section, reason="seed")
                updated += 1
            else:
                await ledger.set_quantity(department.id, item.id, target, section, reason="seed")
                created += 1

    await db.commit()
    print(f"[seed_department_inventories] assign={assign} force={force} created={created} updated={updated}")
    return {"created": created, "updated": updated}


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--assign", choices=ASSIGN_STRATEGIES, default="zero", help="How to fill new ledger rows")
    p.add_argument("--force", action="store_true", help="Overwrite existing ledger rows")
    args = p.parse_args()
    configure_logging()

    async def _run():
        async with async_session_maker() as db:
            await seed_department_inventories(db, assign=args.assign, force=args.force)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
