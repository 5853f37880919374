import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List

"""
Make department ledgers and canonical totals agree again, choosing a side explicitly.

--strategy:
- consolidate-to-global  canonical quantity := sum of the item's ledger rows
- distribute-even        ledger rows of matching departments := even split of canonical

Dry run unless --apply is given.

Run inside the api container:
  docker compose exec -T api uv run python scripts/normalize_inventories.py --strategy=consolidate-to-global --apply
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

STRATEGIES = ("consolidate-to-global", "distribute-even")
PREVIEW_LIMIT = 50


async def _consolidate_changes(db: AsyncSession, ledger: InventoryLedger) -> List[Dict[str, Any]]:
    res = await db.execute(select(InventoryItem).order_by(InventoryItem.sku))
    changes = []
    for item in res.scalars().all():
        summed = await ledger.summed_quantity(item.id)
        canonical = int(item.quantity or 0)
        if summed != canonical:
            changes.append({"item_id": item.id, "sku": item.sku, "old": canonical, "new": summed})
    return changes


async def _distribute_changes(db: AsyncSession, ledger: InventoryLedger) -> List[Dict[str, Any]]:
    engine = ReconciliationEngine(db)
    res = await db.execute(select(InventoryItem).order_by(InventoryItem.sku))
    changes = []
    for item in res.scalars().all():
        matching = await engine.mapped_departments(item.category)
        if not matching:
            continue
        per = int(item.quantity or 0) // len(matching)
        for department in matching:
            section = department_section_id(department)
            old = await ledger.get_quantity(department.id, item.id, section)
            if old != per:
                changes.append(
                    {
                        "item_id": item.id,
                        "sku": item.sku,
                        "department_id": department.id,
                        "department_code": department.code,
                        "section_id": section,
                        "old": old,
                        "new": per,
                    }
                )
    return changes


async def normalize_inventories(db: AsyncSession, strategy: str, apply: bool = False) -> List[Dict[str, Any]]:
    if strategy not in STRATEGIES:
        raise ValueError(f"unknown strategy {strategy!r}, supported: {', '.join(STRATEGIES)}")

    ledger = InventoryLedger(db)
    if strategy == "consolidate-to-global":
        changes = await _consolidate_changes(db, ledger)
    else:
        changes = await _distribute_changes(db, ledger)

    print(f"[normalize_inventories] strategy={strategy} changes={len(changes)}")
    for c in changes[:PREVIEW_LIMIT]:
        where = f" dept={c['department_code']}" if "department_code" in c else ""
        print(f"- {c['sku']}{where} {c['old']} -> {c['new']}")
    if len(changes) > PREVIEW_LIMIT:
        print(f"...and {len(changes) - PREVIEW_LIMIT} more")

    if not apply:
        print("[normalize_inventories] DRY RUN: use --apply to persist changes")
        return changes

    for c in changes:
        if strategy == "consolidate-to-global":
            await ledger.set_global_quantity(c["item_id"], c["new"])
        else:
            await ledger.set_quantity(c["department_id"], c["item_id"], c["new"], c["section_id"], reason="normalize")
    await db.commit()
    print(f"[normalize_inventories] applied {len(changes)} change(s)")
    return changes


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--strategy", choices=STRATEGIES, required=True)
    p.add_argument("--apply", action="store_true", help="Persist changes (default is a dry run)")
    args = p.parse_args()
    configure_logging()

    async def _run():
        async with async_session_maker() as db:
            await normalize_inventories(db, args.strategy, apply=args.apply)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
