import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, List

"""
Report items whose department ledger rows do not add up to the canonical total.

Read-only. Exits with status 1 when any drift is found, so it can gate a deploy
or a cron alert.

Run inside the api container:
  docker compose exec -T api uv run python scripts/audit_inventory.py
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from core.logging_config import configure_logging  # noqa: E402
from db.database import async_session_maker  # noqa: E402
from services.reconciliation import DriftReport, MissingLedgerRow, ReconciliationEngine  # noqa: E402


def format_report(report: DriftReport) -> List[str]:
    audit = report.audit
    lines = [
        f"- {audit.sku} ({audit.name}, {audit.category}): "
        f"summed={audit.summed} canonical={audit.canonical} drift={audit.drift:+d}"
    ]
    for finding in report.diagnosis:
        if isinstance(finding, MissingLedgerRow):
            lines.append(f"    missing ledger row for department {finding.department_code}")
        else:
            lines.append(f"    rows exist, quantities differ by {finding.delta:+d}")
    return lines


async def audit_inventory(db: AsyncSession, out: Callable[[str], None] = print) -> List[DriftReport]:
    reports = [r async for r in ReconciliationEngine(db).audit_all()]
    for report in reports:
        for line in format_report(report):
            out(line)
    out(f"[audit_inventory] {len(reports)} item(s) with drift")
    return reports


async def _run() -> int:
    async with async_session_maker() as db:
        reports = await audit_inventory(db)
    return 1 if reports else 0


def main():
    argparse.ArgumentParser(description="Audit department ledgers against canonical item totals").parse_args()
    configure_logging()
    sys.exit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
