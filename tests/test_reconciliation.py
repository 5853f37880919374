import uuid

import pytest
from sqlalchemy import text

from core.errors import NotFound
from services.ledger import InventoryLedger
from services.reconciliation import MissingLedgerRow, QuantityDrift, ReconciliationEngine


@pytest.fixture
async def departments(make_department):
    return {
        "restaurant": await make_department("restaurant"),
        "restaurant:main": await make_department("restaurant:main"),
        "bar": await make_department("bar"),
        "closed-restaurant": await make_department("closed-restaurant", is_active=False),
    }


async def test_audit_item_reports_both_sides(db, departments, make_item):
    item = await make_item("FOOD-1", category="food", quantity=12, name="Flour")
    await InventoryLedger(db).adjust(departments["restaurant"], item, 10)
    await db.commit()

    audit = await ReconciliationEngine(db).audit_item(item)
    assert (audit.sku, audit.name, audit.category) == ("FOOD-1", "Flour", "food")
    assert audit.summed == 10
    assert audit.canonical == 12
    assert audit.drift == -2


async def test_audit_unknown_item(db):
    with pytest.raises(NotFound):
        await ReconciliationEngine(db).audit_item(uuid.uuid4())


async def test_diagnose_lists_departments_missing_rows(db, departments, make_item):
    item = await make_item("FOOD-2", category="food", quantity=5)
    await InventoryLedger(db).adjust(departments["restaurant"], item, 3)
    await db.commit()

    findings = await ReconciliationEngine(db).diagnose(item, -2)
    assert findings == [
        MissingLedgerRow(department_id=departments["restaurant:main"], department_code="restaurant:main")
    ]


async def test_diagnose_quantity_drift_when_rows_exist(db, departments, make_item):
    item = await make_item("FOOD-3", category="food", quantity=5)
    ledger = InventoryLedger(db)
    await ledger.adjust(departments["restaurant"], item, 3)
    await ledger.adjust(departments["restaurant:main"], item, 4, "restaurant-main")
    await db.commit()

    engine = ReconciliationEngine(db)
    assert await engine.diagnose(item, 2) == [QuantityDrift(delta=2)]
    assert await engine.diagnose(item, 0) == []


async def test_stored_category_maps_department(db, make_department, make_item):
    kitchen = await make_department("kitchen-store", category="food")
    item = await make_item("FOOD-4", category="food", quantity=1)

    findings = await ReconciliationEngine(db).diagnose(item, -1)
    assert findings == [MissingLedgerRow(department_id=kitchen, department_code="kitchen-store")]


async def test_audit_all_only_reports_drift_in_sku_order(db, departments, make_item):
    ledger = InventoryLedger(db)
    balanced = await make_item("A-BALANCED", category="drinks", quantity=4)
    await ledger.adjust(departments["bar"], balanced, 4)
    late = await make_item("Z-DRIFT", category="drinks", quantity=9)
    early = await make_item("B-DRIFT", category="food", quantity=1)
    await db.commit()

    engine = ReconciliationEngine(db)
    first = [r async for r in engine.audit_all()]
    second = [r async for r in engine.audit_all()]

    assert [r.item_id for r in first] == [early, late]
    assert [r.drift for r in first] == [-1, -9]
    assert first == second


async def test_audit_all_skips_items_that_fail(db, departments, make_item):
    broken = await make_item("A-BROKEN", category="food", quantity=1)
    fine = await make_item("B-FINE", category="food", quantity=2)
    engine = ReconciliationEngine(db)
    real_audit = engine.audit_item

    async def audit_item(item_id):
        if item_id == broken:
            raise NotFound("InventoryItem", item_id)
        return await real_audit(item_id)

    engine.audit_item = audit_item
    reports = [r async for r in engine.audit_all()]
    assert [r.item_id for r in reports] == [fine]


async def test_audit_never_mutates(db, departments, make_item):
    item = await make_item("FOOD-5", category="food", quantity=7)
    engine = ReconciliationEngine(db)
    [report] = [r async for r in engine.audit_all()]
    assert report.drift == -7

    ledger = InventoryLedger(db)
    assert await ledger.global_quantity(item) == 7
    assert await ledger.summed_quantity(item) == 0
    assert not await ledger.has_row(departments["restaurant"], item)


async def test_malformed_department_code_does_not_hide_drift(db, departments, make_department, make_item):
    await make_department("spa:a:b:c", category="food")
    await make_department("bar::vip")
    item = await make_item("FOOD-6", category="food", quantity=5)
    await InventoryLedger(db).adjust(departments["restaurant"], item, 3)
    await db.commit()

    [report] = [r async for r in ReconciliationEngine(db).audit_all()]
    assert report.item_id == item
    assert report.drift == -2
    assert report.diagnosis == [
        MissingLedgerRow(department_id=departments["restaurant:main"], department_code="restaurant:main")
    ]


async def test_failed_diagnosis_still_reports_drift(db, departments, make_item):
    item = await make_item("FOOD-7", category="food", quantity=4)
    engine = ReconciliationEngine(db)

    async def diagnose(item_id, drift):
        raise NotFound("Department", uuid.uuid4())

    engine.diagnose = diagnose
    [report] = [r async for r in engine.audit_all()]
    assert report.item_id == item
    assert report.drift == -4
    assert report.diagnosis == []


async def test_database_error_on_one_item_is_rolled_back_to_its_savepoint(db, departments, make_item, monkeypatch):
    broken = await make_item("A-BROKEN", category="food", quantity=1)
    fine = await make_item("B-FINE", category="food", quantity=2)
    engine = ReconciliationEngine(db)
    real_audit = engine.audit_item

    async def audit_item(item_id):
        if item_id == broken:
            await db.execute(text("SELECT quantity FROM no_such_table"))
        return await real_audit(item_id)

    savepoints = {"n": 0}
    real_begin_nested = db.begin_nested

    def begin_nested():
        savepoints["n"] += 1
        return real_begin_nested()

    engine.audit_item = audit_item
    monkeypatch.setattr(db, "begin_nested", begin_nested)
    reports = [r async for r in engine.audit_all()]

    assert [r.item_id for r in reports] == [fine]
    assert reports[0].diagnosis
    # one savepoint per audited item plus one for the drifting item's diagnosis
    assert savepoints["n"] == 3
