import uuid

import pytest


@pytest.fixture
async def seeded(make_department, make_item):
    return {
        "restaurant": await make_department("restaurant", name="Restaurant"),
        "main": await make_department("restaurant:main", name="Main Dining"),
        "vip": await make_department("bar-and-clubs:club-2:vip", name="VIP Lounge", is_active=False),
        "flour": await make_item("FOOD-FLOUR", category="food", quantity=0, name="Flour"),
    }


async def test_list_departments(client, seeded):
    res = await client.get("/departments")
    assert res.status_code == 200
    by_code = {d["code"]: d for d in res.json()}
    assert set(by_code) == {"restaurant", "restaurant:main", "bar-and-clubs:club-2:vip"}
    assert by_code["restaurant:main"]["effectiveCategory"] == "food"
    assert by_code["restaurant:main"]["sectionId"] == "restaurant-main"
    assert by_code["restaurant"]["sectionId"] is None
    assert by_code["bar-and-clubs:club-2:vip"]["isActive"] is False

    res = await client.get("/departments", params={"active": "true"})
    assert len(res.json()) == 2


async def test_get_department(client, seeded):
    res = await client.get(f"/departments/{seeded['main']}")
    assert res.status_code == 200
    assert res.json()["name"] == "Main Dining"

    res = await client.get(f"/departments/{uuid.uuid4()}")
    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "NOT_FOUND"


async def test_pos_terminals(client, seeded):
    res = await client.get("/pos/terminals")
    assert res.status_code == 200
    terminals = res.json()
    assert [t["id"] for t in terminals] == ["bar-and-clubs:club-2:vip", "restaurant:main"]
    assert terminals[1] == {
        "id": "restaurant:main",
        "name": "Main Dining",
        "departmentCode": "restaurant",
        "defaultSectionId": "restaurant-main",
        "slug": "main-dining",
        "status": "online",
        "today": {"count": 0, "total": 0},
    }
    assert terminals[0]["status"] == "offline"


async def test_adjust_and_read_ledger(client, seeded):
    payload = {"departmentId": str(seeded["main"]), "itemId": str(seeded["flour"]), "delta": 6}
    res = await client.post("/inventory/adjust", json=payload)
    assert res.status_code == 200
    assert res.json() == {
        "departmentId": str(seeded["main"]),
        "sectionId": "restaurant-main",
        "itemId": str(seeded["flour"]),
        "quantity": 6,
    }

    res = await client.get(f"/inventory/departments/{seeded['main']}/items/{seeded['flour']}")
    assert res.json()["quantity"] == 6

    res = await client.post("/inventory/adjust", json={**payload, "delta": -7})
    assert res.status_code == 409
    detail = res.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_STOCK"
    assert detail["retryable"] is True
    assert detail["available"] == 6
    assert detail["requested"] == 7


async def test_adjust_validation(client, seeded):
    payload = {"departmentId": str(seeded["main"]), "itemId": str(seeded["flour"]), "delta": 0}
    assert (await client.post("/inventory/adjust", json=payload)).status_code == 422

    payload = {"departmentId": str(seeded["main"]), "itemId": str(uuid.uuid4()), "delta": 1}
    res = await client.post("/inventory/adjust", json=payload)
    assert res.status_code == 404


async def test_receipt_keeps_item_balanced(client, seeded):
    res = await client.post(
        "/inventory/receipts",
        json={"departmentId": str(seeded["restaurant"]), "itemId": str(seeded["flour"]), "quantity": 20},
    )
    assert res.status_code == 201
    assert res.json()["sectionId"] is None

    res = await client.get(f"/inventory/items/{seeded['flour']}")
    body = res.json()
    assert (body["canonical"], body["summed"], body["drift"]) == (20, 20, 0)
    assert [(d["departmentId"], d["quantity"]) for d in body["departments"]] == [(str(seeded["restaurant"]), 20)]


async def test_transfer_lifecycle(client, seeded):
    await client.post(
        "/inventory/receipts",
        json={"departmentId": str(seeded["restaurant"]), "itemId": str(seeded["flour"]), "quantity": 50},
    )
    res = await client.post(
        "/transfers",
        json={
            "fromDepartmentId": str(seeded["restaurant"]),
            "toDepartmentId": str(seeded["main"]),
            "items": [{"productType": "inventoryItem", "productId": str(seeded["flour"]), "quantity": 10}],
            "createdBy": "sam",
        },
    )
    assert res.status_code == 201
    created = res.json()
    assert created["status"] == "pending"
    assert created["items"][0]["productType"] == "inventoryItem"
    transfer_id = created["id"]

    res = await client.get("/transfers", params={"departmentId": str(seeded["main"]), "direction": "incoming"})
    assert [t["id"] for t in res.json()] == [transfer_id]

    res = await client.post(f"/transfers/{transfer_id}/approve", json={"actor": "kim"})
    assert res.status_code == 200
    assert res.json()["status"] == "completed"
    assert res.json()["completedAt"] is not None

    res = await client.post(f"/transfers/{transfer_id}/approve")
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "INVALID_STATE"

    res = await client.get(f"/inventory/departments/{seeded['restaurant']}/items/{seeded['flour']}")
    assert res.json()["quantity"] == 40
    res = await client.get(f"/reconciliation/items/{seeded['flour']}")
    assert res.json()["drift"] == 0


async def test_transfer_errors(client, seeded):
    res = await client.post(
        "/transfers",
        json={
            "fromDepartmentId": str(seeded["main"]),
            "toDepartmentId": str(seeded["main"]),
            "items": [{"productType": "inventoryItem", "productId": str(seeded["flour"]), "quantity": 1}],
        },
    )
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "INVALID_TRANSFER"

    res = await client.post(
        "/transfers",
        json={
            "fromDepartmentId": str(seeded["restaurant"]),
            "toDepartmentId": str(seeded["main"]),
            "items": [{"productType": "inventoryItem", "productId": str(seeded["flour"]), "quantity": 5}],
        },
    )
    transfer_id = res.json()["id"]
    res = await client.post(f"/transfers/{transfer_id}/approve")
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "INSUFFICIENT_STOCK"
    assert (await client.get(f"/transfers/{transfer_id}")).json()["status"] == "pending"

    res = await client.post(f"/transfers/{transfer_id}/reject", json={"reason": "no stock"})
    assert res.json()["status"] == "rejected"
    assert res.json()["rejectionReason"] == "no stock"

    assert (await client.get(f"/transfers/{uuid.uuid4()}")).status_code == 404


async def test_reconciliation_report(client, seeded):
    res = await client.get("/reconciliation")
    assert res.status_code == 200
    assert res.json() == []

    await client.post(
        "/inventory/adjust",
        json={"departmentId": str(seeded["restaurant"]), "itemId": str(seeded["flour"]), "delta": 3},
    )
    [report] = (await client.get("/reconciliation")).json()
    assert report["sku"] == "FOOD-FLOUR"
    assert (report["summed"], report["canonical"], report["drift"]) == (3, 0, 3)
    assert report["diagnosis"] == [
        {
            "kind": "missingLedgerRow",
            "departmentId": str(seeded["main"]),
            "departmentCode": "restaurant:main",
            "delta": None,
        }
    ]


async def test_listings_skip_malformed_department_codes(client, seeded, make_department):
    await make_department("bar::vip", name="Broken")
    await make_department("spa:a:b:c", name="Too Deep")

    res = await client.get("/departments")
    assert res.status_code == 200
    assert {d["code"] for d in res.json()} == {"restaurant", "restaurant:main", "bar-and-clubs:club-2:vip"}

    res = await client.get("/pos/terminals")
    assert res.status_code == 200
    assert [t["id"] for t in res.json()] == ["bar-and-clubs:club-2:vip", "restaurant:main"]
