"""
Inventory item CRUD, listing filters and stats.
"""

import pytest

from tims.models import InventoryItem, InventoryTransaction


ROUTER = {
    "name": "Cisco ISR 4331 Router",
    "category": "Routers",
    "status": "available",
    "stock_level": 10,
    "reorder_point": 3,
    "serial_number": "FDO2231A0BC",
    "location": "Warehouse A",
}


class TestCreateItem:

    def test_manager_creates_item(self, client, manager_headers, supplier):
        resp = client.post(
            "/api/inventory",
            json={**ROUTER, "supplier_id": supplier.id},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        item = resp.json["item"]
        assert item["name"] == "Cisco ISR 4331 Router"
        assert item["stock_level"] == 10
        assert item["supplier_name"] == "Nordic Telecom Supply"
        assert item["is_low_stock"] is False

    def test_staff_cannot_create(self, client, staff_headers):
        resp = client.post("/api/inventory", json=ROUTER, headers=staff_headers)
        assert resp.status_code == 403
        assert resp.json["error"] == "Permission denied"

    def test_duplicate_serial_is_conflict(self, client, db_session, admin_headers):
        assert client.post("/api/inventory", json=ROUTER, headers=admin_headers).status_code == 201

        resp = client.post("/api/inventory", json={**ROUTER, "name": "Another"}, headers=admin_headers)
        assert resp.status_code == 409
        assert db_session.query(InventoryItem).count() == 1

    def test_blank_serials_do_not_collide(self, client, admin_headers):
        for name in ("Patch cable A", "Patch cable B"):
            resp = client.post(
                "/api/inventory",
                json={**ROUTER, "name": name, "serial_number": ""},
                headers=admin_headers,
            )
            assert resp.status_code == 201
            assert resp.json["item"]["serial_number"] is None

    @pytest.mark.parametrize(
        "override",
        [
            {"stock_level": -1},
            {"reorder_point": -5},
            {"status": "lost"},
            {"name": ""},
            {"stock_level": "ten"},
            {"version_id": 7},
        ],
    )
    def test_invalid_fields_rejected(self, client, admin_headers, override):
        resp = client.post("/api/inventory", json={**ROUTER, **override}, headers=admin_headers)
        assert resp.status_code == 400

    def test_missing_required_fields(self, client, admin_headers):
        resp = client.post("/api/inventory", json={"name": "Only a name"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.json["error"]

    def test_unknown_supplier_rejected(self, client, admin_headers):
        resp = client.post("/api/inventory", json={**ROUTER, "supplier_id": 999}, headers=admin_headers)
        assert resp.status_code == 400


class TestReadItems:

    def test_get_item(self, client, staff_headers, make_item):
        item = make_item()
        resp = client.get(f"/api/inventory/{item.id}", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["id"] == item.id

    def test_get_missing_item(self, client, staff_headers):
        resp = client.get("/api/inventory/12345", headers=staff_headers)
        assert resp.status_code == 404
        assert resp.json["error"] == "Inventory item not found"

    def test_list_filters(self, client, staff_headers, supplier, make_item):
        make_item(name="Cisco ISR 4331 Router", category="Routers", stock_level=10, reorder_point=3)
        make_item(name="Juniper EX2300 Switch", category="Switches", stock_level=2, reorder_point=4,
                  serial_number="JN-EX-0001", supplier_id=supplier.id)
        make_item(name="SFP+ Transceiver", category="Optics", status="maintenance", stock_level=40, reorder_point=10)

        resp = client.get("/api/inventory", headers=staff_headers)
        assert resp.json["count"] == 3

        resp = client.get("/api/inventory?category=Switches", headers=staff_headers)
        assert [i["name"] for i in resp.json["items"]] == ["Juniper EX2300 Switch"]

        resp = client.get("/api/inventory?status=maintenance", headers=staff_headers)
        assert [i["name"] for i in resp.json["items"]] == ["SFP+ Transceiver"]

        resp = client.get("/api/inventory?low_stock=true", headers=staff_headers)
        assert [i["name"] for i in resp.json["items"]] == ["Juniper EX2300 Switch"]

        resp = client.get("/api/inventory?search=cisco", headers=staff_headers)
        assert [i["name"] for i in resp.json["items"]] == ["Cisco ISR 4331 Router"]

        resp = client.get("/api/inventory?search=jn-ex", headers=staff_headers)
        assert resp.json["count"] == 1

        # search also matches the supplier's name
        resp = client.get("/api/inventory?search=nordic", headers=staff_headers)
        assert [i["name"] for i in resp.json["items"]] == ["Juniper EX2300 Switch"]

    def test_stats_overview(self, client, staff_headers, make_item):
        make_item(category="Routers", stock_level=10, reorder_point=3)
        make_item(category="Routers", stock_level=1, reorder_point=3)
        make_item(category="Optics", stock_level=5, reorder_point=5)

        resp = client.get("/api/inventory/stats/overview", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["total_items"] == 3
        assert resp.json["low_stock_count"] == 2
        assert resp.json["total_stock"] == 16
        assert resp.json["by_category"] == [
            {"category": "Routers", "count": 2},
            {"category": "Optics", "count": 1},
        ]

    def test_stats_empty(self, client, staff_headers):
        resp = client.get("/api/inventory/stats/overview", headers=staff_headers)
        assert resp.json == {"total_items": 0, "low_stock_count": 0, "total_stock": 0, "by_category": []}


class TestUpdateAndDelete:

    def test_manager_updates_item(self, client, manager_headers, make_item):
        item = make_item(stock_level=6, reorder_point=5)
        resp = client.put(
            f"/api/inventory/{item.id}",
            json={**ROUTER, "stock_level": 6, "location": "Van 3"},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json["item"]["location"] == "Van 3"

    def test_update_clears_omitted_optional_fields(self, client, manager_headers, supplier, make_item):
        item = make_item(
            serial_number="SN-1",
            location="Rack A",
            description="old",
            supplier_id=supplier.id,
        )
        resp = client.put(
            f"/api/inventory/{item.id}",
            json={
                "name": "Cisco ISR 4331 Router",
                "category": "Routers",
                "status": "available",
                "stock_level": 6,
                "reorder_point": 5,
            },
            headers=manager_headers,
        )
        assert resp.status_code == 200
        body = resp.json["item"]
        assert body["serial_number"] is None
        assert body["location"] is None
        assert body["description"] is None
        assert body["supplier_id"] is None

    def test_update_missing_item(self, client, manager_headers):
        resp = client.put("/api/inventory/999", json=ROUTER, headers=manager_headers)
        assert resp.status_code == 404

    def test_update_serial_conflict(self, client, admin_headers, make_item):
        make_item(serial_number="SN-A")
        other = make_item(serial_number="SN-B")

        resp = client.put(
            f"/api/inventory/{other.id}",
            json={**ROUTER, "serial_number": "SN-A"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_manager_cannot_delete(self, client, manager_headers, make_item):
        item = make_item()
        resp = client.delete(f"/api/inventory/{item.id}", headers=manager_headers)
        assert resp.status_code == 403

    def test_admin_delete_removes_transactions(self, client, db_session, admin_headers, make_item):
        item = make_item(stock_level=4)
        item_id = item.id

        resp = client.delete(f"/api/inventory/{item_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(InventoryItem, item_id) is None
        assert db_session.query(InventoryTransaction).filter_by(inventory_id=item_id).count() == 0

        resp = client.delete(f"/api/inventory/{item_id}", headers=admin_headers)
        assert resp.status_code == 404
