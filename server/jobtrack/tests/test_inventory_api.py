from jobtrack.models import Brand, Item
from jobtrack.project_detail.service import add_project_items
from jobtrack.tests.factories import create_day, create_item, create_location, create_project


def test_create_item_defaults_available_from_stock(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        brand = Brand(name="Panduit")
        db.add(brand)
        warehouse = create_location(db, name="Main Warehouse", location_type="warehouse")
        db.commit()
        brand_id, warehouse_id = brand.id, warehouse.id

    response = test_client.post(
        "/api/inventory",
        json={
            "type": "material",
            "name": "Cable Tray",
            "brand_id": brand_id,
            "delivered_quantity": 30,
            "damaged_quantity": 2,
            "lost_quantity": 1,
            "warehouse_location_id": warehouse_id,
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["available_quantity"] == 27
    assert data["brand_name"] == "Panduit"
    assert data["warehouse_location"] == "Main Warehouse"


def test_create_item_with_unknown_brand_is_not_found(client):
    test_client, TestingSessionLocal = client

    response = test_client.post("/api/inventory", json={"type": "product", "name": "Switch", "brand_id": 77})

    assert response.status_code == 404
    with TestingSessionLocal() as db:
        assert db.query(Item).count() == 0


def test_list_items_filters_by_type_and_search(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        create_item(db, name="CAT6 Cable", item_type="material")
        create_item(db, name="Cable Tester", item_type="product")
        create_item(db, name="Router", item_type="product")
        db.commit()

    products = test_client.get("/api/inventory", params={"type": "product", "search": "cable"}).json()["data"]

    assert [item["name"] for item in products] == ["Cable Tester"]


def test_reconciliation_endpoints(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        item = create_item(db, available=20)
        item.available_quantity = 18
        db.commit()
        item_id = item.id

    report = test_client.get(f"/api/inventory/{item_id}/reconciliation").json()["data"]
    assert report == {
        "item_id": item_id,
        "stored_available_quantity": 18,
        "expected_available_quantity": 20,
        "drift": -2,
        "corrected": False,
    }

    applied = test_client.post(f"/api/inventory/{item_id}/reconciliation").json()["data"]
    assert applied["corrected"] is True
    with TestingSessionLocal() as db:
        assert db.get(Item, item_id).available_quantity == 20


def test_get_missing_item_is_not_found(client):
    test_client, _ = client

    response = test_client.get("/api/inventory/404")

    assert response.status_code == 404
    assert response.json()["message"] == "Inventory item not found"


def _allocated_item(TestingSessionLocal, stock=50, allocated=30):
    with TestingSessionLocal() as db:
        project = create_project(db)
        day = create_day(db, project)
        item = create_item(db, available=stock)
        add_project_items(
            db,
            jo_number=project.jo_number,
            project_day_ids=[day.id],
            assignments=[{"item_id": item.id, "allocated_quantity": allocated}],
        )
        db.commit()
        return item.id


def test_stock_edit_shifts_available_by_the_same_amount(client):
    test_client, TestingSessionLocal = client
    item_id = _allocated_item(TestingSessionLocal)

    response = test_client.put(
        f"/api/inventory/{item_id}",
        json={"name": "CAT6 Cable (box)", "delivered_quantity": 60, "damaged_quantity": 4},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Inventory item updated successfully"
    data = response.json()["data"]
    assert data["name"] == "CAT6 Cable (box)"
    assert data["available_quantity"] == 26
    report = test_client.get(f"/api/inventory/{item_id}/reconciliation").json()["data"]
    assert report["drift"] == 0


def test_stock_edit_below_allocations_is_rejected(client):
    test_client, TestingSessionLocal = client
    item_id = _allocated_item(TestingSessionLocal)

    response = test_client.put(f"/api/inventory/{item_id}", json={"lost_quantity": 25})

    assert response.status_code == 400
    assert response.json()["message"] == "Stock cannot drop below the 30 units allocated to projects"
    with TestingSessionLocal() as db:
        item = db.get(Item, item_id)
        assert item.lost_quantity == 0
        assert item.available_quantity == 20


def test_update_with_no_fields_or_null_name_is_rejected(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        item_id = create_item(db).id
        db.commit()

    empty = test_client.put(f"/api/inventory/{item_id}", json={})
    null_name = test_client.put(f"/api/inventory/{item_id}", json={"name": None})

    assert empty.status_code == 400
    assert empty.json()["message"] == "No valid fields to update"
    assert null_name.status_code == 400


def test_delete_item_with_allocations_is_blocked(client):
    test_client, TestingSessionLocal = client
    item_id = _allocated_item(TestingSessionLocal)

    response = test_client.delete(f"/api/inventory/{item_id}")

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete an item that is allocated to project days"
    with TestingSessionLocal() as db:
        assert db.get(Item, item_id) is not None


def test_delete_unallocated_item_returns_deleted_row(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        item_id = create_item(db, name="Patch Panel").id
        db.commit()

    response = test_client.delete(f"/api/inventory/{item_id}")

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Patch Panel"
    with TestingSessionLocal() as db:
        assert db.get(Item, item_id) is None
    assert test_client.delete(f"/api/inventory/{item_id}").status_code == 404


def test_brands_locations_and_stats(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        db.add_all([Brand(name="Ubiquiti"), Brand(name="Cisco")])
        create_location(db, name="Main Warehouse", location_type="warehouse")
        create_location(db, name="Head Office", location_type="office", city="Pasig")
        create_location(db, name="Site A", location_type="site")
        closed = create_location(db, name="Old Warehouse", location_type="warehouse")
        closed.is_active = False
        create_item(db, name="CAT6 Cable", available=50, item_type="material")
        create_item(db, name="Router", available=4, item_type="product")
        db.commit()

    brands = test_client.get("/api/inventory/brands").json()["data"]
    locations = test_client.get("/api/inventory/locations").json()["data"]
    stats = test_client.get("/api/inventory/stats").json()["data"]

    assert [brand["name"] for brand in brands] == ["Cisco", "Ubiquiti"]
    assert [location["name"] for location in locations] == ["Head Office", "Main Warehouse"]
    assert locations[0]["city"] == "Pasig"
    assert stats == {
        "total_items": 2,
        "type_counts": {"material": 1, "product": 1},
        "quantities": {"total_delivered": 54, "total_available": 54, "total_damaged": 0, "total_lost": 0},
    }
