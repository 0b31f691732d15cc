from datetime import date

from app.models.imported_receipt import ImportedReceipt
from app.models.price_history import PriceHistory
from app.models.shopping_list import ShoppingListEvent
from tests.conftest import HOUSEHOLD

HEADERS = {"x-household-code": HOUSEHOLD}


# ---------- ERROR ENVELOPE ----------

def test_missing_shopping_list_id_is_400(client):
    res = client.post("/api/shopping-list/check-item", json={"store_id": 1})

    assert res.status_code == 400
    assert res.json() == {"error": "shopping_list_id is required"}


def test_unknown_list_item_is_404(client):
    res = client.post("/api/shopping-list/check-item", json={"shopping_list_id": 999})

    assert res.status_code == 404
    assert res.json() == {"error": "Shopping list item not found"}


def test_missing_household_header_is_400(client):
    res = client.post("/api/prices/latest", json={"item_name": "Milk", "store_id": 1})

    assert res.status_code == 400
    assert res.json() == {"error": "Missing x-household-code header"}


def test_trip_start_missing_fields(client):
    res = client.post("/api/trips/start", json={"store_id": 1})

    assert res.status_code == 400
    assert "household_code" in res.json()["error"]


def test_trip_start_unknown_store(client):
    res = client.post("/api/trips/start", json={"store_id": 77, "household_code": HOUSEHOLD})

    assert res.status_code == 404
    assert res.json() == {"error": "Store not found"}


# ---------- SHOPPING LIST ----------

def test_add_check_and_list(client, acme):
    added = client.post("/api/shopping-list/add-item", json={"item_name": "Milk"}, headers=HEADERS)
    assert added.status_code == 200
    list_id = added.json()["id"]

    checked = client.post(
        "/api/shopping-list/check-item",
        json={"shopping_list_id": list_id, "store_id": acme.id},
    )
    body = checked.json()
    assert checked.status_code == 200
    assert body["success"] is True
    assert body["trip_created"] is True
    assert body["trip_ended"] is False
    assert body["degraded"] == []

    listed = client.get("/api/shopping-list", headers=HEADERS).json()
    assert [(row["item_name"], row["checked"]) for row in listed] == [("Milk", True)]


def test_household_header_is_normalised(client):
    client.post("/api/shopping-list/add-item", json={"item_name": "Eggs"}, headers={"x-household-code": " home42 "})

    listed = client.get("/api/shopping-list", headers=HEADERS).json()
    assert [row["household_code"] for row in listed] == [HOUSEHOLD]


# ---------- TRIPS ----------

def test_trip_start_end_delete(client, acme, db):
    started = client.post("/api/trips/start", json={"store_id": acme.id, "household_code": HOUSEHOLD})
    assert started.status_code == 200
    trip = started.json()["trip"]
    assert trip["store"] == "Acme"
    assert trip["ended_at"] is None

    ended = client.post(
        "/api/trips/end",
        json={"trip_id": trip["id"], "store_id": acme.id, "household_code": HOUSEHOLD},
    )
    assert ended.json() == {"success": True, "items_removed": 0}

    trips = client.get("/api/trips", headers=HEADERS).json()
    assert trips[0]["ended_at"] is not None

    deleted = client.post("/api/trips/delete", json={"trip_id": trip["id"]})
    assert deleted.json() == {"success": True}
    assert client.get("/api/trips", headers=HEADERS).json() == []


# ---------- PRICES ----------

def test_confirm_then_latest(client, acme, submission):
    confirmed = client.post(
        "/api/prices/confirm",
        json={"submission_id": submission.id, "item_name": "Milk", "price": 3.49, "store_id": acme.id},
        headers=HEADERS,
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["success"] is True

    latest = client.post("/api/prices/latest", json={"item_name": "MILK", "store_id": acme.id}, headers=HEADERS)
    assert latest.json() == {"price": 3.49, "days_ago": 0}


def test_confirm_foreign_submission_is_404(client, acme, submission, db):
    res = client.post(
        "/api/prices/confirm",
        json={"submission_id": submission.id, "item_name": "Milk", "price": 3.49, "store_id": acme.id},
        headers={"x-household-code": "OTHER1"},
    )

    assert res.status_code == 404
    assert res.json() == {"error": "Submission not found or access denied"}
    assert db.query(PriceHistory).count() == 0


def test_confirm_rejects_zero_price(client, acme, submission):
    res = client.post(
        "/api/prices/confirm",
        json={"submission_id": submission.id, "item_name": "Milk", "price": 0, "store_id": acme.id},
        headers=HEADERS,
    )
    assert res.status_code == 400


# ---------- ADMIN ----------

def test_backfill_endpoint(client, acme, db):
    db.add(
        ShoppingListEvent(
            household_code=HOUSEHOLD,
            item_id=1,
            item_name="Milk",
            quantity=1,
            store_id=acme.id,
            store="Acme",
            price=3.49,
        )
    )
    db.commit()

    res = client.get("/api/admin/backfill-price-history")

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "total_events_scanned": 1,
        "unique_price_points": 1,
        "already_existing": 0,
        "newly_inserted": 1,
    }


# ---------- RECEIPTS ----------

def test_import_external_receipt(client, costco, db):
    res = client.post(
        "/api/receipts/import-external",
        json={
            "source": "costco",
            "date": "2026-03-01",
            "items": [
                {"name": "KS Eggs 24ct", "price": 7.49, "sku": "1234"},
                {"name": "Bananas", "price": 1.99, "quantity": 2},
            ],
        },
        headers=HEADERS,
    )

    assert res.status_code == 200
    body = res.json()
    assert body["item_count"] == 2
    assert body["message"] == "Receipt staged with 2 items for review."

    staged = db.query(ImportedReceipt).filter(ImportedReceipt.id == body["import_id"]).one()
    assert staged.status == "pending"
    assert staged.store_id == costco.id
    assert staged.image_url == "external:costco"
    assert staged.ocr_data["store"] == "Costco"
    assert staged.ocr_data["date"] == date(2026, 3, 1).isoformat()
    assert staged.ocr_data["items"][0]["quantity"] == 1
    assert staged.ocr_data["items"][0]["sku"] == "1234"
    assert staged.ocr_data["items"][1]["quantity"] == 2
    assert staged.ocr_data["should_add_trip"] is True


def test_import_external_receipt_needs_items(client):
    res = client.post("/api/receipts/import-external", json={"source": "walmart", "items": []}, headers=HEADERS)

    assert res.status_code == 400
    assert res.json() == {"error": "No items provided"}


# ---------- SYSTEM ----------

def test_health(client):
    res = client.get("/health")

    assert res.status_code == 200
    assert res.json()["db_ok"] is True


def test_metrics_counts_requests(client, acme):
    client.post("/api/trips/start", json={"store_id": acme.id, "household_code": HOUSEHOLD})

    body = client.get("/metrics").json()

    assert body["open_trips"] == 1
    assert body["requests_count"] >= 1
