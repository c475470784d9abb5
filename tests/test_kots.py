import re

from foodcourt.kots import allowed_line_transitions


def test_line_transitions_only_move_forward() -> None:
    assert allowed_line_transitions("pending") == ("preparing", "ready", "served", "cancelled")
    assert allowed_line_transitions("ready") == ("served", "cancelled")
    assert allowed_line_transitions("served") == ()
    assert allowed_line_transitions("cancelled") == ()


def test_create_kot(client, make_item) -> None:
    item = make_item("Masala Tea")

    resp = client.post(
        "/api/kots",
        json={
            "tableNumber": "T1",
            "items": [{"itemId": item["id"], "quantity": 2, "price": 50}],
            "customerDetails": {"name": "Asha", "mobile": "9876543210"},
            "kotType": "Tea Shop (KOT1)",
        },
    )
    assert resp.status_code == 201, resp.text
    kot = resp.json()["data"]
    assert kot["totalAmount"] == 100
    assert kot["status"] == "active"
    assert re.fullmatch(r"KOT\d{8}\d{3}", kot["kotNumber"])
    assert kot["kotNumber"].endswith("001")
    assert kot["items"][0]["itemName"] == "Masala Tea"
    assert kot["items"][0]["status"] == "pending"
    assert kot["customerDetails"] == {"name": "Asha", "mobile": "9876543210", "type": "Individual"}

    second = client.post(
        "/api/kots",
        json={"tableNumber": "T2", "items": [{"itemId": item["id"], "quantity": 1, "price": 50}]},
    )
    assert second.status_code == 201
    assert second.json()["data"]["kotNumber"].endswith("002")
    assert second.json()["data"]["kotType"] == "Tea Shop (KOT1)"


def test_create_kot_validates_input(client, make_item) -> None:
    item = make_item()

    unknown = client.post(
        "/api/kots",
        json={"tableNumber": "T1", "items": [{"itemId": 999, "quantity": 1, "price": 10}]},
    )
    assert unknown.status_code == 400
    assert unknown.json()["message"] == "Item with ID 999 not found"

    empty = client.post("/api/kots", json={"tableNumber": "T1", "items": []})
    assert empty.status_code == 400
    assert empty.json()["success"] is False

    no_table = client.post(
        "/api/kots", json={"items": [{"itemId": item["id"], "quantity": 1, "price": 10}]}
    )
    assert no_table.status_code == 400

    zero_quantity = client.post(
        "/api/kots",
        json={"tableNumber": "T1", "items": [{"itemId": item["id"], "quantity": 0, "price": 10}]},
    )
    assert zero_quantity.status_code == 400


def test_serving_the_last_item_completes_the_ticket(client, make_item, make_kot) -> None:
    item = make_item()
    kot = make_kot((item["id"], 2, 50))
    line_id = kot["items"][0]["id"]

    resp = client.put(f"/api/kots/{kot['id']}/items/{line_id}/status", json={"status": "served"})
    assert resp.status_code == 200, resp.text
    updated = resp.json()["data"]
    assert updated["status"] == "completed"
    assert updated["completedAt"] is not None
    assert updated["items"][0]["servedAt"] is not None
    assert updated["totalAmount"] == 100


def test_all_terminal_ticket_cannot_be_reopened(client, make_item, make_kot) -> None:
    item = make_item()
    kot = make_kot((item["id"], 1, 50))
    line_id = kot["items"][0]["id"]
    client.put(f"/api/kots/{kot['id']}/items/{line_id}/status", json={"status": "served"})

    reopened = client.put(f"/api/kots/{kot['id']}", json={"status": "active"})
    assert reopened.status_code == 200, reopened.text
    assert reopened.json()["data"]["status"] == "completed"
    assert reopened.json()["data"]["completedAt"] is not None

    with_new_lines = client.put(
        f"/api/kots/{kot['id']}",
        json={"status": "active", "items": [{"itemId": item["id"], "quantity": 2, "price": 50}]},
    )
    assert with_new_lines.status_code == 200, with_new_lines.text
    data = with_new_lines.json()["data"]
    assert data["status"] == "active"
    assert data["completedAt"] is None
    assert [line["status"] for line in data["items"]] == ["pending"]


def test_item_status_walkthrough(client, make_item, make_kot) -> None:
    tea = make_item("Tea")
    bun = make_item("Bun")
    kot = make_kot((tea["id"], 1, 20), (bun["id"], 2, 15))
    tea_line, bun_line = (line["id"] for line in kot["items"])
    url = f"/api/kots/{kot['id']}/items"

    ready = client.put(f"{url}/{tea_line}/status", json={"status": "ready"}).json()["data"]
    assert ready["items"][0]["preparedAt"] is not None
    assert ready["status"] == "active"

    backwards = client.put(f"{url}/{tea_line}/status", json={"status": "pending"})
    assert backwards.status_code == 400
    assert "Invalid status 'pending'" in backwards.json()["message"]

    unknown = client.put(f"{url}/{tea_line}/status", json={"status": "eaten"})
    assert unknown.status_code == 400

    missing = client.put(f"{url}/9999/status", json={"status": "served"})
    assert missing.status_code == 404
    assert missing.json()["message"] == "Item not found in KOT"

    cancelled = client.put(f"{url}/{bun_line}/status", json={"status": "cancelled"}).json()["data"]
    assert cancelled["status"] == "active"
    assert cancelled["totalAmount"] == 50

    done = client.put(f"{url}/{tea_line}/status", json={"status": "served"}).json()["data"]
    assert done["status"] == "completed"
    assert [line["status"] for line in done["items"]] == ["served", "cancelled"]

    after_served = client.put(f"{url}/{tea_line}/status", json={"status": "cancelled"})
    assert after_served.status_code == 400


def test_complete_kot_serves_open_lines(client, make_item, make_kot) -> None:
    tea = make_item("Tea")
    bun = make_item("Bun")
    kot = make_kot((tea["id"], 1, 20), (bun["id"], 1, 15))
    bun_line = kot["items"][1]["id"]
    client.put(f"/api/kots/{kot['id']}/items/{bun_line}/status", json={"status": "cancelled"})

    resp = client.put(f"/api/kots/{kot['id']}/complete")
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["status"] == "completed"
    assert data["completedAt"] is not None
    assert [line["status"] for line in data["items"]] == ["served", "cancelled"]


def test_cancelled_kot_cannot_be_completed(client, make_item, make_kot) -> None:
    kot = make_kot((make_item()["id"], 1, 20))

    cancel = client.put(f"/api/kots/{kot['id']}", json={"status": "cancelled"})
    assert cancel.status_code == 200
    assert cancel.json()["data"]["status"] == "cancelled"

    resp = client.put(f"/api/kots/{kot['id']}/complete")
    assert resp.status_code == 400


def test_update_kot_recomputes_total(client, make_item, make_kot) -> None:
    tea = make_item("Tea")
    coffee = make_item("Coffee")
    kot = make_kot((tea["id"], 2, 50))

    resp = client.put(
        f"/api/kots/{kot['id']}",
        json={
            "tableNumber": "T7",
            "notes": "less sugar",
            "items": [
                {"itemId": tea["id"], "quantity": 3, "price": 20},
                {"itemId": coffee["id"], "quantity": 1, "price": 45, "kotNote": "strong"},
            ],
        },
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["totalAmount"] == 105
    assert data["tableNumber"] == "T7"
    assert data["notes"] == "less sugar"
    assert [line["totalAmount"] for line in data["items"]] == [60, 45]

    bad_status = client.put(f"/api/kots/{kot['id']}", json={"status": "done"})
    assert bad_status.status_code == 400


def test_kot_does_not_touch_stock(client, make_item, make_kot, current_stock) -> None:
    item = make_item("Samosa", quantity=10)
    kot = make_kot((item["id"], 4, 15))
    client.put(f"/api/kots/{kot['id']}/complete")

    assert current_stock(item["id"]) == 10


def test_kot_line_keeps_category_snapshot(client, make_item, make_kot) -> None:
    item = make_item("Lassi")
    category = client.post("/api/categories", json={"name": "Drinks"}).json()["data"]
    client.post(f"/api/categories/{category['id']}/items", json={"itemIds": [item["id"]]})

    kot = make_kot((item["id"], 1, 40))
    client.put(f"/api/categories/{category['id']}", json={"name": "Cold Drinks"})

    fetched = client.get(f"/api/kots/{kot['id']}").json()["data"]
    assert fetched["items"][0]["categories"] == ["Drinks"]


def test_list_filters_and_pagination(client, make_item, make_kot) -> None:
    item = make_item()
    first = make_kot((item["id"], 1, 10), table="T1")
    make_kot((item["id"], 1, 10), table="T2")
    make_kot((item["id"], 1, 10), table="Patio-3")
    client.put(f"/api/kots/{first['id']}/complete")

    page_one = client.get("/api/kots", params={"limit": 2}).json()
    assert len(page_one["data"]) == 2
    assert page_one["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    page_two = client.get("/api/kots", params={"limit": 2, "page": 2}).json()
    assert len(page_two["data"]) == 1

    by_table = client.get("/api/kots", params={"tableNumber": "patio"}).json()["data"]
    assert [kot["tableNumber"] for kot in by_table] == ["Patio-3"]

    completed = client.get("/api/kots", params={"status": "completed"}).json()["data"]
    assert [kot["id"] for kot in completed] == [first["id"]]

    by_number = client.get("/api/kots", params={"search": first["kotNumber"]}).json()["data"]
    assert [kot["id"] for kot in by_number] == [first["id"]]

    active = client.get("/api/kots/active").json()["data"]
    assert len(active) == 2

    too_big = client.get("/api/kots", params={"limit": 100000})
    assert too_big.status_code == 400


def test_print_stats_and_delete(client, make_item, make_kot) -> None:
    item = make_item()
    kot = make_kot((item["id"], 2, 50))
    make_kot((item["id"], 1, 100), kotType="Juice shop (KOT2)")

    printed = client.put(f"/api/kots/{kot['id']}/print").json()["data"]
    assert printed["printedAt"] is not None

    stats = client.get("/api/kots/stats").json()["data"]
    assert stats["overview"]["totalKots"] == 2
    assert stats["overview"]["activeKots"] == 2
    assert stats["overview"]["totalAmount"] == 200
    assert stats["overview"]["avgOrderValue"] == 100
    assert {row["kotType"]: row["count"] for row in stats["kotTypeBreakdown"]} == {
        "Juice shop (KOT2)": 1,
        "Tea Shop (KOT1)": 1,
    }

    deleted = client.delete(f"/api/kots/{kot['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "KOT deleted successfully"
    assert client.get(f"/api/kots/{kot['id']}").status_code == 404


def test_kots_are_scoped_to_their_owner(client, make_item, make_kot) -> None:
    kot = make_kot((make_item()["id"], 1, 10))
    other = {"X-User-Id": "2"}

    assert client.get(f"/api/kots/{kot['id']}", headers=other).status_code == 401
    assert client.delete(f"/api/kots/{kot['id']}", headers=other).status_code == 401
    assert client.get("/api/kots", headers=other).json()["data"] == []

    anonymous = client.get("/api/kots", headers={"X-User-Id": "abc"})
    assert anonymous.status_code == 401
    assert anonymous.json() == {"success": False, "message": "Not authorized, no user"}
