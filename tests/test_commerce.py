import re


def _sale_body(item_id: int, bill_type: str = "GST", **extra) -> dict:
    return {
        "customer": {"name": "Walk-in", "mobile": "9000000001"},
        "table": "T2",
        "items": [{"itemId": item_id, "quantity": 2, "price": 50}],
        "pricing": {"subTotal": 100, "taxAmount": 5, "grandTotal": 105},
        "payment": {"method": "cash"},
        "billType": bill_type,
        **extra,
    }


def _create_sale(client, item_id: int, **kwargs) -> dict:
    resp = client.post("/api/sales", json=_sale_body(item_id, **kwargs))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _create_vendor(client, name: str = "Fresh Farms") -> dict:
    resp = client.post("/api/parties", json={"name": name, "partyType": "vendor"})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _create_purchase(client, vendor_id: int, item_id: int, quantity: int = 12) -> dict:
    resp = client.post(
        "/api/purchases",
        json={
            "vendorId": vendor_id,
            "invoiceNo": "INV-1",
            "invoiceDate": "2024-05-01",
            "items": [{"itemId": item_id, "quantity": quantity, "price": 20}],
            "pricing": {"subTotal": quantity * 20, "grandTotal": quantity * 20},
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_create_sale_numbers_bills_by_type(client, make_item) -> None:
    item = make_item()

    gst = _create_sale(client, item["id"])
    assert re.fullmatch(r"MGGST\d{8}0001", gst["billNo"])
    assert gst["status"] == "draft"
    assert gst["pricing"]["grandTotal"] == 105
    assert gst["items"][0]["total"] == 100
    assert gst["items"][0]["itemName"] == "Masala Tea"

    estimate = _create_sale(client, item["id"], bill_type="Estimation")
    assert re.fullmatch(r"MGEST\d{8}0001", estimate["billNo"])

    second_gst = _create_sale(client, item["id"])
    assert second_gst["billNo"].endswith("0002")


def test_sale_validation(client, make_item) -> None:
    item = make_item()

    unknown_item = client.post("/api/sales", json=_sale_body(999))
    assert unknown_item.status_code == 400
    assert unknown_item.json()["message"] == "Item with ID 999 not found"

    bad_method = _sale_body(item["id"])
    bad_method["payment"]["method"] = "barter"
    assert client.post("/api/sales", json=bad_method).status_code == 400

    missing_referrer = client.post("/api/sales", json=_sale_body(item["id"], referrerId=42))
    assert missing_referrer.status_code == 400


def test_sale_does_not_touch_stock(client, make_item, current_stock) -> None:
    item = make_item("Cold Coffee", quantity=10)
    sale = _create_sale(client, item["id"])
    client.post(f"/api/sales/{sale['id']}/payment", json={"amountReceived": 105, "paymentMethod": "upi"})

    assert current_stock(item["id"]) == 10


def test_payment_completes_sale_and_returns_change(client, make_item) -> None:
    item = make_item()
    sale = _create_sale(client, item["id"])

    partial = client.post(f"/api/sales/{sale['id']}/payment", json={"amountReceived": 50, "paymentMethod": "cash"})
    assert partial.status_code == 200
    assert partial.json()["data"]["payment"]["status"] == "partial"
    assert partial.json()["data"]["status"] == "draft"
    assert partial.json()["data"]["payment"]["cashReturn"] == 0

    paid = client.post(
        f"/api/sales/{sale['id']}/payment",
        json={"amountReceived": 200, "paymentMethod": "card", "transactionId": "TX-9"},
    )
    assert paid.status_code == 200
    data = paid.json()["data"]
    assert data["payment"]["status"] == "paid"
    assert data["payment"]["method"] == "card"
    assert data["payment"]["cashReturn"] == 95
    assert data["payment"]["transactionId"] == "TX-9"
    assert data["status"] == "completed"

    locked = client.put(f"/api/sales/{sale['id']}", json={"table": "T9"})
    assert locked.status_code == 400
    assert client.delete(f"/api/sales/{sale['id']}").status_code == 400


def test_refund_only_for_paid_sales(client, make_item) -> None:
    item = make_item()
    sale = _create_sale(client, item["id"], notes="birthday")

    early = client.post(f"/api/sales/{sale['id']}/refund", json={"reason": "changed mind"})
    assert early.status_code == 400

    client.post(f"/api/sales/{sale['id']}/payment", json={"amountReceived": 105, "paymentMethod": "cash"})
    refund = client.post(f"/api/sales/{sale['id']}/refund", json={"reason": "cold food"})
    assert refund.status_code == 200
    data = refund.json()["data"]
    assert data["payment"]["status"] == "refunded"
    assert data["status"] == "cancelled"
    assert data["notes"] == "birthday\nRefund: cold food"


def test_update_list_and_delete_sales(client, make_item) -> None:
    item = make_item()
    first = _create_sale(client, item["id"])
    second = _create_sale(client, item["id"], bill_type="Non-GST")

    updated = client.put(
        f"/api/sales/{first['id']}",
        json={"table": "T5", "status": "confirmed", "customer": {"name": "Ravi", "mobile": "9111111111"}},
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["data"]["table"] == "T5"
    assert updated.json()["data"]["customer"]["name"] == "Ravi"

    by_type = client.get("/api/sales", params={"billType": "Non-GST"}).json()["data"]
    assert [sale["id"] for sale in by_type] == [second["id"]]

    by_customer = client.get("/api/sales", params={"search": "ravi"}).json()["data"]
    assert [sale["id"] for sale in by_customer] == [first["id"]]

    assert client.delete(f"/api/sales/{second['id']}").status_code == 200
    listing = client.get("/api/sales").json()
    assert listing["pagination"]["total"] == 1

    assert client.get(f"/api/sales/{first['id']}", headers={"X-User-Id": "2"}).status_code == 401


def test_purchase_requires_a_vendor(client, make_item) -> None:
    item = make_item()
    customer = client.post("/api/parties", json={"name": "Regular", "partyType": "customer"}).json()["data"]

    resp = client.post(
        "/api/purchases",
        json={
            "vendorId": customer["id"],
            "invoiceNo": "INV-1",
            "invoiceDate": "2024-05-01",
            "items": [{"itemId": item["id"], "quantity": 1, "price": 20}],
            "pricing": {"subTotal": 20, "grandTotal": 20},
        },
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == f"Vendor with ID {customer['id']} not found"


def test_receiving_a_purchase_credits_stock(client, make_item, current_stock) -> None:
    item = make_item("Tea Leaves", quantity=10)
    vendor = _create_vendor(client)
    purchase = _create_purchase(client, vendor["id"], item["id"], quantity=12)
    assert re.fullmatch(r"PUR\d{8}0001", purchase["purchaseNumber"])
    assert purchase["status"] == "draft"
    assert current_stock(item["id"]) == 10

    confirmed = client.put(f"/api/purchases/{purchase['id']}/status", json={"status": "confirmed"})
    assert confirmed.status_code == 200
    assert current_stock(item["id"]) == 10

    received = client.put(f"/api/purchases/{purchase['id']}/status", json={"status": "received"})
    assert received.status_code == 200, received.text
    data = received.json()["data"]
    assert data["status"] == "received"
    assert data["fulfillmentStatus"] == "completed"
    assert data["receivedAt"] is not None
    assert current_stock(item["id"]) == 22

    movements = client.get("/api/inventory/movements", params={"itemId": item["id"]}).json()["data"]
    assert movements[0]["kind"] == "purchase_receipt"
    assert movements[0]["reference"] == purchase["purchaseNumber"]
    assert movements[0]["balanceAfter"] == 22

    again = client.put(f"/api/purchases/{purchase['id']}/status", json={"status": "received"})
    assert again.status_code == 200
    assert current_stock(item["id"]) == 22

    reopen = client.put(f"/api/purchases/{purchase['id']}/status", json={"status": "draft"})
    assert reopen.status_code == 400
    assert client.delete(f"/api/purchases/{purchase['id']}").status_code == 400
    assert client.put(f"/api/purchases/{purchase['id']}", json={"notes": "late"}).status_code == 400


def test_purchase_statuses_and_listing(client, make_item) -> None:
    item = make_item()
    vendor = _create_vendor(client)
    purchase = _create_purchase(client, vendor["id"], item["id"])

    bad = client.put(f"/api/purchases/{purchase['id']}/status", json={"status": "lost"})
    assert bad.status_code == 400
    assert bad.json()["message"].startswith("Invalid status 'lost'")

    paid = client.put(f"/api/purchases/{purchase['id']}/payment-status", json={"paymentStatus": "paid"})
    assert paid.status_code == 200
    assert paid.json()["data"]["paymentStatus"] == "paid"

    bad_payment = client.put(f"/api/purchases/{purchase['id']}/payment-status", json={"paymentStatus": "refunded"})
    assert bad_payment.status_code == 400

    updated = client.put(
        f"/api/purchases/{purchase['id']}",
        json={"invoiceNo": "INV-2", "items": [{"itemId": item["id"], "quantity": 3, "price": 30}]},
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["invoiceNo"] == "INV-2"
    assert updated.json()["data"]["items"][0]["total"] == 90

    listing = client.get("/api/purchases", params={"vendorId": vendor["id"], "search": "INV-2"}).json()
    assert listing["pagination"]["total"] == 1

    cancelled = client.put(f"/api/purchases/{purchase['id']}/status", json={"status": "cancelled"})
    assert cancelled.status_code == 200
    assert client.delete(f"/api/purchases/{purchase['id']}").status_code == 200
