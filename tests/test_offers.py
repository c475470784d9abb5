from datetime import datetime, timedelta, timezone


def _window(start_days: int = -1, end_days: int = 30) -> dict:
    now = datetime.now(timezone.utc)
    return {
        "validFrom": (now + timedelta(days=start_days)).isoformat(),
        "validTo": (now + timedelta(days=end_days)).isoformat(),
    }


def _create_coupon(client, code: str = "welcome10", **extra) -> dict:
    body = {
        "code": code,
        "name": "Welcome offer",
        "discountType": "Percentage",
        "couponValue": 10,
        "minOrderAmount": 50,
        **_window(),
        **extra,
    }
    resp = client.post("/api/coupons", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _create_sale(client, item_id: int, **extra) -> dict:
    body = {
        "customer": {"name": "Walk-in"},
        "table": "T4",
        "items": [{"itemId": item_id, "quantity": 2, "price": 50}],
        "pricing": {"subTotal": 100, "taxAmount": 5, "grandTotal": 105},
        "payment": {"method": "cash"},
        **extra,
    }
    resp = client.post("/api/sales", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _create_referrer(client, **extra) -> dict:
    body = {"name": "Ravi", "partyType": "referrer", "mobile": "9000000009", **extra}
    resp = client.post("/api/parties", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_coupon_crud(client) -> None:
    coupon = _create_coupon(client)
    assert coupon["code"] == "WELCOME10"
    assert coupon["status"] == "Active"
    assert coupon["currentUsageCount"] == 0

    duplicate = client.post(
        "/api/coupons",
        json={"code": "Welcome10", "name": "Again", "discountType": "Fixed Amount", "couponValue": 5, **_window()},
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "Coupon with this code already exists"

    by_code = client.get("/api/coupons/code/welcome10")
    assert by_code.status_code == 200
    assert by_code.json()["data"]["id"] == coupon["id"]

    updated = client.put(f"/api/coupons/{coupon['id']}", json={"name": "Monsoon offer", "description": None})
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "Monsoon offer"
    assert updated.json()["data"]["couponValue"] == 10

    assert client.delete(f"/api/coupons/{coupon['id']}").status_code == 200
    assert client.get(f"/api/coupons/{coupon['id']}").status_code == 404


def test_coupon_validation(client) -> None:
    backwards = client.post(
        "/api/coupons",
        json={"code": "LATE", "name": "Late", "discountType": "Fixed Amount", "couponValue": 5, **_window(5, 1)},
    )
    assert backwards.status_code == 400
    assert backwards.json()["message"] == "Valid to date must be after valid from date"

    too_much = client.post(
        "/api/coupons",
        json={"code": "HALFPLUS", "name": "Too much", "discountType": "Percentage", "couponValue": 150, **_window()},
    )
    assert too_much.status_code == 400
    assert too_much.json()["message"] == "Percentage discount must be between 0 and 100%"


def test_validate_coupon_checks_minimum_order(client) -> None:
    _create_coupon(client)

    short = client.post("/api/coupons/validate", json={"couponCode": "WELCOME10", "orderAmount": 40})
    assert short.status_code == 200
    assert short.json()["data"]["valid"] is False
    assert short.json()["message"].startswith("Minimum order amount of 50")

    valid = client.post("/api/coupons/validate", json={"couponCode": " welcome10 ", "orderAmount": 250})
    assert valid.json()["data"]["valid"] is True
    assert valid.json()["data"]["discountAmount"] == 25
    assert valid.json()["message"] == "Coupon is valid"

    missing = client.post("/api/coupons/validate", json={"couponCode": "NOPE", "orderAmount": 250})
    assert missing.status_code == 404


def test_apply_coupon_to_sale(client, make_item) -> None:
    item = make_item()
    coupon = _create_coupon(client, totalUsageLimit=1)
    sale = _create_sale(client, item["id"])

    applied = client.post(f"/api/sales/{sale['id']}/coupon", json={"couponCode": "welcome10"})
    assert applied.status_code == 200, applied.text
    data = applied.json()["data"]
    assert data["couponId"] == coupon["id"]
    assert data["pricing"]["discountAmount"] == 10
    assert data["pricing"]["grandTotal"] == 95

    again = client.post(f"/api/sales/{sale['id']}/coupon", json={"couponCode": "welcome10"})
    assert again.status_code == 400
    assert again.json()["message"] == "A coupon is already applied to this sale"

    assert client.get(f"/api/coupons/{coupon['id']}").json()["data"]["status"] == "Exhausted"
    other = _create_sale(client, item["id"])
    exhausted = client.post(f"/api/sales/{other['id']}/coupon", json={"couponCode": "welcome10"})
    assert exhausted.status_code == 400
    assert exhausted.json()["message"] == "Coupon is exhausted"


def test_deleting_open_sale_releases_coupon(client, make_item) -> None:
    item = make_item()
    coupon = _create_coupon(client, totalUsageLimit=1)
    sale = _create_sale(client, item["id"])
    client.post(f"/api/sales/{sale['id']}/coupon", json={"couponCode": "WELCOME10"})

    assert client.delete(f"/api/sales/{sale['id']}").status_code == 200

    data = client.get(f"/api/coupons/{coupon['id']}").json()["data"]
    assert data["currentUsageCount"] == 0
    assert data["status"] == "Active"


def test_toggle_and_stats(client) -> None:
    coupon = _create_coupon(client)
    _create_coupon(client, code="SOON5", **_window(3, 10))
    _create_coupon(client, code="GONE5", **_window(-10, -3))

    toggled = client.patch(f"/api/coupons/{coupon['id']}/toggle-status")
    assert toggled.status_code == 200
    assert toggled.json()["data"]["isActive"] is False
    assert toggled.json()["data"]["status"] == "Inactive"
    assert toggled.json()["message"] == "Coupon deactivated successfully"

    stats = client.get("/api/coupons/stats").json()["data"]
    assert stats == {"total": 3, "active": 0, "expired": 1, "scheduled": 1, "totalUsage": 0}

    scheduled = client.get("/api/coupons", params={"status": "Scheduled"}).json()["data"]
    assert [row["code"] for row in scheduled] == ["SOON5"]
    assert client.get("/api/coupons", params={"status": "Bogus"}).status_code == 400


def test_paid_sale_earns_referrer_commission_once(client, make_item) -> None:
    item = make_item()
    referrer = _create_referrer(client, commissionType="Percentage", commissionValue=10)
    assert referrer["commissionValue"] == 10
    sale = _create_sale(client, item["id"], referrerId=referrer["id"])

    for _ in range(2):
        paid = client.post(f"/api/sales/{sale['id']}/payment", json={"amountReceived": 105, "paymentMethod": "cash"})
        assert paid.status_code == 200

    resp = client.get(f"/api/referrer-points/referrers/{referrer['id']}")
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["data"]["transactions"]) == 1
    entry = body["data"]["transactions"][0]
    assert entry["transactionType"] == "Referral Commission"
    assert entry["pointsEarned"] == 10.5
    assert entry["saleId"] == sale["id"]
    assert body["data"]["summary"]["commissionPoints"] == 10.5
    assert body["data"]["summary"]["balance"] == 10.5


def test_points_redemption_keeps_balance_non_negative(client) -> None:
    referrer = _create_referrer(client)

    added = client.post(
        "/api/referrer-points",
        json={"referrerId": referrer["id"], "pointsEarned": 30, "transactionType": "Yearly Bonus"},
    )
    assert added.status_code == 201
    assert added.json()["data"]["pointsEarned"] == 30

    redeemed = client.post("/api/referrer-points/redeem", json={"referrerId": referrer["id"], "pointsToRedeem": 20})
    assert redeemed.status_code == 201
    assert redeemed.json()["data"]["transactionType"] == "Redemption"

    too_many = client.post("/api/referrer-points/redeem", json={"referrerId": referrer["id"], "pointsToRedeem": 11})
    assert too_many.status_code == 400
    assert too_many.json()["message"].startswith("Insufficient points balance. Available: 10")

    summary = client.get("/api/referrer-points/summary").json()["data"]
    assert summary == [
        {
            "referrerId": referrer["id"],
            "name": "Ravi",
            "mobile": "9000000009",
            "totalEarned": 30,
            "totalRedeemed": 20,
            "balance": 10,
        }
    ]

    assert client.delete(f"/api/parties/{referrer['id']}").status_code == 400


def test_points_need_a_referrer(client) -> None:
    vendor = client.post("/api/parties", json={"name": "Fresh Farms", "partyType": "vendor"}).json()["data"]

    resp = client.post("/api/referrer-points", json={"referrerId": vendor["id"], "pointsEarned": 5})
    assert resp.status_code == 400
    assert client.get(f"/api/referrer-points/referrers/{vendor['id']}").status_code == 404
