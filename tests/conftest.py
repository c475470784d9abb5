import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from foodcourt.db import Base
from foodcourt.main import app, get_db

USER_ID = "1"
OTHER_USER_ID = "2"


def _make_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


def _make_client() -> TestClient:
    TestingSessionLocal = sessionmaker(bind=_make_engine(), autoflush=False, autocommit=False)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, headers={"X-User-Id": USER_ID})


@pytest.fixture
def client():
    with _make_client() as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = sessionmaker(bind=_make_engine(), autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_item(client):
    def _make(name: str = "Masala Tea", quantity: float = 0, **stock_details) -> dict:
        body = {
            "productName": name,
            "stockDetails": {"currentQuantity": quantity, **stock_details},
            "priceDetails": {"costPrice": 10, "sellingPrice": 50},
        }
        resp = client.post("/api/items", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def make_kot(client):
    def _make(*lines, table: str = "T1", **extra) -> dict:
        body = {
            "tableNumber": table,
            "items": [{"itemId": item_id, "quantity": quantity, "price": price} for item_id, quantity, price in lines],
            "kotType": "Tea Shop (KOT1)",
            **extra,
        }
        resp = client.post("/api/kots", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def current_stock(client):
    def _stock(item_id: int) -> float:
        resp = client.get(f"/api/items/{item_id}")
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]["stockDetails"]["currentQuantity"]

    return _stock
