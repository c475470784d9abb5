from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foodcourt import catalog, commerce, kots, offers, reports, stock
from foodcourt.config import configure_logging, settings
from foodcourt.db import SessionLocal
from foodcourt.errors import PosError, Unauthorized, ValidationFailed, integrity_error
from foodcourt.models import Coupon, Item, Kot, Party, Purchase, ReferrerPoint, Sale, StockAdjustment, SubCategory
from foodcourt.pagination import Page
from foodcourt.schemas import (
    CategoryCreate,
    CategoryItems,
    CategoryUpdate,
    CouponApply,
    CouponCheck,
    CouponCreate,
    CouponUpdate,
    ItemCreate,
    ItemUpdate,
    KotCreate,
    KotUpdate,
    PartyCreate,
    PartyUpdate,
    PaymentProcess,
    PaymentStatusUpdate,
    PointsCreate,
    PointsRedeem,
    PurchaseCreate,
    PurchaseUpdate,
    RefundRequest,
    SaleCreate,
    SaleUpdate,
    StatusUpdate,
    StockAdjust,
    StockTransfer,
    SubCategoryCreate,
    SubCategoryUpdate,
)
from foodcourt.sequence import day_bounds

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Food Court POS")

DEFAULT_LIMIT = settings.default_page_limit
MAX_LIMIT = settings.max_page_limit


def _meta(request_id: Optional[str] = None, warnings: Optional[list[str]] = None) -> dict:
    return {
        "request_id": request_id or f"req_{uuid4().hex}",
        "warnings": warnings or [],
    }


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    if not x_user_id or not x_user_id.strip().isdigit():
        raise Unauthorized("Not authorized, no user")
    return int(x_user_id.strip())


def _ok(data: Any = None, message: Optional[str] = None, page: Optional[Page] = None) -> dict:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    if page is not None:
        body["pagination"] = page.as_dict()
    body["meta"] = _meta()
    return body


def _num(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _date_range(start_date: Optional[date], end_date: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    start = day_bounds(start_date)[0] if start_date else None
    end = day_bounds(end_date)[1] - timedelta(microseconds=1) if end_date else None
    return start, end


# -----------------------------
# Error rendering
# -----------------------------

def _error_response(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if error and not settings.is_production:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(PosError)
async def handle_pos_error(request: Request, exc: PosError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.error)


@app.exception_handler(IntegrityError)
async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("%s %s violated a constraint: %s", request.method, request.url.path, exc.orig)
    error = integrity_error(exc)
    return _error_response(error.status_code, error.message, error.error)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for problem in exc.errors():
        location = ".".join(str(part) for part in problem.get("loc", ())[1:])
        problems.append(f"{location}: {problem.get('msg')}" if location else str(problem.get("msg")))
    return _error_response(400, problems[0] if problems else "Validation failed", "; ".join(problems))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path)
    return _error_response(500, "Server error", repr(exc))


# -----------------------------
# Serialisation
# -----------------------------

def _category_refs(categories) -> list[dict]:
    return [{"id": category.id, "name": category.name} for category in categories]


def _item_data(item: Item) -> dict:
    return {
        "id": item.id,
        "productName": item.product_name,
        "brandId": item.brand_id,
        "subCategoryId": item.sub_category_id,
        "categories": _category_refs(item.categories),
        "description": item.description,
        "stockDetails": {
            "currentQuantity": _num(item.current_quantity),
            "minimumStock": _num(item.minimum_stock),
            "maximumStock": _num(item.maximum_stock),
            "unit": item.unit,
            "location": item.location,
            "stockStatus": stock.stock_status(item.current_quantity, item.minimum_stock, item.maximum_stock),
        },
        "priceDetails": {
            "costPrice": _num(item.cost_price),
            "sellingPrice": _num(item.selling_price),
            "mrp": _num(item.mrp),
            "taxRate": _num(item.tax_rate),
        },
        "status": item.status,
        "notes": item.notes,
        "createdAt": _iso(item.created_at),
        "updatedAt": _iso(item.updated_at),
    }


def _kot_data(kot: Kot) -> dict:
    return {
        "id": kot.id,
        "kotNumber": kot.kot_number,
        "tableNumber": kot.table_number,
        "orderReference": kot.order_reference,
        "items": [
            {
                "id": line.id,
                "itemId": line.item_id,
                "itemName": line.item_name,
                "categories": line.category_names or [],
                "quantity": line.quantity,
                "price": _num(line.price),
                "totalAmount": _num(line.total_amount),
                "variant": line.variant,
                "kotNote": line.kot_note,
                "status": line.status,
                "preparedAt": _iso(line.prepared_at),
                "servedAt": _iso(line.served_at),
            }
            for line in kot.lines
        ],
        "customerDetails": {
            "name": kot.customer_name,
            "mobile": kot.customer_mobile,
            "type": kot.customer_type,
        },
        "kotType": kot.kot_type,
        "status": kot.status,
        "totalAmount": _num(kot.total_amount),
        "notes": kot.notes,
        "printedAt": _iso(kot.printed_at),
        "completedAt": _iso(kot.completed_at),
        "createdAt": _iso(kot.created_at),
        "updatedAt": _iso(kot.updated_at),
    }


def _sale_data(sale: Sale) -> dict:
    return {
        "id": sale.id,
        "billNo": sale.bill_no,
        "billType": sale.bill_type,
        "customer": {
            "name": sale.customer_name,
            "mobile": sale.customer_mobile,
            "email": sale.customer_email,
            "address": sale.customer_address,
            "gstNumber": sale.customer_gst_number,
        },
        "table": sale.table,
        "items": [
            {
                "id": line.id,
                "itemId": line.item_id,
                "itemName": line.item_name,
                "quantity": line.quantity,
                "price": _num(line.price),
                "total": _num(line.total),
                "kotNote": line.kot_note,
                "variant": line.variant,
            }
            for line in sale.lines
        ],
        "pricing": {
            "subTotal": _num(sale.sub_total),
            "taxAmount": _num(sale.tax_amount),
            "discountAmount": _num(sale.discount_amount),
            "serviceCharge": _num(sale.service_charge),
            "acCharge": _num(sale.ac_charge),
            "waiterTip": _num(sale.waiter_tip),
            "roundOff": _num(sale.round_off),
            "grandTotal": _num(sale.grand_total),
        },
        "payment": {
            "method": sale.payment_method,
            "status": sale.payment_status,
            "amountReceived": _num(sale.amount_received),
            "cashReturn": _num(sale.cash_return),
            "transactionId": sale.transaction_id,
            "paidAt": _iso(sale.paid_at),
        },
        "status": sale.status,
        "deliveryDate": _iso(sale.delivery_date),
        "notes": sale.notes,
        "referrerId": sale.referrer_id,
        "couponId": sale.coupon_id,
        "createdAt": _iso(sale.created_at),
        "updatedAt": _iso(sale.updated_at),
    }


def _purchase_data(purchase: Purchase) -> dict:
    return {
        "id": purchase.id,
        "purchaseNumber": purchase.purchase_number,
        "vendorId": purchase.vendor_id,
        "invoiceNo": purchase.invoice_no,
        "invoiceDate": _iso(purchase.invoice_date),
        "taxType": purchase.tax_type,
        "billingType": purchase.billing_type,
        "purchaseType": purchase.purchase_type,
        "items": [
            {
                "id": line.id,
                "itemId": line.item_id,
                "itemName": line.item_name,
                "quantity": line.quantity,
                "price": _num(line.price),
                "total": _num(line.total),
                "taxPercentage": _num(line.tax_percentage),
                "taxAmount": _num(line.tax_amount),
            }
            for line in purchase.lines
        ],
        "pricing": {
            "subTotal": _num(purchase.sub_total),
            "taxAmount": _num(purchase.tax_amount),
            "discountAmount": _num(purchase.discount_amount),
            "roundOff": _num(purchase.round_off),
            "grandTotal": _num(purchase.grand_total),
        },
        "status": purchase.status,
        "paymentStatus": purchase.payment_status,
        "fulfillmentStatus": purchase.fulfillment_status,
        "notes": purchase.notes,
        "receivedAt": _iso(purchase.received_at),
        "createdAt": _iso(purchase.created_at),
        "updatedAt": _iso(purchase.updated_at),
    }


def _named_data(entity, item_count: Optional[int] = None) -> dict:
    data = {
        "id": entity.id,
        "name": entity.name,
        "description": entity.description,
        "status": entity.status,
        "createdAt": _iso(entity.created_at),
    }
    if isinstance(entity, SubCategory):
        data["categoryId"] = entity.category_id
    if item_count is not None:
        data["itemCount"] = item_count
    return data


def _party_data(party: Party) -> dict:
    return {
        "id": party.id,
        "name": party.name,
        "partyType": party.party_type,
        "mobile": party.mobile,
        "email": party.email,
        "address": party.address,
        "gstNumber": party.gst_number,
        "status": party.status,
        "commissionType": party.commission_type,
        "commissionValue": _num(party.commission_value),
        "createdAt": _iso(party.created_at),
    }


def _coupon_data(coupon: Coupon) -> dict:
    return {
        "id": coupon.id,
        "code": coupon.code,
        "name": coupon.name,
        "description": coupon.description,
        "couponType": coupon.coupon_type,
        "discountType": coupon.discount_type,
        "couponValue": _num(coupon.coupon_value),
        "validFrom": _iso(coupon.valid_from),
        "validTo": _iso(coupon.valid_to),
        "minOrderAmount": _num(coupon.min_order_amount),
        "minOrderQuantity": coupon.min_order_quantity,
        "totalUsageLimit": coupon.total_usage_limit,
        "currentUsageCount": coupon.current_usage_count,
        "isActive": coupon.is_active,
        "status": offers.coupon_status(coupon),
        "createdAt": _iso(coupon.created_at),
        "updatedAt": _iso(coupon.updated_at),
    }


def _points_data(entry: ReferrerPoint) -> dict:
    return {
        "id": entry.id,
        "referrerId": entry.referrer_id,
        "saleId": entry.sale_id,
        "transactionType": entry.transaction_type,
        "pointsEarned": _num(entry.points_earned),
        "pointsRedeemed": _num(entry.points_redeemed),
        "orderAmount": _num(entry.order_amount),
        "description": entry.description,
        "createdAt": _iso(entry.created_at),
    }


def _balance_data(balance: dict) -> dict:
    return {
        "commissionPoints": _num(balance["commission_points"]),
        "yearlyPoints": _num(balance["yearly_points"]),
        "totalEarned": _num(balance["total_earned"]),
        "totalRedeemed": _num(balance["total_redeemed"]),
        "balance": _num(balance["balance"]),
    }


def _movement_data(entry: StockAdjustment) -> dict:
    return {
        "id": entry.id,
        "itemId": entry.item_id,
        "kind": entry.kind,
        "delta": _num(entry.delta),
        "balanceAfter": _num(entry.balance_after),
        "reason": entry.reason,
        "reference": entry.reference,
        "userId": entry.user_id,
        "createdAt": _iso(entry.created_at),
    }


# -----------------------------
# Health
# -----------------------------

@app.get("/")
def root() -> dict:
    return {"status": "ok"}


@app.get("/health")
def health() -> dict:
    return {"status": "healthy"}


# -----------------------------
# KOT
# -----------------------------

@app.post("/api/kots", status_code=201, tags=["KOT"])
def create_kot(
    payload: KotCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    kot = kots.create_kot(db, payload, user_id)
    return _ok(_kot_data(kot))


@app.get("/api/kots", tags=["KOT"])
def list_kots(
    status: Optional[str] = Query(default=None),
    kot_type: Optional[str] = Query(default=None, alias="kotType"),
    table_number: Optional[str] = Query(default=None, alias="tableNumber"),
    search: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    start, end = _date_range(start_date, end_date)
    result = kots.list_kots(db, user_id, page, limit, status, kot_type, table_number, search, start, end)
    return _ok([_kot_data(kot) for kot in result.rows], page=result)


@app.get("/api/kots/active", tags=["KOT"])
def list_active_kots(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok([_kot_data(kot) for kot in kots.active_kots(db, user_id)])


@app.get("/api/kots/stats", tags=["KOT"])
def get_kot_stats(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    stats = kots.kot_stats(db, user_id)
    overview = stats["overview"]
    return _ok(
        {
            "overview": {
                "totalKots": overview["total_kots"],
                "activeKots": overview["active_kots"],
                "completedKots": overview["completed_kots"],
                "totalAmount": _num(overview["total_amount"]),
                "avgOrderValue": _num(overview["avg_order_value"]),
            },
            "kotTypeBreakdown": [
                {"kotType": row["kot_type"], "count": row["count"], "totalAmount": _num(row["total_amount"])}
                for row in stats["kot_type_breakdown"]
            ],
        }
    )


@app.get("/api/kots/{kot_id}", tags=["KOT"])
def get_kot(
    kot_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_kot_data(kots.get_kot(db, kot_id, user_id)))


@app.put("/api/kots/{kot_id}", tags=["KOT"])
def update_kot(
    kot_id: int,
    payload: KotUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_kot_data(kots.update_kot(db, kot_id, payload, user_id)))


@app.put("/api/kots/{kot_id}/items/{line_id}/status", tags=["KOT"])
def update_kot_item_status(
    kot_id: int,
    line_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    kot = kots.update_item_status(db, kot_id, line_id, payload.status, user_id)
    return _ok(_kot_data(kot))


@app.put("/api/kots/{kot_id}/print", tags=["KOT"])
def print_kot(
    kot_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_kot_data(kots.mark_printed(db, kot_id, user_id)), message="KOT marked as printed")


@app.put("/api/kots/{kot_id}/complete", tags=["KOT"])
def complete_kot(
    kot_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_kot_data(kots.complete_kot(db, kot_id, user_id)), message="KOT completed")


@app.delete("/api/kots/{kot_id}", tags=["KOT"])
def delete_kot(
    kot_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    kots.delete_kot(db, kot_id, user_id)
    return _ok(message="KOT deleted successfully")


# -----------------------------
# Inventory
# -----------------------------

@app.post("/api/inventory/adjust", tags=["Inventory"])
def adjust_stock(
    payload: StockAdjust,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = stock.adjust(db, payload.item_id, payload.adjustment, payload.type, payload.reason, user_id)
    return _ok(
        {
            "item": _item_data(result["item"]),
            "oldStock": _num(result["old_stock"]),
            "newStock": _num(result["new_stock"]),
            "adjustment": _num(result["adjustment"]),
            "type": result["type"],
            "reason": result["reason"],
        },
        message="Stock adjusted successfully",
    )


@app.post("/api/inventory/transfer", tags=["Inventory"])
def transfer_stock(
    payload: StockTransfer,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = stock.transfer(db, payload.from_item_id, payload.to_item_id, payload.quantity, payload.reason, user_id)
    return _ok(
        {
            "fromItem": _item_data(result["from"]),
            "toItem": _item_data(result["to"]),
            "quantity": _num(result["quantity"]),
            "reason": result["reason"],
        },
        message="Stock transferred successfully",
    )


@app.get("/api/inventory/movements", tags=["Inventory"])
def list_stock_movements(
    item_id: Optional[int] = Query(default=None, alias="itemId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = stock.movements(db, user_id, item_id, page, limit)
    return _ok([_movement_data(entry) for entry in result.rows], page=result)


@app.get("/api/inventory/alerts", tags=["Inventory"])
def list_stock_alerts(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    grouped = stock.alerts(db, user_id)
    return _ok(
        {
            "outOfStock": [_item_data(item) for item in grouped[stock.OUT_OF_STOCK]],
            "lowStock": [_item_data(item) for item in grouped[stock.LOW_STOCK]],
            "overstock": [_item_data(item) for item in grouped[stock.OVERSTOCK]],
            "counts": {
                "outOfStock": len(grouped[stock.OUT_OF_STOCK]),
                "lowStock": len(grouped[stock.LOW_STOCK]),
                "overstock": len(grouped[stock.OVERSTOCK]),
            },
        }
    )


# -----------------------------
# Items
# -----------------------------

@app.post("/api/items", status_code=201, tags=["Items"])
def create_item(
    payload: ItemCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_item_data(catalog.create_item(db, payload, user_id)))


@app.get("/api/items", tags=["Items"])
def list_items(
    search: Optional[str] = Query(default=None),
    category_id: Optional[int] = Query(default=None, alias="categoryId"),
    brand_id: Optional[int] = Query(default=None, alias="brandId"),
    sub_category_id: Optional[int] = Query(default=None, alias="subCategoryId"),
    status: Optional[str] = Query(default=None),
    stock_status: Optional[str] = Query(default=None, alias="stockStatus"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = catalog.list_items(
        db, user_id, page, limit, search, category_id, brand_id, sub_category_id, status, stock_status
    )
    return _ok([_item_data(item) for item in result.rows], page=result)


@app.get("/api/items/{item_id}", tags=["Items"])
def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_item_data(catalog.get_item(db, item_id, user_id)))


@app.put("/api/items/{item_id}", tags=["Items"])
def update_item(
    item_id: int,
    payload: ItemUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_item_data(catalog.update_item(db, item_id, payload, user_id)))


@app.delete("/api/items/{item_id}", tags=["Items"])
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    catalog.delete_item(db, item_id, user_id)
    return _ok(message="Item deleted successfully")


# -----------------------------
# Categories
# -----------------------------

@app.post("/api/categories", status_code=201, tags=["Categories"])
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.create_category(db, payload, user_id), item_count=0))


@app.get("/api/categories", tags=["Categories"])
def list_categories(
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = catalog.list_categories(db, user_id, page, limit, search, status)
    return _ok([_named_data(category, count) for category, count in result.rows], page=result)


@app.get("/api/categories/{category_id}", tags=["Categories"])
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    category, count = catalog.get_category(db, category_id, user_id)
    return _ok(_named_data(category, count))


@app.put("/api/categories/{category_id}", tags=["Categories"])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.update_category(db, category_id, payload, user_id)))


@app.delete("/api/categories/{category_id}", tags=["Categories"])
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    catalog.delete_category(db, category_id, user_id)
    return _ok(message="Category deleted successfully")


@app.get("/api/categories/{category_id}/items", tags=["Categories"])
def list_category_items(
    category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok([_item_data(item) for item in catalog.category_items(db, category_id, user_id)])


@app.post("/api/categories/{category_id}/items", tags=["Categories"])
def assign_category_items(
    category_id: int,
    payload: CategoryItems,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    count = catalog.assign_items(db, category_id, payload.item_ids, user_id)
    return _ok({"categoryId": category_id, "itemCount": count}, message="Items assigned to category")


@app.delete("/api/categories/{category_id}/items", tags=["Categories"])
def remove_category_items(
    category_id: int,
    payload: CategoryItems,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    count = catalog.remove_items(db, category_id, payload.item_ids, user_id)
    return _ok({"categoryId": category_id, "itemCount": count}, message="Items removed from category")


# -----------------------------
# Sub-categories and brands
# -----------------------------

@app.post("/api/subcategories", status_code=201, tags=["Sub-categories"])
def create_sub_category(
    payload: SubCategoryCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.create_sub_category(db, payload, user_id), item_count=0))


@app.get("/api/subcategories", tags=["Sub-categories"])
def list_sub_categories(
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = catalog.list_sub_categories(db, user_id, page, limit, search, status)
    return _ok([_named_data(entity, count) for entity, count in result.rows], page=result)


@app.get("/api/subcategories/{sub_category_id}", tags=["Sub-categories"])
def get_sub_category(
    sub_category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.get_sub_category(db, sub_category_id, user_id)))


@app.put("/api/subcategories/{sub_category_id}", tags=["Sub-categories"])
def update_sub_category(
    sub_category_id: int,
    payload: SubCategoryUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.update_sub_category(db, sub_category_id, payload, user_id)))


@app.delete("/api/subcategories/{sub_category_id}", tags=["Sub-categories"])
def delete_sub_category(
    sub_category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    catalog.delete_sub_category(db, sub_category_id, user_id)
    return _ok(message="Sub-category deleted successfully")


@app.post("/api/brands", status_code=201, tags=["Brands"])
def create_brand(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.create_brand(db, payload, user_id), item_count=0))


@app.get("/api/brands", tags=["Brands"])
def list_brands(
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = catalog.list_brands(db, user_id, page, limit, search, status)
    return _ok([_named_data(brand, count) for brand, count in result.rows], page=result)


@app.get("/api/brands/{brand_id}", tags=["Brands"])
def get_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.get_brand(db, brand_id, user_id)))


@app.put("/api/brands/{brand_id}", tags=["Brands"])
def update_brand(
    brand_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_named_data(catalog.update_brand(db, brand_id, payload, user_id)))


@app.delete("/api/brands/{brand_id}", tags=["Brands"])
def delete_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    catalog.delete_brand(db, brand_id, user_id)
    return _ok(message="Brand deleted successfully")


# -----------------------------
# Parties
# -----------------------------

@app.post("/api/parties", status_code=201, tags=["Parties"])
def create_party(
    payload: PartyCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_party_data(catalog.create_party(db, payload, user_id)))


@app.get("/api/parties", tags=["Parties"])
def list_parties(
    party_type: Optional[str] = Query(default=None, alias="partyType"),
    search: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = catalog.list_parties(db, user_id, page, limit, party_type, search)
    return _ok([_party_data(party) for party in result.rows], page=result)


@app.get("/api/parties/{party_id}", tags=["Parties"])
def get_party(
    party_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_party_data(catalog.get_party(db, party_id, user_id)))


@app.put("/api/parties/{party_id}", tags=["Parties"])
def update_party(
    party_id: int,
    payload: PartyUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_party_data(catalog.update_party(db, party_id, payload, user_id)))


@app.delete("/api/parties/{party_id}", tags=["Parties"])
def delete_party(
    party_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    catalog.delete_party(db, party_id, user_id)
    return _ok(message="Party deleted successfully")


# -----------------------------
# Sales
# -----------------------------

@app.post("/api/sales", status_code=201, tags=["Sales"])
def create_sale(
    payload: SaleCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_sale_data(commerce.create_sale(db, payload, user_id)))


@app.get("/api/sales", tags=["Sales"])
def list_sales(
    status: Optional[str] = Query(default=None),
    bill_type: Optional[str] = Query(default=None, alias="billType"),
    payment_method: Optional[str] = Query(default=None, alias="paymentMethod"),
    payment_status: Optional[str] = Query(default=None, alias="paymentStatus"),
    search: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    start, end = _date_range(start_date, end_date)
    result = commerce.list_sales(
        db, user_id, page, limit, status, bill_type, payment_method, payment_status, search, start, end
    )
    return _ok([_sale_data(sale) for sale in result.rows], page=result)


@app.get("/api/sales/{sale_id}", tags=["Sales"])
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_sale_data(commerce.get_sale(db, sale_id, user_id)))


@app.put("/api/sales/{sale_id}", tags=["Sales"])
def update_sale(
    sale_id: int,
    payload: SaleUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_sale_data(commerce.update_sale(db, sale_id, payload, user_id)))


@app.delete("/api/sales/{sale_id}", tags=["Sales"])
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    commerce.delete_sale(db, sale_id, user_id)
    return _ok(message="Sale deleted successfully")


@app.post("/api/sales/{sale_id}/payment", tags=["Sales"])
def process_sale_payment(
    sale_id: int,
    payload: PaymentProcess,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    sale = commerce.process_payment(db, sale_id, payload, user_id)
    return _ok(_sale_data(sale), message="Payment processed successfully")


@app.post("/api/sales/{sale_id}/refund", tags=["Sales"])
def refund_sale(
    sale_id: int,
    payload: RefundRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    sale = commerce.refund_sale(db, sale_id, payload.reason, user_id)
    return _ok(_sale_data(sale), message="Refund processed successfully")


@app.post("/api/sales/{sale_id}/coupon", tags=["Sales"])
def apply_sale_coupon(
    sale_id: int,
    payload: CouponApply,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    sale = commerce.apply_coupon(db, sale_id, payload.coupon_code, user_id)
    return _ok(_sale_data(sale), message="Coupon applied successfully")


# -----------------------------
# Coupons
# -----------------------------

@app.post("/api/coupons", status_code=201, tags=["Coupons"])
def create_coupon(
    payload: CouponCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    coupon = offers.create_coupon(db, payload, user_id)
    return _ok(_coupon_data(coupon), message="Coupon created successfully")


@app.get("/api/coupons", tags=["Coupons"])
def list_coupons(
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    coupon_type: Optional[str] = Query(default=None, alias="couponType"),
    discount_type: Optional[str] = Query(default=None, alias="discountType"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = offers.list_coupons(db, user_id, page, limit, search, status, coupon_type, discount_type)
    return _ok([_coupon_data(coupon) for coupon in result.rows], page=result)


@app.get("/api/coupons/stats", tags=["Coupons"])
def get_coupon_stats(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    stats = offers.coupon_stats(db, user_id)
    return _ok(
        {
            "total": stats["total"],
            "active": stats["active"],
            "expired": stats["expired"],
            "scheduled": stats["scheduled"],
            "totalUsage": stats["total_usage"],
        }
    )


@app.get("/api/coupons/code/{code}", tags=["Coupons"])
def get_coupon_by_code(
    code: str,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_coupon_data(offers.find_coupon(db, code, user_id)))


@app.post("/api/coupons/validate", tags=["Coupons"])
def validate_coupon(
    payload: CouponCheck,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result = offers.check_coupon(db, payload, user_id)
    data = {
        "valid": result["valid"],
        "discountAmount": _num(result["discount_amount"]),
        "coupon": _coupon_data(result["coupon"]),
    }
    return _ok(data, message=result["message"])


@app.get("/api/coupons/{coupon_id}", tags=["Coupons"])
def get_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_coupon_data(offers.get_coupon(db, coupon_id, user_id)))


@app.put("/api/coupons/{coupon_id}", tags=["Coupons"])
def update_coupon(
    coupon_id: int,
    payload: CouponUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    coupon = offers.update_coupon(db, coupon_id, payload, user_id)
    return _ok(_coupon_data(coupon), message="Coupon updated successfully")


@app.delete("/api/coupons/{coupon_id}", tags=["Coupons"])
def delete_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    offers.delete_coupon(db, coupon_id, user_id)
    return _ok(message="Coupon deleted successfully")


@app.patch("/api/coupons/{coupon_id}/toggle-status", tags=["Coupons"])
def toggle_coupon_status(
    coupon_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    coupon = offers.toggle_coupon(db, coupon_id, user_id)
    state = "activated" if coupon.is_active else "deactivated"
    return _ok(_coupon_data(coupon), message=f"Coupon {state} successfully")


# -----------------------------
# Referrer points
# -----------------------------

@app.get("/api/referrer-points/summary", tags=["Referrer points"])
def get_points_summary(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(
        [
            {
                "referrerId": row["referrer_id"],
                "name": row["name"],
                "mobile": row["mobile"],
                "totalEarned": _num(row["total_earned"]),
                "totalRedeemed": _num(row["total_redeemed"]),
                "balance": _num(row["balance"]),
            }
            for row in offers.points_summary(db, user_id)
        ]
    )


@app.post("/api/referrer-points", status_code=201, tags=["Referrer points"])
def add_referrer_points(
    payload: PointsCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    entry = offers.add_points(db, payload, user_id)
    return _ok(_points_data(entry), message="Points added successfully")


@app.post("/api/referrer-points/redeem", status_code=201, tags=["Referrer points"])
def redeem_referrer_points(
    payload: PointsRedeem,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    entry = offers.redeem_points(db, payload, user_id)
    return _ok(_points_data(entry), message="Points redeemed successfully")


@app.get("/api/referrer-points/referrers/{referrer_id}", tags=["Referrer points"])
def list_referrer_transactions(
    referrer_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    result, balance = offers.referrer_transactions(db, referrer_id, user_id, page, limit)
    data = {
        "transactions": [_points_data(entry) for entry in result.rows],
        "summary": _balance_data(balance),
    }
    return _ok(data, page=result)


# -----------------------------
# Purchases
# -----------------------------

@app.post("/api/purchases", status_code=201, tags=["Purchases"])
def create_purchase(
    payload: PurchaseCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_purchase_data(commerce.create_purchase(db, payload, user_id)))


@app.get("/api/purchases", tags=["Purchases"])
def list_purchases(
    status: Optional[str] = Query(default=None),
    payment_status: Optional[str] = Query(default=None, alias="paymentStatus"),
    vendor_id: Optional[int] = Query(default=None, alias="vendorId"),
    search: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    start, end = _date_range(start_date, end_date)
    result = commerce.list_purchases(db, user_id, page, limit, status, payment_status, vendor_id, search, start, end)
    return _ok([_purchase_data(purchase) for purchase in result.rows], page=result)


@app.get("/api/purchases/{purchase_id}", tags=["Purchases"])
def get_purchase(
    purchase_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_purchase_data(commerce.get_purchase(db, purchase_id, user_id)))


@app.put("/api/purchases/{purchase_id}", tags=["Purchases"])
def update_purchase(
    purchase_id: int,
    payload: PurchaseUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    return _ok(_purchase_data(commerce.update_purchase(db, purchase_id, payload, user_id)))


@app.delete("/api/purchases/{purchase_id}", tags=["Purchases"])
def delete_purchase(
    purchase_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    commerce.delete_purchase(db, purchase_id, user_id)
    return _ok(message="Purchase deleted successfully")


@app.put("/api/purchases/{purchase_id}/status", tags=["Purchases"])
def update_purchase_status(
    purchase_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    purchase = commerce.update_purchase_status(db, purchase_id, payload.status, user_id)
    return _ok(_purchase_data(purchase))


@app.put("/api/purchases/{purchase_id}/payment-status", tags=["Purchases"])
def update_purchase_payment_status(
    purchase_id: int,
    payload: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    purchase = commerce.update_payment_status(db, purchase_id, payload.payment_status, user_id)
    return _ok(_purchase_data(purchase))


# -----------------------------
# Reports
# -----------------------------

@app.get("/api/reports/sales", tags=["Reports"])
def sales_report(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    if start_date and end_date and start_date > end_date:
        raise ValidationFailed("startDate must not be after endDate")
    start, end = _date_range(start_date, end_date)
    summary = reports.sales_summary(db, user_id, start, end)
    return _ok(
        {
            "totalBills": summary["total_bills"],
            "totalRevenue": _num(summary["total_revenue"]),
            "totalTax": _num(summary["total_tax"]),
            "totalDiscount": _num(summary["total_discount"]),
            "averageBillValue": _num(summary["average_bill_value"]),
            "paymentMethods": [
                {"method": row["method"], "count": row["count"], "total": _num(row["total"])}
                for row in summary["payment_methods"]
            ],
        }
    )


@app.get("/api/reports/inventory", tags=["Reports"])
def inventory_report(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict:
    overview = reports.inventory_overview(db, user_id)
    return _ok(
        {
            "totalItems": overview["total_items"],
            "stockValue": _num(overview["stock_value"]),
            "outOfStock": overview["out_of_stock"],
            "lowStock": overview["low_stock"],
            "overstock": overview["overstock"],
            "wellStocked": overview["well_stocked"],
        }
    )
