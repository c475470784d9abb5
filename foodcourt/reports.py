"""Read-only dashboard projections over sales and inventory."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from foodcourt import stock
from foodcourt.models import Item, Sale


def sales_summary(
    db: Session,
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> dict:
    filters = [Sale.user_id == user_id, Sale.status != "cancelled"]
    if start is not None:
        filters.append(Sale.created_at >= start)
    if end is not None:
        filters.append(Sale.created_at <= end)

    bills, revenue, tax, discount = db.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.grand_total), 0),
        func.coalesce(func.sum(Sale.tax_amount), 0),
        func.coalesce(func.sum(Sale.discount_amount), 0),
    ).filter(*filters).one()

    by_method = (
        db.query(Sale.payment_method, func.count(Sale.id), func.coalesce(func.sum(Sale.grand_total), 0))
        .filter(*filters)
        .group_by(Sale.payment_method)
        .order_by(Sale.payment_method)
        .all()
    )
    return {
        "total_bills": bills,
        "total_revenue": revenue,
        "total_tax": tax,
        "total_discount": discount,
        "average_bill_value": (Decimal(revenue) / bills) if bills else Decimal("0"),
        "payment_methods": [
            {"method": method, "count": count, "total": total}
            for method, count, total in by_method
        ],
    }


def inventory_overview(db: Session, user_id: int) -> dict:
    items = db.query(Item).filter(Item.user_id == user_id, Item.status != "discontinued").all()
    counts = {stock.OUT_OF_STOCK: 0, stock.LOW_STOCK: 0, stock.OVERSTOCK: 0, stock.WELL_STOCKED: 0}
    value = Decimal("0")
    for item in items:
        counts[stock.stock_status(item.current_quantity, item.minimum_stock, item.maximum_stock)] += 1
        if item.cost_price is not None:
            value += Decimal(item.current_quantity) * Decimal(item.cost_price)
    return {
        "total_items": len(items),
        "stock_value": value,
        "out_of_stock": counts[stock.OUT_OF_STOCK],
        "low_stock": counts[stock.LOW_STOCK],
        "overstock": counts[stock.OVERSTOCK],
        "well_stocked": counts[stock.WELL_STOCKED],
    }
