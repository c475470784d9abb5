"""Stock counter mutations with an append-only adjustment ledger.

Every change to ``Item.current_quantity`` goes through a single conditional
UPDATE, so the counter cannot drop below zero even under concurrent requests,
and is paired with a ``StockAdjustment`` row written in the same transaction.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from foodcourt.db import utcnow
from foodcourt.errors import InsufficientStock, NotFound, ValidationFailed, check_owner
from foodcourt.models import Item, StockAdjustment
from foodcourt.pagination import Page, paginate

logger = logging.getLogger(__name__)

INCREASE = "increase"
DECREASE = "decrease"

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
OVERSTOCK = "overstock"
WELL_STOCKED = "well_stocked"


def stock_status(quantity, minimum, maximum) -> str:
    if quantity == 0:
        return OUT_OF_STOCK
    if minimum is not None and quantity <= minimum:
        return LOW_STOCK
    if maximum is not None and quantity > maximum:
        return OVERSTOCK
    return WELL_STOCKED


def _get_item(db: Session, item_id: int) -> Item:
    item = db.get(Item, item_id)
    if not item:
        raise NotFound("Item not found")
    return item


def _balance(db: Session, item_id: int) -> Decimal:
    return db.execute(select(Item.current_quantity).where(Item.id == item_id)).scalar_one()


def _credit(db: Session, item: Item, quantity: Decimal) -> Decimal:
    db.execute(
        update(Item)
        .where(Item.id == item.id)
        .values(current_quantity=Item.current_quantity + quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return _balance(db, item.id)


def _debit(db: Session, item: Item, quantity: Decimal) -> Decimal:
    result = db.execute(
        update(Item)
        .where(Item.id == item.id, Item.current_quantity >= quantity)
        .values(current_quantity=Item.current_quantity - quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InsufficientStock(
            f"Insufficient stock for {item.product_name}. "
            f"Available: {item.current_quantity}, Required: {quantity}"
        )
    return _balance(db, item.id)


def _record(
    db: Session,
    item: Item,
    user_id: int,
    kind: str,
    delta: Decimal,
    balance_after: Decimal,
    reason: str | None,
    reference: str | None = None,
) -> StockAdjustment:
    entry = StockAdjustment(
        item_id=item.id,
        user_id=user_id,
        kind=kind,
        delta=delta,
        balance_after=balance_after,
        reason=reason,
        reference=reference,
        created_at=utcnow(),
    )
    db.add(entry)
    return entry


def _positive(quantity) -> Decimal:
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationFailed("Quantity must be greater than zero")
    return quantity


def credit_item(
    db: Session,
    item: Item,
    quantity,
    user_id: int,
    kind: str,
    reason: str | None = None,
    reference: str | None = None,
) -> Decimal:
    """Add stock inside the caller's transaction; the caller commits."""
    quantity = _positive(quantity)
    balance = _credit(db, item, quantity)
    _record(db, item, user_id, kind, quantity, balance, reason, reference)
    return balance


def adjust(
    db: Session,
    item_id: int,
    quantity,
    direction: str,
    reason: str | None,
    user_id: int,
) -> dict:
    if direction not in (INCREASE, DECREASE):
        raise ValidationFailed("Adjustment type must be 'increase' or 'decrease'")
    quantity = _positive(quantity)
    item = _get_item(db, item_id)
    check_owner(item, user_id, "adjust stock of", "item")
    old_stock = item.current_quantity
    if direction == INCREASE:
        new_stock = _credit(db, item, quantity)
        delta = quantity
    else:
        new_stock = _debit(db, item, quantity)
        delta = -quantity
    _record(db, item, user_id, "adjustment", delta, new_stock, reason)
    db.commit()
    db.refresh(item)
    logger.info(
        "stock adjusted for %s: %s -> %s (%s). reason: %s",
        item.product_name, old_stock, new_stock, direction, reason,
    )
    return {
        "item": item,
        "old_stock": old_stock,
        "new_stock": new_stock,
        "adjustment": quantity,
        "type": direction,
        "reason": reason,
    }


def transfer(
    db: Session,
    from_item_id: int,
    to_item_id: int,
    quantity,
    reason: str | None,
    user_id: int,
) -> dict:
    quantity = _positive(quantity)
    if from_item_id == to_item_id:
        raise ValidationFailed("Source and destination items must differ")
    source = db.get(Item, from_item_id)
    destination = db.get(Item, to_item_id)
    if not source or not destination:
        raise NotFound("One or both items not found")
    check_owner(source, user_id, "transfer stock from", "item")
    check_owner(destination, user_id, "transfer stock to", "item")
    reference = f"transfer:{source.id}->{destination.id}"
    try:
        source_balance = _debit(db, source, quantity)
        destination_balance = _credit(db, destination, quantity)
        _record(db, source, user_id, "transfer_out", -quantity, source_balance, reason, reference)
        _record(db, destination, user_id, "transfer_in", quantity, destination_balance, reason, reference)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(source)
    db.refresh(destination)
    logger.info(
        "transferred %s from %s to %s. reason: %s",
        quantity, source.product_name, destination.product_name, reason,
    )
    return {
        "from": source,
        "to": destination,
        "quantity": quantity,
        "reason": reason,
    }


def movements(
    db: Session, user_id: int, item_id: int | None, page: int, limit: int
) -> Page:
    query = (
        db.query(StockAdjustment)
        .join(Item, Item.id == StockAdjustment.item_id)
        .filter(Item.user_id == user_id)
    )
    if item_id is not None:
        query = query.filter(StockAdjustment.item_id == item_id)
    query = query.order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
    return paginate(query, page, limit)


def alerts(db: Session, user_id: int) -> dict:
    items = (
        db.query(Item)
        .filter(Item.user_id == user_id, Item.status == "active")
        .order_by(Item.current_quantity, Item.product_name)
        .all()
    )
    grouped: dict[str, list[Item]] = {OUT_OF_STOCK: [], LOW_STOCK: [], OVERSTOCK: []}
    for item in items:
        status = stock_status(item.current_quantity, item.minimum_stock, item.maximum_stock)
        if status in grouped:
            grouped[status].append(item)
    return grouped
