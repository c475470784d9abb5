"""Kitchen order tickets.

A ticket owns its lines. Each line moves forward through
pending -> preparing -> ready -> served, or to cancelled from any
non-terminal state. Moving a line backwards, e.g. ready -> preparing, is
rejected. The ticket completes itself once every line is served or cancelled,
and a ticket whose lines are all terminal cannot be reopened.
``total_amount`` is recomputed from the lines on every save.

Creating a ticket does not consume Item stock: kitchen preparation is
tracked separately from inventory.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from foodcourt.db import utcnow
from foodcourt.errors import InvalidStatus, ItemNotFound, NotFound, ValidationFailed, check_owner
from foodcourt.models import KOT_ITEM_STATUSES, KOT_STATUSES, Item, Kot, KotLineItem
from foodcourt.pagination import Page, paginate
from foodcourt.schemas import KotCreate, KotLineInput, KotUpdate
from foodcourt.sequence import KOT_PREFIX, KOT_WIDTH, allocate_number, day_bounds, today

logger = logging.getLogger(__name__)

TERMINAL_LINE_STATUSES = ("served", "cancelled")
_LINE_ORDER = ("pending", "preparing", "ready", "served")


def allowed_line_transitions(current: str) -> tuple[str, ...]:
    if current in TERMINAL_LINE_STATUSES:
        return ()
    later = _LINE_ORDER[_LINE_ORDER.index(current) + 1:]
    return later + ("cancelled",)


def recompute_total(kot: Kot) -> Decimal:
    kot.total_amount = sum((Decimal(line.total_amount) for line in kot.lines), Decimal("0"))
    return kot.total_amount


def _complete_if_done(kot: Kot) -> None:
    if kot.status != "active" or not kot.lines:
        return
    if all(line.status in TERMINAL_LINE_STATUSES for line in kot.lines):
        kot.status = "completed"
        kot.completed_at = utcnow()


def _save(db: Session, kot: Kot) -> Kot:
    recompute_total(kot)
    kot.updated_at = utcnow()
    db.commit()
    db.refresh(kot)
    return kot


def _build_lines(db: Session, lines: list[KotLineInput], user_id: int) -> list[KotLineItem]:
    built = []
    for line in lines:
        item = db.get(Item, line.item_id)
        if not item or item.user_id != user_id:
            raise ItemNotFound(line.item_id)
        built.append(
            KotLineItem(
                item_id=item.id,
                item_name=line.item_name or item.product_name,
                category_names=[category.name for category in item.categories],
                quantity=line.quantity,
                price=line.price,
                total_amount=line.quantity * line.price,
                variant=line.variant,
                kot_note=line.kot_note,
                status="pending",
            )
        )
    return built


def get_kot(db: Session, kot_id: int, user_id: int, action: str = "view") -> Kot:
    kot = db.get(Kot, kot_id)
    if not kot:
        raise NotFound("KOT not found")
    check_owner(kot, user_id, action, "KOT")
    return kot


def create_kot(db: Session, payload: KotCreate, user_id: int) -> Kot:
    lines = _build_lines(db, payload.items, user_id)
    customer = payload.customer_details
    kot = Kot(
        user_id=user_id,
        kot_number=allocate_number(db, KOT_PREFIX, KOT_WIDTH),
        table_number=payload.table_number,
        order_reference=payload.order_reference,
        customer_name=customer.name if customer else None,
        customer_mobile=customer.mobile if customer else None,
        customer_type=customer.type if customer else "Individual",
        kot_type=payload.kot_type,
        status="active",
        notes=payload.notes,
        created_at=utcnow(),
    )
    kot.lines = lines
    db.add(kot)
    _save(db, kot)
    logger.info("created %s for table %s (%d lines)", kot.kot_number, kot.table_number, len(lines))
    return kot


def list_kots(
    db: Session,
    user_id: int,
    page: int,
    limit: int,
    status: Optional[str] = None,
    kot_type: Optional[str] = None,
    table_number: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Page:
    query = db.query(Kot).filter(Kot.user_id == user_id)
    if status is not None:
        query = query.filter(Kot.status == status)
    if kot_type is not None:
        query = query.filter(Kot.kot_type == kot_type)
    if table_number is not None:
        query = query.filter(Kot.table_number.icontains(table_number, autoescape=True))
    if start_date is not None:
        query = query.filter(Kot.created_at >= start_date)
    if end_date is not None:
        query = query.filter(Kot.created_at <= end_date)
    if search:
        query = query.filter(
            Kot.kot_number.icontains(search, autoescape=True)
            | Kot.customer_name.icontains(search, autoescape=True)
        )
    query = query.order_by(Kot.created_at.desc(), Kot.id.desc())
    return paginate(query, page, limit)


def active_kots(db: Session, user_id: int) -> list[Kot]:
    return (
        db.query(Kot)
        .filter(Kot.user_id == user_id, Kot.status == "active")
        .order_by(Kot.created_at.desc(), Kot.id.desc())
        .all()
    )


def update_kot(db: Session, kot_id: int, payload: KotUpdate, user_id: int) -> Kot:
    kot = get_kot(db, kot_id, user_id, "update")
    fields = payload.model_fields_set
    if payload.status is not None and payload.status not in KOT_STATUSES:
        raise InvalidStatus(payload.status, KOT_STATUSES)
    if "table_number" in fields and payload.table_number is not None:
        kot.table_number = payload.table_number
    if "order_reference" in fields:
        kot.order_reference = payload.order_reference
    if "notes" in fields:
        kot.notes = payload.notes
    if payload.kot_type is not None:
        kot.kot_type = payload.kot_type
    if payload.customer_details is not None:
        kot.customer_name = payload.customer_details.name
        kot.customer_mobile = payload.customer_details.mobile
        kot.customer_type = payload.customer_details.type
    if payload.items is not None:
        kot.lines = _build_lines(db, payload.items, user_id)
    if payload.status is not None and payload.status != kot.status:
        kot.status = payload.status
        kot.completed_at = utcnow() if payload.status == "completed" else None
    _complete_if_done(kot)
    return _save(db, kot)


def update_item_status(db: Session, kot_id: int, line_id: int, status: str, user_id: int) -> Kot:
    if status not in KOT_ITEM_STATUSES:
        raise InvalidStatus(status, KOT_ITEM_STATUSES)
    kot = get_kot(db, kot_id, user_id, "update")
    line = next((line for line in kot.lines if line.id == line_id), None)
    if line is None:
        raise NotFound("Item not found in KOT")
    if status != line.status:
        allowed = allowed_line_transitions(line.status)
        if status not in allowed:
            raise InvalidStatus(status, allowed)
        line.status = status
        if status == "ready":
            line.prepared_at = utcnow()
        elif status == "served":
            line.served_at = utcnow()
    _complete_if_done(kot)
    _save(db, kot)
    if kot.status == "completed":
        logger.info("%s completed", kot.kot_number)
    return kot


def mark_printed(db: Session, kot_id: int, user_id: int) -> Kot:
    kot = get_kot(db, kot_id, user_id, "update")
    kot.printed_at = utcnow()
    return _save(db, kot)


def complete_kot(db: Session, kot_id: int, user_id: int) -> Kot:
    kot = get_kot(db, kot_id, user_id, "update")
    if kot.status == "cancelled":
        raise ValidationFailed("Cannot complete a cancelled KOT")
    now = utcnow()
    for line in kot.lines:
        if line.status == "cancelled":
            continue
        if line.status != "served":
            line.status = "served"
            line.served_at = now
    kot.status = "completed"
    kot.completed_at = now
    _save(db, kot)
    logger.info("%s completed manually", kot.kot_number)
    return kot


def delete_kot(db: Session, kot_id: int, user_id: int) -> None:
    kot = get_kot(db, kot_id, user_id, "delete")
    number = kot.kot_number
    db.delete(kot)
    db.commit()
    logger.info("deleted %s", number)


def kot_stats(db: Session, user_id: int) -> dict:
    starts_at, ends_at = day_bounds(today())
    todays = (Kot.user_id == user_id, Kot.created_at >= starts_at, Kot.created_at < ends_at)
    total, active, completed, amount, average = db.query(
        func.count(Kot.id),
        func.coalesce(func.sum(case((Kot.status == "active", 1), else_=0)), 0),
        func.coalesce(func.sum(case((Kot.status == "completed", 1), else_=0)), 0),
        func.coalesce(func.sum(Kot.total_amount), 0),
        func.coalesce(func.avg(Kot.total_amount), 0),
    ).filter(*todays).one()
    breakdown = (
        db.query(Kot.kot_type, func.count(Kot.id), func.coalesce(func.sum(Kot.total_amount), 0))
        .filter(*todays)
        .group_by(Kot.kot_type)
        .order_by(Kot.kot_type)
        .all()
    )
    return {
        "overview": {
            "total_kots": total,
            "active_kots": int(active),
            "completed_kots": int(completed),
            "total_amount": amount,
            "avg_order_value": average,
        },
        "kot_type_breakdown": [
            {"kot_type": kot_type, "count": count, "total_amount": type_amount}
            for kot_type, count, type_amount in breakdown
        ],
    }
