"""Coupons and referrer points.

A coupon's status is derived from its active flag, its validity window and its
usage counter. Usage is claimed with a conditional UPDATE, so a limited coupon
is never redeemed more often than its limit allows.

Referrer points are an append-only ledger per referrer. A paid sale earns its
referrer commission at most once; redemptions never take the balance below
zero.
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import and_, case, func, or_, update
from sqlalchemy.orm import Session

from foodcourt.db import utcnow
from foodcourt.errors import DuplicateKey, InvalidStatus, NotFound, ValidationFailed, check_owner
from foodcourt.models import Coupon, Party, ReferrerPoint, Sale
from foodcourt.pagination import Page, paginate
from foodcourt.schemas import CouponCheck, CouponCreate, CouponUpdate, PointsCreate, PointsRedeem

logger = logging.getLogger(__name__)

ACTIVE = "Active"
INACTIVE = "Inactive"
SCHEDULED = "Scheduled"
EXPIRED = "Expired"
EXHAUSTED = "Exhausted"
COUPON_STATUSES = (ACTIVE, INACTIVE, SCHEDULED, EXPIRED, EXHAUSTED)

COMMISSION = "Referral Commission"
YEARLY_BONUS = "Yearly Bonus"
REDEMPTION = "Redemption"

CENT = Decimal("0.01")
ZERO = Decimal("0")


def _decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are UTC; SQLite returns them without an offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# -----------------------------
# Coupons
# -----------------------------

def coupon_status(coupon: Coupon, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    if not coupon.is_active:
        return INACTIVE
    if now < as_utc(coupon.valid_from):
        return SCHEDULED
    if now > as_utc(coupon.valid_to):
        return EXPIRED
    if coupon.total_usage_limit is not None and coupon.current_usage_count >= coupon.total_usage_limit:
        return EXHAUSTED
    return ACTIVE


def coupon_discount(
    coupon: Coupon, order_amount, order_quantity: int = 0, now: Optional[datetime] = None
) -> tuple[Decimal, str]:
    """Return ``(discount, message)``. A zero discount means the coupon does not apply."""
    status = coupon_status(coupon, now)
    if status != ACTIVE:
        return ZERO, f"Coupon is {status.lower()}"
    order_amount = _decimal(order_amount)
    minimum = _decimal(coupon.min_order_amount)
    if minimum > 0 and order_amount < minimum:
        return ZERO, f"Minimum order amount of {minimum} required"
    if coupon.min_order_quantity and order_quantity < coupon.min_order_quantity:
        return ZERO, f"Minimum order quantity of {coupon.min_order_quantity} items required"
    value = _decimal(coupon.coupon_value)
    if coupon.discount_type == "Percentage":
        discount = order_amount * value / 100
    else:
        discount = min(value, order_amount)
    discount = discount.quantize(CENT, rounding=ROUND_HALF_UP)
    if discount <= 0:
        return ZERO, "Coupon cannot be applied to this order"
    return discount, "Coupon is valid"


def _status_clause(status: str, now: datetime):
    in_window = and_(Coupon.valid_from <= now, Coupon.valid_to >= now)
    used_up = and_(
        Coupon.total_usage_limit.is_not(None),
        Coupon.current_usage_count >= Coupon.total_usage_limit,
    )
    if status == ACTIVE:
        return and_(Coupon.is_active.is_(True), in_window, ~used_up)
    if status == INACTIVE:
        return Coupon.is_active.is_(False)
    if status == SCHEDULED:
        return and_(Coupon.is_active.is_(True), Coupon.valid_from > now)
    if status == EXPIRED:
        return and_(Coupon.is_active.is_(True), Coupon.valid_to < now)
    if status == EXHAUSTED:
        return and_(Coupon.is_active.is_(True), in_window, used_up)
    raise InvalidStatus(status, COUPON_STATUSES)


def _normalize_code(code: str) -> str:
    return code.strip().upper()


def _validity(valid_from: datetime, valid_to: datetime) -> tuple[datetime, datetime]:
    valid_from, valid_to = as_utc(valid_from), as_utc(valid_to)
    if valid_to <= valid_from:
        raise ValidationFailed("Valid to date must be after valid from date")
    return valid_from, valid_to


def _check_value(discount_type: str, value) -> None:
    if discount_type == "Percentage" and _decimal(value) > 100:
        raise ValidationFailed("Percentage discount must be between 0 and 100%")


def _ensure_unique_code(db: Session, user_id: int, code: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Coupon.id).filter(Coupon.user_id == user_id, Coupon.code == code)
    if exclude_id is not None:
        query = query.filter(Coupon.id != exclude_id)
    if query.first():
        raise DuplicateKey("Coupon with this code already exists")


def get_coupon(db: Session, coupon_id: int, user_id: int, action: str = "view") -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFound("Coupon not found")
    check_owner(coupon, user_id, action, "coupon")
    return coupon


def find_coupon(db: Session, code: str, user_id: int) -> Coupon:
    coupon = (
        db.query(Coupon)
        .filter(Coupon.user_id == user_id, Coupon.code == _normalize_code(code))
        .one_or_none()
    )
    if not coupon:
        raise NotFound("Coupon not found")
    return coupon


def create_coupon(db: Session, payload: CouponCreate, user_id: int) -> Coupon:
    code = _normalize_code(payload.code)
    _ensure_unique_code(db, user_id, code)
    valid_from, valid_to = _validity(payload.valid_from, payload.valid_to)
    _check_value(payload.discount_type, payload.coupon_value)
    now = utcnow()
    coupon = Coupon(
        user_id=user_id,
        code=code,
        name=payload.name.strip(),
        description=payload.description,
        coupon_type=payload.coupon_type,
        discount_type=payload.discount_type,
        coupon_value=payload.coupon_value,
        valid_from=valid_from,
        valid_to=valid_to,
        min_order_amount=payload.min_order_amount,
        min_order_quantity=payload.min_order_quantity,
        total_usage_limit=payload.total_usage_limit,
        current_usage_count=0,
        is_active=payload.is_active,
        created_at=now,
        updated_at=now,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    logger.info("created coupon %s (%s %s)", coupon.code, coupon.discount_type, coupon.coupon_value)
    return coupon


def list_coupons(
    db: Session,
    user_id: int,
    page: int,
    limit: int,
    search: Optional[str] = None,
    status: Optional[str] = None,
    coupon_type: Optional[str] = None,
    discount_type: Optional[str] = None,
) -> Page:
    query = db.query(Coupon).filter(Coupon.user_id == user_id)
    if search:
        query = query.filter(
            or_(
                Coupon.code.icontains(search, autoescape=True),
                Coupon.name.icontains(search, autoescape=True),
                Coupon.description.icontains(search, autoescape=True),
            )
        )
    if status is not None:
        query = query.filter(_status_clause(status, utcnow()))
    if coupon_type is not None:
        query = query.filter(Coupon.coupon_type == coupon_type)
    if discount_type is not None:
        query = query.filter(Coupon.discount_type == discount_type)
    return paginate(query.order_by(Coupon.created_at.desc(), Coupon.id.desc()), page, limit)


_NULLABLE_COUPON_FIELDS = ("description", "total_usage_limit")


def update_coupon(db: Session, coupon_id: int, payload: CouponUpdate, user_id: int) -> Coupon:
    coupon = get_coupon(db, coupon_id, user_id, "update")
    for field in payload.model_fields_set:
        value = getattr(payload, field)
        if value is None and field not in _NULLABLE_COUPON_FIELDS:
            continue
        if field == "code":
            value = _normalize_code(value)
            _ensure_unique_code(db, user_id, value, exclude_id=coupon.id)
        setattr(coupon, field, value)
    coupon.valid_from, coupon.valid_to = _validity(coupon.valid_from, coupon.valid_to)
    _check_value(coupon.discount_type, coupon.coupon_value)
    if coupon.total_usage_limit is not None and coupon.current_usage_count > coupon.total_usage_limit:
        raise ValidationFailed("Total usage limit cannot be below the current usage count")
    coupon.updated_at = utcnow()
    db.commit()
    db.refresh(coupon)
    return coupon


def delete_coupon(db: Session, coupon_id: int, user_id: int) -> None:
    coupon = get_coupon(db, coupon_id, user_id, "delete")
    db.query(Sale).filter(Sale.coupon_id == coupon.id).update(
        {Sale.coupon_id: None}, synchronize_session=False
    )
    code = coupon.code
    db.delete(coupon)
    db.commit()
    logger.info("deleted coupon %s", code)


def toggle_coupon(db: Session, coupon_id: int, user_id: int) -> Coupon:
    coupon = get_coupon(db, coupon_id, user_id, "update")
    coupon.is_active = not coupon.is_active
    coupon.updated_at = utcnow()
    db.commit()
    db.refresh(coupon)
    logger.info("coupon %s %s", coupon.code, "activated" if coupon.is_active else "deactivated")
    return coupon


def check_coupon(db: Session, payload: CouponCheck, user_id: int) -> dict:
    coupon = find_coupon(db, payload.coupon_code, user_id)
    discount, message = coupon_discount(coupon, payload.order_amount, payload.order_quantity)
    return {"valid": discount > 0, "message": message, "discount_amount": discount, "coupon": coupon}


def claim_usage(db: Session, coupon: Coupon) -> None:
    """Count one use inside the caller's transaction; the caller commits."""
    result = db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(
                Coupon.total_usage_limit.is_(None),
                Coupon.current_usage_count < Coupon.total_usage_limit,
            ),
        )
        .values(current_usage_count=Coupon.current_usage_count + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ValidationFailed("Coupon usage limit has been reached")


def release_usage(db: Session, coupon_id: int) -> None:
    db.execute(
        update(Coupon)
        .where(Coupon.id == coupon_id, Coupon.current_usage_count > 0)
        .values(current_usage_count=Coupon.current_usage_count - 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


def coupon_stats(db: Session, user_id: int) -> dict:
    now = utcnow()

    def counted(status: str):
        return func.coalesce(func.sum(case((_status_clause(status, now), 1), else_=0)), 0)

    total, active, expired, scheduled, usage = (
        db.query(
            func.count(Coupon.id),
            counted(ACTIVE),
            counted(EXPIRED),
            counted(SCHEDULED),
            func.coalesce(func.sum(Coupon.current_usage_count), 0),
        )
        .filter(Coupon.user_id == user_id)
        .one()
    )
    return {
        "total": total,
        "active": int(active),
        "expired": int(expired),
        "scheduled": int(scheduled),
        "total_usage": int(usage),
    }


# -----------------------------
# Referrer points
# -----------------------------

def get_referrer(db: Session, referrer_id: int, user_id: int) -> Party:
    party = db.get(Party, referrer_id)
    if not party or party.party_type != "referrer":
        raise NotFound("Referrer not found")
    check_owner(party, user_id, "view", "referrer")
    return party


def _referrer_for_update(db: Session, referrer_id: int, user_id: int) -> Party:
    # the row lock serialises redemptions for one referrer
    party = db.query(Party).filter(Party.id == referrer_id).with_for_update().one_or_none()
    if not party or party.user_id != user_id or party.party_type != "referrer":
        raise ValidationFailed(f"Referrer with ID {referrer_id} not found")
    return party


def commission_points(referrer: Party, order_amount) -> Decimal:
    value = _decimal(referrer.commission_value)
    if referrer.commission_type == "Percentage":
        points = _decimal(order_amount) * value / 100
    else:
        points = value
    return points.quantize(CENT, rounding=ROUND_HALF_UP)


def accrue_commission(db: Session, sale: Sale) -> Optional[ReferrerPoint]:
    """Credit the referrer of a paid sale inside the caller's transaction."""
    if sale.referrer_id is None:
        return None
    referrer = db.get(Party, sale.referrer_id)
    if referrer is None or referrer.party_type != "referrer":
        return None
    earned = (
        db.query(ReferrerPoint.id)
        .filter(ReferrerPoint.sale_id == sale.id, ReferrerPoint.transaction_type == COMMISSION)
        .first()
    )
    if earned:
        return None
    points = commission_points(referrer, sale.grand_total)
    if points <= 0:
        return None
    entry = ReferrerPoint(
        user_id=sale.user_id,
        referrer_id=referrer.id,
        sale_id=sale.id,
        transaction_type=COMMISSION,
        points_earned=points,
        points_redeemed=ZERO,
        order_amount=sale.grand_total,
        description=f"Commission on bill {sale.bill_no}",
        created_at=utcnow(),
    )
    db.add(entry)
    logger.info("referrer %s earned %s points on bill %s", referrer.name, points, sale.bill_no)
    return entry


def points_balance(db: Session, referrer_id: int) -> dict:
    def earned_as(kind: str):
        return func.coalesce(
            func.sum(case((ReferrerPoint.transaction_type == kind, ReferrerPoint.points_earned), else_=0)), 0
        )

    commission, yearly, earned, redeemed = (
        db.query(
            earned_as(COMMISSION),
            earned_as(YEARLY_BONUS),
            func.coalesce(func.sum(ReferrerPoint.points_earned), 0),
            func.coalesce(func.sum(ReferrerPoint.points_redeemed), 0),
        )
        .filter(ReferrerPoint.referrer_id == referrer_id)
        .one()
    )
    earned, redeemed = _decimal(earned), _decimal(redeemed)
    return {
        "commission_points": _decimal(commission),
        "yearly_points": _decimal(yearly),
        "total_earned": earned,
        "total_redeemed": redeemed,
        "balance": earned - redeemed,
    }


def add_points(db: Session, payload: PointsCreate, user_id: int) -> ReferrerPoint:
    referrer = _referrer_for_update(db, payload.referrer_id, user_id)
    entry = ReferrerPoint(
        user_id=user_id,
        referrer_id=referrer.id,
        transaction_type=payload.transaction_type,
        points_earned=payload.points_earned,
        points_redeemed=ZERO,
        description=payload.description,
        created_at=utcnow(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("%s of %s points for referrer %s", payload.transaction_type, payload.points_earned, referrer.name)
    return entry


def redeem_points(db: Session, payload: PointsRedeem, user_id: int) -> ReferrerPoint:
    referrer = _referrer_for_update(db, payload.referrer_id, user_id)
    available = points_balance(db, referrer.id)["balance"]
    if available < payload.points_to_redeem:
        raise ValidationFailed(
            f"Insufficient points balance. Available: {available}, Requested: {payload.points_to_redeem}"
        )
    entry = ReferrerPoint(
        user_id=user_id,
        referrer_id=referrer.id,
        transaction_type=REDEMPTION,
        points_earned=ZERO,
        points_redeemed=payload.points_to_redeem,
        description=payload.description or "Points redemption",
        created_at=utcnow(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("referrer %s redeemed %s points", referrer.name, payload.points_to_redeem)
    return entry


def referrer_transactions(db: Session, referrer_id: int, user_id: int, page: int, limit: int) -> tuple[Page, dict]:
    referrer = get_referrer(db, referrer_id, user_id)
    query = (
        db.query(ReferrerPoint)
        .filter(ReferrerPoint.referrer_id == referrer.id)
        .order_by(ReferrerPoint.created_at.desc(), ReferrerPoint.id.desc())
    )
    return paginate(query, page, limit), points_balance(db, referrer.id)


def points_summary(db: Session, user_id: int) -> list[dict]:
    earned = func.coalesce(func.sum(ReferrerPoint.points_earned), 0)
    redeemed = func.coalesce(func.sum(ReferrerPoint.points_redeemed), 0)
    rows = (
        db.query(Party.id, Party.name, Party.mobile, earned, redeemed)
        .join(ReferrerPoint, ReferrerPoint.referrer_id == Party.id)
        .filter(Party.user_id == user_id)
        .group_by(Party.id, Party.name, Party.mobile)
        .order_by(earned.desc(), Party.name)
        .all()
    )
    return [
        {
            "referrer_id": party_id,
            "name": name,
            "mobile": mobile,
            "total_earned": _decimal(total_earned),
            "total_redeemed": _decimal(total_redeemed),
            "balance": _decimal(total_earned) - _decimal(total_redeemed),
        }
        for party_id, name, mobile, total_earned, total_redeemed in rows
    ]
