"""Sales bills and purchase orders.

Both documents embed priced lines and a pricing block. The pricing block is
stored as submitted: the client is responsible for
grand_total = sub_total - discount + tax + charges + tip + round_off.

A referred sale earns its referrer commission points once it is paid in
full. A coupon applied to an open sale adds to its discount and lowers its
grand total.

Sales do not consume Item stock. Receiving a purchase credits every line's
quantity to its Item through the stock ledger.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from foodcourt import offers, stock
from foodcourt.db import utcnow
from foodcourt.errors import InvalidStatus, ItemNotFound, NotFound, ValidationFailed, check_owner
from foodcourt.models import (
    PURCHASE_PAYMENT_STATUSES,
    PURCHASE_STATUSES,
    Item,
    Party,
    Purchase,
    PurchaseLineItem,
    ReferrerPoint,
    Sale,
    SaleLineItem,
)
from foodcourt.pagination import Page, paginate
from foodcourt.schemas import (
    PaymentProcess,
    PurchaseCreate,
    PurchaseLineInput,
    PurchaseUpdate,
    SaleCreate,
    SaleLineInput,
    SaleUpdate,
)
from foodcourt.sequence import (
    BILL_WIDTH,
    PURCHASE_PREFIX,
    PURCHASE_WIDTH,
    allocate_number,
    bill_prefix,
)

logger = logging.getLogger(__name__)


def _owned_item(db: Session, item_id: int, user_id: int) -> Item:
    item = db.get(Item, item_id)
    if not item or item.user_id != user_id:
        raise ItemNotFound(item_id)
    return item


def _owned_party(db: Session, party_id: int, user_id: int, party_type: str) -> Party:
    party = db.get(Party, party_id)
    if not party or party.user_id != user_id or party.party_type != party_type:
        raise ValidationFailed(f"{party_type.capitalize()} with ID {party_id} not found")
    return party


# -----------------------------
# Sales
# -----------------------------

def _sale_lines(db: Session, lines: list[SaleLineInput], user_id: int) -> list[SaleLineItem]:
    built = []
    for line in lines:
        item = _owned_item(db, line.item_id, user_id)
        built.append(
            SaleLineItem(
                item_id=item.id,
                item_name=item.product_name,
                quantity=line.quantity,
                price=line.price,
                total=line.quantity * line.price,
                kot_note=line.kot_note,
                variant=line.variant,
            )
        )
    return built


def _apply_sale_pricing(sale: Sale, pricing) -> None:
    sale.sub_total = pricing.sub_total
    sale.tax_amount = pricing.tax_amount
    sale.discount_amount = pricing.discount_amount
    sale.service_charge = pricing.service_charge
    sale.ac_charge = pricing.ac_charge
    sale.waiter_tip = pricing.waiter_tip
    sale.round_off = pricing.round_off
    sale.grand_total = pricing.grand_total


def _apply_sale_customer(sale: Sale, customer) -> None:
    sale.customer_name = customer.name
    sale.customer_mobile = customer.mobile
    sale.customer_email = customer.email
    sale.customer_address = customer.address
    sale.customer_gst_number = customer.gst_number


def get_sale(db: Session, sale_id: int, user_id: int, action: str = "view") -> Sale:
    sale = db.get(Sale, sale_id)
    if not sale:
        raise NotFound("Sale not found")
    check_owner(sale, user_id, action, "sale")
    return sale


def create_sale(db: Session, payload: SaleCreate, user_id: int) -> Sale:
    lines = _sale_lines(db, payload.items, user_id)
    if payload.referrer_id is not None:
        _owned_party(db, payload.referrer_id, user_id, "referrer")
    now = utcnow()
    sale = Sale(
        user_id=user_id,
        bill_no=allocate_number(db, bill_prefix(payload.bill_type), BILL_WIDTH),
        bill_type=payload.bill_type,
        table=payload.table,
        payment_method=payload.payment.method,
        payment_status=payload.payment.status,
        amount_received=payload.payment.amount_received,
        status="draft",
        delivery_date=payload.delivery_date,
        notes=payload.notes,
        referrer_id=payload.referrer_id,
        created_at=now,
        updated_at=now,
    )
    _apply_sale_customer(sale, payload.customer)
    _apply_sale_pricing(sale, payload.pricing)
    sale.lines = lines
    db.add(sale)
    db.commit()
    db.refresh(sale)
    logger.info("created bill %s for table %s, total %s", sale.bill_no, sale.table, sale.grand_total)
    return sale


def list_sales(
    db: Session,
    user_id: int,
    page: int,
    limit: int,
    status: Optional[str] = None,
    bill_type: Optional[str] = None,
    payment_method: Optional[str] = None,
    payment_status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Page:
    query = db.query(Sale).filter(Sale.user_id == user_id)
    if status is not None:
        query = query.filter(Sale.status == status)
    if bill_type is not None:
        query = query.filter(Sale.bill_type == bill_type)
    if payment_method is not None:
        query = query.filter(Sale.payment_method == payment_method)
    if payment_status is not None:
        query = query.filter(Sale.payment_status == payment_status)
    if start_date is not None:
        query = query.filter(Sale.created_at >= start_date)
    if end_date is not None:
        query = query.filter(Sale.created_at <= end_date)
    if search:
        query = query.filter(
            Sale.bill_no.icontains(search, autoescape=True)
            | Sale.customer_name.icontains(search, autoescape=True)
            | Sale.customer_mobile.icontains(search, autoescape=True)
            | Sale.table.icontains(search, autoescape=True)
        )
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    return paginate(query, page, limit)


def update_sale(db: Session, sale_id: int, payload: SaleUpdate, user_id: int) -> Sale:
    sale = get_sale(db, sale_id, user_id, "update")
    if sale.status in ("completed", "cancelled"):
        raise ValidationFailed("Cannot update completed or cancelled sale")
    fields = payload.model_fields_set
    if payload.customer is not None:
        _apply_sale_customer(sale, payload.customer)
    if payload.table is not None:
        sale.table = payload.table
    if payload.pricing is not None:
        _apply_sale_pricing(sale, payload.pricing)
    if payload.payment is not None:
        sale.payment_method = payload.payment.method
        sale.payment_status = payload.payment.status
        sale.amount_received = payload.payment.amount_received
    if payload.status is not None:
        sale.status = payload.status
    if "delivery_date" in fields:
        sale.delivery_date = payload.delivery_date
    if "notes" in fields:
        sale.notes = payload.notes
    sale.updated_at = utcnow()
    db.commit()
    db.refresh(sale)
    return sale


def delete_sale(db: Session, sale_id: int, user_id: int) -> None:
    sale = get_sale(db, sale_id, user_id, "delete")
    if sale.status == "completed":
        raise ValidationFailed("Cannot delete completed sale")
    bill_no = sale.bill_no
    if sale.coupon_id is not None and sale.payment_status != "refunded":
        offers.release_usage(db, sale.coupon_id)
    db.query(ReferrerPoint).filter(ReferrerPoint.sale_id == sale.id).update(
        {ReferrerPoint.sale_id: None}, synchronize_session=False
    )
    db.delete(sale)
    db.commit()
    logger.info("deleted bill %s", bill_no)


def process_payment(db: Session, sale_id: int, payload: PaymentProcess, user_id: int) -> Sale:
    sale = get_sale(db, sale_id, user_id, "update")
    if sale.status == "cancelled":
        raise ValidationFailed("Cannot take payment for a cancelled sale")
    received = payload.amount_received
    grand_total = Decimal(sale.grand_total)
    sale.amount_received = received
    sale.payment_method = payload.payment_method
    sale.transaction_id = payload.transaction_id
    sale.cash_return = max(Decimal("0"), received - grand_total)
    sale.paid_at = utcnow()
    if received >= grand_total:
        sale.payment_status = "paid"
        sale.status = "completed"
        offers.accrue_commission(db, sale)
    elif received > 0:
        sale.payment_status = "partial"
    sale.updated_at = utcnow()
    db.commit()
    db.refresh(sale)
    logger.info(
        "payment of %s via %s on bill %s (%s)",
        received, sale.payment_method, sale.bill_no, sale.payment_status,
    )
    return sale


def refund_sale(db: Session, sale_id: int, reason: Optional[str], user_id: int) -> Sale:
    sale = get_sale(db, sale_id, user_id, "update")
    if sale.payment_status != "paid":
        raise ValidationFailed("Can only refund paid sales")
    sale.payment_status = "refunded"
    sale.status = "cancelled"
    sale.notes = f"{sale.notes or ''}\nRefund: {reason or ''}".strip()
    sale.updated_at = utcnow()
    db.commit()
    db.refresh(sale)
    logger.info("refunded bill %s. reason: %s", sale.bill_no, reason)
    return sale


def apply_coupon(db: Session, sale_id: int, code: str, user_id: int) -> Sale:
    sale = get_sale(db, sale_id, user_id, "update")
    if sale.status in ("completed", "cancelled"):
        raise ValidationFailed("Cannot apply a coupon to a completed or cancelled sale")
    if sale.coupon_id is not None:
        raise ValidationFailed("A coupon is already applied to this sale")
    coupon = offers.find_coupon(db, code, user_id)
    quantity = sum(line.quantity for line in sale.lines)
    discount, message = offers.coupon_discount(coupon, sale.sub_total, quantity)
    if discount <= 0:
        raise ValidationFailed(message)
    try:
        offers.claim_usage(db, coupon)
        sale.coupon_id = coupon.id
        sale.discount_amount = Decimal(str(sale.discount_amount)) + discount
        sale.grand_total = max(Decimal("0"), Decimal(str(sale.grand_total)) - discount)
        sale.updated_at = utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(sale)
    logger.info("coupon %s took %s off bill %s", coupon.code, discount, sale.bill_no)
    return sale


# -----------------------------
# Purchases
# -----------------------------

def _purchase_lines(
    db: Session, lines: list[PurchaseLineInput], user_id: int
) -> list[PurchaseLineItem]:
    built = []
    for line in lines:
        item = _owned_item(db, line.item_id, user_id)
        built.append(
            PurchaseLineItem(
                item_id=item.id,
                item_name=item.product_name,
                quantity=line.quantity,
                price=line.price,
                total=line.quantity * line.price,
                tax_percentage=line.tax_percentage,
                tax_amount=line.tax_amount,
            )
        )
    return built


def _apply_purchase_pricing(purchase: Purchase, pricing) -> None:
    purchase.sub_total = pricing.sub_total
    purchase.tax_amount = pricing.tax_amount
    purchase.discount_amount = pricing.discount_amount
    purchase.round_off = pricing.round_off
    purchase.grand_total = pricing.grand_total


def get_purchase(db: Session, purchase_id: int, user_id: int, action: str = "view") -> Purchase:
    purchase = db.get(Purchase, purchase_id)
    if not purchase:
        raise NotFound("Purchase not found")
    check_owner(purchase, user_id, action, "purchase")
    return purchase


def create_purchase(db: Session, payload: PurchaseCreate, user_id: int) -> Purchase:
    _owned_party(db, payload.vendor_id, user_id, "vendor")
    lines = _purchase_lines(db, payload.items, user_id)
    now = utcnow()
    purchase = Purchase(
        user_id=user_id,
        purchase_number=allocate_number(db, PURCHASE_PREFIX, PURCHASE_WIDTH),
        vendor_id=payload.vendor_id,
        invoice_no=payload.invoice_no,
        invoice_date=payload.invoice_date,
        tax_type=payload.tax_type,
        billing_type=payload.billing_type,
        purchase_type=payload.purchase_type,
        status="draft",
        payment_status="pending",
        fulfillment_status="pending",
        notes=payload.notes,
        created_at=now,
        updated_at=now,
    )
    _apply_purchase_pricing(purchase, payload.pricing)
    purchase.lines = lines
    db.add(purchase)
    db.commit()
    db.refresh(purchase)
    logger.info("created purchase %s (invoice %s)", purchase.purchase_number, purchase.invoice_no)
    return purchase


def list_purchases(
    db: Session,
    user_id: int,
    page: int,
    limit: int,
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    vendor_id: Optional[int] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Page:
    query = db.query(Purchase).filter(Purchase.user_id == user_id)
    if status is not None:
        query = query.filter(Purchase.status == status)
    if payment_status is not None:
        query = query.filter(Purchase.payment_status == payment_status)
    if vendor_id is not None:
        query = query.filter(Purchase.vendor_id == vendor_id)
    if start_date is not None:
        query = query.filter(Purchase.created_at >= start_date)
    if end_date is not None:
        query = query.filter(Purchase.created_at <= end_date)
    if search:
        query = query.filter(
            Purchase.purchase_number.icontains(search, autoescape=True)
            | Purchase.invoice_no.icontains(search, autoescape=True)
        )
    query = query.order_by(Purchase.created_at.desc(), Purchase.id.desc())
    return paginate(query, page, limit)


def update_purchase(db: Session, purchase_id: int, payload: PurchaseUpdate, user_id: int) -> Purchase:
    purchase = get_purchase(db, purchase_id, user_id, "update")
    if purchase.status in ("received", "cancelled"):
        raise ValidationFailed("Cannot update received or cancelled purchase")
    if payload.invoice_no is not None:
        purchase.invoice_no = payload.invoice_no
    if payload.invoice_date is not None:
        purchase.invoice_date = payload.invoice_date
    if payload.items is not None:
        purchase.lines = _purchase_lines(db, payload.items, user_id)
    if payload.pricing is not None:
        _apply_purchase_pricing(purchase, payload.pricing)
    if "notes" in payload.model_fields_set:
        purchase.notes = payload.notes
    purchase.updated_at = utcnow()
    db.commit()
    db.refresh(purchase)
    return purchase


def delete_purchase(db: Session, purchase_id: int, user_id: int) -> None:
    purchase = get_purchase(db, purchase_id, user_id, "delete")
    if purchase.status == "received":
        raise ValidationFailed("Cannot delete received purchase")
    number = purchase.purchase_number
    db.delete(purchase)
    db.commit()
    logger.info("deleted purchase %s", number)


def update_purchase_status(db: Session, purchase_id: int, status: str, user_id: int) -> Purchase:
    if status not in PURCHASE_STATUSES:
        raise InvalidStatus(status, PURCHASE_STATUSES)
    purchase = get_purchase(db, purchase_id, user_id, "update")
    if status == purchase.status:
        return purchase
    if purchase.status in ("received", "cancelled"):
        raise InvalidStatus(status, ())
    try:
        if status == "received":
            for line in purchase.lines:
                item = db.get(Item, line.item_id)
                if not item:
                    raise ItemNotFound(line.item_id)
                stock.credit_item(
                    db,
                    item,
                    line.quantity,
                    user_id,
                    kind="purchase_receipt",
                    reason=f"invoice {purchase.invoice_no}",
                    reference=purchase.purchase_number,
                )
            purchase.fulfillment_status = "completed"
            purchase.received_at = utcnow()
        purchase.status = status
        purchase.updated_at = utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(purchase)
    logger.info("purchase %s is now %s", purchase.purchase_number, status)
    return purchase


def update_payment_status(db: Session, purchase_id: int, payment_status: str, user_id: int) -> Purchase:
    if payment_status not in PURCHASE_PAYMENT_STATUSES:
        raise InvalidStatus(payment_status, PURCHASE_PAYMENT_STATUSES)
    purchase = get_purchase(db, purchase_id, user_id, "update")
    purchase.payment_status = payment_status
    purchase.updated_at = utcnow()
    db.commit()
    db.refresh(purchase)
    return purchase
