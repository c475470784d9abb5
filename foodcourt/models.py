from datetime import date, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from foodcourt.db import Base

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")

ITEM_STATUSES = ("active", "inactive", "discontinued")
ITEM_UNITS = ("pieces", "kg", "grams", "liters", "ml", "boxes", "packets")
CATALOG_STATUSES = ("active", "inactive")
PARTY_TYPES = ("customer", "vendor", "referrer")
KOT_TYPES = ("Tea Shop (KOT1)", "Juice shop (KOT2)", "Ice cream shop (KOT3)")
KOT_STATUSES = ("active", "completed", "cancelled")
KOT_ITEM_STATUSES = ("pending", "preparing", "ready", "served", "cancelled")
CUSTOMER_TYPES = ("Individual", "Business")
BILL_TYPES = ("GST", "Non-GST", "Estimation", "Proforma")
SALE_STATUSES = ("draft", "confirmed", "completed", "cancelled")
PAYMENT_METHODS = ("cash", "card", "upi", "credit")
SALE_PAYMENT_STATUSES = ("pending", "partial", "paid", "refunded")
PURCHASE_STATUSES = ("draft", "confirmed", "received", "cancelled")
PURCHASE_PAYMENT_STATUSES = ("pending", "partial", "paid")
FULFILLMENT_STATUSES = ("pending", "in-progress", "completed")
TAX_TYPES = ("IGST", "SGST+CGST")
BILLING_TYPES = ("GST", "Non-GST")
PURCHASE_TYPES = ("sales", "recipe")
ADJUSTMENT_KINDS = ("adjustment", "transfer_in", "transfer_out", "purchase_receipt")
COMMISSION_TYPES = ("Percentage", "Fixed Amount")
COUPON_TYPES = ("Promotional", "Loyalty", "Welcome", "Seasonal", "Referral")
DISCOUNT_TYPES = ("Percentage", "Fixed Amount", "Flat Discount")
POINT_TRANSACTION_TYPES = ("Referral Commission", "Manual Adjustment", "Redemption", "Yearly Bonus")


def _one_of(column: str, values: tuple[str, ...], name: str) -> CheckConstraint:
    quoted = ", ".join(f"'{value}'" for value in values)
    return CheckConstraint(f"{column} IN ({quoted})", name=name)


item_category = Table(
    "item_category",
    Base.metadata,
    Column("item_id", ID_TYPE, ForeignKey("item.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", ID_TYPE, ForeignKey("category.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "category"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_category_user_name"),
        _one_of("status", CATALOG_STATUSES, "category_status"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    items: Mapped[list["Item"]] = relationship(
        secondary=item_category, back_populates="categories"
    )


class SubCategory(Base):
    __tablename__ = "sub_category"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_sub_category_user_name"),
        _one_of("status", CATALOG_STATUSES, "sub_category_status"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    category_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("category.id", ondelete="SET NULL")
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Brand(Base):
    __tablename__ = "brand"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_brand_user_name"),
        _one_of("status", CATALOG_STATUSES, "brand_status"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Item(Base):
    __tablename__ = "item"
    __table_args__ = (
        UniqueConstraint("user_id", "product_name", name="uq_item_user_name"),
        CheckConstraint("current_quantity >= 0", name="item_quantity_non_negative"),
        _one_of("status", ITEM_STATUSES, "item_status"),
        _one_of("unit", ITEM_UNITS, "item_unit"),
        Index("ix_item_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    brand_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("brand.id", ondelete="SET NULL")
    )
    sub_category_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("sub_category.id", ondelete="SET NULL")
    )
    description: Mapped[str | None] = mapped_column(Text)
    current_quantity: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    minimum_stock: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    maximum_stock: Mapped[Numeric | None] = mapped_column(Numeric)
    unit: Mapped[str] = mapped_column(Text, nullable=False, default="pieces")
    location: Mapped[str | None] = mapped_column(Text)
    cost_price: Mapped[Numeric | None] = mapped_column(Numeric)
    selling_price: Mapped[Numeric | None] = mapped_column(Numeric)
    mrp: Mapped[Numeric | None] = mapped_column(Numeric)
    tax_rate: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    categories: Mapped[list[Category]] = relationship(
        secondary=item_category, back_populates="items", order_by=Category.name
    )


class Party(Base):
    __tablename__ = "party"
    __table_args__ = (
        _one_of("party_type", PARTY_TYPES, "party_type"),
        _one_of("status", CATALOG_STATUSES, "party_status"),
        _one_of("commission_type", COMMISSION_TYPES, "party_commission_type"),
        CheckConstraint("commission_value >= 0", name="party_commission_non_negative"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    party_type: Mapped[str] = mapped_column(Text, nullable=False)
    mobile: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    gst_number: Mapped[str | None] = mapped_column(Text)
    # referrers only: commission earned on each paid sale they referred
    commission_type: Mapped[str] = mapped_column(Text, nullable=False, default="Percentage")
    commission_value: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Coupon(Base):
    __tablename__ = "coupon"
    __table_args__ = (
        UniqueConstraint("user_id", "code", name="uq_coupon_user_code"),
        _one_of("coupon_type", COUPON_TYPES, "coupon_type"),
        _one_of("discount_type", DISCOUNT_TYPES, "coupon_discount_type"),
        CheckConstraint("coupon_value >= 0", name="coupon_value_non_negative"),
        CheckConstraint(
            "total_usage_limit IS NULL OR current_usage_count <= total_usage_limit",
            name="coupon_usage_within_limit",
        ),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    coupon_type: Mapped[str] = mapped_column(Text, nullable=False, default="Promotional")
    discount_type: Mapped[str] = mapped_column(Text, nullable=False)
    coupon_value: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_to: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    min_order_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    min_order_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_usage_limit: Mapped[int | None] = mapped_column(Integer)
    current_usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class SequenceCounter(Base):
    __tablename__ = "sequence_counter"
    __table_args__ = (
        UniqueConstraint("prefix", "date_key", name="uq_sequence_prefix_date"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    prefix: Mapped[str] = mapped_column(Text, nullable=False)
    date_key: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class StockAdjustment(Base):
    __tablename__ = "stock_adjustment"
    __table_args__ = (
        _one_of("kind", ADJUSTMENT_KINDS, "stock_adjustment_kind"),
        Index("ix_stock_adjustment_item_created", "item_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("item.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    delta: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    balance_after: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    reference: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Kot(Base):
    __tablename__ = "kot"
    __table_args__ = (
        _one_of("kot_type", KOT_TYPES, "kot_type"),
        _one_of("status", KOT_STATUSES, "kot_status"),
        _one_of("customer_type", CUSTOMER_TYPES, "kot_customer_type"),
        Index("ix_kot_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    kot_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    table_number: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    order_reference: Mapped[str | None] = mapped_column(Text)
    customer_name: Mapped[str | None] = mapped_column(Text)
    customer_mobile: Mapped[str | None] = mapped_column(Text)
    customer_type: Mapped[str] = mapped_column(Text, nullable=False, default="Individual")
    kot_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    total_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text)
    printed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list["KotLineItem"]] = relationship(
        back_populates="kot",
        cascade="all, delete-orphan",
        order_by="KotLineItem.id",
    )


class KotLineItem(Base):
    __tablename__ = "kot_line_item"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="kot_line_quantity_positive"),
        _one_of("status", KOT_ITEM_STATUSES, "kot_line_status"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    kot_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("kot.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("item.id"), nullable=False)
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    category_names: Mapped[list | None] = mapped_column(JSON)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    total_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    variant: Mapped[str | None] = mapped_column(Text)
    kot_note: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    prepared_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    served_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    kot: Mapped[Kot] = relationship(back_populates="lines")


class Sale(Base):
    __tablename__ = "sale"
    __table_args__ = (
        _one_of("bill_type", BILL_TYPES, "sale_bill_type"),
        _one_of("status", SALE_STATUSES, "sale_status"),
        _one_of("payment_method", PAYMENT_METHODS, "sale_payment_method"),
        _one_of("payment_status", SALE_PAYMENT_STATUSES, "sale_payment_status"),
        Index("ix_sale_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bill_no: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    bill_type: Mapped[str] = mapped_column(Text, nullable=False, default="GST")
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_mobile: Mapped[str | None] = mapped_column(Text, index=True)
    customer_email: Mapped[str | None] = mapped_column(Text)
    customer_address: Mapped[str | None] = mapped_column(Text)
    customer_gst_number: Mapped[str | None] = mapped_column(Text)
    table: Mapped[str] = mapped_column(Text, nullable=False)
    sub_total: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    tax_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    discount_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    service_charge: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    ac_charge: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    waiter_tip: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    round_off: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    grand_total: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    payment_method: Mapped[str] = mapped_column(Text, nullable=False)
    payment_status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    amount_received: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    cash_return: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    transaction_id: Mapped[str | None] = mapped_column(Text)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    referrer_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("party.id", ondelete="SET NULL")
    )
    coupon_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("coupon.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list["SaleLineItem"]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleLineItem.id",
    )


class SaleLineItem(Base):
    __tablename__ = "sale_line_item"
    __table_args__ = (CheckConstraint("quantity >= 1", name="sale_line_quantity_positive"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    sale_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("sale.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("item.id"), nullable=False)
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    total: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    kot_note: Mapped[str | None] = mapped_column(Text)
    variant: Mapped[str | None] = mapped_column(Text)

    sale: Mapped[Sale] = relationship(back_populates="lines")


class Purchase(Base):
    __tablename__ = "purchase"
    __table_args__ = (
        _one_of("status", PURCHASE_STATUSES, "purchase_status"),
        _one_of("payment_status", PURCHASE_PAYMENT_STATUSES, "purchase_payment_status"),
        _one_of("fulfillment_status", FULFILLMENT_STATUSES, "purchase_fulfillment_status"),
        _one_of("tax_type", TAX_TYPES, "purchase_tax_type"),
        _one_of("billing_type", BILLING_TYPES, "purchase_billing_type"),
        _one_of("purchase_type", PURCHASE_TYPES, "purchase_type"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    purchase_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    vendor_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("party.id"), nullable=False)
    invoice_no: Mapped[str] = mapped_column(Text, nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    tax_type: Mapped[str] = mapped_column(Text, nullable=False, default="SGST+CGST")
    billing_type: Mapped[str] = mapped_column(Text, nullable=False, default="GST")
    purchase_type: Mapped[str] = mapped_column(Text, nullable=False, default="sales")
    sub_total: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    tax_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    discount_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    round_off: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    grand_total: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    payment_status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    fulfillment_status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    notes: Mapped[str | None] = mapped_column(Text)
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list["PurchaseLineItem"]] = relationship(
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseLineItem.id",
    )


class PurchaseLineItem(Base):
    __tablename__ = "purchase_line_item"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="purchase_line_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    purchase_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("purchase.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("item.id"), nullable=False)
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    total: Mapped[Numeric] = mapped_column(Numeric, nullable=False)
    tax_percentage: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    tax_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)

    purchase: Mapped[Purchase] = relationship(back_populates="lines")


class ReferrerPoint(Base):
    __tablename__ = "referrer_point"
    __table_args__ = (
        UniqueConstraint("sale_id", "transaction_type", name="uq_referrer_point_sale"),
        _one_of("transaction_type", POINT_TRANSACTION_TYPES, "referrer_point_transaction_type"),
        CheckConstraint(
            "points_earned >= 0 AND points_redeemed >= 0", name="referrer_point_non_negative"
        ),
        Index("ix_referrer_point_referrer_created", "referrer_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    referrer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("party.id", ondelete="CASCADE"), nullable=False
    )
    sale_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("sale.id", ondelete="SET NULL")
    )
    transaction_type: Mapped[str] = mapped_column(Text, nullable=False)
    points_earned: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    points_redeemed: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    order_amount: Mapped[Numeric] = mapped_column(Numeric, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
