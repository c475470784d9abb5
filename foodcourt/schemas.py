"""
Request bodies accepted by the API.

Field names are snake_case in Python and camelCase on the wire, so both
``tableNumber`` and ``table_number`` are accepted.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

KotType = Literal["Tea Shop (KOT1)", "Juice shop (KOT2)", "Ice cream shop (KOT3)"]
CustomerType = Literal["Individual", "Business"]
ItemStatus = Literal["active", "inactive", "discontinued"]
ItemUnit = Literal["pieces", "kg", "grams", "liters", "ml", "boxes", "packets"]
CatalogStatus = Literal["active", "inactive"]
PartyType = Literal["customer", "vendor", "referrer"]
CommissionType = Literal["Percentage", "Fixed Amount"]
BillType = Literal["GST", "Non-GST", "Estimation", "Proforma"]
SaleStatus = Literal["draft", "confirmed", "completed", "cancelled"]
PaymentMethod = Literal["cash", "card", "upi", "credit"]
SalePaymentStatus = Literal["pending", "partial", "paid", "refunded"]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# KOT
# -----------------------------

class KotLineInput(ApiModel):
    item_id: int = Field(validation_alias=AliasChoices("itemId", "item", "item_id"))
    quantity: int = Field(ge=1)
    price: Decimal = Field(gt=0)
    item_name: Optional[str] = None
    variant: Optional[str] = None
    kot_note: Optional[str] = None


class CustomerDetails(ApiModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    type: CustomerType = "Individual"


class KotCreate(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "tableNumber": "T1",
                "items": [{"itemId": 1, "quantity": 2, "price": 50}],
                "customerDetails": {"name": "Asha", "mobile": "9876543210"},
                "kotType": "Tea Shop (KOT1)",
            }
        },
    )
    table_number: str = Field(min_length=1)
    order_reference: Optional[str] = None
    items: list[KotLineInput] = Field(min_length=1)
    customer_details: Optional[CustomerDetails] = None
    kot_type: KotType = "Tea Shop (KOT1)"
    notes: Optional[str] = None


class KotUpdate(ApiModel):
    table_number: Optional[str] = Field(default=None, min_length=1)
    order_reference: Optional[str] = None
    items: Optional[list[KotLineInput]] = Field(default=None, min_length=1)
    customer_details: Optional[CustomerDetails] = None
    kot_type: Optional[KotType] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class StatusUpdate(ApiModel):
    status: str


# -----------------------------
# Inventory
# -----------------------------

class StockAdjust(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {"itemId": 1, "adjustment": 5, "reason": "recount", "type": "increase"}
        },
    )
    item_id: int
    adjustment: Decimal
    reason: Optional[str] = None
    type: str


class StockTransfer(ApiModel):
    from_item_id: int
    to_item_id: int
    quantity: Decimal
    reason: Optional[str] = None


# -----------------------------
# Catalog
# -----------------------------

class StockDetails(ApiModel):
    current_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    minimum_stock: Decimal = Field(default=Decimal("0"), ge=0)
    maximum_stock: Optional[Decimal] = Field(default=None, ge=0)
    unit: ItemUnit = "pieces"
    location: Optional[str] = None


class PriceDetails(ApiModel):
    cost_price: Optional[Decimal] = Field(default=None, ge=0)
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    mrp: Optional[Decimal] = Field(default=None, ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class ItemCreate(ApiModel):
    product_name: str = Field(min_length=1, max_length=200)
    brand_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    category_ids: list[int] = Field(default_factory=list)
    description: Optional[str] = None
    stock_details: StockDetails = Field(default_factory=StockDetails)
    price_details: PriceDetails = Field(default_factory=PriceDetails)
    status: ItemStatus = "active"
    notes: Optional[str] = None


class StockLimits(ApiModel):
    minimum_stock: Optional[Decimal] = Field(default=None, ge=0)
    maximum_stock: Optional[Decimal] = Field(default=None, ge=0)
    unit: Optional[ItemUnit] = None
    location: Optional[str] = None


class ItemUpdate(ApiModel):
    product_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    brand_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    category_ids: Optional[list[int]] = None
    description: Optional[str] = None
    stock_details: Optional[StockLimits] = None
    price_details: Optional[PriceDetails] = None
    status: Optional[ItemStatus] = None
    notes: Optional[str] = None


class CategoryCreate(ApiModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    status: CatalogStatus = "active"


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    status: Optional[CatalogStatus] = None


class SubCategoryCreate(CategoryCreate):
    category_id: Optional[int] = None


class SubCategoryUpdate(CategoryUpdate):
    category_id: Optional[int] = None


class CategoryItems(ApiModel):
    item_ids: list[int] = Field(min_length=1)


class PartyCreate(ApiModel):
    name: str = Field(min_length=1)
    party_type: PartyType
    mobile: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None
    commission_type: CommissionType = "Percentage"
    commission_value: Decimal = Field(default=Decimal("0"), ge=0)
    status: CatalogStatus = "active"


class PartyUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    mobile: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None
    commission_type: Optional[CommissionType] = None
    commission_value: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[CatalogStatus] = None


# -----------------------------
# Sales
# -----------------------------

class SaleLineInput(ApiModel):
    item_id: int = Field(validation_alias=AliasChoices("itemId", "item", "item_id"))
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    kot_note: Optional[str] = None
    variant: Optional[str] = None


class SalePricing(ApiModel):
    sub_total: Decimal = Field(ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    service_charge: Decimal = Field(default=Decimal("0"), ge=0)
    ac_charge: Decimal = Field(default=Decimal("0"), ge=0)
    waiter_tip: Decimal = Field(default=Decimal("0"), ge=0)
    round_off: Decimal = Decimal("0")
    grand_total: Decimal = Field(ge=0)


class SaleCustomer(ApiModel):
    name: str = Field(min_length=1)
    mobile: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None


class SalePayment(ApiModel):
    method: PaymentMethod
    status: SalePaymentStatus = "pending"
    amount_received: Decimal = Field(default=Decimal("0"), ge=0)


class SaleCreate(ApiModel):
    customer: SaleCustomer
    table: str = Field(min_length=1)
    items: list[SaleLineInput] = Field(min_length=1)
    pricing: SalePricing
    payment: SalePayment
    bill_type: BillType = "GST"
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    referrer_id: Optional[int] = None


class SaleUpdate(ApiModel):
    customer: Optional[SaleCustomer] = None
    table: Optional[str] = Field(default=None, min_length=1)
    pricing: Optional[SalePricing] = None
    payment: Optional[SalePayment] = None
    status: Optional[SaleStatus] = None
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None


class PaymentProcess(ApiModel):
    amount_received: Decimal = Field(ge=0)
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None


class RefundRequest(ApiModel):
    reason: Optional[str] = None


# -----------------------------
# Purchases
# -----------------------------

class PurchaseLineInput(ApiModel):
    item_id: int = Field(validation_alias=AliasChoices("itemId", "item", "item_id"))
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    tax_percentage: Decimal = Field(default=Decimal("0"), ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)


class PurchasePricing(ApiModel):
    sub_total: Decimal = Field(ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    round_off: Decimal = Decimal("0")
    grand_total: Decimal = Field(ge=0)


class PurchaseCreate(ApiModel):
    vendor_id: int
    invoice_no: str = Field(min_length=1)
    invoice_date: date
    items: list[PurchaseLineInput] = Field(min_length=1)
    pricing: PurchasePricing
    tax_type: Literal["IGST", "SGST+CGST"] = "SGST+CGST"
    billing_type: Literal["GST", "Non-GST"] = "GST"
    purchase_type: Literal["sales", "recipe"] = "sales"
    notes: Optional[str] = None


class PurchaseUpdate(ApiModel):
    invoice_no: Optional[str] = Field(default=None, min_length=1)
    invoice_date: Optional[date] = None
    items: Optional[list[PurchaseLineInput]] = Field(default=None, min_length=1)
    pricing: Optional[PurchasePricing] = None
    notes: Optional[str] = None


class PaymentStatusUpdate(ApiModel):
    payment_status: str


# -----------------------------
# Offers
# -----------------------------

CouponType = Literal["Promotional", "Loyalty", "Welcome", "Seasonal", "Referral"]
DiscountType = Literal["Percentage", "Fixed Amount", "Flat Discount"]


class CouponCreate(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "code": "WELCOME10",
                "name": "Welcome offer",
                "discountType": "Percentage",
                "couponValue": 10,
                "validFrom": "2024-05-01T00:00:00Z",
                "validTo": "2024-06-01T00:00:00Z",
                "minOrderAmount": 200,
            }
        },
    )
    code: str = Field(min_length=3, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    coupon_type: CouponType = "Promotional"
    discount_type: DiscountType
    coupon_value: Decimal = Field(ge=0)
    valid_from: datetime
    valid_to: datetime
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0)
    min_order_quantity: int = Field(default=0, ge=0)
    total_usage_limit: Optional[int] = Field(default=None, ge=1)
    is_active: bool = True


class CouponUpdate(ApiModel):
    code: Optional[str] = Field(default=None, min_length=3, max_length=20)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    coupon_type: Optional[CouponType] = None
    discount_type: Optional[DiscountType] = None
    coupon_value: Optional[Decimal] = Field(default=None, ge=0)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0)
    min_order_quantity: Optional[int] = Field(default=None, ge=0)
    total_usage_limit: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class CouponCheck(ApiModel):
    coupon_code: str = Field(min_length=1)
    order_amount: Decimal = Field(gt=0)
    order_quantity: int = Field(default=0, ge=0)


class CouponApply(ApiModel):
    coupon_code: str = Field(min_length=1)


class PointsCreate(ApiModel):
    referrer_id: int
    points_earned: Decimal = Field(gt=0)
    transaction_type: Literal["Manual Adjustment", "Yearly Bonus"] = "Manual Adjustment"
    description: Optional[str] = None


class PointsRedeem(ApiModel):
    referrer_id: int
    points_to_redeem: Decimal = Field(gt=0)
    description: Optional[str] = None
