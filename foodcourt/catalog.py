"""Categories, sub-categories, brands, items and parties.

Items reference categories through the ``item_category`` association table,
so renaming a category never leaves items pointing at a stale name.
"""

import logging
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from foodcourt import stock
from foodcourt.db import utcnow
from foodcourt.errors import DuplicateKey, ItemNotFound, NotFound, ValidationFailed, check_owner
from foodcourt.models import (
    Brand,
    Category,
    Item,
    KotLineItem,
    Party,
    Purchase,
    PurchaseLineItem,
    ReferrerPoint,
    SaleLineItem,
    StockAdjustment,
    SubCategory,
    item_category,
)
from foodcourt.pagination import Page, paginate
from foodcourt.schemas import (
    CategoryCreate,
    CategoryUpdate,
    ItemCreate,
    ItemUpdate,
    PartyCreate,
    PartyUpdate,
    SubCategoryCreate,
    SubCategoryUpdate,
)

logger = logging.getLogger(__name__)

NAMED_MODELS = {Category: "Category", SubCategory: "Sub-category", Brand: "Brand"}


def _get_owned(db: Session, model, entity_id: int, user_id: int, action: str = "view"):
    noun = NAMED_MODELS.get(model, model.__name__)
    entity = db.get(model, entity_id)
    if not entity:
        raise NotFound(f"{noun} not found")
    check_owner(entity, user_id, action, noun.lower())
    return entity


def _ensure_unique_name(db: Session, model, user_id: int, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(model.id).filter(model.user_id == user_id, func.lower(model.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise DuplicateKey(f"{NAMED_MODELS[model]} with this name already exists")


# -----------------------------
# Categories, sub-categories, brands
# -----------------------------

def _create_named(db: Session, model, payload, user_id: int, **extra):
    name = payload.name.strip()
    _ensure_unique_name(db, model, user_id, name)
    entity = model(
        user_id=user_id,
        name=name,
        description=payload.description,
        status=payload.status,
        created_at=utcnow(),
        **extra,
    )
    db.add(entity)
    db.commit()
    db.refresh(entity)
    return entity


def _update_named(db: Session, model, entity_id: int, payload, user_id: int):
    entity = _get_owned(db, model, entity_id, user_id, "update")
    if payload.name is not None:
        name = payload.name.strip()
        _ensure_unique_name(db, model, user_id, name, exclude_id=entity.id)
        entity.name = name
    if "description" in payload.model_fields_set:
        entity.description = payload.description
    if payload.status is not None:
        entity.status = payload.status
    return entity


def _list_named(db: Session, model, item_count, user_id: int, page: int, limit: int,
                search: Optional[str], status: Optional[str]) -> Page:
    query = db.query(model, item_count.label("item_count")).filter(model.user_id == user_id)
    if search:
        query = query.filter(model.name.icontains(search, autoescape=True))
    if status is not None:
        query = query.filter(model.status == status)
    return paginate(query.order_by(model.name), page, limit)


def _category_item_count(db: Session, category_id: int) -> int:
    return db.execute(
        select(func.count()).select_from(item_category).where(item_category.c.category_id == category_id)
    ).scalar_one()


def create_category(db: Session, payload: CategoryCreate, user_id: int) -> Category:
    return _create_named(db, Category, payload, user_id)


def list_categories(db: Session, user_id: int, page: int, limit: int,
                    search: Optional[str] = None, status: Optional[str] = None) -> Page:
    item_count = (
        select(func.count())
        .select_from(item_category)
        .where(item_category.c.category_id == Category.id)
        .scalar_subquery()
    )
    return _list_named(db, Category, item_count, user_id, page, limit, search, status)


def get_category(db: Session, category_id: int, user_id: int) -> tuple[Category, int]:
    category = _get_owned(db, Category, category_id, user_id)
    return category, _category_item_count(db, category.id)


def category_items(db: Session, category_id: int, user_id: int) -> list[Item]:
    category = _get_owned(db, Category, category_id, user_id)
    return sorted(category.items, key=lambda item: item.product_name)


def update_category(db: Session, category_id: int, payload: CategoryUpdate, user_id: int) -> Category:
    category = _update_named(db, Category, category_id, payload, user_id)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int, user_id: int) -> None:
    category = _get_owned(db, Category, category_id, user_id, "delete")
    db.query(SubCategory).filter(SubCategory.category_id == category.id).update(
        {SubCategory.category_id: None}, synchronize_session=False
    )
    db.delete(category)
    db.commit()
    logger.info("deleted category %s", category.name)


def _owned_items(db: Session, item_ids: list[int], user_id: int) -> list[Item]:
    items = db.query(Item).filter(Item.id.in_(item_ids), Item.user_id == user_id).all()
    found = {item.id for item in items}
    for item_id in item_ids:
        if item_id not in found:
            raise ItemNotFound(item_id)
    return items


def assign_items(db: Session, category_id: int, item_ids: list[int], user_id: int) -> int:
    category = _get_owned(db, Category, category_id, user_id, "update")
    items = _owned_items(db, item_ids, user_id)
    current = {item.id for item in category.items}
    for item in items:
        if item.id not in current:
            category.items.append(item)
    db.commit()
    count = _category_item_count(db, category.id)
    logger.info("assigned %d items to category %s (now %d)", len(items), category.name, count)
    return count


def remove_items(db: Session, category_id: int, item_ids: list[int], user_id: int) -> int:
    category = _get_owned(db, Category, category_id, user_id, "update")
    wanted = set(item_ids)
    category.items = [item for item in category.items if item.id not in wanted]
    db.commit()
    count = _category_item_count(db, category.id)
    logger.info("removed items from category %s (now %d)", category.name, count)
    return count


def create_sub_category(db: Session, payload: SubCategoryCreate, user_id: int) -> SubCategory:
    if payload.category_id is not None:
        _get_owned(db, Category, payload.category_id, user_id)
    return _create_named(db, SubCategory, payload, user_id, category_id=payload.category_id)


def list_sub_categories(db: Session, user_id: int, page: int, limit: int,
                        search: Optional[str] = None, status: Optional[str] = None) -> Page:
    item_count = (
        select(func.count(Item.id)).where(Item.sub_category_id == SubCategory.id).scalar_subquery()
    )
    return _list_named(db, SubCategory, item_count, user_id, page, limit, search, status)


def get_sub_category(db: Session, sub_category_id: int, user_id: int) -> SubCategory:
    return _get_owned(db, SubCategory, sub_category_id, user_id)


def update_sub_category(db: Session, sub_category_id: int, payload: SubCategoryUpdate, user_id: int) -> SubCategory:
    sub_category = _update_named(db, SubCategory, sub_category_id, payload, user_id)
    if "category_id" in payload.model_fields_set:
        if payload.category_id is not None:
            _get_owned(db, Category, payload.category_id, user_id)
        sub_category.category_id = payload.category_id
    db.commit()
    db.refresh(sub_category)
    return sub_category


def delete_sub_category(db: Session, sub_category_id: int, user_id: int) -> None:
    sub_category = _get_owned(db, SubCategory, sub_category_id, user_id, "delete")
    db.query(Item).filter(Item.sub_category_id == sub_category.id).update(
        {Item.sub_category_id: None}, synchronize_session=False
    )
    db.delete(sub_category)
    db.commit()


def create_brand(db: Session, payload: CategoryCreate, user_id: int) -> Brand:
    return _create_named(db, Brand, payload, user_id)


def list_brands(db: Session, user_id: int, page: int, limit: int,
                search: Optional[str] = None, status: Optional[str] = None) -> Page:
    item_count = select(func.count(Item.id)).where(Item.brand_id == Brand.id).scalar_subquery()
    return _list_named(db, Brand, item_count, user_id, page, limit, search, status)


def get_brand(db: Session, brand_id: int, user_id: int) -> Brand:
    return _get_owned(db, Brand, brand_id, user_id)


def update_brand(db: Session, brand_id: int, payload: CategoryUpdate, user_id: int) -> Brand:
    brand = _update_named(db, Brand, brand_id, payload, user_id)
    db.commit()
    db.refresh(brand)
    return brand


def delete_brand(db: Session, brand_id: int, user_id: int) -> None:
    brand = _get_owned(db, Brand, brand_id, user_id, "delete")
    db.query(Item).filter(Item.brand_id == brand.id).update(
        {Item.brand_id: None}, synchronize_session=False
    )
    db.delete(brand)
    db.commit()


# -----------------------------
# Items
# -----------------------------

def _stock_status_clause(status: str):
    quantity = Item.current_quantity
    low = and_(quantity > 0, quantity <= Item.minimum_stock)
    over = and_(quantity > Item.minimum_stock, Item.maximum_stock.is_not(None), quantity > Item.maximum_stock)
    if status == stock.OUT_OF_STOCK:
        return quantity == 0
    if status == stock.LOW_STOCK:
        return low
    if status == stock.OVERSTOCK:
        return over
    if status == stock.WELL_STOCKED:
        return and_(quantity > 0, ~low, ~over)
    raise ValidationFailed(f"Unknown stock status '{status}'")


def _categories(db: Session, category_ids: list[int], user_id: int) -> list[Category]:
    if not category_ids:
        return []
    categories = db.query(Category).filter(Category.id.in_(category_ids), Category.user_id == user_id).all()
    found = {category.id for category in categories}
    for category_id in category_ids:
        if category_id not in found:
            raise ValidationFailed(f"Category with ID {category_id} not found")
    return categories


def _ensure_unique_item_name(db: Session, user_id: int, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Item.id).filter(Item.user_id == user_id, func.lower(Item.product_name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Item.id != exclude_id)
    if query.first():
        raise DuplicateKey("Item with this name already exists")


def get_item(db: Session, item_id: int, user_id: int, action: str = "view") -> Item:
    return _get_owned(db, Item, item_id, user_id, action)


def create_item(db: Session, payload: ItemCreate, user_id: int) -> Item:
    name = payload.product_name.strip()
    _ensure_unique_item_name(db, user_id, name)
    if payload.brand_id is not None:
        _get_owned(db, Brand, payload.brand_id, user_id)
    if payload.sub_category_id is not None:
        _get_owned(db, SubCategory, payload.sub_category_id, user_id)
    stock_details = payload.stock_details
    prices = payload.price_details
    now = utcnow()
    item = Item(
        user_id=user_id,
        product_name=name,
        brand_id=payload.brand_id,
        sub_category_id=payload.sub_category_id,
        description=payload.description,
        current_quantity=0,
        minimum_stock=stock_details.minimum_stock,
        maximum_stock=stock_details.maximum_stock,
        unit=stock_details.unit,
        location=stock_details.location,
        cost_price=prices.cost_price,
        selling_price=prices.selling_price,
        mrp=prices.mrp,
        tax_rate=prices.tax_rate,
        status=payload.status,
        notes=payload.notes,
        created_at=now,
        updated_at=now,
    )
    item.categories = _categories(db, payload.category_ids, user_id)
    db.add(item)
    db.flush()
    if stock_details.current_quantity > 0:
        stock.credit_item(
            db, item, stock_details.current_quantity, user_id, kind="adjustment", reason="opening stock"
        )
    db.commit()
    db.refresh(item)
    logger.info("created item %s with %s %s", item.product_name, item.current_quantity, item.unit)
    return item


def list_items(
    db: Session,
    user_id: int,
    page: int,
    limit: int,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    brand_id: Optional[int] = None,
    sub_category_id: Optional[int] = None,
    status: Optional[str] = None,
    stock_status: Optional[str] = None,
) -> Page:
    query = db.query(Item).filter(Item.user_id == user_id)
    if search:
        query = query.filter(
            or_(
                Item.product_name.icontains(search, autoescape=True),
                Item.description.icontains(search, autoescape=True),
            )
        )
    if category_id is not None:
        query = query.filter(Item.categories.any(Category.id == category_id))
    if brand_id is not None:
        query = query.filter(Item.brand_id == brand_id)
    if sub_category_id is not None:
        query = query.filter(Item.sub_category_id == sub_category_id)
    if status is not None:
        query = query.filter(Item.status == status)
    if stock_status is not None:
        query = query.filter(_stock_status_clause(stock_status))
    return paginate(query.order_by(Item.product_name), page, limit)


def update_item(db: Session, item_id: int, payload: ItemUpdate, user_id: int) -> Item:
    item = get_item(db, item_id, user_id, "update")
    fields = payload.model_fields_set
    if payload.product_name is not None:
        name = payload.product_name.strip()
        _ensure_unique_item_name(db, user_id, name, exclude_id=item.id)
        item.product_name = name
    if "brand_id" in fields:
        if payload.brand_id is not None:
            _get_owned(db, Brand, payload.brand_id, user_id)
        item.brand_id = payload.brand_id
    if "sub_category_id" in fields:
        if payload.sub_category_id is not None:
            _get_owned(db, SubCategory, payload.sub_category_id, user_id)
        item.sub_category_id = payload.sub_category_id
    if payload.category_ids is not None:
        item.categories = _categories(db, payload.category_ids, user_id)
    if "description" in fields:
        item.description = payload.description
    if payload.stock_details is not None:
        limits = payload.stock_details
        for field in limits.model_fields_set:
            value = getattr(limits, field)
            if field in ("minimum_stock", "unit") and value is None:
                continue
            setattr(item, field, value)
    if payload.price_details is not None:
        prices = payload.price_details
        for field in prices.model_fields_set:
            setattr(item, field, getattr(prices, field))
    if payload.status is not None:
        item.status = payload.status
    if "notes" in fields:
        item.notes = payload.notes
    item.updated_at = utcnow()
    db.commit()
    db.refresh(item)
    return item


def delete_item(db: Session, item_id: int, user_id: int) -> None:
    item = get_item(db, item_id, user_id, "delete")
    for line_model in (KotLineItem, SaleLineItem, PurchaseLineItem):
        if db.query(line_model.id).filter(line_model.item_id == item.id).first():
            raise ValidationFailed("Item is referenced by existing orders and cannot be deleted")
    db.query(StockAdjustment).filter(StockAdjustment.item_id == item.id).delete(synchronize_session=False)
    db.delete(item)
    db.commit()
    logger.info("deleted item %s", item.product_name)


# -----------------------------
# Parties
# -----------------------------

def create_party(db: Session, payload: PartyCreate, user_id: int) -> Party:
    party = Party(
        user_id=user_id,
        name=payload.name.strip(),
        party_type=payload.party_type,
        mobile=payload.mobile,
        email=payload.email,
        address=payload.address,
        gst_number=payload.gst_number,
        status=payload.status,
        commission_type=payload.commission_type,
        commission_value=payload.commission_value,
        created_at=utcnow(),
    )
    db.add(party)
    db.commit()
    db.refresh(party)
    return party


def list_parties(db: Session, user_id: int, page: int, limit: int,
                 party_type: Optional[str] = None, search: Optional[str] = None) -> Page:
    query = db.query(Party).filter(Party.user_id == user_id)
    if party_type is not None:
        query = query.filter(Party.party_type == party_type)
    if search:
        query = query.filter(
            or_(Party.name.icontains(search, autoescape=True), Party.mobile.icontains(search, autoescape=True))
        )
    return paginate(query.order_by(Party.name), page, limit)


def get_party(db: Session, party_id: int, user_id: int, action: str = "view") -> Party:
    return _get_owned(db, Party, party_id, user_id, action)


def update_party(db: Session, party_id: int, payload: PartyUpdate, user_id: int) -> Party:
    party = get_party(db, party_id, user_id, "update")
    for field in payload.model_fields_set:
        value = getattr(payload, field)
        if field in ("name", "status", "commission_type", "commission_value") and value is None:
            continue
        setattr(party, field, value.strip() if field == "name" else value)
    db.commit()
    db.refresh(party)
    return party


def delete_party(db: Session, party_id: int, user_id: int) -> None:
    party = get_party(db, party_id, user_id, "delete")
    if db.query(Purchase.id).filter(Purchase.vendor_id == party.id).first():
        raise ValidationFailed("Party has purchases and cannot be deleted")
    if db.query(ReferrerPoint.id).filter(ReferrerPoint.referrer_id == party.id).first():
        raise ValidationFailed("Party has referrer points and cannot be deleted")
    db.delete(party)
    db.commit()
