# backend/retailpos/services/catalog_service.py
"""
Catalog Service: stores, categories and products.

Product.stock_qty is not writable here after creation; stock changes go
through services/stock_service.py.
"""
from __future__ import annotations

from ..errors import InvalidInput, ProductNotFound
from ..extensions import db
from ..models import Category, InvoiceLine, Product, StockMovement, Store
from ..validation import ConflictError, ValidationError
from .cart_service import Cart
from .pricing_service import percent_to_bps
from .stock_service import MOVEMENT_ADJUST

STORE_MUTABLE_FIELDS = {
    "name", "owner_name", "currency", "gst_number", "address",
    "is_active", "timezone", "global_discount_bps",
}
CATEGORY_MUTABLE_FIELDS = {"name", "default_gst_bps", "default_discount_bps", "low_stock_threshold"}
PRODUCT_MUTABLE_FIELDS = {
    "category_id", "name", "sku", "price_cents", "cost_price_cents",
    "tax_override_bps", "is_active",
}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


# --- Stores ------------------------------------------------------------------


def list_stores(store_ids: set[int] | None = None) -> list[Store]:
    """All stores, or only `store_ids` when given."""
    query = db.session.query(Store).order_by(Store.name.asc(), Store.id.asc())
    if store_ids is not None:
        if not store_ids:
            return []
        query = query.filter(Store.id.in_(store_ids))
    return query.all()


def create_store(patch: dict) -> Store:
    store = Store()
    _apply_patch(store, patch, STORE_MUTABLE_FIELDS)
    db.session.add(store)
    db.session.commit()
    return store


def update_store(store: Store, patch: dict) -> Store:
    _apply_patch(store, patch, STORE_MUTABLE_FIELDS)
    db.session.commit()
    return store


# --- Categories --------------------------------------------------------------


def list_categories(store_id: int) -> list[Category]:
    return (
        db.session.query(Category)
        .filter_by(store_id=store_id)
        .order_by(Category.name.asc())
        .all()
    )


def _ensure_category_name_free(store_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Category).filter_by(store_id=store_id, name=name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError(f"Category '{name}' already exists in this store")


def create_category(store_id: int, patch: dict) -> Category:
    _ensure_category_name_free(store_id, patch["name"])
    category = Category(store_id=store_id)
    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category: Category, patch: dict) -> Category:
    if "name" in patch:
        _ensure_category_name_free(category.store_id, patch["name"], exclude_id=category.id)
    _apply_patch(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.commit()
    return category


def delete_category(category: Category) -> None:
    in_use = db.session.query(Product.id).filter_by(category_id=category.id).first()
    if in_use:
        raise ConflictError("Category still has products")
    db.session.delete(category)
    db.session.commit()


# --- Products ----------------------------------------------------------------


def list_products(store_id: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter_by(store_id=store_id)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def _require_category_in_store(category_id: int, store_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None or category.store_id != store_id:
        raise ValidationError("category_id does not belong to this store")
    return category


def _ensure_sku_free(store_id: int, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = db.session.query(Product).filter_by(store_id=store_id, sku=sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"SKU '{sku}' already exists in this store")


def create_product(store_id: int, patch: dict, actor_user_id: int | None = None) -> Product:
    """
    Create a product. An initial stock_qty is recorded as an ADJUST movement.
    """
    _require_category_in_store(patch["category_id"], store_id)
    _ensure_sku_free(store_id, patch.get("sku"))

    initial_stock = patch.get("stock_qty") or 0
    product = Product(store_id=store_id, stock_qty=initial_stock)
    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    db.session.add(product)
    db.session.flush()

    if initial_stock:
        db.session.add(StockMovement(
            store_id=store_id,
            product_id=product.id,
            type=MOVEMENT_ADJUST,
            quantity_delta=initial_stock,
            quantity_after=initial_stock,
            note="Initial stock",
            actor_user_id=actor_user_id,
        ))

    db.session.commit()
    return product


def update_product(product: Product, patch: dict) -> Product:
    if "stock_qty" in patch:
        raise ValidationError("stock_qty cannot be set directly; use the stock adjustment endpoint")
    if "category_id" in patch:
        _require_category_in_store(patch["category_id"], product.store_id)
    if "sku" in patch:
        _ensure_sku_free(product.store_id, patch["sku"], exclude_id=product.id)
    _apply_patch(product, patch, PRODUCT_MUTABLE_FIELDS)
    db.session.commit()
    return product


def delete_product(product: Product) -> None:
    """
    Delete a product. Issued invoice lines keep their frozen name and
    amounts; only their product reference is cleared.
    """
    db.session.query(InvoiceLine).filter_by(product_id=product.id).update(
        {InvoiceLine.product_id: None}, synchronize_session=False
    )
    db.session.query(StockMovement).filter_by(product_id=product.id).delete(synchronize_session=False)
    db.session.delete(product)
    db.session.commit()


# --- Cart pricing ------------------------------------------------------------


def build_cart(store: Store, items: list) -> Cart:
    """
    Build a Cart from catalog rows, as a register would by scanning items.

    items: [{product_id, quantity=1, discount_percent?}]. Each unit goes
    through Cart.add_item, so the cart's availability and default-resolution
    rules apply unchanged. Read-only; stock is not reserved.
    """
    if not isinstance(items, list) or not items:
        raise InvalidInput("items must be a non-empty list")

    cart = Cart(store.id)
    for index, item in enumerate(items):
        if not isinstance(item, dict) or item.get("product_id") is None:
            raise InvalidInput("Each item needs a product_id", details={"index": index})
        quantity = item.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidInput("quantity must be a positive integer", details={"index": index})

        product = db.session.get(Product, item["product_id"])
        if product is None or product.store_id != store.id:
            raise ProductNotFound(item["product_id"])

        for _ in range(quantity):
            cart.add_item(product, product.category, store)

        if item.get("discount_percent") is not None:
            bps = percent_to_bps(item["discount_percent"], "discount_percent")
            cart.set_line_discount(product.id, bps)

    return cart
