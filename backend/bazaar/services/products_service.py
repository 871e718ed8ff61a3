# Overview: Service-layer operations for products; catalogue writes guarded by store capabilities.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..permissions import Capability
from ..validation import as_uuid, non_negative_int, positive_int, required_text
from .. import validation
from . import inventory_service
from .concurrency import begin_isolated, lock_for_update
from .errors import ConflictError, NotFoundError, ValidationError
from .permission_service import require_capability


def get_product(product_id) -> Product:
    product = db.session.get(Product, as_uuid(product_id, "product_id"))
    if product is None:
        raise NotFoundError("Product not found", {"product_id": str(product_id)})
    return product


def list_products(store_id, *, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product).filter_by(store_id=as_uuid(store_id, "store_id"))
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(Product.name.asc()).all()


def create_product(
    store_id,
    actor_id,
    *,
    sku: str,
    name: str,
    price_cents: int,
    stock_quantity: int = 0,
    description: str | None = None,
) -> Product:
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")
    sku = required_text(sku, "sku", max_length=100)
    name = required_text(name, "name")
    price = _price(price_cents)
    stock = non_negative_int(stock_quantity, "stock_quantity")

    begin_isolated()
    require_capability(actor_id, store_id, Capability.CREATE_PRODUCTS)

    if db.session.query(Product.id).filter_by(store_id=store_id, sku=sku).first() is not None:
        db.session.rollback()
        raise ConflictError("SKU already exists in this store", {"sku": sku})

    product = Product(
        store_id=store_id,
        sku=sku,
        name=name,
        description=description,
        price_cents=price,
        stock_quantity=stock,
        is_active=True,
    )
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("SKU already exists in this store", {"sku": sku}) from exc
    return product


def _price(value) -> int:
    return validation.price_cents(value, "price_cents")


def _locked_product(product_id) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).populate_existing().first()
    if product is None:
        db.session.rollback()
        raise NotFoundError("Product not found", {"product_id": str(product_id)})
    return product


def update_product(product_id, actor_id, *, name=None, description=None, price_cents=None, is_active=None) -> Product:
    """
    Patch catalogue fields. Requires EDIT_PRODUCTS.

    Price changes never touch existing OrderItems; they carry their own
    locked unit price.
    """
    product_id = as_uuid(product_id, "product_id")
    actor_id = as_uuid(actor_id, "actor_id")
    if name is not None:
        name = required_text(name, "name")
    if price_cents is not None:
        price_cents = _price(price_cents)
    if is_active is not None and not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean", {"field": "is_active"})

    begin_isolated()
    product = db.session.get(Product, product_id)
    if product is None:
        db.session.rollback()
        raise NotFoundError("Product not found", {"product_id": str(product_id)})
    require_capability(actor_id, product.store_id, Capability.EDIT_PRODUCTS)
    product = _locked_product(product_id)

    if name is not None:
        product.name = name
    if description is not None:
        product.description = description
    if price_cents is not None:
        product.price_cents = price_cents
    if is_active is not None:
        product.is_active = is_active
    db.session.commit()
    return product


def restock(product_id, actor_id, quantity) -> Product:
    """Add stock under the row lock. Requires EDIT_PRODUCTS."""
    product_id = as_uuid(product_id, "product_id")
    actor_id = as_uuid(actor_id, "actor_id")
    quantity = positive_int(quantity)

    begin_isolated()
    product = db.session.get(Product, product_id)
    if product is None:
        db.session.rollback()
        raise NotFoundError("Product not found", {"product_id": str(product_id)})
    require_capability(actor_id, product.store_id, Capability.EDIT_PRODUCTS)

    product = inventory_service.add_stock(product_id, quantity)
    db.session.commit()
    return product
