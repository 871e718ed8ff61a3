# Overview: Service-layer operations for the cross-store cart and its per-store grouping.

from __future__ import annotations

from dataclasses import dataclass, field

from ..extensions import db
from ..models import CartItem, Product, Store, StoreStatus
from ..permissions import Capability
from ..validation import as_uuid, positive_int, as_int
from .concurrency import begin_isolated, lock_for_update
from .errors import InsufficientStockError, InvalidStateError, NotFoundError
from .permission_service import require_capability


UNAVAILABLE_STORE_CLOSED = "STORE_CLOSED"
UNAVAILABLE_PRODUCT_INACTIVE = "PRODUCT_INACTIVE"


@dataclass(frozen=True)
class CartLine:
    cart_item_id: object
    product_id: object
    store_id: object
    sku: str
    name: str
    quantity: int
    unit_price_cents: int
    reason: str | None = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        data = {
            "cart_item_id": str(self.cart_item_id),
            "product_id": str(self.product_id),
            "store_id": str(self.store_id),
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class CartGrouping:
    """
    A user's cart split by owning store.

    stores maps store_id to its purchasable lines; unavailable holds lines
    that cannot be bought right now (closed store or inactive product).
    """
    stores: dict = field(default_factory=dict)
    unavailable: list = field(default_factory=list)

    @property
    def store_ids(self) -> list:
        return list(self.stores)

    @property
    def is_empty(self) -> bool:
        return not self.stores and not self.unavailable

    def unavailable_for(self, store_id) -> list:
        return [line for line in self.unavailable if line.store_id == store_id]

    def to_dict(self) -> dict:
        return {
            "stores": [
                {
                    "store_id": str(store_id),
                    "items": [line.to_dict() for line in lines],
                    "subtotal_cents": sum(line.line_total_cents for line in lines),
                }
                for store_id, lines in self.stores.items()
            ],
            "unavailable": [line.to_dict() for line in self.unavailable],
        }


def _line(item: CartItem, product: Product, reason: str | None = None) -> CartLine:
    return CartLine(
        cart_item_id=item.id,
        product_id=product.id,
        store_id=product.store_id,
        sku=product.sku,
        name=product.name,
        quantity=item.quantity,
        unit_price_cents=product.price_cents,
        reason=reason,
    )


def _cart_rows(user_id):
    return (
        db.session.query(CartItem, Product, Store)
        .join(Product, CartItem.product_id == Product.id)
        .join(Store, Product.store_id == Store.id)
        .filter(CartItem.user_id == user_id)
        .order_by(Store.id.asc(), CartItem.added_at.asc(), Product.id.asc())
        .all()
    )


def group_by_store(user_id) -> CartGrouping:
    """
    Group the user's cart lines by owning store.

    Lines for closed stores or inactive products are reported in
    unavailable, not dropped. Pure read; nothing is written.
    """
    user_id = as_uuid(user_id, "user_id")
    grouping = CartGrouping()
    for item, product, store in _cart_rows(user_id):
        if store.status == StoreStatus.CLOSED.value:
            grouping.unavailable.append(_line(item, product, UNAVAILABLE_STORE_CLOSED))
        elif not product.is_active:
            grouping.unavailable.append(_line(item, product, UNAVAILABLE_PRODUCT_INACTIVE))
        else:
            grouping.stores.setdefault(store.id, []).append(_line(item, product))
    return grouping


def list_items(user_id) -> list[CartItem]:
    user_id = as_uuid(user_id, "user_id")
    return (
        db.session.query(CartItem)
        .filter_by(user_id=user_id)
        .order_by(CartItem.added_at.asc())
        .all()
    )


def _purchasable_product(product_id) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        db.session.rollback()
        raise NotFoundError("Product not found", {"product_id": str(product_id)})
    if not product.is_active:
        db.session.rollback()
        raise InvalidStateError("Product is not available", {"product_id": str(product_id)})
    return product


def _check_stock(product: Product, quantity: int) -> None:
    # Early, friendly check only; checkout decrements under lock.
    if quantity > product.stock_quantity:
        available = product.stock_quantity
        db.session.rollback()
        raise InsufficientStockError(product.id, quantity, available)


def add_item(user_id, product_id, quantity) -> CartItem:
    """
    Add quantity of a product, merging into an existing line.

    Requires ADD_TO_CART on the product's store.
    """
    user_id = as_uuid(user_id, "user_id")
    product_id = as_uuid(product_id, "product_id")
    quantity = positive_int(quantity)

    begin_isolated()
    product = _purchasable_product(product_id)
    require_capability(user_id, product.store_id, Capability.ADD_TO_CART)

    item = lock_for_update(
        db.session.query(CartItem).filter_by(user_id=user_id, product_id=product_id)
    ).first()
    merged = quantity + (item.quantity if item is not None else 0)
    _check_stock(product, merged)

    if item is None:
        item = CartItem(user_id=user_id, product_id=product_id, quantity=merged)
        db.session.add(item)
    else:
        item.quantity = merged
    db.session.commit()
    return item


def set_quantity(user_id, product_id, quantity) -> CartItem | None:
    """Replace a line's quantity; zero or less removes the line."""
    user_id = as_uuid(user_id, "user_id")
    product_id = as_uuid(product_id, "product_id")
    quantity = as_int(quantity, "quantity")
    if quantity <= 0:
        remove_item(user_id, product_id)
        return None
    quantity = positive_int(quantity)

    begin_isolated()
    item = lock_for_update(
        db.session.query(CartItem).filter_by(user_id=user_id, product_id=product_id)
    ).first()
    if item is None:
        db.session.rollback()
        raise NotFoundError("Product is not in the cart", {"product_id": str(product_id)})

    product = _purchasable_product(product_id)
    require_capability(user_id, product.store_id, Capability.ADD_TO_CART)
    _check_stock(product, quantity)

    item.quantity = quantity
    db.session.commit()
    return item


def remove_item(user_id, product_id) -> bool:
    """Remove a line. Idempotent: returns False if it was not there."""
    user_id = as_uuid(user_id, "user_id")
    product_id = as_uuid(product_id, "product_id")

    begin_isolated()
    deleted = (
        db.session.query(CartItem)
        .filter_by(user_id=user_id, product_id=product_id)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return bool(deleted)
