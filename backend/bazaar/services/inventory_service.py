# Overview: Stock ledger; conditional, lock-guarded stock decrements and restocks.

"""
Stock Ledger Invariants (authoritative)

- products.stock_quantity is the sellable quantity; it never goes negative
  (ck_products_stock_non_negative backs this at the database level).
- A decrement is a single conditional UPDATE:
      stock_quantity = stock_quantity - q
      WHERE id = :id AND is_active AND stock_quantity >= q
  issued while the row is locked (SELECT ... FOR UPDATE), never a
  read-then-write on a Python-side value.
- Every stock write bumps version_id so concurrent ORM updates of the same
  product fail with StaleDataError instead of overwriting the count.
- The ledger never commits. Decrements join the caller's transaction, so a
  rollback restores the exact pre-attempt quantities.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import update

from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update


REASON_INSUFFICIENT = "INSUFFICIENT_STOCK"
REASON_NOT_FOUND = "PRODUCT_NOT_FOUND"
REASON_INACTIVE = "PRODUCT_INACTIVE"


@dataclass(frozen=True)
class StockResult:
    """Outcome of a stock decrement; available is the quantity seen under lock."""
    ok: bool
    product_id: object
    requested: int
    available: int
    reason: str | None = None

    @property
    def remaining(self) -> int:
        return self.available - self.requested if self.ok else self.available

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "product_id": str(self.product_id),
            "requested": self.requested,
            "available": self.available,
            "reason": self.reason,
        }


def _locked_product(product_id) -> Product | None:
    return (
        lock_for_update(db.session.query(Product).filter_by(id=product_id))
        .populate_existing()
        .first()
    )


def reserve_and_decrement(product_id, quantity: int) -> StockResult:
    """
    Decrement stock by quantity only if at least quantity is available.

    Must be called inside a write transaction (see begin_isolated). Returns a
    StockResult; a shortfall is an ordinary result, not an exception.
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    product = _locked_product(product_id)
    if product is None:
        return StockResult(False, product_id, quantity, 0, REASON_NOT_FOUND)
    if not product.is_active:
        return StockResult(False, product_id, quantity, product.stock_quantity, REASON_INACTIVE)

    available = product.stock_quantity
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.stock_quantity >= quantity,
        )
        .values(
            stock_quantity=Product.stock_quantity - quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )

    # The identity-map copy is stale after a Core-level update.
    db.session.expire(product)

    if result.rowcount != 1:
        return StockResult(False, product_id, quantity, available, REASON_INSUFFICIENT)
    return StockResult(True, product_id, quantity, available)


def add_stock(product_id, quantity: int) -> Product | None:
    """Increase stock under the row lock. Caller owns the transaction."""
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    product = _locked_product(product_id)
    if product is None:
        return None

    db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock_quantity=Product.stock_quantity + quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    db.session.expire(product)
    return product


def get_available(product_id) -> int:
    """Committed stock for a product (0 if missing)."""
    value = db.session.query(Product.stock_quantity).filter_by(id=product_id).scalar()
    return value or 0
