# Overview: Checkout orchestration; turns a cross-store cart into per-store orders.

"""
Checkout Invariants (authoritative)

Atomicity is PER STORE. Each targeted store runs in its own transaction
opened by begin_isolated():

1. CHECKOUT capability is re-checked inside the transaction, so a grant
   revoked before this point blocks the purchase.
2. The store's cart lines for active products are re-read and locked
   (ordered by product id so concurrent checkouts lock products in the same
   order). Lines for deactivated products stay in the cart and are reported
   as unavailable.
3. Every line is decremented through the stock ledger. Any shortfall rolls
   the whole store back, stock decrements for earlier lines included.
4. Prices are read from the locked product rows and frozen into OrderItems;
   the pricing policy adds tax/shipping/discount.
5. The Order is written and the store's cart lines are deleted.
6. The first store to succeed creates the OrderGroup; later stores add their
   totals with an in-SQL increment. group.total == sum(order.total) holds
   after every commit.

A failed store never affects its siblings. Checkout raises only when the
cart is empty (EmptyCartError) or when no store succeeded
(CheckoutFailedError); otherwise per-store failures are reported as
StoreOutcome(status=FAILED).

Lock timeouts and serialization failures are retried per store
(run_with_retry); once attempts are exhausted that store reports
UnavailableError, which is retryable.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import CartItem, Order, OrderGroup, Product, Store
from ..permissions import Capability
from ..time_utils import get_clock
from ..validation import as_uuid
from . import inventory_service
from .cart_service import group_by_store
from .concurrency import begin_isolated, lock_for_update, run_with_retry
from .errors import (
    CheckoutFailedError,
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    InvalidStateError,
    MarketplaceError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from .order_group_factory import (
    LockedLine,
    add_to_group_total,
    build_order,
    locked_subtotal,
    new_order_group,
)
from .permission_service import require_capability
from .pricing import PricingPolicy, get_pricing_policy


STATUS_CREATED = "CREATED"
STATUS_FAILED = "FAILED"


@dataclass
class StoreOutcome:
    store_id: object
    status: str
    order: Order | None = None
    error: MarketplaceError | None = None

    @property
    def created(self) -> bool:
        return self.status == STATUS_CREATED

    def to_dict(self) -> dict:
        return {
            "store_id": str(self.store_id),
            "status": self.status,
            "order": self.order.to_dict(include_items=True) if self.order is not None else None,
            "error": self.error.to_dict() if self.error is not None else None,
        }


@dataclass
class CheckoutResult:
    order_group: OrderGroup
    outcomes: list = field(default_factory=list)
    unavailable: list = field(default_factory=list)

    @property
    def orders(self) -> list:
        return [outcome.order for outcome in self.outcomes if outcome.created]

    @property
    def failed(self) -> list:
        return [outcome for outcome in self.outcomes if not outcome.created]

    def outcome_for(self, store_id) -> StoreOutcome | None:
        for outcome in self.outcomes:
            if outcome.store_id == store_id:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "order_group": self.order_group.to_dict(),
            "stores": [outcome.to_dict() for outcome in self.outcomes],
            "unavailable_items": [line.to_dict() for line in self.unavailable],
        }


def _created(store_id, order: Order) -> StoreOutcome:
    return StoreOutcome(store_id=store_id, status=STATUS_CREATED, order=order)


def _failed(store_id, error: MarketplaceError) -> StoreOutcome:
    return StoreOutcome(store_id=store_id, status=STATUS_FAILED, error=error)


def _target_store_ids(grouping, store_ids) -> list:
    in_cart = set(grouping.stores) | {line.store_id for line in grouping.unavailable}
    if store_ids:
        targets = {as_uuid(store_id, "store_id") for store_id in store_ids}
    else:
        targets = in_cart
    # Deterministic store order across concurrent checkouts.
    return sorted(targets, key=str)


def _ledger_failure(result) -> MarketplaceError:
    if result.reason == inventory_service.REASON_INSUFFICIENT:
        return InsufficientStockError(result.product_id, result.requested, result.available)
    if result.reason == inventory_service.REASON_INACTIVE:
        return InvalidStateError("Product is no longer available", {"product_id": str(result.product_id)})
    return NotFoundError("Product not found", {"product_id": str(result.product_id)})


def _checkout_store(user_id, store_id, group_id, *, shipping_address, policy, clock):
    """
    One store's transaction. Returns (group_id, order) after commit.

    Raises MarketplaceError with the transaction already rolled back.
    """
    begin_isolated()
    require_capability(user_id, store_id, Capability.CHECKOUT, clock=clock)

    store = db.session.get(Store, store_id)
    items = lock_for_update(
        db.session.query(CartItem)
        .join(Product, CartItem.product_id == Product.id)
        .filter(CartItem.user_id == user_id, Product.store_id == store_id)
        .filter(Product.is_active.is_(True))
        .order_by(CartItem.product_id.asc()),
        of=CartItem,
    ).all()
    if not items:
        db.session.rollback()
        raise InvalidStateError("Store items are unavailable", {"store_id": str(store_id)})

    lines = []
    for item in items:
        result = inventory_service.reserve_and_decrement(item.product_id, item.quantity)
        if not result.ok:
            db.session.rollback()
            raise _ledger_failure(result)
        product = db.session.get(Product, item.product_id)
        lines.append(LockedLine(item.product_id, item.quantity, product.price_cents))

    quote = policy.quote(store, locked_subtotal(lines))
    now = clock.now()

    if group_id is None:
        group_id = new_order_group(user_id, at=now).id
    order = build_order(
        group_id=group_id,
        user_id=user_id,
        store_id=store_id,
        lines=lines,
        quote=quote,
        shipping_address=shipping_address,
        at=now,
    )
    add_to_group_total(group_id, quote.total_cents)

    (
        db.session.query(CartItem)
        .filter(CartItem.id.in_([item.id for item in items]))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return group_id, order


def checkout(
    user_id,
    store_ids=None,
    shipping_address: dict | None = None,
    *,
    pricing_policy: PricingPolicy | str | None = None,
    clock=None,
) -> CheckoutResult:
    """
    Check out the user's cart, one independent transaction per store.

    store_ids limits checkout to those stores; empty or None means every
    store with lines in the cart. Other stores' cart lines are untouched.

    Raises:
        ValidationError: malformed ids or shipping address
        EmptyCartError: the user has no cart items at all
        CheckoutFailedError: no targeted store could be checked out
    """
    user_id = as_uuid(user_id, "user_id")
    if not isinstance(shipping_address, dict) or not shipping_address:
        raise ValidationError("shipping_address is required", {"field": "shipping_address"})
    if pricing_policy is None or isinstance(pricing_policy, str):
        pricing_policy = get_pricing_policy(pricing_policy)
    if clock is None:
        clock = get_clock()

    grouping = group_by_store(user_id)
    if grouping.is_empty:
        raise EmptyCartError()
    targets = _target_store_ids(grouping, store_ids)
    # Close the read transaction; each store opens its own.
    db.session.rollback()

    outcomes = []
    group_id = None
    for store_id in targets:
        if store_id not in grouping.stores:
            blocked = grouping.unavailable_for(store_id)
            if blocked:
                error = InvalidStateError(
                    "Store items are unavailable",
                    {"store_id": str(store_id), "items": [line.to_dict() for line in blocked]},
                )
            else:
                error = NotFoundError("No cart items for store", {"store_id": str(store_id)})
            outcomes.append(_failed(store_id, error))
            continue

        def _attempt(store_id=store_id):
            return _checkout_store(
                user_id,
                store_id,
                group_id,
                shipping_address=shipping_address,
                policy=pricing_policy,
                clock=clock,
            )

        try:
            group_id, order = run_with_retry(_attempt)
        except MarketplaceError as exc:
            db.session.rollback()
            current_app.logger.warning(
                "Checkout failed for store %s (user %s): %s", store_id, user_id, exc.code
            )
            outcomes.append(_failed(store_id, exc))
            continue
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            current_app.logger.warning(
                "Checkout timed out for store %s (user %s): %s",
                store_id, user_id, exc.__class__.__name__,
            )
            outcomes.append(_failed(store_id, UnavailableError(
                "Store is busy; retry checkout", {"store_id": str(store_id)},
            )))
            continue
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning("Checkout conflict for store %s (user %s)", store_id, user_id)
            outcomes.append(_failed(store_id, ConflictError(
                "Concurrent checkout conflict; retry checkout", {"store_id": str(store_id)},
            )))
            continue

        outcomes.append(_created(store_id, order))

    if group_id is None:
        raise CheckoutFailedError(outcomes, grouping.unavailable)

    group = db.session.get(OrderGroup, group_id)
    current_app.logger.info(
        "Checkout %s: %s of %s stores, total %s cents",
        group.group_number,
        sum(1 for outcome in outcomes if outcome.created),
        len(outcomes),
        group.total_amount_cents,
    )
    return CheckoutResult(order_group=group, outcomes=outcomes, unavailable=grouping.unavailable)
