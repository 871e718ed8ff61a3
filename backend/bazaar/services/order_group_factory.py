# Overview: Order numbering and OrderGroup/Order/OrderItem assembly for checkout.

"""
Numbering:
    GRP-YYYYMMDD-XXXXXXXXXXXX   order groups
    ORD-YYYYMMDD-XXXXXXXXXXXX   per-store orders

The suffix is 48 random bits (12 hex digits) from secrets. Numbers are
collision-free in practice and the unique constraints on
order_groups.group_number / orders.order_number make a collision a hard
IntegrityError rather than a duplicate.

The factory holds no business rules beyond numbering and totals; it only
adds rows to the caller's session and never commits.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update

from ..extensions import db
from ..models import Order, OrderGroup, OrderItem, OrderStatus, PaymentStatus
from .pricing import PriceQuote


GROUP_PREFIX = "GRP"
ORDER_PREFIX = "ORD"


@dataclass(frozen=True)
class LockedLine:
    """A cart line with the unit price captured at checkout."""
    product_id: object
    quantity: int
    unit_price_cents: int

    @property
    def subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity


def allocate_number(prefix: str, at: datetime) -> str:
    return f"{prefix}-{at:%Y%m%d}-{secrets.token_hex(6).upper()}"


def locked_subtotal(lines: list[LockedLine]) -> int:
    return sum(line.subtotal_cents for line in lines)


def new_order_group(user_id, *, at: datetime) -> OrderGroup:
    group = OrderGroup(
        user_id=user_id,
        group_number=allocate_number(GROUP_PREFIX, at),
        total_amount_cents=0,
        payment_status=PaymentStatus.PENDING.value,
    )
    db.session.add(group)
    db.session.flush()
    return group


def build_order(
    *,
    group_id,
    user_id,
    store_id,
    lines: list[LockedLine],
    quote: PriceQuote,
    shipping_address: dict,
    at: datetime,
) -> Order:
    """Add an Order and its OrderItems (prices as locked in lines)."""
    order = Order(
        order_group_id=group_id,
        user_id=user_id,
        store_id=store_id,
        order_number=allocate_number(ORDER_PREFIX, at),
        status=OrderStatus.PENDING.value,
        subtotal_cents=quote.subtotal_cents,
        tax_cents=quote.tax_cents,
        discount_cents=quote.discount_cents,
        shipping_cents=quote.shipping_cents,
        total_amount_cents=quote.total_cents,
        shipping_address=dict(shipping_address),
    )
    for line in lines:
        order.items.append(
            OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                subtotal_cents=line.subtotal_cents,
            )
        )
    db.session.add(order)
    db.session.flush()
    return order


def add_to_group_total(group_id, amount_cents: int) -> None:
    """Increment the group total in SQL so concurrent store commits cannot lose updates."""
    db.session.execute(
        update(OrderGroup)
        .where(OrderGroup.id == group_id)
        .values(total_amount_cents=OrderGroup.total_amount_cents + amount_cents)
        .execution_options(synchronize_session=False)
    )
