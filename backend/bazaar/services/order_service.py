# Overview: Read side of orders and recorded payment status for order groups.

from __future__ import annotations

from ..extensions import db
from ..models import Order, OrderGroup, PaymentStatus
from ..validation import as_uuid, parse_enum
from .concurrency import lock_for_update
from .errors import NotFoundError


def list_orders_for_user(user_id, *, limit: int = 50, offset: int = 0) -> list[OrderGroup]:
    user_id = as_uuid(user_id, "user_id")
    limit = max(1, min(int(limit), 200))
    offset = max(0, int(offset))
    return (
        db.session.query(OrderGroup)
        .filter_by(user_id=user_id)
        .order_by(OrderGroup.created_at.desc(), OrderGroup.group_number.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def get_order_group(group_id, user_id=None) -> OrderGroup:
    """Fetch a group; with user_id, groups of other users read as missing."""
    group = db.session.get(OrderGroup, as_uuid(group_id, "group_id"))
    if group is None or (user_id is not None and group.user_id != as_uuid(user_id, "user_id")):
        raise NotFoundError("Order group not found", {"group_id": str(group_id)})
    return group


def list_store_orders(store_id, *, status: str | None = None) -> list[Order]:
    query = db.session.query(Order).filter_by(store_id=as_uuid(store_id, "store_id"))
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Order.created_at.desc()).all()


def mark_payment_status(group_id, status) -> OrderGroup:
    """Record the payment status reported for a group. Nothing is settled here."""
    group_id = as_uuid(group_id, "group_id")
    status = parse_enum(PaymentStatus, status, "payment_status")

    group = lock_for_update(db.session.query(OrderGroup).filter_by(id=group_id)).first()
    if group is None:
        db.session.rollback()
        raise NotFoundError("Order group not found", {"group_id": str(group_id)})
    group.payment_status = status.value
    db.session.commit()
    return group
