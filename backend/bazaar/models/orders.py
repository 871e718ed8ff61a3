from __future__ import annotations

import enum
import uuid

from ..extensions import db
from ..time_utils import to_utc_z


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class OrderGroup(db.Model):
    """
    Umbrella record for one checkout call.

    total_amount_cents always equals the sum of its committed orders'
    total_amount_cents. Payment status is recorded only; nothing settles it.
    """
    __tablename__ = "order_groups"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False, index=True)
    group_number = db.Column(db.String(50), nullable=False, unique=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.PENDING.value)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    orders = db.relationship("Order", back_populates="order_group", lazy=True, order_by="Order.created_at")

    def to_dict(self, include_orders: bool = False) -> dict:
        data = {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "group_number": self.group_number,
            "total_amount_cents": self.total_amount_cents,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_orders:
            data["orders"] = [order.to_dict(include_items=True) for order in self.orders]
        return data


class Order(db.Model):
    """
    Per-store order produced by checkout. Never deleted; only status changes.

    total_amount_cents = subtotal + tax + shipping - discount.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_store_status", "store_id", "status"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    order_group_id = db.Column(db.Uuid, db.ForeignKey("order_groups.id"), nullable=False, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False, index=True)
    store_id = db.Column(db.Uuid, db.ForeignKey("stores.id"), nullable=False, index=True)
    order_number = db.Column(db.String(50), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING.value)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    # Snapshot at checkout time
    shipping_address = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    order_group = db.relationship("OrderGroup", back_populates="orders")
    items = db.relationship("OrderItem", back_populates="order", lazy=True, cascade="all, delete-orphan")

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": str(self.id),
            "order_group_id": str(self.order_group_id),
            "user_id": str(self.user_id),
            "store_id": str(self.store_id),
            "order_number": self.order_number,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "shipping_cents": self.shipping_cents,
            "total_amount_cents": self.total_amount_cents,
            "shipping_address": self.shipping_address,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """
    Order line with the unit price locked at checkout.

    unit_price_cents and subtotal_cents are never recomputed from the
    product after creation.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    order_id = db.Column(db.Uuid, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "product_id": str(self.product_id),
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }
