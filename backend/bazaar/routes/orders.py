# Overview: Flask API routes for checkout and the caller's orders.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_store_capability
from ..permissions import Capability
from ..services import checkout_service, order_service
from ..services.errors import ValidationError


orders_bp = Blueprint("orders", __name__, url_prefix="/api")


@orders_bp.post("/checkout")
@require_auth
def checkout():
    """
    Check out the caller's cart.

    201 whenever at least one store produced an order, with per-store
    outcomes for the rest. CheckoutFailedError (409) or EmptyCartError (400)
    otherwise, rendered by the app's MarketplaceError handler.
    """
    data = request.get_json(silent=True) or {}
    store_ids = data.get("store_ids") or []
    if not isinstance(store_ids, list):
        raise ValidationError("store_ids must be a list", {"field": "store_ids"})

    result = checkout_service.checkout(
        g.current_user.id,
        store_ids,
        data.get("shipping_address"),
    )
    if result.failed:
        current_app.logger.info(
            "Partial checkout %s: %s store(s) failed",
            result.order_group.group_number, len(result.failed),
        )
    return jsonify(result.to_dict()), 201


@orders_bp.get("/orders")
@require_auth
def list_orders():
    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)
    groups = order_service.list_orders_for_user(g.current_user.id, limit=limit, offset=offset)
    return jsonify([group.to_dict(include_orders=True) for group in groups]), 200


@orders_bp.get("/orders/groups/<uuid:group_id>")
@require_auth
def get_order_group(group_id):
    group = order_service.get_order_group(group_id, g.current_user.id)
    return jsonify(group.to_dict(include_orders=True)), 200


@orders_bp.get("/stores/<uuid:store_id>/orders")
@require_auth
@require_store_capability(Capability.VIEW_ORDERS)
def list_store_orders(store_id):
    orders = order_service.list_store_orders(store_id, status=request.args.get("status"))
    return jsonify([order.to_dict(include_items=True) for order in orders]), 200
