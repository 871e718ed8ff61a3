# Overview: Flask API routes for the caller's cart.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import cart_service


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart():
    grouping = cart_service.group_by_store(g.current_user.id)
    return jsonify(grouping.to_dict()), 200


@cart_bp.post("/items")
@require_auth
def add_item():
    data = request.get_json(silent=True) or {}
    item = cart_service.add_item(g.current_user.id, data.get("product_id"), data.get("quantity", 1))
    return jsonify(item.to_dict()), 201


@cart_bp.put("/items/<uuid:product_id>")
@require_auth
def set_quantity(product_id):
    data = request.get_json(silent=True) or {}
    item = cart_service.set_quantity(g.current_user.id, product_id, data.get("quantity"))
    if item is None:
        return jsonify({"removed": True}), 200
    return jsonify(item.to_dict()), 200


@cart_bp.delete("/items/<uuid:product_id>")
@require_auth
def remove_item(product_id):
    removed = cart_service.remove_item(g.current_user.id, product_id)
    return jsonify({"removed": removed}), 200
