# Overview: Flask API routes for products; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_store_capability
from ..permissions import Capability
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/api")


@products_bp.get("/stores/<uuid:store_id>/products")
@require_auth
@require_store_capability(Capability.VIEW_PRODUCTS)
def list_products(store_id):
    products = products_service.list_products(store_id)
    return jsonify([product.to_dict() for product in products]), 200


@products_bp.post("/stores/<uuid:store_id>/products")
@require_auth
def create_product(store_id):
    data = request.get_json(silent=True) or {}
    product = products_service.create_product(
        store_id,
        g.current_user.id,
        sku=data.get("sku"),
        name=data.get("name"),
        price_cents=data.get("price_cents"),
        stock_quantity=data.get("stock_quantity", 0),
        description=data.get("description"),
    )
    return jsonify(product.to_dict()), 201


@products_bp.patch("/products/<uuid:product_id>")
@require_auth
def update_product(product_id):
    data = request.get_json(silent=True) or {}
    product = products_service.update_product(
        product_id,
        g.current_user.id,
        name=data.get("name"),
        description=data.get("description"),
        price_cents=data.get("price_cents"),
        is_active=data.get("is_active"),
    )
    return jsonify(product.to_dict()), 200


@products_bp.post("/products/<uuid:product_id>/restock")
@require_auth
def restock(product_id):
    data = request.get_json(silent=True) or {}
    product = products_service.restock(product_id, g.current_user.id, data.get("quantity"))
    return jsonify(product.to_dict()), 200
