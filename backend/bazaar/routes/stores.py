# Overview: Flask API routes for stores; lifecycle, visibility and capability checks.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_store_capability
from ..permissions import Capability, validate_capability_code
from ..services import permission_service, store_service
from ..services.errors import ValidationError


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
@require_auth
def list_stores():
    stores = store_service.list_stores()
    return jsonify([store.to_dict() for store in stores]), 200


@stores_bp.post("")
@require_auth
def create_store():
    data = request.get_json(silent=True) or {}
    store = store_service.create_store(
        g.current_user.id,
        data.get("name"),
        data.get("slug"),
        visibility=data.get("visibility", "PUBLIC"),
        tax_rate_bps=data.get("tax_rate_bps", 0),
        description=data.get("description"),
    )
    return jsonify(store.to_dict()), 201


@stores_bp.get("/<uuid:store_id>")
@require_auth
@require_store_capability(Capability.VIEW_PRODUCTS)
def get_store(store_id):
    return jsonify(store_service.get_store(store_id).to_dict()), 200


@stores_bp.patch("/<uuid:store_id>/status")
@require_auth
def set_store_status(store_id):
    data = request.get_json(silent=True) or {}
    store = store_service.set_store_status(store_id, g.current_user.id, data.get("status"))
    return jsonify(store.to_dict()), 200


@stores_bp.patch("/<uuid:store_id>/visibility")
@require_auth
def set_visibility(store_id):
    data = request.get_json(silent=True) or {}
    store = store_service.set_visibility(store_id, g.current_user.id, data.get("visibility"))
    return jsonify(store.to_dict()), 200


@stores_bp.delete("/<uuid:store_id>")
@require_auth
def close_store(store_id):
    store = store_service.close_store(store_id, g.current_user.id)
    return jsonify(store.to_dict()), 200


@stores_bp.get("/<uuid:store_id>/permissions/<capability>")
@require_auth
def check_permission(store_id, capability: str):
    """Answer whether the caller may perform capability on the store."""
    code = capability.upper()
    if not validate_capability_code(code):
        raise ValidationError(f"Unknown capability: {capability}", {"field": "capability"})

    decision = permission_service.can_perform(g.current_user.id, store_id, Capability(code))
    payload = decision.to_dict()
    payload["store_id"] = str(store_id)
    payload["user_id"] = str(g.current_user.id)
    return jsonify(payload), 200
