# Overview: Flask API routes for store memberships, ownership and private-store access grants.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_store_capability
from ..permissions import Capability
from ..services import access_grant_service, member_service
from ..time_utils import parse_iso_datetime
from ..services.errors import ValidationError


members_bp = Blueprint("members", __name__, url_prefix="/api/stores")


@members_bp.get("/<uuid:store_id>/members")
@require_auth
@require_store_capability(Capability.VIEW_MEMBERS)
def list_members(store_id):
    members = member_service.list_members(store_id)
    return jsonify([member.to_dict() for member in members]), 200


@members_bp.post("/<uuid:store_id>/members")
@require_auth
def invite_member(store_id):
    data = request.get_json(silent=True) or {}
    member = member_service.invite_member(
        store_id,
        g.current_user.id,
        data.get("user_id"),
        data.get("role"),
        data.get("permissions") or (),
    )
    return jsonify(member.to_dict()), 201


@members_bp.patch("/<uuid:store_id>/members/<uuid:user_id>")
@require_auth
def change_role(store_id, user_id):
    data = request.get_json(silent=True) or {}
    member = member_service.change_role(
        store_id,
        g.current_user.id,
        user_id,
        data.get("role"),
        data.get("permissions") or (),
    )
    return jsonify(member.to_dict()), 200


@members_bp.delete("/<uuid:store_id>/members/<uuid:user_id>")
@require_auth
def remove_member(store_id, user_id):
    member = member_service.remove_member(store_id, g.current_user.id, user_id)
    return jsonify(member.to_dict()), 200


@members_bp.post("/<uuid:store_id>/owner")
@require_auth
def transfer_ownership(store_id):
    data = request.get_json(silent=True) or {}
    store = member_service.transfer_ownership(store_id, g.current_user.id, data.get("user_id"))
    return jsonify(store.to_dict()), 200


@members_bp.get("/<uuid:store_id>/grants")
@require_auth
@require_store_capability(Capability.VIEW_MEMBERS)
def list_grants(store_id):
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    grants = access_grant_service.list_grants(store_id, include_inactive=include_inactive)
    return jsonify([access.to_dict() for access in grants]), 200


@members_bp.post("/<uuid:store_id>/grants")
@require_auth
def grant_access(store_id):
    data = request.get_json(silent=True) or {}
    try:
        expires_at = parse_iso_datetime(data.get("expires_at"))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("expires_at must be an ISO-8601 datetime", {"field": "expires_at"}) from None

    access = access_grant_service.grant(
        store_id,
        g.current_user.id,
        data.get("user_id"),
        data.get("access_level"),
        expires_at,
    )
    return jsonify(access.to_dict()), 201


@members_bp.delete("/<uuid:store_id>/grants/<uuid:user_id>")
@require_auth
def revoke_access(store_id, user_id):
    access = access_grant_service.revoke(store_id, g.current_user.id, user_id)
    return jsonify({
        "revoked": access is not None,
        "grant": access.to_dict() if access is not None else None,
    }), 200
