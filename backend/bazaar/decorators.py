# Overview: Request identity and capability decorators for API routes.

import uuid
from functools import wraps

from flask import current_app, g, jsonify, request

from .extensions import db
from .models import User
from .services import permission_service


def require_auth(f):
    """
    Resolve the caller from the identity header.

    The upstream identity provider authenticates the request and forwards the
    user id in IDENTITY_HEADER; this layer only trusts and resolves it.

    Sets g.current_user. Returns 401 if:
    - the header is missing or not a UUID
    - no such user exists
    - the user account is deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("IDENTITY_HEADER", "X-User-Id")
        raw = request.headers.get(header)
        if not raw:
            return jsonify({"error": {"code": "UNAUTHENTICATED", "message": "Authentication required"}}), 401

        try:
            user_id = uuid.UUID(raw.strip())
        except ValueError:
            return jsonify({"error": {"code": "UNAUTHENTICATED", "message": "Invalid user identity"}}), 401

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            return jsonify({"error": {"code": "UNAUTHENTICATED", "message": "Unknown or inactive user"}}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_store_capability(capability):
    """
    Gate a read-only store route on a capability.

    Must be used after @require_auth on routes taking a store_id argument.
    Mutating routes leave the check to their service, which audits denials.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            decision = permission_service.can_perform(g.current_user.id, kwargs.get("store_id"), capability)
            if not decision.allowed:
                error = permission_service.denial_error(decision, kwargs.get("store_id"))
                return jsonify({"error": error.to_dict()}), error.http_status
            return f(*args, **kwargs)

        return decorated_function

    return decorator
