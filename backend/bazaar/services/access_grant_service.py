# Overview: Service-layer operations for private-store access grants (issue, revoke, resolve).

"""
Access Grant Store

A grant invites a non-member into a store at VIEW or VIEW_AND_BUY level.

ACTIVE: is_revoked = false AND (expires_at IS NULL OR expires_at > now)

Rows are never deleted. Revocation and expiry close-out are state
transitions, which keeps the grant history as an audit trail. The partial
unique index uq_store_access_grants_active allows one non-revoked row per
(store, user), so a grant that lapsed without being revoked is closed out
before a new one is issued for the same pair.

grant/revoke run under begin_isolated(), the isolation level checkout uses,
so a revoke and a purchase authorization are serialized.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import StoreAccessGrant, User
from ..permissions import AccessLevel, Capability
from ..time_utils import get_clock, to_naive_utc
from ..validation import as_uuid, parse_enum
from .concurrency import begin_isolated, lock_for_update
from .errors import ConflictError, NotFoundError, ValidationError


def _active_filter(query, now: datetime):
    return query.filter(
        StoreAccessGrant.is_revoked.is_(False),
        or_(StoreAccessGrant.expires_at.is_(None), StoreAccessGrant.expires_at > now),
    )


def resolve_active(store_id, user_id, *, clock=None) -> StoreAccessGrant | None:
    """
    Active grant for (store, user), or None.

    Reads through the caller's session, so inside a write transaction the
    result reflects that transaction's snapshot.
    """
    if clock is None:
        clock = get_clock()
    query = db.session.query(StoreAccessGrant).filter_by(store_id=store_id, user_id=user_id)
    return _active_filter(query, clock.now()).order_by(StoreAccessGrant.granted_at.desc()).first()


def list_grants(store_id, *, include_inactive: bool = False, clock=None) -> list[StoreAccessGrant]:
    store_id = as_uuid(store_id, "store_id")
    query = db.session.query(StoreAccessGrant).filter_by(store_id=store_id)
    if not include_inactive:
        if clock is None:
            clock = get_clock()
        query = _active_filter(query, clock.now())
    return query.order_by(StoreAccessGrant.granted_at.desc()).all()


def grant(
    store_id,
    granter_id,
    target_user_id,
    level=None,
    expires_at: datetime | None = None,
    *,
    clock=None,
) -> StoreAccessGrant:
    """
    Issue an access grant.

    Raises:
        DeniedError: granter lacks GRANT_ACCESS
        InvalidStateError: store is suspended or closed
        NotFoundError: target user does not exist
        ValidationError: bad level, or expires_at not in the future
        ConflictError: an active grant already exists for the pair
    """
    # Local import: permission_service resolves grants through this module.
    from .permission_service import log_security_event, require_capability

    store_id = as_uuid(store_id, "store_id")
    granter_id = as_uuid(granter_id, "granter_id")
    target_user_id = as_uuid(target_user_id, "user_id")
    if level is None:
        level = current_app.config.get("DEFAULT_ACCESS_LEVEL", AccessLevel.VIEW_AND_BUY.value)
    level = parse_enum(AccessLevel, level, "access_level")
    if clock is None:
        clock = get_clock()

    begin_isolated()
    require_capability(granter_id, store_id, Capability.GRANT_ACCESS, clock=clock)

    now = clock.now()
    if expires_at is not None:
        expires_at = to_naive_utc(expires_at)
    if expires_at is not None and expires_at <= now:
        db.session.rollback()
        raise ValidationError("expires_at must be in the future", {"field": "expires_at"})

    target = db.session.get(User, target_user_id)
    if target is None:
        db.session.rollback()
        raise NotFoundError("User not found", {"user_id": str(target_user_id)})

    current = lock_for_update(
        db.session.query(StoreAccessGrant).filter_by(
            store_id=store_id, user_id=target_user_id, is_revoked=False
        )
    ).first()
    if current is not None:
        if current.is_active_at(now):
            db.session.rollback()
            raise ConflictError(
                "An active access grant already exists; revoke it first",
                {"store_id": str(store_id), "user_id": str(target_user_id)},
            )
        # Lapsed without revocation: close it out so the new row is the only open one.
        current.is_revoked = True
        current.revoked_at = now
        current.revoked_by_user_id = granter_id
        db.session.flush()

    access = StoreAccessGrant(
        store_id=store_id,
        user_id=target_user_id,
        granted_by_user_id=granter_id,
        access_level=level.value,
        granted_at=now,
        expires_at=expires_at,
    )
    db.session.add(access)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(
            "An active access grant already exists; revoke it first",
            {"store_id": str(store_id), "user_id": str(target_user_id)},
        ) from exc

    log_security_event(
        user_id=granter_id,
        store_id=store_id,
        target_user_id=target_user_id,
        event_type="ACCESS_GRANTED",
        action=level.value,
        success=True,
        commit=False,
        clock=clock,
    )
    db.session.commit()
    return access


def revoke(store_id, granter_id, target_user_id, *, clock=None) -> StoreAccessGrant | None:
    """
    Revoke the active grant for (store, user).

    Idempotent: with no active grant nothing changes and None is returned.
    """
    from .permission_service import log_security_event, require_capability

    store_id = as_uuid(store_id, "store_id")
    granter_id = as_uuid(granter_id, "granter_id")
    target_user_id = as_uuid(target_user_id, "user_id")
    if clock is None:
        clock = get_clock()

    begin_isolated()
    require_capability(granter_id, store_id, Capability.REVOKE_ACCESS, clock=clock)

    now = clock.now()
    query = db.session.query(StoreAccessGrant).filter_by(store_id=store_id, user_id=target_user_id)
    access = lock_for_update(_active_filter(query, now)).first()
    if access is None:
        db.session.commit()
        return None

    access.is_revoked = True
    access.revoked_at = now
    access.revoked_by_user_id = granter_id

    log_security_event(
        user_id=granter_id,
        store_id=store_id,
        target_user_id=target_user_id,
        event_type="ACCESS_REVOKED",
        action=access.access_level,
        success=True,
        commit=False,
        clock=clock,
    )
    db.session.commit()
    return access
