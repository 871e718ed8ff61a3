# Overview: Service-layer operations for stores (create, status, visibility, soft delete).

from __future__ import annotations

import re

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Store, StoreMember, StoreStatus, StoreVisibility, User
from ..permissions import Capability, MemberRole
from ..validation import as_int, as_uuid, parse_enum, required_text
from .concurrency import begin_isolated, lock_for_update
from .errors import ConflictError, NotFoundError, ValidationError
from .permission_service import log_security_event, require_capability


SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
MAX_TAX_RATE_BPS = 10_000


def _tax_rate(value) -> int:
    bps = as_int(value, "tax_rate_bps")
    if not 0 <= bps <= MAX_TAX_RATE_BPS:
        raise ValidationError(
            f"tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}", {"field": "tax_rate_bps"}
        )
    return bps


def create_store(
    owner_id,
    name: str,
    slug: str,
    *,
    visibility=StoreVisibility.PUBLIC,
    tax_rate_bps=0,
    description: str | None = None,
) -> Store:
    """Create a store and its OWNER membership in one transaction."""
    owner_id = as_uuid(owner_id, "owner_id")
    name = required_text(name, "name")
    slug = required_text(slug, "slug", max_length=100).lower()
    if not SLUG_RE.match(slug):
        raise ValidationError("slug may contain only a-z, 0-9 and single hyphens", {"field": "slug"})
    visibility = parse_enum(StoreVisibility, visibility, "visibility")
    tax_rate_bps = _tax_rate(tax_rate_bps)

    owner = db.session.get(User, owner_id)
    if owner is None or not owner.is_active:
        raise NotFoundError("Owner not found", {"user_id": str(owner_id)})

    if db.session.query(Store.id).filter_by(slug=slug).first() is not None:
        raise ConflictError("Store slug already in use", {"slug": slug})

    store = Store(
        owner_id=owner_id,
        name=name,
        slug=slug,
        description=description,
        visibility=visibility.value,
        status=StoreStatus.ACTIVE.value,
        tax_rate_bps=tax_rate_bps,
    )
    db.session.add(store)
    db.session.flush()
    db.session.add(StoreMember(
        store_id=store.id,
        user_id=owner_id,
        role=MemberRole.OWNER.value,
        permissions=[],
        invited_by_user_id=None,
        is_active=True,
    ))
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Store slug already in use", {"slug": slug}) from exc
    return store


def get_store(store_id) -> Store:
    store = db.session.get(Store, as_uuid(store_id, "store_id"))
    if store is None:
        raise NotFoundError("Store not found", {"store_id": str(store_id)})
    return store


def list_stores(*, include_private: bool = False, include_closed: bool = False) -> list[Store]:
    query = db.session.query(Store)
    if not include_private:
        query = query.filter(Store.visibility == StoreVisibility.PUBLIC.value)
    if not include_closed:
        query = query.filter(Store.status != StoreStatus.CLOSED.value)
    return query.order_by(Store.name.asc()).all()


def _locked_store(store_id) -> Store:
    store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).populate_existing().first()
    if store is None:
        db.session.rollback()
        raise NotFoundError("Store not found", {"store_id": str(store_id)})
    return store


def set_store_status(store_id, actor_id, status) -> Store:
    """
    Move a store between ACTIVE, SUSPENDED and CLOSED.

    Requires MANAGE_STORE_STATUS. CLOSED is terminal for everyone but the
    owner: reopening needs DELETE_STORE.
    """
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")
    status = parse_enum(StoreStatus, status, "status")

    begin_isolated()
    require_capability(actor_id, store_id, Capability.MANAGE_STORE_STATUS)
    store = _locked_store(store_id)
    if store.status == StoreStatus.CLOSED.value and status != StoreStatus.CLOSED:
        require_capability(actor_id, store_id, Capability.DELETE_STORE)

    previous = store.status
    if previous == status.value:
        db.session.commit()
        return store

    store.status = status.value
    log_security_event(
        user_id=actor_id,
        store_id=store_id,
        event_type="STORE_STATUS_CHANGED",
        action=status.value,
        success=True,
        reason=f"{previous} -> {status.value}",
        commit=False,
    )
    db.session.commit()
    return store


def close_store(store_id, actor_id) -> Store:
    """Soft delete: requires DELETE_STORE; rows are retained."""
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")

    begin_isolated()
    require_capability(actor_id, store_id, Capability.DELETE_STORE)
    store = _locked_store(store_id)
    if store.status != StoreStatus.CLOSED.value:
        previous = store.status
        store.status = StoreStatus.CLOSED.value
        log_security_event(
            user_id=actor_id,
            store_id=store_id,
            event_type="STORE_STATUS_CHANGED",
            action=StoreStatus.CLOSED.value,
            success=True,
            reason=f"{previous} -> {StoreStatus.CLOSED.value}",
            commit=False,
        )
    db.session.commit()
    return store


def set_visibility(store_id, actor_id, visibility) -> Store:
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")
    visibility = parse_enum(StoreVisibility, visibility, "visibility")

    begin_isolated()
    require_capability(actor_id, store_id, Capability.MANAGE_STORE_STATUS)
    store = _locked_store(store_id)
    if store.visibility != visibility.value:
        store.visibility = visibility.value
        log_security_event(
            user_id=actor_id,
            store_id=store_id,
            event_type="STORE_VISIBILITY_CHANGED",
            action=visibility.value,
            success=True,
            commit=False,
        )
    db.session.commit()
    return store
