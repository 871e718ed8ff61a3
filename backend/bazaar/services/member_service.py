# Overview: Service-layer operations for store memberships and ownership transfer.

"""
Membership Invariants

- Exactly one active OWNER membership per store, held by stores.owner_id.
- The owner's membership cannot be removed or re-roled; ownership moves only
  through transfer_ownership, which demotes the previous owner to ADMIN and
  updates stores.owner_id in the same transaction.
- permissions is stored only for CUSTOM; predefined roles keep an empty list.
- Removing a member deactivates the row; re-inviting reactivates it.

All writes run under begin_isolated() and append a security event in the
same transaction.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Store, StoreMember, User
from ..permissions import Capability, MemberRole, parse_capabilities
from ..validation import as_uuid, parse_enum
from .concurrency import begin_isolated, lock_for_update
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .permission_service import log_security_event, require_capability


def _explicit_permissions(role: MemberRole, permissions) -> list[str]:
    if role is not MemberRole.CUSTOM:
        return []
    try:
        return sorted({capability.value for capability in parse_capabilities(permissions)})
    except ValueError as exc:
        raise ValidationError(str(exc), {"field": "permissions"}) from exc


def _assignable_role(role) -> MemberRole:
    role = parse_enum(MemberRole, role, "role")
    if role is MemberRole.OWNER:
        raise InvalidStateError("OWNER is assigned only by transferring ownership", {"role": role.value})
    return role


def _active_user(user_id) -> User:
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        db.session.rollback()
        raise NotFoundError("User not found", {"user_id": str(user_id)})
    return user


def _locked_member(store_id, user_id) -> StoreMember | None:
    return lock_for_update(
        db.session.query(StoreMember).filter_by(store_id=store_id, user_id=user_id)
    ).first()


def list_members(store_id, *, include_inactive: bool = False) -> list[StoreMember]:
    query = db.session.query(StoreMember).filter_by(store_id=as_uuid(store_id, "store_id"))
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(StoreMember.joined_at.asc()).all()


def invite_member(store_id, actor_id, user_id, role, permissions=()) -> StoreMember:
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")
    user_id = as_uuid(user_id, "user_id")
    role = _assignable_role(role)
    explicit = _explicit_permissions(role, permissions)

    begin_isolated()
    require_capability(actor_id, store_id, Capability.INVITE_MEMBERS)
    _active_user(user_id)

    member = _locked_member(store_id, user_id)
    if member is not None and member.is_active:
        db.session.rollback()
        raise ConflictError("User is already a member", {"store_id": str(store_id), "user_id": str(user_id)})

    if member is None:
        member = StoreMember(store_id=store_id, user_id=user_id)
        db.session.add(member)
    member.role = role.value
    member.permissions = explicit
    member.invited_by_user_id = actor_id
    member.is_active = True

    log_security_event(
        user_id=actor_id,
        store_id=store_id,
        target_user_id=user_id,
        event_type="MEMBER_INVITED",
        action=role.value,
        success=True,
        commit=False,
    )
    db.session.commit()
    return member


def change_role(store_id, actor_id, user_id, role, permissions=()) -> StoreMember:
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")
    user_id = as_uuid(user_id, "user_id")
    role = _assignable_role(role)
    explicit = _explicit_permissions(role, permissions)

    begin_isolated()
    require_capability(actor_id, store_id, Capability.EDIT_PERMISSIONS)

    store = db.session.get(Store, store_id)
    if store.owner_id == user_id:
        db.session.rollback()
        raise InvalidStateError("The owner's role cannot be changed", {"user_id": str(user_id)})

    member = _locked_member(store_id, user_id)
    if member is None or not member.is_active:
        db.session.rollback()
        raise NotFoundError("Membership not found", {"store_id": str(store_id), "user_id": str(user_id)})

    previous = member.role
    member.role = role.value
    member.permissions = explicit

    log_security_event(
        user_id=actor_id,
        store_id=store_id,
        target_user_id=user_id,
        event_type="MEMBER_ROLE_CHANGED",
        action=role.value,
        success=True,
        reason=f"{previous} -> {role.value}",
        commit=False,
    )
    db.session.commit()
    return member


def remove_member(store_id, actor_id, user_id) -> StoreMember:
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")
    user_id = as_uuid(user_id, "user_id")

    begin_isolated()
    require_capability(actor_id, store_id, Capability.EDIT_PERMISSIONS)

    store = db.session.get(Store, store_id)
    if store.owner_id == user_id:
        db.session.rollback()
        raise InvalidStateError("The owner's membership cannot be removed", {"user_id": str(user_id)})

    member = _locked_member(store_id, user_id)
    if member is None or not member.is_active:
        db.session.rollback()
        raise NotFoundError("Membership not found", {"store_id": str(store_id), "user_id": str(user_id)})

    member.is_active = False
    log_security_event(
        user_id=actor_id,
        store_id=store_id,
        target_user_id=user_id,
        event_type="MEMBER_REMOVED",
        action=member.role,
        success=True,
        commit=False,
    )
    db.session.commit()
    return member


def transfer_ownership(store_id, actor_id, new_owner_id) -> Store:
    """Hand the store to new_owner_id; the previous owner stays on as ADMIN."""
    store_id = as_uuid(store_id, "store_id")
    actor_id = as_uuid(actor_id, "actor_id")
    new_owner_id = as_uuid(new_owner_id, "new_owner_id")

    begin_isolated()
    require_capability(actor_id, store_id, Capability.TRANSFER_OWNERSHIP)
    _active_user(new_owner_id)

    store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).populate_existing().first()
    previous_owner_id = store.owner_id
    if previous_owner_id == new_owner_id:
        db.session.rollback()
        raise InvalidStateError("User already owns the store", {"user_id": str(new_owner_id)})

    previous = _locked_member(store_id, previous_owner_id)
    if previous is None:
        previous = StoreMember(store_id=store_id, user_id=previous_owner_id)
        db.session.add(previous)
    previous.role = MemberRole.ADMIN.value
    previous.permissions = []
    previous.is_active = True

    incoming = _locked_member(store_id, new_owner_id)
    if incoming is None:
        incoming = StoreMember(store_id=store_id, user_id=new_owner_id, invited_by_user_id=actor_id)
        db.session.add(incoming)
    incoming.role = MemberRole.OWNER.value
    incoming.permissions = []
    incoming.is_active = True

    store.owner_id = new_owner_id

    log_security_event(
        user_id=actor_id,
        store_id=store_id,
        target_user_id=new_owner_id,
        event_type="OWNERSHIP_TRANSFERRED",
        action=Capability.TRANSFER_OWNERSHIP.value,
        success=True,
        reason=f"{previous_owner_id} -> {new_owner_id}",
        commit=False,
    )
    db.session.commit()
    return store
