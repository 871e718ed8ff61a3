# Overview: Service-layer operations for permission; resolves store capabilities and logs denials.

"""
Store Capability Resolution and Security Event Logging

Resolution order for can_perform(user, store, capability):

1. Soft state: a missing or deactivated user, or a missing store, is denied.
   A Suspended/Closed store denies every mutating capability except status
   management (MANAGE_STORE_STATUS, DELETE_STORE).
2. The store's recorded owner holds every capability.
3. An active membership: predefined roles map to ROLE_CAPABILITIES, CUSTOM
   uses the stored explicit set. Allowed if the capability is in the set.
   A membership that lacks a management capability is a final deny.
4. Storefront capabilities only: an active access grant (VIEW or
   VIEW_AND_BUY) on the store.
5. Storefront capabilities only: a Public store allows browse and purchase.
   Purchase (ADD_TO_CART, CHECKOUT) is included, not only read-only
   browsing; without it no buyer could check out of a public store.
6. Otherwise deny.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit path to allow
- can_perform never raises for missing rows and never writes
- require_capability logs denials to security_events, never grants
- Reads use the caller's session, so they see the caller's transaction
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from ..extensions import db
from ..models import User, Store, StoreMember, SecurityEvent
from ..permissions import (
    Capability,
    MemberRole,
    ACCESS_LEVEL_CAPABILITIES,
    MUTATING_CAPABILITIES,
    STATUS_MANAGEMENT_CAPABILITIES,
    STOREFRONT_ALL,
    role_capabilities,
)
from ..time_utils import get_clock
from . import access_grant_service
from .errors import DeniedError, InvalidStateError, NotFoundError


# Decision reasons
ALLOW_OWNER = "OWNER"
ALLOW_ROLE = "ROLE"
ALLOW_GRANT = "GRANT"
ALLOW_PUBLIC = "PUBLIC_STORE"
DENY_USER_INACTIVE = "USER_INACTIVE"
DENY_STORE_NOT_FOUND = "STORE_NOT_FOUND"
DENY_STORE_INACTIVE = "STORE_INACTIVE"
DENY_ROLE = "ROLE_LACKS_CAPABILITY"
DENY_NO_ACCESS = "NO_ACCESS"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    capability: Capability
    reason: str

    def __bool__(self) -> bool:
        return self.allowed

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "capability": self.capability.value,
            "reason": self.reason,
        }


def _allow(capability: Capability, reason: str) -> Decision:
    return Decision(True, capability, reason)


def _deny(capability: Capability, reason: str) -> Decision:
    return Decision(False, capability, reason)


def _coerce_id(value) -> uuid.UUID | None:
    # Malformed ids resolve like missing rows.
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def find_membership(store_id, user_id) -> StoreMember | None:
    """Active membership for (store, user), if any."""
    return (
        db.session.query(StoreMember)
        .filter_by(store_id=store_id, user_id=user_id, is_active=True)
        .first()
    )


def effective_capabilities(member: StoreMember) -> frozenset[Capability]:
    return role_capabilities(MemberRole(member.role), member.permissions or ())


def can_perform(user_id, store_id, capability, *, clock=None) -> Decision:
    """
    Decide whether user_id may perform capability on store_id.

    Returns a Decision; missing users, stores, memberships or grants
    simply produce a deny.
    """
    capability = Capability(capability)
    user_id = _coerce_id(user_id)
    store_id = _coerce_id(store_id)

    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None or not user.is_active:
        return _deny(capability, DENY_USER_INACTIVE)

    store = db.session.get(Store, store_id) if store_id is not None else None
    if store is None:
        return _deny(capability, DENY_STORE_NOT_FOUND)

    if (
        not store.is_active
        and capability in MUTATING_CAPABILITIES
        and capability not in STATUS_MANAGEMENT_CAPABILITIES
    ):
        return _deny(capability, DENY_STORE_INACTIVE)

    if store.owner_id == user.id:
        return _allow(capability, ALLOW_OWNER)

    member = find_membership(store.id, user.id)
    if member is not None:
        if capability in effective_capabilities(member):
            return _allow(capability, ALLOW_ROLE)
        if capability not in STOREFRONT_ALL:
            return _deny(capability, DENY_ROLE)

    if capability not in STOREFRONT_ALL:
        return _deny(capability, DENY_NO_ACCESS)

    if clock is None:
        clock = get_clock()
    grant = access_grant_service.resolve_active(store.id, user.id, clock=clock)
    if grant is not None and capability in ACCESS_LEVEL_CAPABILITIES[grant.level]:
        return _allow(capability, ALLOW_GRANT)

    if not store.is_private:
        return _allow(capability, ALLOW_PUBLIC)

    return _deny(capability, DENY_NO_ACCESS)


def resolve_permission(user_id, store_id, capability, *, clock=None) -> bool:
    """Boolean form of can_perform for handlers."""
    return can_perform(user_id, store_id, capability, clock=clock).allowed


def log_security_event(
    *,
    user_id,
    event_type: str,
    success: bool,
    store_id=None,
    target_user_id=None,
    action: str | None = None,
    reason: str | None = None,
    commit: bool = True,
    clock=None,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    With commit=False the event joins the caller's transaction and is
    committed (or rolled back) with the change it records.

    event_type examples:
    - PERMISSION_DENIED
    - ACCESS_GRANTED
    - ACCESS_REVOKED
    - MEMBER_INVITED
    - MEMBER_ROLE_CHANGED
    - MEMBER_REMOVED
    - OWNERSHIP_TRANSFERRED
    - STORE_STATUS_CHANGED
    """
    if clock is None:
        clock = get_clock()
    event = SecurityEvent(
        user_id=user_id,
        store_id=store_id,
        target_user_id=target_user_id,
        event_type=event_type,
        action=action,
        success=success,
        reason=reason,
        occurred_at=clock.now(),
    )
    db.session.add(event)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return event


def denial_error(decision: Decision, store_id):
    """Map a deny Decision to the error surfaced to callers."""
    if decision.reason == DENY_STORE_INACTIVE:
        return InvalidStateError(
            "Store is not active",
            {"store_id": str(store_id), "capability": decision.capability.value},
        )
    if decision.reason == DENY_STORE_NOT_FOUND:
        return NotFoundError("Store not found", {"store_id": str(store_id)})
    return DeniedError(decision.capability, store_id=store_id, reason=decision.reason)


def require_capability(user_id, store_id, capability, *, clock=None) -> Decision:
    """
    Require a capability inside the caller's write transaction.

    On deny the transaction is rolled back, a PERMISSION_DENIED event is
    committed, and DeniedError (or InvalidStateError for an inactive store)
    is raised.
    """
    decision = can_perform(user_id, store_id, capability, clock=clock)
    if decision.allowed:
        return decision

    db.session.rollback()
    record_denial(user_id, store_id, decision, clock=clock)
    raise denial_error(decision, store_id)


def record_denial(user_id, store_id, decision: Decision, *, clock=None) -> None:
    """Commit a PERMISSION_DENIED event for a refused decision."""
    # Denials for unknown users/stores cannot reference them by foreign key.
    user_id = _coerce_id(user_id)
    known_user = user_id if user_id is not None and db.session.get(User, user_id) is not None else None
    known_store = _coerce_id(store_id) if decision.reason != DENY_STORE_NOT_FOUND else None
    log_security_event(
        user_id=known_user,
        store_id=known_store,
        event_type="PERMISSION_DENIED",
        success=False,
        action=decision.capability.value,
        reason=f"Missing capability: {decision.capability.value} ({decision.reason})",
        clock=clock,
    )
