# Overview: Member roles, private store access levels and their capability sets.

from __future__ import annotations

import enum

from .definitions import (
    ALL_CAPABILITIES,
    Capability,
    PURCHASE_CAPABILITIES,
    STOREFRONT_READ_CAPABILITIES,
)


class MemberRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    CUSTOM = "CUSTOM"

    def __str__(self) -> str:
        return self.value


class AccessLevel(str, enum.Enum):
    VIEW = "VIEW"
    VIEW_AND_BUY = "VIEW_AND_BUY"

    def __str__(self) -> str:
        return self.value


# Predefined roles only. CUSTOM resolves to the membership's stored set.
ROLE_CAPABILITIES: dict[MemberRole, frozenset[Capability]] = {
    MemberRole.OWNER: ALL_CAPABILITIES,
    MemberRole.ADMIN: ALL_CAPABILITIES - {
        Capability.DELETE_STORE,
        Capability.TRANSFER_OWNERSHIP,
    },
    MemberRole.MANAGER: frozenset({
        Capability.VIEW_PRODUCTS,
        Capability.CREATE_PRODUCTS,
        Capability.EDIT_PRODUCTS,
        Capability.DELETE_PRODUCTS,
        Capability.VIEW_ORDERS,
        Capability.PROCESS_ORDERS,
        Capability.VIEW_STATS,
    }),
    MemberRole.STAFF: frozenset({
        Capability.VIEW_PRODUCTS,
        Capability.VIEW_ORDERS,
    }),
}

ACCESS_LEVEL_CAPABILITIES: dict[AccessLevel, frozenset[Capability]] = {
    AccessLevel.VIEW: STOREFRONT_READ_CAPABILITIES,
    AccessLevel.VIEW_AND_BUY: STOREFRONT_READ_CAPABILITIES | PURCHASE_CAPABILITIES,
}


def role_capabilities(role: MemberRole, explicit=()) -> frozenset[Capability]:
    """
    Effective capability set for a role.

    Predefined roles ignore `explicit`; CUSTOM returns exactly the explicit
    codes that name a known capability.
    """
    role = MemberRole(role)
    if role is MemberRole.CUSTOM:
        resolved = set()
        for code in explicit or ():
            try:
                resolved.add(Capability(str(code).upper()))
            except ValueError:
                continue
        return frozenset(resolved)
    return ROLE_CAPABILITIES[role]
