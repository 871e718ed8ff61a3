# Overview: Capability system package.
# Re-exports the capability catalogue and the role matrix.

from .categories import CapabilityCategory
from .definitions import (
    Capability,
    CAPABILITY_DEFINITIONS,
    ALL_CAPABILITIES,
    READ_ONLY_CAPABILITIES,
    MUTATING_CAPABILITIES,
    STOREFRONT_READ_CAPABILITIES,
    PURCHASE_CAPABILITIES,
    STOREFRONT_ALL,
    STATUS_MANAGEMENT_CAPABILITIES,
)
from .roles import (
    MemberRole,
    AccessLevel,
    ROLE_CAPABILITIES,
    ACCESS_LEVEL_CAPABILITIES,
    role_capabilities,
)
from .helpers import (
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    validate_capability_code,
    parse_capabilities,
)

__all__ = [
    "CapabilityCategory",
    "Capability",
    "CAPABILITY_DEFINITIONS",
    "ALL_CAPABILITIES",
    "READ_ONLY_CAPABILITIES",
    "MUTATING_CAPABILITIES",
    "STOREFRONT_READ_CAPABILITIES",
    "PURCHASE_CAPABILITIES",
    "STOREFRONT_ALL",
    "STATUS_MANAGEMENT_CAPABILITIES",
    "MemberRole",
    "AccessLevel",
    "ROLE_CAPABILITIES",
    "ACCESS_LEVEL_CAPABILITIES",
    "role_capabilities",
    "get_all_capability_codes",
    "get_capabilities_by_category",
    "get_capability_definition",
    "validate_capability_code",
    "parse_capabilities",
]
