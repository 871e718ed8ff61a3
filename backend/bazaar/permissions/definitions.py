# Overview: All store capabilities, organized by category.
# Each definition is: (capability, name, description, category)

from __future__ import annotations

import enum

from .categories import CapabilityCategory


class Capability(str, enum.Enum):
    """A single store-scoped action a user may be permitted to perform."""

    VIEW_PRODUCTS = "VIEW_PRODUCTS"
    CREATE_PRODUCTS = "CREATE_PRODUCTS"
    EDIT_PRODUCTS = "EDIT_PRODUCTS"
    DELETE_PRODUCTS = "DELETE_PRODUCTS"

    VIEW_ORDERS = "VIEW_ORDERS"
    PROCESS_ORDERS = "PROCESS_ORDERS"
    CANCEL_ORDERS = "CANCEL_ORDERS"

    VIEW_MEMBERS = "VIEW_MEMBERS"
    INVITE_MEMBERS = "INVITE_MEMBERS"
    EDIT_PERMISSIONS = "EDIT_PERMISSIONS"

    GRANT_ACCESS = "GRANT_ACCESS"
    REVOKE_ACCESS = "REVOKE_ACCESS"

    VIEW_STATS = "VIEW_STATS"
    EXPORT_REPORTS = "EXPORT_REPORTS"

    ADD_TO_CART = "ADD_TO_CART"
    CHECKOUT = "CHECKOUT"

    MANAGE_STORE_STATUS = "MANAGE_STORE_STATUS"
    DELETE_STORE = "DELETE_STORE"
    TRANSFER_OWNERSHIP = "TRANSFER_OWNERSHIP"

    def __str__(self) -> str:
        return self.value


# -- PRODUCTS --

PRODUCT_CAPABILITIES = [
    (Capability.VIEW_PRODUCTS, "View Products", "Browse the store catalogue", CapabilityCategory.PRODUCTS),
    (Capability.CREATE_PRODUCTS, "Create Products", "Add products to the store", CapabilityCategory.PRODUCTS),
    (Capability.EDIT_PRODUCTS, "Edit Products", "Change price, stock and details", CapabilityCategory.PRODUCTS),
    (Capability.DELETE_PRODUCTS, "Delete Products", "Deactivate products", CapabilityCategory.PRODUCTS),
]


# -- ORDERS --

ORDER_CAPABILITIES = [
    (Capability.VIEW_ORDERS, "View Orders", "View orders placed with the store", CapabilityCategory.ORDERS),
    (Capability.PROCESS_ORDERS, "Process Orders", "Advance order fulfilment status", CapabilityCategory.ORDERS),
    (Capability.CANCEL_ORDERS, "Cancel Orders", "Cancel orders", CapabilityCategory.ORDERS),
]


# -- MEMBERS --

MEMBER_CAPABILITIES = [
    (Capability.VIEW_MEMBERS, "View Members", "List store members", CapabilityCategory.MEMBERS),
    (Capability.INVITE_MEMBERS, "Invite Members", "Add users as store members", CapabilityCategory.MEMBERS),
    (Capability.EDIT_PERMISSIONS, "Edit Permissions", "Change member roles or remove members", CapabilityCategory.MEMBERS),
]


# -- ACCESS --

ACCESS_CAPABILITIES = [
    (Capability.GRANT_ACCESS, "Grant Access", "Invite users into a private store", CapabilityCategory.ACCESS),
    (Capability.REVOKE_ACCESS, "Revoke Access", "Revoke private store invitations", CapabilityCategory.ACCESS),
]


# -- ANALYTICS --

ANALYTICS_CAPABILITIES = [
    (Capability.VIEW_STATS, "View Stats", "View store sales statistics", CapabilityCategory.ANALYTICS),
    (Capability.EXPORT_REPORTS, "Export Reports", "Export store reports", CapabilityCategory.ANALYTICS),
]


# -- STOREFRONT --

STOREFRONT_CAPABILITIES = [
    (Capability.ADD_TO_CART, "Add To Cart", "Put store products in a cart", CapabilityCategory.STOREFRONT),
    (Capability.CHECKOUT, "Checkout", "Place orders with the store", CapabilityCategory.STOREFRONT),
]


# -- STORE --

STORE_CAPABILITIES = [
    (Capability.MANAGE_STORE_STATUS, "Manage Store Status", "Suspend, reactivate or change visibility", CapabilityCategory.STORE),
    (Capability.DELETE_STORE, "Delete Store", "Close the store permanently", CapabilityCategory.STORE),
    (Capability.TRANSFER_OWNERSHIP, "Transfer Ownership", "Hand the store to another user", CapabilityCategory.STORE),
]


CAPABILITY_DEFINITIONS = (
    PRODUCT_CAPABILITIES
    + ORDER_CAPABILITIES
    + MEMBER_CAPABILITIES
    + ACCESS_CAPABILITIES
    + ANALYTICS_CAPABILITIES
    + STOREFRONT_CAPABILITIES
    + STORE_CAPABILITIES
)

ALL_CAPABILITIES = frozenset(Capability)

READ_ONLY_CAPABILITIES = frozenset({
    Capability.VIEW_PRODUCTS,
    Capability.VIEW_ORDERS,
    Capability.VIEW_MEMBERS,
    Capability.VIEW_STATS,
    Capability.EXPORT_REPORTS,
})

MUTATING_CAPABILITIES = ALL_CAPABILITIES - READ_ONLY_CAPABILITIES

# Consulted against access grants and store visibility (non-members)
STOREFRONT_READ_CAPABILITIES = frozenset({Capability.VIEW_PRODUCTS})
PURCHASE_CAPABILITIES = frozenset({Capability.ADD_TO_CART, Capability.CHECKOUT})
STOREFRONT_ALL = STOREFRONT_READ_CAPABILITIES | PURCHASE_CAPABILITIES

# Still available while a store is Suspended or Closed
STATUS_MANAGEMENT_CAPABILITIES = frozenset({
    Capability.MANAGE_STORE_STATUS,
    Capability.DELETE_STORE,
})
