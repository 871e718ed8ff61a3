# Overview: Capability category constants for grouping related capabilities.


class CapabilityCategory:
    """Capability categories for organization and UI display."""
    PRODUCTS = "PRODUCTS"
    ORDERS = "ORDERS"
    MEMBERS = "MEMBERS"
    ACCESS = "ACCESS"
    ANALYTICS = "ANALYTICS"
    STOREFRONT = "STOREFRONT"
    STORE = "STORE"
