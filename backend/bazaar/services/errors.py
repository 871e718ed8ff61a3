# Overview: Typed failure outcomes shared by every marketplace service.

from __future__ import annotations


class MarketplaceError(Exception):
    """
    Base for all domain failures.

    code and http_status let handlers build a precise response without
    inspecting the message; details carries structured context such as the
    available stock or the denied capability.
    """
    code = "ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class DeniedError(MarketplaceError):
    """Capability absent for (user, store)."""
    code = "DENIED"
    http_status = 403

    def __init__(self, capability, store_id=None, reason: str | None = None):
        capability = str(capability)
        details = {"capability": capability}
        if store_id is not None:
            details["store_id"] = str(store_id)
        if reason:
            details["reason"] = reason
        super().__init__(f"Permission denied: {capability}", details)
        self.capability = capability


class InsufficientStockError(MarketplaceError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(self, product_id, requested: int, available: int):
        super().__init__(
            "Insufficient stock",
            {"product_id": str(product_id), "requested": requested, "available": available},
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ConflictError(MarketplaceError):
    code = "CONFLICT"
    http_status = 409


class NotFoundError(MarketplaceError):
    code = "NOT_FOUND"
    http_status = 404


class InvalidStateError(MarketplaceError):
    code = "INVALID_STATE"
    http_status = 409


class EmptyCartError(MarketplaceError):
    code = "EMPTY_CART"
    http_status = 400

    def __init__(self, message: str = "Cart is empty", details: dict | None = None):
        super().__init__(message, details)


class UnavailableError(MarketplaceError):
    """Transient lock timeout or serialization failure. Safe to retry."""
    code = "UNAVAILABLE"
    http_status = 503
    retryable = True


class ValidationError(MarketplaceError):
    code = "VALIDATION_ERROR"
    http_status = 400


class CheckoutFailedError(MarketplaceError):
    """No targeted store could be checked out."""
    code = "CHECKOUT_FAILED"
    http_status = 409

    def __init__(self, outcomes, unavailable=()):
        super().__init__(
            "No store could be checked out",
            {
                "stores": [outcome.to_dict() for outcome in outcomes],
                "unavailable_items": [line.to_dict() for line in unavailable],
            },
        )
        self.outcomes = list(outcomes)
        self.unavailable = list(unavailable)
        self.retryable = bool(self.outcomes) and all(
            outcome.error is not None and outcome.error.retryable for outcome in self.outcomes
        )
