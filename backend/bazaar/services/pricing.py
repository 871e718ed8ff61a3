# Overview: Pluggable store-level pricing (tax, shipping, discount) applied at checkout.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..models import Store


@dataclass(frozen=True)
class PriceQuote:
    subtotal_cents: int
    tax_cents: int = 0
    shipping_cents: int = 0
    discount_cents: int = 0

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents + self.tax_cents + self.shipping_cents - self.discount_cents


class PricingPolicy:
    """Given a store and a locked subtotal, return the figures for its order."""
    name = "base"

    def quote(self, store: Store, subtotal_cents: int) -> PriceQuote:
        raise NotImplementedError


class ZeroPricingPolicy(PricingPolicy):
    name = "zero"

    def quote(self, store: Store, subtotal_cents: int) -> PriceQuote:
        return PriceQuote(subtotal_cents=subtotal_cents)


class StoreTaxRatePolicy(PricingPolicy):
    """Applies stores.tax_rate_bps to the subtotal, rounded half-up to the cent."""
    name = "store_tax_rate"

    def quote(self, store: Store, subtotal_cents: int) -> PriceQuote:
        bps = store.tax_rate_bps or 0
        # Integer half-up: (a * b + 5000) // 10000
        tax_cents = (subtotal_cents * bps + 5_000) // 10_000
        return PriceQuote(subtotal_cents=subtotal_cents, tax_cents=tax_cents)


_POLICIES = {
    ZeroPricingPolicy.name: ZeroPricingPolicy,
    StoreTaxRatePolicy.name: StoreTaxRatePolicy,
}


def get_pricing_policy(name: str | None = None) -> PricingPolicy:
    if name is None:
        name = current_app.config.get("CHECKOUT_PRICING_POLICY", ZeroPricingPolicy.name)
    try:
        return _POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown pricing policy: {name}") from None
