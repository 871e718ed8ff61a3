# backend/bazaar/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///bazaar.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Header set by the upstream identity provider after authentication
    IDENTITY_HEADER = os.environ.get("IDENTITY_HEADER", "X-User-Id")

    # Checkout contention handling (per store transaction)
    CHECKOUT_LOCK_TIMEOUT_MS = int(os.environ.get("CHECKOUT_LOCK_TIMEOUT_MS", "5000"))
    CHECKOUT_RETRY_ATTEMPTS = int(os.environ.get("CHECKOUT_RETRY_ATTEMPTS", "3"))
    CHECKOUT_RETRY_BACKOFF = float(os.environ.get("CHECKOUT_RETRY_BACKOFF", "0.05"))

    # "zero" or "store_tax_rate"
    CHECKOUT_PRICING_POLICY = os.environ.get("CHECKOUT_PRICING_POLICY", "zero")

    DEFAULT_ACCESS_LEVEL = os.environ.get("DEFAULT_ACCESS_LEVEL", "VIEW_AND_BUY")
