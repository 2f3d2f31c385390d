# backend/storefront/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Payment processor (hosted checkout, refunds, webhooks)
    PAYMENTS_API_BASE = os.environ.get("PAYMENTS_API_BASE", "https://api.stripe.com")
    PAYMENTS_API_KEY = os.environ.get("PAYMENTS_API_KEY", "")
    PAYMENTS_WEBHOOK_SECRET = os.environ.get("PAYMENTS_WEBHOOK_SECRET", "")
    PAYMENTS_WEBHOOK_TOLERANCE_SECONDS = int(os.environ.get("PAYMENTS_WEBHOOK_TOLERANCE_SECONDS", "300"))
    PAYMENTS_TIMEOUT_SECONDS = float(os.environ.get("PAYMENTS_TIMEOUT_SECONDS", "10"))

    # Storefront origin for checkout success/cancel redirects
    STOREFRONT_BASE_URL = os.environ.get("STOREFRONT_BASE_URL", "http://localhost:3000")


# Catalog readiness: products below this dev status cannot be sold.
RELEASED_DEV_STATUS = 5

# Limited editions warn once remaining / max_quantity drops below this ratio.
LOW_STOCK_RATIO = 0.1

# Deposit orders reference this id instead of a catalog product.
DEPOSIT_PRODUCT_ID = "pre-sale-deposit"

VOLTAGE_CLASSES = ("5v", "24v")

# Hosted checkout sessions expire after this many seconds.
CHECKOUT_SESSION_TTL_SECONDS = 24 * 3600

# Countries accepted for shipping on cart checkouts.
SHIPPING_COUNTRIES = ("US", "CA")
