# API Routes Module
from gylde.api.routes import (
    private_access,
    photos,
    subscriptions,
    reputation,
    entitlements,
    live,
    webhooks,
)

__all__ = [
    "private_access",
    "photos",
    "subscriptions",
    "reputation",
    "entitlements",
    "live",
    "webhooks",
]
