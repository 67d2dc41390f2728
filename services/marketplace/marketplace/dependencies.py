"""
Marketplace service: FastAPI dependencies.

Routes import auth, gateway and token-store providers from here so tests can
swap any of them through ``app.dependency_overrides``.
"""
from __future__ import annotations

from fastapi import Depends, Request

from shared.auth.dependencies import get_current_user_required

from marketplace.auth.token_store import ResetTokenStore
from marketplace.config import Settings, get_settings
from marketplace.payments.gateway import StripeGateway

get_current_user = get_current_user_required


def get_gateway(settings: Settings = Depends(get_settings)) -> StripeGateway:
    return StripeGateway(
        settings.stripe_secret_key,
        settings.stripe_webhook_secret,
        currency=settings.stripe_currency,
        tolerance=settings.stripe_webhook_tolerance_secs,
    )


def get_reset_token_store(request: Request) -> ResetTokenStore:
    store = getattr(request.app.state, "reset_tokens", None)
    if store is None:
        raise RuntimeError("Reset token store not initialized")
    return store
