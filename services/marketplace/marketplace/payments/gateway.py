"""Stripe adapter. The only module that talks to the payment provider.

The Stripe SDK is synchronous, so every network call is pushed to the default
executor to keep the event loop free. Signature verification is pure CPU and
runs inline.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any

import stripe

from marketplace.exceptions import InvalidWebhookSignatureError, PaymentGatewayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class LineItem:
    """Product data shown on the hosted checkout page."""

    name: str
    description: str | None = None
    image_url: str | None = None


class StripeGateway:
    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        *,
        currency: str = "usd",
        tolerance: int = 300,
    ) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._currency = currency
        self._tolerance = tolerance

    async def _call(self, fn: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, partial(fn, api_key=self._api_key, **kwargs)
            )
        except stripe.StripeError as exc:
            logger.error("Stripe call %s failed: %s", getattr(fn, "__qualname__", fn), exc)
            raise PaymentGatewayError(str(exc)) from exc

    async def create_customer(self, email: str, user_id: str) -> str:
        customer = await self._call(
            stripe.Customer.create,
            email=email,
            metadata={"user_id": user_id},
        )
        return customer.id

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        item: LineItem,
        unit_amount: int,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        product_data: dict[str, Any] = {"name": item.name}
        if item.description:
            product_data["description"] = item.description
        if item.image_url:
            product_data["images"] = [item.image_url]

        session = await self._call(
            stripe.checkout.Session.create,
            customer=customer_id,
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": self._currency,
                        "product_data": product_data,
                        "unit_amount": unit_amount,
                    },
                    "quantity": 1,
                }
            ],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        return CheckoutSession(session_id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify the ``Stripe-Signature`` header over the raw body and parse it.

        Raises InvalidWebhookSignatureError when the header is missing,
        malformed, stale (outside the tolerance window) or does not match.
        """
        if not signature:
            raise InvalidWebhookSignatureError("Missing Stripe-Signature header")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidWebhookSignatureError("Webhook body is not UTF-8") from exc
        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self._webhook_secret, self._tolerance
            )
        except stripe.SignatureVerificationError as exc:
            raise InvalidWebhookSignatureError(str(exc)) from exc
        try:
            event = json.loads(body)
        except ValueError as exc:
            raise InvalidWebhookSignatureError("Webhook body is not valid JSON") from exc
        if not isinstance(event, dict):
            raise InvalidWebhookSignatureError("Webhook body is not a JSON object")
        return event
