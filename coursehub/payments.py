"""Payment gateway client.

Checkout sessions are created with the ``stripe`` SDK; webhook payloads are
authenticated against the ``Stripe-Signature`` header before being parsed.
"""
import json
import logging
from typing import Dict, Optional

import stripe

from .config import settings
from .errors import BadRequest, GatewayError

logger = logging.getLogger(__name__)


class PaymentGateway:
    def create_checkout_session(self, *, amount: float, title: str, description: Optional[str],
                                success_url: str, cancel_url: str, metadata: Dict[str, str]) -> dict:
        """Return a dict with at least ``id`` and ``url``."""
        raise NotImplementedError

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    def __init__(self, secret_key: Optional[str], webhook_secret: Optional[str],
                 tolerance: int = 300, currency: str = "usd"):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        self.currency = currency

    def create_checkout_session(self, *, amount, title, description, success_url, cancel_url, metadata):
        if not self.secret_key:
            raise GatewayError("STRIPE_NOT_CONFIGURED", "STRIPE_SECRET_KEY is not defined")

        product_data = {"name": title}
        if description:
            product_data["description"] = description

        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": self.currency,
                        "product_data": product_data,
                        "unit_amount": int(round(amount * 100)),
                    },
                    "quantity": 1,
                }],
                metadata={key: str(value) for key, value in metadata.items()},
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as e:
            logger.error("Checkout session creation failed: %s", e)
            raise GatewayError("CHECKOUT_SESSION_FAILED", f"Unable to create checkout session: {e}")

        return {"id": session.id, "url": session.url or ""}

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
        if not self.webhook_secret:
            raise BadRequest("WEBHOOK_NOT_CONFIGURED", "STRIPE_WEBHOOK_SECRET is not defined")
        if not signature:
            raise BadRequest("STRIPE_SIGNATURE_MISSING", "Missing Stripe-Signature header")

        try:
            stripe.WebhookSignature.verify_header(payload.decode("utf-8"), signature,
                                                  self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            raise BadRequest("INVALID_SIGNATURE", str(e))
        except UnicodeDecodeError:
            raise BadRequest("INVALID_PAYLOAD", "Webhook payload is not valid UTF-8")

        # parsed as plain JSON so handlers work with dicts, not StripeObjects
        try:
            return json.loads(payload)
        except ValueError:
            raise BadRequest("INVALID_PAYLOAD", "Webhook payload is not valid JSON")


def get_payment_gateway() -> PaymentGateway:
    return StripeGateway(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        currency=settings.CURRENCY,
    )
