"""Stripe payment gateway."""

import asyncio
from dataclasses import dataclass

import stripe
import structlog

from otakusensei.config import Settings, settings as default_settings

logger = structlog.get_logger()


class PaymentGatewayError(Exception):
    """Raised when the payment processor cannot be reached or rejects a call."""


@dataclass
class PaymentIntent:
    """The parts of a Stripe PaymentIntent the API relies on."""

    id: str
    client_secret: str | None
    status: str

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class StripeGateway:
    """Creates and retrieves Stripe PaymentIntents.

    The API key is passed on every call instead of being set on the global
    ``stripe`` module.
    """

    def __init__(self, secret_key: str, currency: str = "usd"):
        self.secret_key = secret_key
        self.currency = currency

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "StripeGateway":
        cfg = cfg or default_settings
        return cls(secret_key=cfg.stripe_secret_key, currency=cfg.stripe_currency)

    def _require_key(self) -> None:
        if not self.secret_key:
            raise PaymentGatewayError("stripe_secret_key_missing")

    async def create_payment_intent(
        self,
        amount_cents: int,
        metadata: dict[str, str],
        description: str,
    ) -> PaymentIntent:
        self._require_key()
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                api_key=self.secret_key,
                amount=amount_cents,
                currency=self.currency,
                metadata=metadata,
                description=description,
            )
        except stripe.StripeError as e:
            logger.error("Stripe payment intent creation failed", error=str(e))
            raise PaymentGatewayError(str(e)) from e

        logger.info("Created payment intent", intent_id=intent.id, amount_cents=amount_cents)
        return PaymentIntent(id=intent.id, client_secret=intent.client_secret, status=intent.status)

    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        self._require_key()
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.retrieve, intent_id, api_key=self.secret_key
            )
        except stripe.StripeError as e:
            logger.error("Stripe payment intent retrieval failed", intent_id=intent_id, error=str(e))
            raise PaymentGatewayError(str(e)) from e

        return PaymentIntent(id=intent.id, client_secret=intent.client_secret, status=intent.status)
