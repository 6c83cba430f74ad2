import json
from abc import ABC, abstractmethod
from typing import Any, Mapping, Tuple

import stripe

from schemas import Event


class PaymentGatewayError(Exception):
    """The payment provider rejected or failed a request."""


class WebhookVerificationError(Exception):
    """A webhook payload was malformed or its signature did not verify."""


def to_minor_units(price: float) -> int:
    return int(round(price * 100))


class PaymentGateway(ABC):
    """Interface for the payment operations the manifest server needs."""

    @abstractmethod
    def sync_product(self, event: Event, currency: str) -> Tuple[str, str]:
        """Create or update the product for an event; return (product_id, price_id).

        An event that already carries a product id must have that product
        updated, never a second one created.
        """
        ...

    @abstractmethod
    def create_checkout_session(self, price_id: str, event_id: str, success_url: str, cancel_url: str) -> str:
        """Return the hosted checkout URL for one ticket."""
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        """Verify and decode a provider notification.

        Raises:
            WebhookVerificationError: If the payload or signature is invalid.
        """
        ...


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: str, webhook_secret: str | None = None) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret

    def _find_product(self, event_id: str):
        """Product created for this event by an earlier, interrupted publish."""
        escaped = event_id.replace("\\", "\\\\").replace("'", "\\'")
        result = stripe.Product.search(
            api_key=self._api_key,
            query=f"active:'true' AND metadata['eventId']:'{escaped}'",
            limit=1,
        )
        return result.data[0] if result.data else None

    def sync_product(self, event: Event, currency: str) -> Tuple[str, str]:
        amount = to_minor_units(event.price)
        images = [event.image_url] if event.image_url.startswith("http") else []
        try:
            product_id, price_id = event.stripe_product_id, event.stripe_price_id
            if not product_id:
                existing = self._find_product(event.id)
                if existing is None:
                    product = stripe.Product.create(
                        api_key=self._api_key,
                        name=event.title or event.id,
                        description=event.description or None,
                        images=images,
                        metadata={"eventId": event.id},
                        default_price_data={"unit_amount": amount, "currency": currency},
                    )
                    return product.id, product.default_price
                product_id, price_id = existing.id, existing.default_price

            stripe.Product.modify(
                product_id,
                api_key=self._api_key,
                name=event.title or event.id,
                description=event.description or None,
                images=images,
            )
            if price_id:
                price = stripe.Price.retrieve(price_id, api_key=self._api_key)
                if price.unit_amount == amount and price.currency == currency:
                    return product_id, price.id

            # Prices are immutable upstream: a changed amount gets a new price on the same product
            price = stripe.Price.create(
                api_key=self._api_key,
                product=product_id,
                unit_amount=amount,
                currency=currency,
            )
            stripe.Product.modify(product_id, api_key=self._api_key, default_price=price.id)
            return product_id, price.id
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e

    def create_checkout_session(self, price_id: str, event_id: str, success_url: str, cancel_url: str) -> str:
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                mode="payment",
                line_items=[{"price": price_id, "quantity": 1}],
                metadata={"eventId": event_id},
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return session.url

    def parse_webhook(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        if not self._webhook_secret:
            raise WebhookVerificationError("Webhook secret not configured")
        # Returns the raw JSON as a dict, not an SDK event object
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self._webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
            notification = json.loads(payload)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookVerificationError(str(e)) from e
        if not isinstance(notification, dict):
            raise WebhookVerificationError("Webhook payload is not an object")
        return notification
