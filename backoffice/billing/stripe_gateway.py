"""
Thin wrapper over the Stripe SDK.

Every call goes through ``_call`` so SDK errors surface as
``StripeGatewayError``. Product and price lookups are cached as plain dicts
under ``STRIPE_CACHE_TIMEOUT``; writers call ``invalidate`` afterwards.
"""
import logging

import stripe
from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

PRODUCT_CACHE_KEY = "stripe:product:{}"
PRICE_CACHE_KEY = "stripe:price:{}"


class StripeGatewayError(Exception):
    pass


def _call(func, *args, **kwargs):
    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        return func(*args, **kwargs)
    except stripe.StripeError as exc:
        logger.error("Stripe call %s failed: %s", getattr(func, "__qualname__", func), exc)
        raise StripeGatewayError(str(exc)) from exc


def _id_of(value):
    """Expandable Stripe fields come back either as an id or as an object."""
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


def get_product(product_id: str) -> dict:
    key = PRODUCT_CACHE_KEY.format(product_id)
    product = cache.get(key)
    if product is None:
        obj = _call(stripe.Product.retrieve, product_id)
        product = {
            "id": obj.id,
            "name": obj.name,
            "description": obj.description or "",
            "default_price": _id_of(obj.default_price),
        }
        cache.set(key, product, settings.STRIPE_CACHE_TIMEOUT)
    return product


def get_price(price_id: str) -> dict:
    key = PRICE_CACHE_KEY.format(price_id)
    price = cache.get(key)
    if price is None:
        obj = _call(stripe.Price.retrieve, price_id)
        price = {
            "id": obj.id,
            "unit_amount": obj.unit_amount,
            "product": _id_of(obj.product),
        }
        cache.set(key, price, settings.STRIPE_CACHE_TIMEOUT)
    return price


def invalidate(product_id=None, *price_ids):
    keys = [PRICE_CACHE_KEY.format(price_id) for price_id in price_ids if price_id]
    if product_id:
        keys.append(PRODUCT_CACHE_KEY.format(product_id))
    cache.delete_many(keys)


def create_yearly_price(product_id: str, unit_amount: int) -> str:
    price = _call(
        stripe.Price.create,
        product=product_id,
        unit_amount=unit_amount,
        currency=settings.STRIPE_CURRENCY,
        recurring={"interval": "year"},
    )
    return price.id


def update_product(product_id: str, **fields):
    return _call(stripe.Product.modify, product_id, **fields)


def deactivate_price(price_id: str):
    return _call(stripe.Price.modify, price_id, active=False)


def get_subscription(subscription_id: str):
    return _call(stripe.Subscription.retrieve, subscription_id)


def refund_latest_payment(subscription_id: str):
    """Refund the payment of the subscription's latest invoice."""
    subscription = get_subscription(subscription_id)
    invoice = _call(stripe.Invoice.retrieve, _id_of(subscription.latest_invoice))
    payment_intent = _id_of(invoice.payment_intent)
    if not payment_intent:
        raise StripeGatewayError(f"Invoice {invoice.id} has no payment to refund.")
    return _call(stripe.Refund.create, payment_intent=payment_intent)


def cancel_subscription(subscription_id: str):
    return _call(stripe.Subscription.cancel, subscription_id)
