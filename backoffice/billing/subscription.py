"""Subscription product / price management behind the subscription page."""
import logging
from decimal import ROUND_HALF_UP, Decimal

from appsettings.models import Setting

from . import stripe_gateway

logger = logging.getLogger(__name__)


def to_cents(amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def load_subscription() -> dict:
    """Initial data of the subscription form, read from Stripe."""
    product = stripe_gateway.get_product(Setting.stripe_product_id())
    price = stripe_gateway.get_price(product["default_price"] or Setting.stripe_price_id())
    return {
        "product_id": product["id"],
        "name": product["name"],
        "description": product["description"],
        "price_id": price["id"],
        "unit_amount": Decimal(price["unit_amount"] or 0) / 100,
    }


def update_subscription(*, product_id, price_id, name, description, unit_amount) -> str:
    """Push the subscription properties to Stripe and return the price id in effect.

    A changed amount means a new yearly price: the product points to it, the
    old price is deactivated and the ``stripe.price`` setting follows.
    """
    description = description or ""
    unit_amount = to_cents(unit_amount)
    current = stripe_gateway.get_price(price_id)

    if current["unit_amount"] == unit_amount:
        stripe_gateway.update_product(product_id, name=name, description=description)
        stripe_gateway.invalidate(product_id)
        return price_id

    new_price_id = stripe_gateway.create_yearly_price(product_id, unit_amount)
    stripe_gateway.update_product(
        product_id, name=name, description=description, default_price=new_price_id
    )
    stripe_gateway.deactivate_price(price_id)

    setting = Setting.get_data("stripe", "price")
    setting.value = new_price_id
    setting.save(update_fields=["value", "updated_at"])

    stripe_gateway.invalidate(product_id, price_id, new_price_id)
    logger.info("Subscription price %s replaced by %s (%s cents)", price_id, new_price_id, unit_amount)
    return new_price_id
