from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

import stripe
from django.core.cache import cache
from django.test import TestCase

from appsettings.models import Setting
from billing import stripe_gateway
from billing.stripe_gateway import StripeGatewayError
from billing.subscription import load_subscription, to_cents, update_subscription


def stripe_price(price_id="price_old", unit_amount=1999, product="prod_1"):
    return SimpleNamespace(id=price_id, unit_amount=unit_amount, product=product)


class ToCentsTests(TestCase):
    def test_rounds_to_whole_cents(self):
        self.assertEqual(to_cents(Decimal("19.99")), 1999)
        self.assertEqual(to_cents(Decimal("19.995")), 2000)
        self.assertEqual(to_cents("0.1"), 10)
        self.assertEqual(to_cents(25), 2500)


@mock.patch("stripe.Product")
@mock.patch("stripe.Price")
class UpdateSubscriptionTests(TestCase):
    def setUp(self):
        cache.clear()
        Setting.set_value("stripe", "product", "prod_1")
        Setting.set_value("stripe", "price", "price_old")

    def update(self, unit_amount):
        return update_subscription(
            product_id="prod_1",
            price_id="price_old",
            name="Yearly access",
            description="All packs",
            unit_amount=unit_amount,
        )

    def test_same_amount_only_updates_product(self, Price, Product):
        Price.retrieve.return_value = stripe_price(unit_amount=1999)

        price_id = self.update(Decimal("19.99"))

        self.assertEqual(price_id, "price_old")
        Product.modify.assert_called_once_with("prod_1", name="Yearly access", description="All packs")
        Price.create.assert_not_called()
        Price.modify.assert_not_called()
        self.assertEqual(Setting.get_value("stripe", "price"), "price_old")

    def test_new_amount_replaces_price(self, Price, Product):
        Price.retrieve.return_value = stripe_price(unit_amount=1999)
        Price.create.return_value = stripe_price("price_new", 2500)

        price_id = self.update(Decimal("25"))

        self.assertEqual(price_id, "price_new")
        Price.create.assert_called_once_with(
            product="prod_1", unit_amount=2500, currency="usd", recurring={"interval": "year"}
        )
        Product.modify.assert_called_once_with(
            "prod_1", name="Yearly access", description="All packs", default_price="price_new"
        )
        Price.modify.assert_called_once_with("price_old", active=False)
        self.assertEqual(Setting.get_value("stripe", "price"), "price_new")

    def test_price_lookup_is_cached(self, Price, Product):
        Price.retrieve.return_value = stripe_price(unit_amount=1999)

        stripe_gateway.get_price("price_old")
        stripe_gateway.get_price("price_old")

        Price.retrieve.assert_called_once_with("price_old")

    def test_cache_is_invalidated_after_save(self, Price, Product):
        Price.retrieve.return_value = stripe_price(unit_amount=1999)
        Price.create.return_value = stripe_price("price_new", 2500)

        self.update(Decimal("25"))
        stripe_gateway.get_price("price_old")

        self.assertEqual(Price.retrieve.call_count, 2)

    def test_stripe_errors_are_wrapped(self, Price, Product):
        Price.retrieve.return_value = stripe_price(unit_amount=1999)
        Price.create.side_effect = stripe.StripeError("card declined")

        with self.assertRaises(StripeGatewayError):
            self.update(Decimal("30"))

        self.assertEqual(Setting.get_value("stripe", "price"), "price_old")

    def test_load_subscription(self, Price, Product):
        Product.retrieve.return_value = SimpleNamespace(
            id="prod_1", name="Yearly access", description=None, default_price="price_old"
        )
        Price.retrieve.return_value = stripe_price(unit_amount=1999)

        data = load_subscription()

        self.assertEqual(data, {
            "product_id": "prod_1",
            "name": "Yearly access",
            "description": "",
            "price_id": "price_old",
            "unit_amount": Decimal("19.99"),
        })
