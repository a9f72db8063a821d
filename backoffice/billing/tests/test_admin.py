from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from billing.models import Transaction
from billing.stripe_gateway import StripeGatewayError

User = get_user_model()

SUBSCRIPTION = {
    "product_id": "prod_1",
    "name": "Yearly access",
    "description": "All packs",
    "price_id": "price_1",
    "unit_amount": Decimal("19.99"),
}


class TransactionAdminTests(TestCase):
    def setUp(self):
        self.admin_user = User.objects.create_superuser(
            username="root@example.com", email="root@example.com", password="p@ssw0rd!123"
        )
        self.client.force_login(self.admin_user)
        self.customer = User.objects.create_user(username="client@example.com", email="client@example.com")
        self.older = Transaction.objects.create(
            user=self.customer, subscription_id="sub_old", price=Decimal("9.99"), credit_card="4242"
        )
        self.latest = Transaction.objects.create(
            user=self.customer, subscription_id="sub_new", price=Decimal("19.99"), credit_card="4242"
        )

    def test_changelist_offers_refund_on_latest_only(self):
        resp = self.client.get(reverse("admin:billing_transaction_changelist"))

        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "$19.99")
        self.assertContains(resp, reverse("admin:billing_transaction_refund", args=[self.latest.pk]))
        self.assertNotContains(resp, reverse("admin:billing_transaction_refund", args=[self.older.pk]))

    def test_transactions_are_read_only(self):
        self.assertEqual(self.client.get(reverse("admin:billing_transaction_add")).status_code, 403)
        self.assertEqual(
            self.client.get(reverse("admin:billing_transaction_delete", args=[self.latest.pk])).status_code, 403
        )
        resp = self.client.get(reverse("admin:billing_transaction_change", args=[self.latest.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.context["has_change_permission"])

    def test_refund_confirmation(self):
        resp = self.client.get(reverse("admin:billing_transaction_refund", args=[self.latest.pk]))

        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Refund transaction: sub_new")
        self.assertContains(resp, "Are you sure you want to REFUND this transaction?")

    def test_refund_requires_reason(self):
        with mock.patch("billing.admin.refund_transaction") as refund:
            resp = self.client.post(reverse("admin:billing_transaction_refund", args=[self.latest.pk]), {})

        self.assertEqual(resp.status_code, 200)
        self.assertIn("refund_reason", resp.context["form"].errors)
        refund.assert_not_called()

    @mock.patch("billing.admin.refund_transaction", return_value=True)
    def test_refund_success(self, refund):
        resp = self.client.post(
            reverse("admin:billing_transaction_refund", args=[self.latest.pk]),
            {"refund_reason": "Duplicate charge"},
            follow=True,
        )

        self.assertContains(resp, "Transaction has been refunded successfully!")
        refund.assert_called_once_with(self.latest, "Duplicate charge")

    @mock.patch("billing.admin.refund_transaction", return_value=False)
    def test_refund_failure(self, refund):
        resp = self.client.post(
            reverse("admin:billing_transaction_refund", args=[self.latest.pk]),
            {"refund_reason": "Duplicate charge"},
            follow=True,
        )

        self.assertContains(resp, "An error occurred during the refund process!")

    def test_older_transaction_cannot_be_refunded(self):
        resp = self.client.post(
            reverse("admin:billing_transaction_refund", args=[self.older.pk]),
            {"refund_reason": "Duplicate charge"},
        )

        self.assertEqual(resp.status_code, 403)

    def test_refund_link_on_user_details_returns_there(self):
        details = reverse("admin:auth_user_details", args=[self.customer.pk])

        with mock.patch("billing.admin.refund_transaction", return_value=True):
            resp = self.client.post(
                reverse("admin:billing_transaction_refund", args=[self.latest.pk]) + f"?next={details}",
                {"refund_reason": "Duplicate charge"},
            )

        self.assertRedirects(resp, details, fetch_redirect_response=False)


class SubscriptionPageTests(TestCase):
    def setUp(self):
        self.admin_user = User.objects.create_superuser(
            username="root@example.com", email="root@example.com", password="p@ssw0rd!123"
        )
        self.client.force_login(self.admin_user)
        self.url = reverse("admin:billing_subscription")

    @mock.patch("billing.admin.load_subscription", return_value=SUBSCRIPTION)
    def test_form_is_filled_from_stripe(self, load):
        resp = self.client.get(self.url)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["form"].initial["name"], "Yearly access")
        self.assertContains(resp, "Product information")
        self.assertContains(resp, "Price information")

    @mock.patch("billing.admin.load_subscription", side_effect=StripeGatewayError("No such product"))
    def test_stripe_outage_still_renders(self, load):
        resp = self.client.get(self.url)

        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "No such product")

    @mock.patch("billing.admin.update_subscription", return_value="price_2")
    def test_save(self, update):
        resp = self.client.post(self.url, {
            "product_id": "prod_1",
            "name": "Yearly access",
            "description": "All packs",
            "price_id": "price_1",
            "unit_amount": "25.00",
        }, follow=True)

        self.assertContains(resp, "Your subscription properties has been updated.")
        update.assert_called_once_with(
            product_id="prod_1",
            name="Yearly access",
            description="All packs",
            price_id="price_1",
            unit_amount=Decimal("25.00"),
        )

    @mock.patch("billing.admin.update_subscription", side_effect=StripeGatewayError("Invalid currency"))
    def test_save_failure(self, update):
        resp = self.client.post(self.url, {
            "product_id": "prod_1",
            "name": "Yearly access",
            "description": "",
            "price_id": "price_1",
            "unit_amount": "25.00",
        })

        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Subscription update failed. Invalid currency")

    def test_negative_amount_is_rejected(self):
        with mock.patch("billing.admin.update_subscription") as update:
            resp = self.client.post(self.url, {
                "product_id": "prod_1",
                "name": "Yearly access",
                "price_id": "price_1",
                "unit_amount": "-1",
            })

        self.assertEqual(resp.status_code, 200)
        self.assertIn("unit_amount", resp.context["form"].errors)
        update.assert_not_called()

    def test_requires_page_permission(self):
        staff = User.objects.create_user(username="staff@example.com", email="staff@example.com", is_staff=True)
        self.client.force_login(staff)

        self.assertEqual(self.client.get(self.url).status_code, 403)
