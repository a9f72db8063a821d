import datetime
from types import SimpleNamespace
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase

from accounts.models import SubscriptionStatus
from billing.stripe_gateway import StripeGatewayError
from billing.tasks import sync_subscription_statuses

User = get_user_model()

PERIOD_END = datetime.datetime(2030, 1, 1, tzinfo=datetime.timezone.utc)


class SyncSubscriptionStatusesTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="client@example.com", email="client@example.com")
        self.profile = self.user.profile
        self.profile.subscription_id = "sub_1"
        self.profile.subscription_status = SubscriptionStatus.ACTIVE
        self.profile.save()

    def sync(self, subscription=None, error=None):
        with mock.patch("billing.tasks.stripe_gateway.get_subscription") as get_subscription:
            get_subscription.return_value = subscription
            get_subscription.side_effect = error
            synced = sync_subscription_statuses()
        self.profile.refresh_from_db()
        return synced

    def test_active_subscription_gets_billing_date(self):
        synced = self.sync(SimpleNamespace(
            status="active", cancel_at_period_end=False, current_period_end=int(PERIOD_END.timestamp())
        ))

        self.assertEqual(synced, 1)
        self.assertEqual(self.profile.subscription_status, SubscriptionStatus.ACTIVE)
        self.assertEqual(self.profile.subscription_bills_at, PERIOD_END)
        self.assertIsNone(self.profile.subscription_ends_at)
        self.assertTrue(self.profile.subscribed())

    def test_canceled_at_period_end(self):
        self.sync(SimpleNamespace(
            status="active", cancel_at_period_end=True, current_period_end=int(PERIOD_END.timestamp())
        ))

        self.assertEqual(self.profile.subscription_status, SubscriptionStatus.CANCELED)
        self.assertEqual(self.profile.subscription_ends_at, PERIOD_END)
        self.assertTrue(self.profile.subscribed())

    def test_ended_subscription(self):
        ended_at = int(datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc).timestamp())

        self.sync(SimpleNamespace(status="canceled", cancel_at_period_end=False, ended_at=ended_at))

        self.assertEqual(self.profile.subscription_status, SubscriptionStatus.ENDED)
        self.assertFalse(self.profile.subscribed())

    def test_stripe_errors_skip_the_user(self):
        synced = self.sync(error=StripeGatewayError("No such subscription"))

        self.assertEqual(synced, 0)
        self.assertEqual(self.profile.subscription_status, SubscriptionStatus.ACTIVE)
