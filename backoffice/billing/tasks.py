import datetime
import logging

from celery import shared_task
from django.utils import timezone

from accounts.models import SubscriptionStatus, UserProfile

from . import stripe_gateway
from .stripe_gateway import StripeGatewayError

logger = logging.getLogger(__name__)

LIVE_STATUSES = ("active", "trialing", "past_due")


def _timestamp(subscription, field):
    value = getattr(subscription, field, None)
    if not value:
        return None
    return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)


def apply_subscription(profile, subscription):
    """Copy a Stripe subscription's state onto ``profile``."""
    period_end = _timestamp(subscription, "current_period_end")
    if subscription.status in LIVE_STATUSES:
        if getattr(subscription, "cancel_at_period_end", False):
            profile.subscription_status = SubscriptionStatus.CANCELED
            profile.subscription_ends_at = period_end
            profile.subscription_bills_at = None
        else:
            profile.subscription_status = SubscriptionStatus.ACTIVE
            profile.subscription_bills_at = period_end
            profile.subscription_ends_at = None
    else:
        profile.subscription_status = SubscriptionStatus.ENDED
        profile.subscription_ends_at = _timestamp(subscription, "ended_at") or timezone.now()
        profile.subscription_bills_at = None
    profile.save(update_fields=[
        "subscription_status", "subscription_ends_at", "subscription_bills_at", "updated_at",
    ])


@shared_task(bind=True)
def sync_subscription_statuses(self) -> int:
    """Refresh subscription state of every profile with a live subscription."""
    profiles = (
        UserProfile.objects.exclude(subscription_id="")
        .filter(subscription_status__in=[SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELED])
    )
    synced = 0
    for profile in profiles.iterator():
        try:
            subscription = stripe_gateway.get_subscription(profile.subscription_id)
        except StripeGatewayError:
            logger.warning("Skipping subscription sync of user %s", profile.user_id)
            continue
        apply_subscription(profile, subscription)
        synced += 1
    logger.info("Synced %s subscriptions", synced)
    return synced
