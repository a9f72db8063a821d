import logging

from django.db import DatabaseError, transaction as db_transaction

from accounts.models import SubscriptionStatus

from . import stripe_gateway
from .models import TransactionStatus
from .stripe_gateway import StripeGatewayError

logger = logging.getLogger(__name__)


def refund_transaction(transaction, reason: str) -> bool:
    """Refund ``transaction`` on Stripe and close the user's subscription.

    Returns False (after logging) when Stripe or the database refuses; the
    admin turns that into an error message.
    """
    try:
        stripe_gateway.refund_latest_payment(transaction.subscription_id)
        stripe_gateway.cancel_subscription(transaction.subscription_id)
        with db_transaction.atomic():
            transaction.status = TransactionStatus.REFUNDED
            transaction.refund_reason = reason
            transaction.save(update_fields=["status", "refund_reason", "updated_at"])

            profile = transaction.user.profile
            profile.subscription_status = SubscriptionStatus.ENDED
            profile.save(update_fields=["subscription_status", "updated_at"])
    except (StripeGatewayError, DatabaseError):
        logger.exception("Refund of transaction %s failed", transaction.pk)
        return False

    logger.info("Transaction %s refunded", transaction.pk)
    return True
