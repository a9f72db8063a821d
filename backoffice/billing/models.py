import uuid

from django.conf import settings
from django.db import models


class TransactionStatus(models.TextChoices):
    SUCCESSFUL = "successful", "Successful"
    REFUNDED = "refunded", "Refunded"


class Transaction(models.Model):
    """One paid subscription period, as reported by Stripe."""

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="transactions"
    )
    subscription_id = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    # Last four digits only
    credit_card = models.CharField(max_length=4, blank=True, default="")
    status = models.CharField(
        max_length=16, choices=TransactionStatus.choices, default=TransactionStatus.SUCCESSFUL
    )
    refund_reason = models.CharField(max_length=255, blank=True, default="")
    hosted_invoice_url = models.URLField(max_length=500, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-id"]
        permissions = (
            ("page_subscription", "Can open the subscription page"),
            ("widget_income_chart", "Can see the income chart widget"),
        )

    def __str__(self) -> str:
        return self.subscription_id

    @property
    def is_refunded(self) -> bool:
        return self.status == TransactionStatus.REFUNDED

    def can_be_refunded(self) -> bool:
        """Only the user's latest transaction, and only once."""
        if self.is_refunded:
            return False
        latest = Transaction.objects.filter(user_id=self.user_id).order_by("-id").values_list("id", flat=True).first()
        return latest == self.pk
