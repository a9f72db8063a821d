from django.conf import settings
from django.db import models
from django.utils import timezone


class UserStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    BANNED = "banned", "Banned"


class SubscriptionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CANCELED = "canceled", "Canceled"
    ENDED = "ended", "Ended"


def avatar_upload_to(instance, filename):
    return f"avatars/{instance.user_id}/{filename}"


class UserProfile(models.Model):
    """Back-office data attached to every ``auth.User``."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile"
    )
    status = models.CharField(max_length=16, choices=UserStatus.choices, default=UserStatus.ACTIVE)
    avatar = models.ImageField(upload_to=avatar_upload_to, blank=True, null=True)
    email_verified_at = models.DateTimeField(blank=True, null=True)
    # Set when the user is deleted from the back-office; the row is kept
    deleted_at = models.DateTimeField(blank=True, null=True)

    # Stripe billing state, refreshed by billing.tasks.sync_subscription_statuses
    stripe_customer_id = models.CharField(max_length=255, blank=True, default="")
    subscription_id = models.CharField(max_length=255, blank=True, default="")
    subscription_status = models.CharField(
        max_length=16, choices=SubscriptionStatus.choices, blank=True, null=True
    )
    subscription_ends_at = models.DateTimeField(blank=True, null=True)
    subscription_bills_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        permissions = (
            ("page_profile", "Can open the profile page"),
            ("widget_stats_overview", "Can see the stats overview widget"),
            ("widget_user_chart", "Can see the user chart widget"),
        )

    def __str__(self) -> str:
        return f"Profile of {self.user}"

    @property
    def role(self):
        from .roles import role_of

        return role_of(self.user)

    @property
    def is_super_admin(self) -> bool:
        from .roles import is_super_admin

        return is_super_admin(self.user)

    def has_exact_role(self, role) -> bool:
        from .roles import has_exact_role

        return has_exact_role(self.user, role)

    @property
    def is_banned(self) -> bool:
        return self.status == UserStatus.BANNED

    @property
    def email_verified(self) -> bool:
        return self.email_verified_at is not None

    def subscribed(self) -> bool:
        """Active subscription, or canceled one still inside its paid period."""
        if self.subscription_status == SubscriptionStatus.ACTIVE:
            return True
        return (
            self.subscription_status == SubscriptionStatus.CANCELED
            and self.subscription_ends_at is not None
            and self.subscription_ends_at > timezone.now()
        )

    def set_status(self, status):
        """Persist ``status`` and keep ``user.is_active`` in step with it."""
        self.status = status
        self.save(update_fields=["status", "updated_at"])
        self.user.is_active = status != UserStatus.BANNED and not self.is_trashed
        self.user.save(update_fields=["is_active"])

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None

    def trash(self):
        """Soft-delete: keep the user row but block sign-in."""
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at", "updated_at"])
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

    def restore(self):
        self.deleted_at = None
        self.save(update_fields=["deleted_at", "updated_at"])
        self.user.is_active = not self.is_banned
        self.user.save(update_fields=["is_active"])
