import logging

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

logger = logging.getLogger(__name__)


def verification_path(user) -> str:
    uidb64 = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    return reverse("accounts:verify-email", kwargs={"uidb64": uidb64, "token": token})


@shared_task(bind=True, autoretry_for=(Exception,), retry_backoff=True, retry_kwargs={"max_retries": 3})
def send_verification_email(self, user_id: int) -> bool:
    user = get_user_model().objects.select_related("profile").filter(pk=user_id).first()
    if user is None or not user.email:
        return False
    if user.profile.email_verified_at is not None:
        return False
    base_url = getattr(settings, "SITE_URL", "").rstrip("/")
    context = {"user": user, "verify_url": f"{base_url}{verification_path(user)}"}
    send_mail(
        subject="Verify your email address",
        message=render_to_string("accounts/verification_email.txt", context),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info("Verification email sent to user %s", user.pk)
    return True
