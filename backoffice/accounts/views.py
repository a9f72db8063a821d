from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.http import Http404
from django.shortcuts import render
from django.utils import timezone
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode

from .models import UserProfile


def verify_email(request, uidb64, token):
    """Mark the address verified when the signed link is still valid."""
    User = get_user_model()
    try:
        user = User.objects.get(pk=force_str(urlsafe_base64_decode(uidb64)))
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        raise Http404("Invalid verification link.")
    if not default_token_generator.check_token(user, token):
        return render(request, "accounts/verify_email.html", {"verified": False}, status=400)
    profile, _ = UserProfile.objects.get_or_create(user=user)
    if profile.email_verified_at is None:
        profile.email_verified_at = timezone.now()
        profile.save(update_fields=["email_verified_at", "updated_at"])
    return render(request, "accounts/verify_email.html", {"verified": True})
