from decimal import Decimal

from django.template.response import TemplateResponse
from django.urls import reverse
from django.utils.html import format_html
from django.utils.http import url_has_allowed_host_and_scheme

# (background, text, border) per badge tone
BADGE_TONES = {
    "success": ("#dcfce7", "#166534", "#86efac"),
    "danger": ("#fee2e2", "#991b1b", "#fca5a5"),
    "warning": ("#fef3c7", "#92400e", "#fcd34d"),
    "info": ("#e0e7ff", "#4338ca", "#a5b4fc"),
    "gray": ("#f1f5f9", "#334155", "#cbd5e1"),
}


def badge(label, tone="gray", color=None):
    """Render a pill badge. ``color`` (hex) overrides the tone palette."""
    if color:
        return format_html(
            '<span style="background:{};color:#fff;padding:2px 8px;border-radius:999px;font-weight:600;">{}</span>',
            color, label,
        )
    background, foreground, border = BADGE_TONES.get(tone, BADGE_TONES["gray"])
    return format_html(
        '<span style="background:{};color:{};border:1px solid {};padding:2px 8px;border-radius:999px;font-weight:600;">{}</span>',
        background, foreground, border, label,
    )


def money(amount, currency="USD") -> str:
    if amount is None:
        amount = Decimal("0")
    symbol = "$" if currency.upper() == "USD" else f"{currency.upper()} "
    return f"{symbol}{Decimal(amount):,.2f}"


def truncate(text, limit=50):
    """Shorten ``text`` to ``limit`` characters, keeping the full text as tooltip."""
    text = text or ""
    if len(text) <= limit:
        return text
    return format_html('<span title="{}">{}...</span>', text, text[:limit])


def user_link(user):
    """Owner email linking to the user's details screen; super-admins are never linked."""
    if user is None:
        return "-"
    if user.is_superuser or (hasattr(user, "profile") and user.profile.is_super_admin):
        return user.email
    url = reverse("admin:auth_user_details", args=[user.pk])
    return format_html('<a href="{}">{}</a>', url, user.email)


def next_url(request, fallback):
    candidate = request.POST.get("next") or request.GET.get("next")
    if candidate and url_has_allowed_host_and_scheme(
        candidate, allowed_hosts={request.get_host()}, require_https=request.is_secure()
    ):
        return candidate
    return fallback


def render_confirmation(model_admin, request, obj, *, title, question, submit_label, form=None, cancel_url=None):
    """Confirmation page shared by the ban / unban / refund / publish row actions."""
    opts = model_admin.model._meta
    fallback = reverse(f"admin:{opts.app_label}_{opts.model_name}_changelist")
    context = {
        **model_admin.admin_site.each_context(request),
        "opts": opts,
        "object": obj,
        "title": title,
        "question": question,
        "submit_label": submit_label,
        "form": form,
        "next": next_url(request, fallback),
        "cancel_url": cancel_url or next_url(request, fallback),
    }
    return TemplateResponse(request, "admin/common/confirm_action.html", context)
