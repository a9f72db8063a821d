import logging

from django.contrib import admin, messages
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.db.models import OuterRef, Subquery
from django.http import Http404
from django.shortcuts import redirect
from django.template.response import TemplateResponse
from django.urls import path, reverse
from django.utils.html import format_html

from appsettings.models import Setting
from common.admin_helpers import badge, money, next_url, render_confirmation, user_link

from .forms import RefundForm, SubscriptionForm
from .models import Transaction, TransactionStatus
from .refunds import refund_transaction
from .stripe_gateway import StripeGatewayError
from .subscription import load_subscription, update_subscription

logger = logging.getLogger(__name__)


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Transactions are written by the payment flow; the back-office only reads and refunds."""

    list_display = (
        "id",
        "uuid",
        "subscription_id",
        "user_email",
        "price_display",
        "credit_card",
        "status_badge",
        "created_at",
        "updated_at",
    )
    list_filter = ("user", "status")
    search_fields = ("subscription_id", "user__email", "credit_card")
    list_select_related = ("user",)
    fields = (
        "uuid",
        "user",
        "subscription_id",
        "price",
        "credit_card",
        "status",
        "refund_reason",
        "hosted_invoice_url",
        "created_at",
        "updated_at",
    )
    readonly_fields = fields

    def get_queryset(self, request):
        latest = Transaction.objects.filter(user_id=OuterRef("user_id")).order_by("-id").values("id")[:1]
        return super().get_queryset(request).annotate(_latest_id=Subquery(latest))

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def has_refund_permission(self, request):
        return request.user.has_perm("billing.change_transaction")

    def get_list_display(self, request):
        may_refund = self.has_refund_permission(request)

        @admin.display(description="Actions")
        def row_actions(obj):
            if not (may_refund and self.is_refundable(obj)):
                return ""
            url = reverse("admin:billing_transaction_refund", args=[obj.pk])
            return format_html('<a class="button" href="{}">Refund</a>', url)

        return tuple(self.list_display) + (row_actions,)

    def get_urls(self):
        urls = super().get_urls()
        custom = [
            path("subscription/", self.admin_site.admin_view(self.subscription_view), name="billing_subscription"),
            path("<path:object_id>/refund/", self.admin_site.admin_view(self.refund_view), name="billing_transaction_refund"),
        ]
        return custom + urls

    @staticmethod
    def is_refundable(obj):
        latest_id = getattr(obj, "_latest_id", None)
        if latest_id is None:
            return obj.can_be_refunded()
        return obj.status != TransactionStatus.REFUNDED and latest_id == obj.pk

    @admin.display(description="User", ordering="user__email")
    def user_email(self, obj):
        return user_link(obj.user)

    @admin.display(description="Price", ordering="price")
    def price_display(self, obj):
        return money(obj.price)

    @admin.display(description="Status", ordering="status")
    def status_badge(self, obj):
        tone = "success" if obj.status == TransactionStatus.SUCCESSFUL else "info"
        return badge(obj.status.upper(), tone)

    def refund_view(self, request, object_id):
        if not self.has_refund_permission(request):
            raise PermissionDenied
        obj = self.get_object(request, object_id)
        if obj is None:
            raise Http404("Transaction not found.")
        if not self.is_refundable(obj):
            raise PermissionDenied

        form = RefundForm(request.POST if request.method == "POST" else None)
        if request.method == "POST" and form.is_valid():
            if refund_transaction(obj, form.cleaned_data["refund_reason"]):
                self.message_user(request, "Transaction has been refunded successfully!", messages.SUCCESS)
            else:
                self.message_user(request, "An error occurred during the refund process!", messages.ERROR)
            return redirect(next_url(request, reverse("admin:billing_transaction_changelist")))

        return render_confirmation(
            self, request, obj,
            title=f"Refund transaction: {obj.subscription_id}",
            question="Are you sure you want to REFUND this transaction?",
            submit_label="Refund",
            form=form,
        )

    def subscription_view(self, request):
        if not request.user.has_perm("billing.page_subscription"):
            raise PermissionDenied

        if request.method == "POST":
            form = SubscriptionForm(request.POST)
            if form.is_valid():
                try:
                    update_subscription(**form.cleaned_data)
                except (StripeGatewayError, Setting.DoesNotExist, DatabaseError) as exc:
                    logger.exception("Subscription update failed")
                    self.message_user(request, f"Subscription update failed. {exc}", messages.ERROR)
                else:
                    self.message_user(request, "Your subscription properties has been updated.", messages.SUCCESS)
                    return redirect("admin:billing_subscription")
        else:
            try:
                initial = load_subscription()
            except (StripeGatewayError, Setting.DoesNotExist) as exc:
                logger.error("Subscription could not be loaded: %s", exc)
                self.message_user(request, f"Subscription could not be loaded. {exc}", messages.ERROR)
                initial = {}
            form = SubscriptionForm(initial=initial)

        context = {
            **self.admin_site.each_context(request),
            "opts": self.model._meta,
            "title": "Subscription",
            "form": form,
        }
        return TemplateResponse(request, "admin/billing/subscription.html", context)

    def navigation_badge(self, request):
        return Transaction.objects.count()
