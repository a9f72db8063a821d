import json
import logging

from django.contrib import admin, messages
from django.contrib.auth import get_user_model, update_session_auth_hash
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.contrib.auth.models import Group
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError, transaction
from django.db.models import Count
from django.http import Http404, HttpResponseRedirect, JsonResponse
from django.shortcuts import redirect
from django.template.response import TemplateResponse
from django.urls import path, reverse
from django.utils.html import format_html, format_html_join
from django.views.decorators.http import require_POST

from billing.models import Transaction, TransactionStatus
from common.admin_helpers import badge, money, next_url, render_confirmation

from .forms import ProfileForm, RoleAdminForm, UserAdminForm, UserCreationAdminForm, field_name
from .models import SubscriptionStatus, UserStatus
from .permission_matrix import SELECT_ALL, PermissionMatrix, build_layout, permissions_for
from .roles import UserRole, is_super_admin, role_of
from .tasks import send_verification_email

logger = logging.getLogger(__name__)

User = get_user_model()

ROLE_TONES = {
    UserRole.SUPER_ADMIN: "danger",
    UserRole.MANAGER: "info",
    UserRole.CLIENT: "gray",
}
STATUS_TONES = {
    UserStatus.ACTIVE: "success",
    UserStatus.BANNED: "danger",
}
SUBSCRIPTION_TONES = {
    SubscriptionStatus.ACTIVE: "success",
    SubscriptionStatus.CANCELED: "warning",
    SubscriptionStatus.ENDED: "danger",
}


def role_badge(role):
    if not role:
        return "-"
    return badge(role.upper(), ROLE_TONES.get(role, "info"))


def status_badge(status):
    return badge(status.upper(), STATUS_TONES.get(status, "gray"))


def subscription_badge(status):
    if not status:
        return "-"
    return badge(status.upper(), SUBSCRIPTION_TONES.get(status, "gray"))


def can_ban(actor, user) -> bool:
    """Ban is offered for anyone but yourself, super-admins and already banned users."""
    return actor.pk != user.pk and not is_super_admin(user) and not user.profile.is_banned


def can_unban(actor, user) -> bool:
    return actor.pk != user.pk and not is_super_admin(user) and user.profile.is_banned


class TrashedFilter(admin.SimpleListFilter):
    """Deleted users are hidden unless asked for."""

    title = "deleted users"
    parameter_name = "trashed"

    def lookups(self, request, model_admin):
        return (("with", "With deleted users"), ("only", "Only deleted users"))

    def queryset(self, request, queryset):
        if self.value() == "with":
            return queryset
        if self.value() == "only":
            return queryset.filter(profile__deleted_at__isnull=False)
        return queryset.filter(profile__deleted_at__isnull=True)


class EmailVerifiedFilter(admin.SimpleListFilter):
    title = "email"
    parameter_name = "email_verified"

    def lookups(self, request, model_admin):
        return (("yes", "Verified email"), ("no", "Unverified email"))

    def queryset(self, request, queryset):
        if self.value() == "yes":
            return queryset.filter(profile__email_verified_at__isnull=False)
        if self.value() == "no":
            return queryset.filter(profile__email_verified_at__isnull=True)
        return queryset


class RoleFilter(admin.SimpleListFilter):
    title = "role"
    parameter_name = "role"

    def lookups(self, request, model_admin):
        names = Group.objects.exclude(name=UserRole.SUPER_ADMIN).order_by("name").values_list("name", flat=True)
        return [(name, name.replace("_", " ").capitalize()) for name in names]

    def queryset(self, request, queryset):
        if self.value():
            return queryset.filter(groups__name=self.value())
        return queryset


class UserTransactionInline(admin.TabularInline):
    """The user's transactions, read-only, with a refund link on the refundable one."""

    model = Transaction
    extra = 0
    can_delete = False
    show_change_link = True
    fields = ("subscription_id", "price_display", "credit_card", "status_display", "created_at", "refund_link")
    readonly_fields = fields
    ordering = ("-id",)

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    @admin.display(description="Price")
    def price_display(self, obj):
        return money(obj.price)

    @admin.display(description="Status")
    def status_display(self, obj):
        tone = "success" if obj.status == TransactionStatus.SUCCESSFUL else "info"
        return badge(obj.status.upper(), tone)

    @admin.display(description="")
    def refund_link(self, obj):
        if not obj.can_be_refunded():
            return ""
        url = reverse("admin:billing_transaction_refund", args=[obj.pk])
        back = reverse("admin:auth_user_details", args=[obj.user_id])
        return format_html('<a class="button" href="{}?next={}">Refund</a>', url, back)


try:
    admin.site.unregister(User)
except admin.sites.NotRegistered:
    pass


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    form = UserAdminForm
    add_form = UserCreationAdminForm
    add_form_template = None
    fieldsets = (
        ("Details", {
            "fields": (
                ("first_name", "last_name"),
                "email",
                "status",
                ("password", "password_confirmation"),
                "avatar",
                "role",
            ),
        }),
    )
    add_fieldsets = fieldsets
    list_display = (
        "id",
        "avatar_thumb",
        "first_name",
        "last_name",
        "email",
        "email_verified_at",
        "role_display",
        "subscription_display",
        "status_display",
        "date_joined",
    )
    list_display_links = ("id", "email")
    list_filter = (TrashedFilter, EmailVerifiedFilter, RoleFilter, "profile__status")
    actions = ("restore_users",)
    search_fields = ("first_name", "last_name", "email")
    ordering = ("-date_joined",)
    filter_horizontal = ()
    list_select_related = ("profile",)
    inlines = [UserTransactionInline]

    def get_queryset(self, request):
        # Super-admins are never managed from this resource
        return (
            super().get_queryset(request)
            .filter(groups__isnull=False)
            .exclude(groups__name=UserRole.SUPER_ADMIN)
            .exclude(is_superuser=True)
            .prefetch_related("groups")
            .distinct()
        )

    def get_inlines(self, request, obj):
        # A new user has no transactions yet
        return self.inlines if obj is not None else []

    def get_list_display(self, request):
        actor = request.user

        @admin.display(description="Actions")
        def row_actions(obj):
            return self.row_actions_html(actor, obj)

        return tuple(self.list_display) + (row_actions,)

    def get_urls(self):
        urls = super().get_urls()
        custom = [
            path("profile/", self.admin_site.admin_view(self.profile_view), name="accounts_profile"),
            path("<path:object_id>/details/", self.admin_site.admin_view(self.details_view), name="auth_user_details"),
            path("<path:object_id>/ban/", self.admin_site.admin_view(self.ban_view), name="auth_user_ban"),
            path("<path:object_id>/unban/", self.admin_site.admin_view(self.unban_view), name="auth_user_unban"),
        ]
        return custom + urls

    # --- list columns ---

    @admin.display(description="Avatar")
    def avatar_thumb(self, obj):
        if not obj.profile.avatar:
            return "-"
        return format_html(
            '<img src="{}" style="width:48px;height:48px;border-radius:50%;object-fit:cover;" alt="avatar"/>',
            obj.profile.avatar.url,
        )

    @admin.display(description="Email verified at", ordering="profile__email_verified_at")
    def email_verified_at(self, obj):
        return obj.profile.email_verified_at

    @admin.display(description="Role")
    def role_display(self, obj):
        return role_badge(role_of(obj))

    @admin.display(description="Subscription", ordering="profile__subscription_status")
    def subscription_display(self, obj):
        return subscription_badge(obj.profile.subscription_status)

    @admin.display(description="Status", ordering="profile__status")
    def status_display(self, obj):
        if obj.profile.is_trashed:
            return badge("DELETED", "gray")
        return status_badge(obj.profile.status)

    def row_actions_html(self, actor, obj):
        links = [(reverse("admin:auth_user_details", args=[obj.pk]), "View")]
        if can_ban(actor, obj):
            links.append((reverse("admin:auth_user_ban", args=[obj.pk]), "Ban"))
        if can_unban(actor, obj):
            links.append((reverse("admin:auth_user_unban", args=[obj.pk]), "Unban"))
        return format_html_join(" ", '<a class="button" href="{}">{}</a>', links)

    # --- create / edit ---

    def has_change_permission(self, request, obj=None):
        if obj is not None and obj.pk == request.user.pk:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.pk == request.user.pk:
            return False
        return super().has_delete_permission(request, obj)

    def change_view(self, request, object_id, form_url="", extra_context=None):
        if str(request.user.pk) == str(object_id):
            raise PermissionDenied
        return super().change_view(request, object_id, form_url, extra_context)

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if not change:
            logger.info("User %s created by %s", obj.email, request.user.pk)

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        if not change:
            user_id = form.instance.pk
            # Queue once the user row is committed
            transaction.on_commit(lambda: send_verification_email.delay(user_id))

    def _redirect_to_details(self, request, obj, response):
        if "_continue" in request.POST or "_addanother" in request.POST or "_popup" in request.POST:
            return response
        return HttpResponseRedirect(reverse("admin:auth_user_details", args=[obj.pk]))

    def response_add(self, request, obj, post_url_continue=None):
        response = admin.ModelAdmin.response_add(self, request, obj, post_url_continue)
        return self._redirect_to_details(request, obj, response)

    def response_change(self, request, obj):
        response = super().response_change(request, obj)
        return self._redirect_to_details(request, obj, response)

    # --- soft delete ---

    def delete_model(self, request, obj):
        obj.profile.trash()
        logger.info("User %s deleted by %s", obj.email, request.user.pk)

    def delete_queryset(self, request, queryset):
        for user in queryset.select_related("profile"):
            self.delete_model(request, user)

    @admin.action(description="Restore selected users", permissions=["change"])
    def restore_users(self, request, queryset):
        restored = 0
        for user in queryset.select_related("profile").filter(profile__deleted_at__isnull=False):
            user.profile.restore()
            restored += 1
        self.message_user(request, f"{restored} user(s) restored.", messages.SUCCESS)

    # --- custom screens ---

    def _get_managed_user(self, request, object_id):
        obj = self.get_object(request, object_id)
        if obj is None:
            raise Http404("User not found.")
        return obj

    def details_view(self, request, object_id):
        if not self.has_view_or_change_permission(request):
            raise PermissionDenied
        user = self._get_managed_user(request, object_id)
        profile = user.profile
        subscribed = profile.subscribed()
        canceled = profile.subscription_status == SubscriptionStatus.CANCELED
        context = {
            **self.admin_site.each_context(request),
            "opts": self.model._meta,
            "title": user.email,
            "subject": user,
            "profile": profile,
            "role": role_badge(role_of(user)),
            "status": status_badge(profile.status),
            "subscription": subscription_badge(profile.subscription_status),
            "show_ends_at": subscribed and canceled,
            "show_bills_at": subscribed and not canceled,
            "can_edit": user.pk != request.user.pk and self.has_change_permission(request, user),
            "can_ban": self.has_change_permission(request) and can_ban(request.user, user),
            "can_unban": self.has_change_permission(request) and can_unban(request.user, user),
            "transactions": user.transactions.order_by("-id"),
        }
        return TemplateResponse(request, "admin/auth/user/details.html", context)

    def _toggle_ban(self, request, object_id, *, ban):
        if not self.has_change_permission(request):
            raise PermissionDenied
        user = self._get_managed_user(request, object_id)
        allowed = can_ban(request.user, user) if ban else can_unban(request.user, user)
        if not allowed:
            raise PermissionDenied
        if request.method == "POST":
            user.profile.set_status(UserStatus.BANNED if ban else UserStatus.ACTIVE)
            logger.info("User %s %s by %s", user.email, "banned" if ban else "unbanned", request.user.pk)
            self.message_user(
                request, f"{user.email} has been {'banned' if ban else 'unbanned'}.", messages.SUCCESS
            )
            return redirect(next_url(request, reverse("admin:auth_user_changelist")))
        return render_confirmation(
            self, request, user,
            title=f"{'Blocking' if ban else 'Unblocking'} {user.email}",
            question=f"Are you sure you want to {'BAN' if ban else 'UNBAN'} this user?",
            submit_label="Ban" if ban else "Unban",
        )

    def ban_view(self, request, object_id):
        return self._toggle_ban(request, object_id, ban=True)

    def unban_view(self, request, object_id):
        return self._toggle_ban(request, object_id, ban=False)

    def profile_view(self, request):
        if not request.user.has_perm("accounts.page_profile"):
            raise PermissionDenied
        if request.method == "POST":
            form = ProfileForm(request.user, request.POST, request.FILES)
            if form.is_valid():
                try:
                    password_changed = form.save()
                except (DatabaseError, OSError) as exc:
                    logger.exception("Profile update failed for user %s", request.user.pk)
                    self.message_user(request, f"Your profile could not be updated: {exc}", messages.ERROR)
                else:
                    if password_changed:
                        update_session_auth_hash(request, request.user)
                    self.message_user(request, "Your profile has been updated.", messages.SUCCESS)
                    return redirect("admin:accounts_profile")
        else:
            form = ProfileForm(request.user)
        context = {
            **self.admin_site.each_context(request),
            "opts": self.model._meta,
            "title": "Profile",
            "form": form,
        }
        return TemplateResponse(request, "admin/accounts/profile.html", context)

    def navigation_badge(self, request):
        return User.objects.count()


admin.site.unregister(Group)


@admin.register(Group)
class RoleAdmin(admin.ModelAdmin):
    """Roles with the permission matrix instead of the raw permission list."""

    form = RoleAdminForm
    list_display = ("name", "permissions_count", "users_count")
    search_fields = ("name",)
    ordering = ("name",)

    class Media:
        js = ("accounts/js/permission_matrix.js",)
        css = {"all": ("accounts/css/permission_matrix.css",)}

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            _permissions_count=Count("permissions", distinct=True),
            _users_count=Count("user", distinct=True),
        )

    @admin.display(description="Permissions", ordering="_permissions_count")
    def permissions_count(self, obj):
        return badge(obj._permissions_count, "info")

    @admin.display(description="Users", ordering="_users_count")
    def users_count(self, obj):
        return badge(obj._users_count, "gray")

    def get_fieldsets(self, request, obj=None):
        layout = build_layout(self.admin_site)
        fieldsets = [(None, {"fields": ["name", SELECT_ALL]})]
        for resource in layout.resources:
            fieldsets.append((resource.label, {
                "fields": [field_name(resource.key), tuple(field_name(k) for k in resource.permissions)],
                "classes": ["matrix-resource"],
            }))
        for title, entities in (("Pages", layout.pages), ("Widgets", layout.widgets), ("Custom permissions", layout.custom)):
            if entities:
                fieldsets.append((title, {"fields": [field_name(e.key) for e in entities]}))
        return fieldsets

    def get_form(self, request, obj=None, **kwargs):
        # Matrix checkboxes are added by the form itself
        kwargs["fields"] = ("name",)
        form = super().get_form(request, obj, **kwargs)
        form.layout = build_layout(self.admin_site)
        return form

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        form.instance.permissions.set(permissions_for(form.granted_permissions()))

    def get_urls(self):
        urls = super().get_urls()
        custom = [
            path("matrix/sync/", self.admin_site.admin_view(require_POST(self.matrix_sync_view)), name="auth_group_matrix_sync"),
        ]
        return custom + urls

    def matrix_sync_view(self, request):
        """Apply one checkbox change to the posted matrix state.

        Body: {"state": {"<key>": bool, ...}, "key": "<key>", "value": bool}
        Response: {"state": {...}}
        """
        if not (self.has_add_permission(request) or self.has_change_permission(request)):
            raise PermissionDenied
        try:
            payload = json.loads(request.body or b"{}")
            matrix = PermissionMatrix(build_layout(self.admin_site), payload.get("state") or {})
            state = matrix.apply(payload["key"], payload.get("value", False))
        except (ValueError, KeyError, AttributeError):
            return JsonResponse({"detail": "Invalid matrix event."}, status=400)
        return JsonResponse({"state": state})
