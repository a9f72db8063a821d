from django.contrib import admin

from .forms import SettingAdminForm
from .models import Setting


class VisibleGroupFilter(admin.SimpleListFilter):
    title = "group"
    parameter_name = "group"

    def lookups(self, request, model_admin):
        groups = (
            Setting.objects.filter(is_visible=True)
            .order_by("group")
            .values_list("group", flat=True)
            .distinct()
        )
        return [(group, group) for group in groups]

    def queryset(self, request, queryset):
        if self.value():
            return queryset.filter(group=self.value())
        return queryset


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    form = SettingAdminForm
    list_display = ("id", "group", "name", "key", "short_value", "created_at", "updated_at")
    list_filter = (VisibleGroupFilter,)
    search_fields = ("group", "name", "key", "value")
    ordering = ("group", "key")

    def get_queryset(self, request):
        # Invisible settings are managed by code only
        return super().get_queryset(request).filter(is_visible=True)

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Value")
    def short_value(self, obj):
        value = obj.value or ""
        return value if len(value) <= 50 else f"{value[:50]}..."

    def navigation_badge(self, request):
        return Setting.objects.filter(is_visible=True).count()
