from django.contrib import admin
from django.urls import NoReverseMatch, reverse

from .widgets import (
    CHART_BUILDERS,
    DEFAULT_FILTER,
    FILTERS,
    STATS_OVERVIEW,
    stats_overview,
    visible_widgets,
)

# Standalone admin pages: (label, url name, permission)
PAGES = (
    ("Profile", "admin:accounts_profile", "accounts.page_profile"),
    ("Subscription", "admin:billing_subscription", "billing.page_subscription"),
)


class BackOfficeAdminSite(admin.AdminSite):
    site_header = "Quiz Packs back-office"
    site_title = "Quiz Packs"
    index_title = "Dashboard"
    index_template = "admin/dashboard_index.html"

    def get_app_list(self, request, app_label=None):
        app_list = super().get_app_list(request, app_label)
        for app in app_list:
            for entry in app["models"]:
                model_admin = self._registry.get(entry.get("model"))
                badge = getattr(model_admin, "navigation_badge", None)
                entry["badge"] = badge(request) if badge else None
        if app_label is None:
            pages = self.get_pages(request)
            if pages:
                app_list.append({
                    "name": "Pages",
                    "app_label": "pages",
                    "app_url": "",
                    "has_module_perms": True,
                    "models": pages,
                })
        return app_list

    def get_pages(self, request):
        pages = []
        for label, url_name, permission in PAGES:
            if not request.user.has_perm(permission):
                continue
            try:
                url = reverse(url_name, current_app=self.name)
            except NoReverseMatch:
                continue
            pages.append({
                "name": label,
                "object_name": label,
                "admin_url": url,
                "add_url": None,
                "view_only": True,
                "perms": {"view": True},
                "badge": None,
            })
        return pages

    def index(self, request, extra_context=None):
        widgets = {widget.name: widget for widget in visible_widgets(request.user)}
        charts = [
            {
                "name": name,
                "url": reverse("dashboard:chart", args=[name]),
                "initial": build(DEFAULT_FILTER),
            }
            for name, build in CHART_BUILDERS.items()
            if name in widgets
        ]
        context = {
            "stats": stats_overview() if STATS_OVERVIEW.name in widgets else None,
            "charts": charts,
            "chart_filters": FILTERS,
            "default_filter": DEFAULT_FILTER,
            **(extra_context or {}),
        }
        return super().index(request, context)
