from django.contrib.admin.apps import AdminConfig


class BackOfficeAdminConfig(AdminConfig):
    """Installs the dashboard-aware admin site as ``admin.site``."""

    default_site = "dashboard.sites.BackOfficeAdminSite"
