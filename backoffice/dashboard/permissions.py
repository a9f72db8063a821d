from rest_framework.permissions import BasePermission


class HasWidgetPermission(BasePermission):
    """Require the permission of the widget the view serves.

    Views expose it through ``get_widget_permission()``; ``None`` lets the
    view itself decide (e.g. answer 404 for an unknown widget).
    """

    message = "You are not allowed to see this widget."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated or not user.is_staff:
            return False
        permission = view.get_widget_permission()
        if permission is None:
            return True
        return user.has_perm(permission)
