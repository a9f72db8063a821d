"""
IP allow-listing for the back-office admin.

Only requests under ``settings.ADMIN_URL_PATH`` are checked, against the
addresses in ``settings.ADMIN_ALLOWED_IPS``. An empty list refuses every
admin request. With DEBUG on, the loopback addresses are added to whatever
the list holds.
"""
import logging

from django.conf import settings
from django.http import HttpResponseForbidden
from django.utils.html import format_html

logger = logging.getLogger(__name__)

LOOPBACK = ("127.0.0.1", "::1", "localhost")


def get_client_ip(request):
    """First hop of X-Forwarded-For, else REMOTE_ADDR."""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "")


def allowed_admin_ips():
    ips = {ip for ip in getattr(settings, "ADMIN_ALLOWED_IPS", []) if ip}
    if settings.DEBUG:
        ips.update(LOOPBACK)
    return frozenset(ips)


class AdminIPAllowlistMiddleware:
    """Answer 403 to back-office requests from addresses outside the allow-list."""

    def __init__(self, get_response):
        self.get_response = get_response
        self.prefix = "/" + settings.ADMIN_URL_PATH.strip("/") + "/"
        self.allowed = allowed_admin_ips()

    def __call__(self, request):
        if request.path.startswith(self.prefix):
            client_ip = get_client_ip(request)
            if client_ip not in self.allowed:
                return self.refuse(request, client_ip)
        return self.get_response(request)

    def refuse(self, request, client_ip):
        if not self.allowed:
            logger.warning("Back-office request to %s refused: ADMIN_ALLOWED_IPS is empty", request.path)
            return HttpResponseForbidden(
                "<h1>Access Denied</h1><p>The back-office has no allowed addresses configured.</p>"
            )
        logger.warning("Back-office request to %s refused for %s", request.path, client_ip)
        return HttpResponseForbidden(format_html(
            "<h1>Access Denied</h1><p>Your IP address ({}) may not open the back-office.</p>", client_ip
        ))
