"""
Dashboard widgets: the stats overview and the user / income trend charts.

A trend covers the current day, week, month or year and is bucketed per hour
(day), per day (week, month) or per month (year). Every bucket of the period
is present in the series, empty ones as zero.
"""
import datetime
from dataclasses import dataclass
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDay, TruncHour, TruncMonth
from django.utils import timezone

from accounts.models import SubscriptionStatus, UserProfile
from accounts.roles import UserRole
from billing.models import Transaction, TransactionStatus
from common.admin_helpers import money

FILTERS = {
    "day": "Today",
    "week": "Current week",
    "month": "Current month",
    "year": "Current year",
}
DEFAULT_FILTER = "year"

_TRUNC = {
    "day": TruncHour,
    "week": TruncDay,
    "month": TruncDay,
    "year": TruncMonth,
}
_LABEL_FORMAT = {
    "day": "%Y-%m-%d %H:00",
    "week": "%Y-%m-%d",
    "month": "%Y-%m-%d",
    "year": "%Y-%m",
}


@dataclass(frozen=True)
class Widget:
    name: str
    heading: str
    permission: str


STATS_OVERVIEW = Widget("stats", "Stats overview", "accounts.widget_stats_overview")
USER_CHART = Widget("users", "User Chart", "accounts.widget_user_chart")
INCOME_CHART = Widget("income", "Income Chart", "billing.widget_income_chart")

WIDGETS = (STATS_OVERVIEW, USER_CHART, INCOME_CHART)
CHARTS = {widget.name: widget for widget in (USER_CHART, INCOME_CHART)}


def visible_widgets(user):
    return [widget for widget in WIDGETS if user.has_perm(widget.permission)]


def _add_month(moment: datetime.datetime) -> datetime.datetime:
    if moment.month == 12:
        return moment.replace(year=moment.year + 1, month=1)
    return moment.replace(month=moment.month + 1)


def period_bounds(filter_name: str, now=None):
    """``(start, end)`` of the current period; ``end`` is exclusive."""
    if filter_name not in FILTERS:
        raise ValueError(f"Unknown filter: {filter_name}")
    now = timezone.localtime(now or timezone.now())
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if filter_name == "day":
        return today, today + datetime.timedelta(days=1)
    if filter_name == "week":
        start = today - datetime.timedelta(days=today.weekday())
        return start, start + datetime.timedelta(days=7)
    if filter_name == "month":
        start = today.replace(day=1)
        return start, _add_month(start)
    start = today.replace(month=1, day=1)
    return start, start.replace(year=start.year + 1)


def buckets(filter_name: str, start, end):
    moments = []
    current = start
    while current < end:
        moments.append(current)
        if filter_name == "day":
            current = current + datetime.timedelta(hours=1)
        elif filter_name == "year":
            current = _add_month(current)
        else:
            current = current + datetime.timedelta(days=1)
    return moments


def trend(queryset, date_field: str, filter_name: str, aggregate, now=None) -> dict:
    """Aggregate ``queryset`` per bucket of the current period."""
    start, end = period_bounds(filter_name, now)
    tzinfo = timezone.get_current_timezone()
    rows = (
        queryset.filter(**{f"{date_field}__gte": start, f"{date_field}__lt": end})
        .annotate(bucket=_TRUNC[filter_name](date_field, tzinfo=tzinfo))
        .values("bucket")
        .annotate(value=aggregate)
        .order_by("bucket")
    )
    totals = {timezone.localtime(row["bucket"], tzinfo): row["value"] for row in rows}
    moments = buckets(filter_name, start, end)
    return {
        "labels": [moment.strftime(_LABEL_FORMAT[filter_name]) for moment in moments],
        "data": [totals.get(moment) or 0 for moment in moments],
    }


def user_chart(filter_name: str = DEFAULT_FILTER, now=None) -> dict:
    series = trend(get_user_model().objects.all(), "date_joined", filter_name, Count("id"), now)
    return {"heading": USER_CHART.heading, "label": "Count", "filter": filter_name, **series}


def income_chart(filter_name: str = DEFAULT_FILTER, now=None) -> dict:
    series = trend(Transaction.objects.all(), "created_at", filter_name, Sum("price"), now)
    series["data"] = [float(value) for value in series["data"]]
    return {"heading": INCOME_CHART.heading, "label": "Income ($)", "filter": filter_name, **series}


CHART_BUILDERS = {
    USER_CHART.name: user_chart,
    INCOME_CHART.name: income_chart,
}


def total_clients() -> int:
    """Users whose only role is client."""
    other_roles = Group.objects.exclude(name=UserRole.CLIENT)
    return (
        get_user_model().objects.filter(groups__name=UserRole.CLIENT)
        .exclude(groups__in=other_roles)
        .distinct()
        .count()
    )


def total_subscribers(now=None) -> int:
    now = now or timezone.now()
    return UserProfile.objects.filter(
        Q(subscription_status=SubscriptionStatus.ACTIVE)
        | Q(subscription_status=SubscriptionStatus.CANCELED, subscription_ends_at__gt=now)
    ).count()


def total_income() -> Decimal:
    total = Transaction.objects.filter(status=TransactionStatus.SUCCESSFUL).aggregate(total=Sum("price"))["total"]
    return total or Decimal("0")


def stats_overview() -> list:
    return [
        {
            "key": "clients",
            "label": "Total clients",
            "value": total_clients(),
            "description": "Users with any roles except Super Admin",
            "tone": "success",
        },
        {
            "key": "subscribers",
            "label": "Total subscribers",
            "value": total_subscribers(),
            "description": "Based on stripe data",
            "tone": "info",
        },
        {
            "key": "income",
            "label": "Total income",
            "value": money(total_income(), "USD"),
            "description": "Based on successful transactions",
            "tone": "success",
        },
    ]
