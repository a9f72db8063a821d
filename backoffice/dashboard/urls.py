from django.urls import path

from .views import ChartView, StatsOverviewView

app_name = "dashboard"

urlpatterns = [
    path("stats/", StatsOverviewView.as_view(), name="stats"),
    path("charts/<str:chart>/", ChartView.as_view(), name="chart"),
]
