from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import HasWidgetPermission
from .serializers import ChartSerializer, StatSerializer
from .widgets import CHART_BUILDERS, CHARTS, DEFAULT_FILTER, FILTERS, STATS_OVERVIEW, stats_overview


class StatsOverviewView(APIView):
    permission_classes = [IsAuthenticated, HasWidgetPermission]

    def get_widget_permission(self):
        return STATS_OVERVIEW.permission

    def get(self, request):
        return Response({"stats": StatSerializer(stats_overview(), many=True).data})


class ChartView(APIView):
    permission_classes = [IsAuthenticated, HasWidgetPermission]

    def get_widget_permission(self):
        widget = CHARTS.get(self.kwargs.get("chart"))
        return widget.permission if widget else None

    def get(self, request, chart):
        if chart not in CHART_BUILDERS:
            raise NotFound("Unknown chart.")
        filter_name = request.query_params.get("filter") or DEFAULT_FILTER
        if filter_name not in FILTERS:
            return Response(
                {"detail": f"Unknown filter. Use one of: {', '.join(FILTERS)}."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = CHART_BUILDERS[chart](filter_name)
        return Response(ChartSerializer(data).data)
