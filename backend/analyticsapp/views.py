import csv

from django.http import HttpResponse
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.mixins import TenantContextMixin

from . import services


class DashboardView(TenantContextMixin, APIView):
    """GET /api/v1/analytics/dashboard/?date_from=YYYY-MM-DD&date_to=YYYY-MM-DD"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = request.query_params
        return Response(services.dashboard(self.tenant, params.get("date_from"), params.get("date_to")))


class ExportView(TenantContextMixin, APIView):
    """GET /api/v1/analytics/export/?type=products|categories|payments&date_from=&date_to="""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = request.query_params
        kind = params.get("type") or ""
        header, rows, start, end = services.export_rows(
            self.tenant, kind, params.get("date_from"), params.get("date_to"),
        )
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="analytics-{kind}-{start}-{end}.csv"'
        writer = csv.DictWriter(response, fieldnames=header, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
        return response
