import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.mixins import UUID_RE, TenantContextMixin
from platformapp.services.audit import log_event

from . import services
from .models import ArtworkConsignment, ConsignmentLocation
from .serializers import (
    ArtworkConsignmentSerializer, AssignArtworkSerializer, ConsignmentLocationSerializer,
    UpdateAssignmentSerializer,
)

logger = logging.getLogger(__name__)


class LocationPagination(PageNumberPagination):
    page_size = 25
    page_size_query_param = "per_page"
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response({
            "items": data,
            "total": self.page.paginator.count,
            "page": self.page.number,
            "per_page": self.page.paginator.per_page,
            "has_next": self.page.has_next(),
        })


class ConsignmentLocationViewSet(TenantContextMixin, viewsets.ModelViewSet):
    """
    Locations of the tenant in context (owner or superadmin).

    GET    /locations/?search=&city=&status=&page=&per_page=
    DELETE /locations/<id>/           archives, rows are kept
    GET    /locations/<id>/artworks/  assignments at the location
    POST   /locations/<id>/artworks/  {"work_id", "status"?, "notes"?}
    PATCH  /locations/<id>/artworks/<work_id>/
    DELETE /locations/<id>/artworks/<work_id>/
    """
    permission_classes = [IsAuthenticated]
    serializer_class = ConsignmentLocationSerializer
    pagination_class = LocationPagination
    lookup_value_regex = UUID_RE
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        qs = ConsignmentLocation.objects.filter(tenant=self.tenant)
        if self.action != "list":
            # detail routes and the artworks actions read their own `status`
            return qs
        params = self.request.query_params
        if params.get("search"):
            qs = qs.filter(name__icontains=params["search"])
        if params.get("city"):
            qs = qs.filter(city__iexact=params["city"])
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        return qs.order_by("name", "created_at")

    def _audit(self, action_name, entity_id, meta=None):
        log_event(tenant=self.tenant, user_id=str(self.request.user.id), action=action_name,
                  entity="consignments.ConsignmentLocation", entity_id=str(entity_id), meta=meta or {})

    def perform_create(self, serializer):
        loc = serializer.save(tenant=self.tenant)
        self._audit("consignment.location.create", loc.pk, {"name": loc.name})

    def perform_update(self, serializer):
        loc = serializer.save()
        self._audit("consignment.location.update", loc.pk, {"fields": sorted(self.request.data.keys())})

    def destroy(self, request, *args, **kwargs):
        loc = self.get_object()
        loc.status = ConsignmentLocation.Status.ARCHIVED
        loc.save(update_fields=["status", "updated_at"])
        self._audit("consignment.location.archive", loc.pk)
        return Response(self.get_serializer(loc).data)

    # ---- assignments ----
    @action(detail=True, methods=["GET", "POST"], url_path="artworks")
    def artworks(self, request, pk=None):
        location = self.get_object()
        if request.method == "GET":
            rows = (ArtworkConsignment.objects.filter(location=location)
                    .select_related("work", "location").order_by("-assigned_date"))
            status_filter = request.query_params.get("status")
            if status_filter:
                rows = rows.filter(status=status_filter)
            return Response({"items": ArtworkConsignmentSerializer(rows, many=True).data})

        ser = AssignArtworkSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        assignment = services.assign_work(self.tenant, location, **ser.validated_data)
        log_event(tenant=self.tenant, user_id=str(request.user.id), action="consignment.assign",
                  entity="consignments.ArtworkConsignment", entity_id=str(assignment.pk),
                  meta={"work_id": str(assignment.work_id), "location_id": str(location.pk)})
        return Response(ArtworkConsignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["PATCH", "DELETE"], url_path=rf"artworks/(?P<work_id>{UUID_RE})")
    def artwork(self, request, pk=None, work_id=None):
        location = self.get_object()
        assignment = services.active_assignment(location, work_id)

        if request.method == "DELETE":
            services.unassign(assignment)
            log_event(tenant=self.tenant, user_id=str(request.user.id), action="consignment.unassign",
                      entity="consignments.ArtworkConsignment", entity_id=str(assignment.pk))
            return Response({"success": True, "assignment": ArtworkConsignmentSerializer(assignment).data})

        ser = UpdateAssignmentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        services.update_assignment(assignment, **ser.validated_data)
        log_event(tenant=self.tenant, user_id=str(request.user.id), action="consignment.update",
                  entity="consignments.ArtworkConsignment", entity_id=str(assignment.pk),
                  meta=dict(ser.validated_data))
        return Response(ArtworkConsignmentSerializer(assignment).data)


class ArtworkHistoryView(TenantContextMixin, APIView):
    """GET /api/v1/consignments/artworks/<work_id>/history/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, work_id):
        return Response(services.work_history(self.tenant, work_id))


class OverviewView(TenantContextMixin, APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(services.overview(self.tenant))


class AlertsView(TenantContextMixin, APIView):
    """GET /api/v1/consignments/alerts/?min_days=60"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        raw = request.query_params.get("min_days") or "60"
        try:
            min_days = int(raw)
        except ValueError:
            raise ValidationError({"min_days": ["min_days must be an integer"]})
        return Response({"items": services.stale_alerts(self.tenant, min_days)})
