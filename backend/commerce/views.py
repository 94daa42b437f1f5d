import logging

from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.filters import SearchFilter, OrderingFilter
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend

from common.mixins import UUID_RE, TenantContextMixin, TenantScopedModelViewSet, AuditedActionsMixin
from common.permissions import ReadPublicWriteAuth
from common.uploads import save_tenant_image
from platformapp.permissions import can_manage_tenant, resolve_managed_tenant
from platformapp.services.audit import log_event

from . import services
from .models import Product, Order
from .serializers import (
    ProductSerializer, CreateOrderSerializer, OrderSerializer, OrderStatusSerializer,
)

logger = logging.getLogger(__name__)


class ProductViewSet(AuditedActionsMixin, TenantScopedModelViewSet):
    """
    Public browse of a tenant's active catalog (`?tenant=<id>`); owners see
    everything and may write. DELETE only deactivates.
    """
    permission_classes = [ReadPublicWriteAuth]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_fields = {"category": ["exact"], "active": ["exact"], "currency": ["exact"]}
    search_fields = ["name", "description", "category"]
    ordering_fields = ["display_order", "created_at", "price", "name"]
    ordering = ("display_order", "created_at")

    allow_public_list = True
    public_filters = {"active": True}

    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    lookup_value_regex = UUID_RE

    def perform_destroy(self, instance):
        instance.active = False
        instance.save(update_fields=["active", "updated_at"])
        self._audit("deactivate", instance, meta={"path": self.request.path})

    @action(detail=False, methods=["POST"], url_path="upload-image",
            parser_classes=[MultiPartParser, FormParser], permission_classes=[IsAuthenticated])
    def upload_image(self, request):
        tenant = resolve_managed_tenant(request)
        url = save_tenant_image(tenant, request.FILES.get("file"))
        return Response({"url": url}, status=status.HTTP_201_CREATED)


class OrderCreateThrottle(AnonRateThrottle):
    rate = "30/minute"


class OrderCreateView(APIView):
    """
    POST /api/v1/commerce/orders/create/
    Public storefront order; prices come from the catalog, never the client.
    """
    permission_classes = [AllowAny]
    throttle_classes = [OrderCreateThrottle]

    def post(self, request):
        ser = CreateOrderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        order = services.create_order(
            tenant_slug=data["tenant"],
            customer=data["customer"],
            items=data["items"],
            payment_method=data["payment_method"],
            notes=data.get("notes", ""),
        )
        return Response(
            {"success": True, "order_id": str(order.pk), "total": str(order.total)},
            status=status.HTTP_201_CREATED,
        )


def _int_param(request, name, default, minimum=0, maximum=None):
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({name: ["Must be an integer."]})
    if value < minimum or (maximum is not None and value > maximum):
        raise ValidationError({name: [f"Out of range ({minimum}..{maximum or ''})."]})
    return value


class OrderViewSet(TenantContextMixin, viewsets.GenericViewSet):
    """
    Dashboard order book for the tenant owner.

    GET   /orders/?status=&date_from=&date_to=&limit=&offset=
    GET   /orders/<id>/
    PATCH /orders/<id>/status/  {"status": "preparing"}
    """
    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    queryset = Order.objects.select_related("customer", "tenant")
    lookup_value_regex = UUID_RE

    def get_object(self):
        order = get_object_or_404(self.get_queryset(), pk=self.kwargs["pk"])
        if not can_manage_tenant(self.request.user, order.tenant):
            raise PermissionDenied("You do not own this order")
        return order

    def list(self, request):
        result = services.list_orders(
            self.tenant,
            status=request.query_params.get("status") or None,
            date_from=request.query_params.get("date_from") or None,
            date_to=request.query_params.get("date_to") or None,
            limit=_int_param(request, "limit", 50, minimum=1, maximum=200),
            offset=_int_param(request, "offset", 0),
        )
        result["orders"] = OrderSerializer(result["orders"], many=True).data
        return Response(result)

    def retrieve(self, request, pk=None):
        return Response(OrderSerializer(self.get_object()).data)

    @action(detail=True, methods=["PATCH"], url_path="status")
    def set_status(self, request, pk=None):
        order = self.get_object()
        ser = OrderStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        previous = order.status
        services.update_status(order, ser.validated_data["status"])
        log_event(tenant=order.tenant, user_id=str(request.user.id), action="order.status",
                  entity="commerce.Order", entity_id=str(order.pk),
                  meta={"from": previous, "to": order.status})
        return Response(OrderSerializer(order).data)
