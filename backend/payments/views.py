import json
import logging

from django.conf import settings
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from common.mixins import TenantContextMixin

from . import services
from .models import ProviderEvent
from .serializers import CheckoutSerializer, ProviderEventSerializer
from .tasks import sync_payment_status

logger = logging.getLogger(__name__)


class CheckoutThrottle(AnonRateThrottle):
    rate = "30/minute"


class CheckoutView(APIView):
    """
    POST /api/v1/payments/checkout/
    cash        -> {success, order_id, total}
    mercadopago -> {success, order_id, total, preference_id, init_point}
    """
    permission_classes = [AllowAny]
    throttle_classes = [CheckoutThrottle]

    def post(self, request):
        ser = CheckoutSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        locale = data.get("locale")
        if locale not in settings.STOREFRONT_LOCALES:
            locale = settings.DEFAULT_LOCALE

        customer = data["customer"]
        result = services.checkout(
            tenant_slug=data["tenant"],
            customer=customer,
            items=data["items"],
            payment_method=data["payment_method"],
            notes=data.get("notes") or customer.get("notes", ""),
            locale=locale,
        )
        return Response(result, status=status.HTTP_201_CREATED)


class MercadoPagoWebhookView(APIView):
    """
    POST /api/v1/payments/webhooks/mercadopago/

    Signed with `x-signature: ts=<ts>,v1=<hex>` over `{ts}.{x-request-id}.{raw body}`.
    Verified notifications are logged; payment notifications are reconciled
    by `sync_payment_status`.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = []

    def post(self, request):
        body = request.body  # read before any parsing; the signature covers the raw bytes
        header = request.headers.get("x-signature")
        if not header:
            return Response({"detail": "Missing signature"}, status=status.HTTP_400_BAD_REQUEST)

        secret = settings.MERCADOPAGO_WEBHOOK_SECRET
        if not secret:
            logger.error("MercadoPago webhook received but MERCADOPAGO_WEBHOOK_SECRET is not set")
            return Response({"detail": "Webhook not configured"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        parsed = services.parse_signature(header)
        request_id = request.headers.get("x-request-id", "")
        if parsed is None or not services.verify_signature(secret, parsed[0], request_id, body, parsed[1]):
            logger.warning("MercadoPago webhook rejected: bad signature (request id %s)", request_id)
            return Response({"detail": "Invalid signature"}, status=status.HTTP_403_FORBIDDEN)

        try:
            payload = json.loads(body.decode() or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            return Response({"detail": "Invalid JSON body"}, status=status.HTTP_400_BAD_REQUEST)
        if not isinstance(payload, dict):
            return Response({"detail": "Invalid JSON body"}, status=status.HTTP_400_BAD_REQUEST)

        event_type = str(payload.get("type") or request.query_params.get("type") or payload.get("action") or "unknown")
        data_id = (payload.get("data") or {}).get("id") or request.query_params.get("data.id")

        if event_type == "payment" and not data_id:
            return Response({"detail": "Missing payment id"}, status=status.HTTP_400_BAD_REQUEST)

        event = ProviderEvent.objects.create(
            provider="mercadopago",
            event_type=event_type,
            resource_id=str(data_id) if data_id else None,
            payload=payload,
            signature=header[:200],
        )
        if event_type == "payment":
            sync_payment_status.delay(str(data_id), str(event.pk))
        return Response({"ok": True})


class ProviderEventViewSet(TenantContextMixin, viewsets.ReadOnlyModelViewSet):
    """Webhook notifications matched to the tenant in context."""
    permission_classes = [IsAuthenticated]
    serializer_class = ProviderEventSerializer

    def get_queryset(self):
        return ProviderEvent.objects.filter(tenant=self.tenant).order_by("-created_at")
