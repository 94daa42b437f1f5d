# backend/payments/services.py
import hashlib
import hmac
import logging
import uuid
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import ValidationError

from commerce.models import Order
from commerce.services import create_order
from common.crypto import DecryptionError, decrypt_value
from platformapp.models import Tenant

from .mercadopago import MercadoPagoClient

logger = logging.getLogger(__name__)

PAID_STATUSES = {"approved"}
CANCELLED_STATUSES = {"rejected", "cancelled", "refunded", "charged_back"}
LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0"}


def map_payment_status(mp_status: Optional[str]) -> str:
    """MercadoPago payment status -> order status."""
    if mp_status in PAID_STATUSES:
        return Order.Status.PAID
    if mp_status in CANCELLED_STATUSES:
        return Order.Status.CANCELLED
    return Order.Status.PENDING


def parse_signature(header: str) -> Optional[Tuple[str, str]]:
    """`ts=1704908010,v1=618c85...` -> (ts, v1); None when either part is missing."""
    parts = {}
    for chunk in (header or "").split(","):
        key, sep, value = chunk.strip().partition("=")
        if sep:
            parts[key.strip()] = value.strip()
    ts, v1 = parts.get("ts"), parts.get("v1")
    if not ts or not v1:
        return None
    return ts, v1


def verify_signature(secret: str, ts: str, request_id: str, body: bytes, received: str) -> bool:
    manifest = f"{ts}.{request_id or ''}.".encode() + (body or b"")
    expected = hmac.new(secret.encode(), msg=manifest, digestmod=hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received)


def _is_public(base_url: str) -> bool:
    return (urlparse(base_url).hostname or "") not in LOCAL_HOSTS


def tenant_access_token(tenant: Tenant) -> Optional[str]:
    if not tenant.mp_access_token:
        return None
    try:
        return decrypt_value(tenant.mp_access_token)
    except DecryptionError:
        logger.warning("tenant %s has an unreadable MercadoPago token", tenant.slug)
        return None


def build_preference(order: Order, tenant: Tenant, customer: Dict[str, str], locale: str) -> Dict[str, Any]:
    base = settings.PUBLIC_BASE_URL.rstrip("/")
    back = f"{base}/{locale}/{tenant.slug}/checkout"
    preference = {
        "items": [
            {
                "id": i["product_id"],
                "title": i["name"],
                "quantity": int(i["quantity"]),
                "unit_price": float(i["unit_price"]),
                "currency_id": order.currency,
            }
            for i in order.items_json
        ],
        "payer": {"name": customer["name"], "email": customer["email"]},
        "back_urls": {
            "success": f"{back}/success",
            "failure": f"{back}/failure",
            "pending": f"{back}/pending",
        },
        "external_reference": str(order.pk),
        "statement_descriptor": tenant.name[:22],
    }
    if _is_public(base):
        preference["auto_return"] = "approved"
        preference["notification_url"] = f"{base}/api/v1/payments/webhooks/mercadopago/"
    return preference


@transaction.atomic
def checkout(*, tenant_slug: str, customer: Dict[str, str], items, payment_method: str,
             notes: str = "", locale: str = None) -> Dict[str, Any]:
    """
    Creates the order and, for MercadoPago, the hosted checkout preference.
    A gateway failure rolls the order back.
    """
    locale = locale or settings.DEFAULT_LOCALE
    token = None
    if payment_method == Order.PaymentMethod.MERCADOPAGO:
        tenant = Tenant.objects.filter(slug=tenant_slug, active=True).first()
        token = tenant_access_token(tenant) if tenant else None
        if tenant and not token:
            raise ValidationError({"detail": "MercadoPago is not configured for this store"})

    order = create_order(tenant_slug=tenant_slug, customer=customer, items=items,
                         payment_method=payment_method, notes=notes)
    result = {"success": True, "order_id": str(order.pk), "total": str(order.total)}
    if payment_method != Order.PaymentMethod.MERCADOPAGO:
        return result

    pref = MercadoPagoClient(token).create_preference(
        build_preference(order, order.tenant, customer, locale)
    )
    order.checkout_id = pref.get("id")
    order.save(update_fields=["checkout_id", "updated_at"])
    logger.info("order %s: MercadoPago preference %s", order.pk, order.checkout_id)
    result.update({"preference_id": pref.get("id"), "init_point": pref.get("init_point")})
    return result


def apply_payment(payment: Dict[str, Any]) -> Optional[Order]:
    """Reflect a fetched MercadoPago payment on the order named by external_reference."""
    reference = payment.get("external_reference")
    try:
        order = Order.objects.filter(pk=uuid.UUID(str(reference))).first()
    except ValueError:
        order = None
    if order is None:
        logger.warning("payment %s references unknown order %r", payment.get("id"), reference)
        return None

    new_status = map_payment_status(payment.get("status"))
    order.payment_id = str(payment.get("id"))
    fields = ["payment_id", "updated_at"]
    if order.status != new_status and order.status in (Order.Status.PENDING, Order.Status.PAID):
        logger.info("order %s: %s -> %s (payment %s)", order.pk, order.status, new_status, order.payment_id)
        order.status = new_status
        fields.append("status")
    order.save(update_fields=fields)
    return order
