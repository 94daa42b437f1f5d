# backend/commerce/services.py
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.utils.dateparse import parse_date
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from crm.services import record_order, upsert_customer
from platformapp.models import Tenant
from .models import Order, Product

logger = logging.getLogger(__name__)

TERMINAL_ONLY_CANCEL = {Order.Status.DELIVERED, Order.Status.CANCELLED}


def can_transition(current: str, new: str) -> bool:
    """Delivered and cancelled orders can only be (re)cancelled."""
    if current in TERMINAL_ONLY_CANCEL:
        return new == Order.Status.CANCELLED
    return True


def _parse_product_id(value):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError({"detail": f"Invalid product id: {value}"})


def _available_stock(product: Product, size_id) -> tuple[int, str]:
    if size_id and product.sizes:
        size = product.size(size_id)
        if size is None:
            raise ValidationError({"detail": f"Invalid size for {product.name}"})
        return int(size.get("stock") or 0), f"{product.name} ({size.get('label', size_id)})"
    return int(product.stock or 0), product.name


@transaction.atomic
def create_order(*, tenant_slug: str, customer: Dict[str, str], items: List[Dict[str, Any]],
                 payment_method: str, notes: str = "") -> Order:
    """
    Validates every line against the tenant's catalog and prices it server-side.

    items: [{"product_id", "quantity", "size_id"?}]
    """
    tenant = Tenant.objects.filter(slug=tenant_slug, active=True).first()
    if tenant is None:
        raise NotFound("Tenant not found")
    if not items:
        raise ValidationError({"detail": "Order must contain at least one item"})

    product_ids = [_parse_product_id(i.get("product_id")) for i in items]
    products = {p.pk: p for p in Product.objects.filter(pk__in=product_ids)}
    if not products:
        raise ValidationError({"detail": "Failed to validate products"})
    if any(p.tenant_id != tenant.id for p in products.values()):
        logger.warning("order for %s referenced products of another tenant", tenant.slug)
        raise PermissionDenied("Product ownership mismatch")

    # quantities per (product, size) so split lines cannot bypass the stock check
    requested: Dict[tuple, int] = {}
    for item, pid in zip(items, product_ids):
        key = (pid, item.get("size_id") or None)
        requested[key] = requested.get(key, 0) + int(item["quantity"])

    order_items = []
    total = Decimal("0")
    for item, pid in zip(items, product_ids):
        product = products.get(pid)
        if product is None:
            raise ValidationError({"detail": f"Product {pid} not found"})
        if not product.active:
            raise ValidationError({"detail": f"Product {product.name} is not available"})

        size_id = item.get("size_id") or None
        quantity = int(item["quantity"])
        if not tenant.is_stockless:
            available, label = _available_stock(product, size_id)
            if available < requested[(pid, size_id)]:
                raise ValidationError({"detail": f"Insufficient stock for {label}. Available: {available}"})

        order_items.append({
            "product_id": str(product.pk),
            "name": product.name,
            "quantity": quantity,
            "unit_price": str(product.price),
            "size_id": size_id,
            "category": product.category or None,
        })
        total += product.price * quantity

    buyer = upsert_customer(
        tenant, name=customer["name"], email=customer["email"], phone=customer.get("phone", ""),
    )
    currency = next(iter(products.values())).currency
    order = Order.objects.create(
        tenant=tenant,
        customer=buyer,
        items_json=order_items,
        total=total,
        currency=currency,
        status=Order.Status.PENDING,
        payment_method=payment_method,
        notes=notes or "",
    )
    record_order(buyer, total)
    logger.info("order %s created for %s total=%s method=%s", order.pk, tenant.slug, total, payment_method)
    return order


def update_status(order: Order, new_status: str) -> Order:
    if new_status not in Order.Status.values:
        raise ValidationError({"status": [f"Invalid status: {new_status}"]})
    if not can_transition(order.status, new_status):
        raise ValidationError({"detail": f"Cannot change status of {order.status} order"})
    order.status = new_status
    order.save(update_fields=["status", "updated_at"])
    return order


def list_orders(tenant: Tenant, *, status: Optional[str] = None, date_from: Optional[str] = None,
                date_to: Optional[str] = None, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
    qs = Order.objects.filter(tenant=tenant).select_related("customer")
    if status:
        qs = qs.filter(status=status)
    if date_from:
        d = parse_date(date_from)
        if d is None:
            raise ValidationError({"date_from": ["Use YYYY-MM-DD."]})
        qs = qs.filter(created_at__date__gte=d)
    if date_to:
        d = parse_date(date_to)
        if d is None:
            raise ValidationError({"date_to": ["Use YYYY-MM-DD."]})
        # inclusive end date
        qs = qs.filter(created_at__date__lt=d + timedelta(days=1))

    total_count = qs.count()
    orders = list(qs.order_by("-created_at")[offset:offset + limit])
    return {
        "orders": orders,
        "total_count": total_count,
        "page": offset // limit + 1,
        "per_page": limit,
    }
