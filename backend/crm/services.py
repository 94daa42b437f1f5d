from __future__ import annotations

from decimal import Decimal

from django.db.models import F
from django.utils import timezone

from .models import Customer


def upsert_customer(tenant, *, name: str, email: str, phone: str = "") -> Customer:
    """
    Find the tenant's customer by email and phone, else create it.
    A newer name from the storefront form replaces the stored one.
    """
    email = (email or "").strip().lower()
    phone = (phone or "").strip()
    customer = Customer.objects.filter(tenant=tenant, email=email, phone=phone).order_by("created_at").first()
    if customer is None:
        return Customer.objects.create(tenant=tenant, name=name, email=email, phone=phone)

    if name and customer.name != name:
        customer.name = name
        customer.save(update_fields=["name", "updated_at"])
    return customer


def record_order(customer: Customer, total: Decimal) -> None:
    Customer.objects.filter(pk=customer.pk).update(
        total_orders=F("total_orders") + 1,
        total_spent=F("total_spent") + total,
        last_order_at=timezone.now(),
    )
