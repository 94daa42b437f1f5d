# backend/analyticsapp/services.py
"""
Sales analytics over a tenant's orders. Cancelled orders never count;
`date_to` is inclusive. Money is aggregated as Decimal and emitted as
float rounded to cents.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework.exceptions import ValidationError

from commerce.models import Order
from platformapp.models import Tenant

TOP_PRODUCTS_LIMIT = 10
UNCATEGORIZED = "Uncategorized"


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def _pct(part: Decimal, whole: Decimal) -> float:
    return round(float(part / whole * 100), 2) if whole > 0 else 0.0


def parse_range(date_from: str | None, date_to: str | None) -> Tuple[date, date]:
    if not date_from or not date_to:
        raise ValidationError({"detail": "date_from and date_to are required (YYYY-MM-DD)"})
    start, end = parse_date(date_from), parse_date(date_to)
    if start is None or end is None:
        raise ValidationError({"detail": "Dates must be YYYY-MM-DD"})
    if start > end:
        raise ValidationError({"detail": "date_from must be on or before date_to"})
    return start, end


def orders_in_range(tenant: Tenant, start: date, end: date):
    tz = timezone.get_current_timezone()
    lower = timezone.make_aware(datetime.combine(start, time.min), tz)
    upper = timezone.make_aware(datetime.combine(end + timedelta(days=1), time.min), tz)
    return (Order.objects.filter(tenant=tenant, created_at__gte=lower, created_at__lt=upper)
            .exclude(status=Order.Status.CANCELLED))


def aggregate(orders) -> Dict[str, Any]:
    """Single pass over the orders; returns raw Decimal buckets."""
    total = Decimal("0")
    count = 0
    items_sold = 0
    products: Dict[str, Dict[str, Any]] = {}
    categories: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"orders": set(), "units": 0, "revenue": Decimal("0")})
    methods: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"orders": 0, "revenue": Decimal("0")})

    for order in orders:
        count += 1
        total += order.total
        methods[order.payment_method]["orders"] += 1
        methods[order.payment_method]["revenue"] += order.total
        for item in order.items_json or []:
            qty = int(item.get("quantity") or 0)
            line = Decimal(str(item.get("unit_price") or "0")) * qty
            items_sold += qty
            pid = str(item.get("product_id"))
            prod = products.setdefault(pid, {"product_id": pid, "name": item.get("name") or "",
                                             "category": item.get("category") or "",
                                             "units": 0, "revenue": Decimal("0")})
            prod["units"] += qty
            prod["revenue"] += line
            cat = categories[item.get("category") or UNCATEGORIZED]
            cat["orders"].add(order.pk)
            cat["units"] += qty
            cat["revenue"] += line

    return {"total": total, "count": count, "items_sold": items_sold,
            "products": products, "categories": dict(categories), "methods": dict(methods)}


def product_rows(agg) -> List[Dict[str, Any]]:
    rows = sorted(agg["products"].values(), key=lambda p: (-p["revenue"], p["name"]))
    return [
        {"product_id": p["product_id"], "product_name": p["name"], "category": p["category"],
         "units_sold": p["units"], "revenue": _money(p["revenue"])}
        for p in rows
    ]


def category_rows(agg) -> List[Dict[str, Any]]:
    rows = sorted(agg["categories"].items(), key=lambda kv: -kv[1]["revenue"])
    return [
        {"category": name, "order_count": len(c["orders"]), "units_sold": c["units"],
         "revenue": _money(c["revenue"]), "_raw": c["revenue"]}
        for name, c in rows
    ]


def payment_rows(agg) -> List[Dict[str, Any]]:
    rows = sorted(agg["methods"].items(), key=lambda kv: -kv[1]["revenue"])
    return [
        {"payment_method": method, "order_count": m["orders"], "revenue": _money(m["revenue"]),
         "_raw": m["revenue"]}
        for method, m in rows
    ]


def dashboard(tenant: Tenant, date_from: str | None, date_to: str | None) -> Dict[str, Any]:
    start, end = parse_range(date_from, date_to)
    agg = aggregate(orders_in_range(tenant, start, end))
    total = agg["total"]

    top_products = sorted(agg["products"].values(), key=lambda p: (-p["revenue"], p["name"]))[:TOP_PRODUCTS_LIMIT]
    return {
        "date_from": start.isoformat(),
        "date_to": end.isoformat(),
        "summary": {
            "total_sales": _money(total),
            "total_transactions": agg["count"],
            "average_ticket": _money(total / agg["count"]) if agg["count"] else 0.0,
            "items_sold": agg["items_sold"],
        },
        "top_products": [
            {"rank": i + 1, "product_id": p["product_id"], "product_name": p["name"],
             "category": p["category"], "quantity_sold": p["units"],
             "revenue": _money(p["revenue"]), "percentage": _pct(p["revenue"], total)}
            for i, p in enumerate(top_products)
        ],
        "top_categories": [
            {"name": c["category"], "items_sold": c["units_sold"], "revenue": c["revenue"],
             "percentage": _pct(c["_raw"], total)}
            for c in category_rows(agg)
        ],
        "payment_methods": [
            {"method": m["payment_method"], "count": m["order_count"], "total_amount": m["revenue"],
             "percentage": _pct(m["_raw"], total)}
            for m in payment_rows(agg)
        ],
    }


EXPORTS = {
    "products": (product_rows, ["product_id", "product_name", "units_sold", "revenue"]),
    "categories": (category_rows, ["category", "order_count", "units_sold", "revenue"]),
    "payments": (payment_rows, ["payment_method", "order_count", "revenue"]),
}


def export_rows(tenant: Tenant, kind: str, date_from: str | None, date_to: str | None):
    """-> (header, rows, start, end) for the CSV export."""
    if kind not in EXPORTS:
        raise ValidationError({"type": [f"type must be one of: {', '.join(EXPORTS)}"]})
    start, end = parse_range(date_from, date_to)
    builder, header = EXPORTS[kind]
    rows = builder(aggregate(orders_in_range(tenant, start, end)))
    return header, rows, start, end
