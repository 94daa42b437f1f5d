import csv
import io
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.urls import reverse

from commerce.models import Order, Product
from commerce.services import create_order

pytestmark = pytest.mark.django_db

BUYER = {"name": "Ana", "email": "ana@mail.com", "phone": "1155550000"}


@pytest.fixture
def catalog(tenant):
    return {
        "cuadro": Product.objects.create(tenant=tenant, name="Cuadro", price=Decimal("1000.00"), stock=50, category="arte"),
        "lamina": Product.objects.create(tenant=tenant, name="Lámina", price=Decimal("250.00"), stock=50, category="arte"),
        "taza": Product.objects.create(tenant=tenant, name="Taza", price=Decimal("100.00"), stock=50),
    }


def _order_on(day, items, method="cash", status=None, month=3, hour=15):
    order = create_order(tenant_slug="mi-tienda", customer=BUYER, payment_method=method,
                         items=[{"product_id": str(p.pk), "quantity": q} for p, q in items])
    stamp = datetime(2025, month, day, hour, 30, tzinfo=dt_timezone.utc)
    Order.objects.filter(pk=order.pk).update(created_at=stamp, status=status or order.status)
    return order


@pytest.fixture
def march_orders(catalog):
    c, l, t = catalog["cuadro"], catalog["lamina"], catalog["taza"]
    _order_on(1, [(c, 1), (l, 2)])                         # 1500
    _order_on(15, [(c, 1)], method="mercadopago")          # 1000
    _order_on(31, [(t, 5)], method="transfer")              # 500, last day must count
    _order_on(10, [(c, 3)], status=Order.Status.CANCELLED)  # ignored
    _order_on(1, [(c, 2)], month=4, hour=0)               # just past the range


def _get(client, **params):
    base = {"date_from": "2025-03-01", "date_to": "2025-03-31"}
    base.update(params)
    return client.get(reverse("analytics-dashboard"), base)


def test_summary_excludes_cancelled_and_includes_last_day(owner_client, march_orders):
    r = _get(owner_client)
    assert r.status_code == 200
    assert r.data["summary"] == {
        "total_sales": 3000.0, "total_transactions": 3, "average_ticket": 1000.0, "items_sold": 9,
    }


def test_top_products_rank_and_percentage(owner_client, march_orders):
    top = _get(owner_client).data["top_products"]
    assert [(p["rank"], p["product_name"], p["quantity_sold"]) for p in top] == [
        (1, "Cuadro", 2), (2, "Lámina", 2), (3, "Taza", 5),
    ]
    assert top[0]["revenue"] == 2000.0
    assert top[0]["percentage"] == pytest.approx(66.67)


def test_categories_and_payment_methods(owner_client, march_orders):
    data = _get(owner_client).data
    cats = {c["name"]: c for c in data["top_categories"]}
    assert cats["arte"]["revenue"] == 2500.0 and cats["arte"]["items_sold"] == 4
    assert cats["Uncategorized"]["revenue"] == 500.0
    methods = {m["method"]: m for m in data["payment_methods"]}
    assert methods["cash"]["count"] == 1 and methods["cash"]["total_amount"] == 1500.0
    assert methods["transfer"]["percentage"] == pytest.approx(16.67)


def test_empty_range(owner_client, tenant):
    data = _get(owner_client, date_from="2020-01-01", date_to="2020-01-31").data
    assert data["summary"]["total_sales"] == 0.0
    assert data["summary"]["average_ticket"] == 0.0
    assert data["top_products"] == []


@pytest.mark.parametrize("params", [
    {"date_from": ""}, {"date_to": "31/03/2025"}, {"date_from": "2025-04-01"},
])
def test_bad_ranges(owner_client, tenant, params):
    assert _get(owner_client, **params).status_code == 400


def test_requires_owner(client, stranger, tenant):
    client.force_authenticate(stranger)
    assert _get(client, tenant=str(tenant.id)).status_code == 403


def test_csv_export(owner_client, march_orders):
    r = owner_client.get(reverse("analytics-export"),
                         {"type": "products", "date_from": "2025-03-01", "date_to": "2025-03-31"})
    assert r.status_code == 200
    assert r["Content-Type"].startswith("text/csv")
    assert 'filename="analytics-products-2025-03-01-2025-03-31.csv"' in r["Content-Disposition"]
    rows = list(csv.DictReader(io.StringIO(r.content.decode())))
    assert list(rows[0]) == ["product_id", "product_name", "units_sold", "revenue"]
    assert rows[0]["product_name"] == "Cuadro"


def test_csv_export_payments_and_bad_type(owner_client, march_orders):
    r = owner_client.get(reverse("analytics-export"),
                         {"type": "payments", "date_from": "2025-03-01", "date_to": "2025-03-31"})
    rows = list(csv.DictReader(io.StringIO(r.content.decode())))
    assert {row["payment_method"] for row in rows} == {"cash", "mercadopago", "transfer"}
    r = owner_client.get(reverse("analytics-export"),
                         {"type": "discounts", "date_from": "2025-03-01", "date_to": "2025-03-31"})
    assert r.status_code == 400
