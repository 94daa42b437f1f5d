from decimal import Decimal

import pytest
from django.urls import reverse

from commerce import services
from commerce.models import Order, Product
from crm.models import Customer
from crm.services import upsert_customer
from platformapp.models import AuditLog, Tenant

pytestmark = pytest.mark.django_db

BUYER = {"name": "Ana Pérez", "email": "Ana@Mail.com", "phone": "11 5555-0000"}


@pytest.fixture
def mate(tenant):
    return Product.objects.create(tenant=tenant, name="Mate", price=Decimal("1200.00"), stock=3, category="bazar")


@pytest.fixture
def remera(tenant):
    return Product.objects.create(
        tenant=tenant, name="Remera", price=Decimal("500.00"), stock=0, category="ropa",
        metadata_json={"sizes": [{"id": "m", "label": "M", "stock": 2}, {"id": "l", "label": "L", "stock": 0}]},
    )


def _order(tenant_slug="mi-tienda", items=None, method="cash"):
    return services.create_order(tenant_slug=tenant_slug, customer=BUYER, items=items or [],
                                 payment_method=method)


# ---- transitions ----
@pytest.mark.parametrize("current,new,ok", [
    ("pending", "paid", True),
    ("paid", "pending", True),
    ("ready", "delivered", True),
    ("delivered", "pending", False),
    ("delivered", "cancelled", True),
    ("cancelled", "paid", False),
    ("cancelled", "cancelled", True),
])
def test_can_transition(current, new, ok):
    assert services.can_transition(current, new) is ok


# ---- create_order ----
class TestCreateOrder:
    def test_prices_come_from_catalog(self, tenant, mate):
        order = _order(items=[{"product_id": str(mate.pk), "quantity": 2, "unit_price": "1"}])
        assert order.total == Decimal("2400.00")
        assert order.status == Order.Status.PENDING
        assert order.items_json == [{
            "product_id": str(mate.pk), "name": "Mate", "quantity": 2,
            "unit_price": "1200.00", "size_id": None, "category": "bazar",
        }]

    def test_upserts_customer_and_stats(self, tenant, mate):
        _order(items=[{"product_id": str(mate.pk), "quantity": 1}])
        _order(items=[{"product_id": str(mate.pk), "quantity": 1}])
        customer = Customer.objects.get(tenant=tenant)
        assert customer.email == "ana@mail.com"
        assert customer.total_orders == 2
        assert customer.total_spent == Decimal("2400.00")

    def test_unknown_tenant(self, mate):
        from rest_framework.exceptions import NotFound
        with pytest.raises(NotFound):
            _order(tenant_slug="ghost", items=[{"product_id": str(mate.pk), "quantity": 1}])

    def test_foreign_product_is_forbidden(self, tenant, stranger):
        from rest_framework.exceptions import PermissionDenied
        other = Tenant.objects.create(slug="otra", name="Otra", owner=stranger)
        foreign = Product.objects.create(tenant=other, name="X", price=1)
        with pytest.raises(PermissionDenied):
            _order(items=[{"product_id": str(foreign.pk), "quantity": 1}])

    def test_inactive_product(self, tenant, mate):
        from rest_framework.exceptions import ValidationError
        mate.active = False
        mate.save()
        with pytest.raises(ValidationError):
            _order(items=[{"product_id": str(mate.pk), "quantity": 1}])

    def test_stock_is_checked_across_lines(self, tenant, mate):
        from rest_framework.exceptions import ValidationError
        with pytest.raises(ValidationError) as exc:
            _order(items=[{"product_id": str(mate.pk), "quantity": 2},
                          {"product_id": str(mate.pk), "quantity": 2}])
        assert "Insufficient stock for Mate. Available: 3" in str(exc.value.detail)

    def test_size_stock(self, tenant, remera):
        from rest_framework.exceptions import ValidationError
        order = _order(items=[{"product_id": str(remera.pk), "quantity": 2, "size_id": "m"}])
        assert order.items_json[0]["size_id"] == "m"
        with pytest.raises(ValidationError):
            _order(items=[{"product_id": str(remera.pk), "quantity": 1, "size_id": "l"}])
        with pytest.raises(ValidationError):
            _order(items=[{"product_id": str(remera.pk), "quantity": 1, "size_id": "xxl"}])

    def test_restaurant_skips_stock(self, tenant, mate):
        tenant.template = Tenant.Template.RESTAURANT
        tenant.save()
        order = _order(items=[{"product_id": str(mate.pk), "quantity": 50}])
        assert order.total == Decimal("60000.00")


# ---- endpoints ----
def test_public_order_create_endpoint(client, tenant, mate):
    r = client.post(reverse("order-create"), {
        "tenant": "mi-tienda", "customer": BUYER, "payment_method": "cash",
        "items": [{"product_id": str(mate.pk), "quantity": 1}],
    }, format="json")
    assert r.status_code == 201
    assert r.data["success"] is True
    assert r.data["total"] == "1200.00"
    assert Order.objects.filter(pk=r.data["order_id"]).exists()


def test_order_create_requires_items(client, tenant):
    r = client.post(reverse("order-create"), {
        "tenant": "mi-tienda", "customer": BUYER, "payment_method": "cash", "items": [],
    }, format="json")
    assert r.status_code == 400


class TestOrderDashboard:
    def test_list_filters_and_pages(self, owner_client, tenant, mate):
        for _ in range(3):
            _order(items=[{"product_id": str(mate.pk), "quantity": 1}])
        Order.objects.filter(tenant=tenant).order_by("created_at").first().delete()
        paid = Order.objects.filter(tenant=tenant).first()
        paid.status = Order.Status.PAID
        paid.save()

        r = owner_client.get(reverse("order-list"), {"limit": 1})
        assert r.status_code == 200
        assert r.data["total_count"] == 2
        assert r.data["per_page"] == 1 and r.data["page"] == 1
        assert len(r.data["orders"]) == 1

        r = owner_client.get(reverse("order-list"), {"status": "paid"})
        assert [o["id"] for o in r.data["orders"]] == [str(paid.pk)]

    def test_date_to_is_inclusive(self, owner_client, tenant, mate):
        order = _order(items=[{"product_id": str(mate.pk), "quantity": 1}])
        day = order.created_at.date().isoformat()
        r = owner_client.get(reverse("order-list"), {"date_from": day, "date_to": day})
        assert r.data["total_count"] == 1

    def test_status_update_and_audit(self, owner_client, tenant, mate):
        order = _order(items=[{"product_id": str(mate.pk), "quantity": 1}])
        url = reverse("order-set-status", kwargs={"pk": order.pk})
        r = owner_client.patch(url, {"status": "delivered"}, format="json")
        assert r.status_code == 200 and r.data["status"] == "delivered"
        assert AuditLog.objects.filter(action="order.status", entity_id=str(order.pk)).exists()

        r = owner_client.patch(url, {"status": "pending"}, format="json")
        assert r.status_code == 400
        assert "Cannot change status of delivered order" in str(r.data)

    def test_stranger_cannot_touch_order(self, client, stranger, tenant, mate):
        order = _order(items=[{"product_id": str(mate.pk), "quantity": 1}])
        client.force_authenticate(stranger)
        r = client.get(reverse("order-detail", kwargs={"pk": order.pk}))
        assert r.status_code == 403


class TestProductsApi:
    def test_public_list_hides_inactive(self, client, tenant, mate):
        Product.objects.create(tenant=tenant, name="Hidden", price=1, active=False)
        r = client.get(reverse("product-list"), {"tenant": str(tenant.id)})
        assert r.status_code == 200
        assert [p["name"] for p in r.data["results"]] == ["Mate"]

    def test_search_and_order(self, client, tenant, mate):
        Product.objects.create(tenant=tenant, name="Bombilla", price=Decimal("300.00"), category="bazar")
        r = client.get(reverse("product-list"), {"tenant": str(tenant.id), "q": "bomb"})
        assert [p["name"] for p in r.data["results"]] == ["Bombilla"]
        r = client.get(reverse("product-list"), {"tenant": str(tenant.id), "order": "-price"})
        assert [p["name"] for p in r.data["results"]] == ["Mate", "Bombilla"]

    def test_owner_creates_and_soft_deletes(self, owner_client, tenant):
        r = owner_client.post(reverse("product-list"), {"name": "Taza", "price": "800.00"}, format="json")
        assert r.status_code == 201
        pid = r.data["id"]
        assert owner_client.delete(reverse("product-detail", kwargs={"pk": pid})).status_code == 204
        assert Product.objects.get(pk=pid).active is False

    def test_stranger_cannot_write(self, client, stranger, tenant, mate):
        client.force_authenticate(stranger)
        client.credentials(HTTP_X_TENANT_ID=str(tenant.id))
        r = client.patch(reverse("product-detail", kwargs={"pk": mate.pk}), {"price": "1"}, format="json")
        assert r.status_code == 403

    def test_invalid_sizes_rejected(self, owner_client, tenant):
        r = owner_client.post(reverse("product-list"), {
            "name": "Buzo", "price": "10.00", "metadata_json": {"sizes": [{"id": "s", "stock": -1}]},
        }, format="json")
        assert r.status_code == 400


def test_customer_book_is_owner_only(owner_client, client, stranger, tenant, mate):
    _order(items=[{"product_id": str(mate.pk), "quantity": 1}])
    r = owner_client.get(reverse("customer-list"))
    assert r.status_code == 200
    assert r.data["results"][0]["email"] == "ana@mail.com"
    client.force_authenticate(stranger)
    r = client.get(reverse("customer-list"), {"tenant": str(tenant.id)})
    assert r.data["results"] == []


def test_customer_is_keyed_by_email_and_phone(tenant):
    first = upsert_customer(tenant, name="Ana", email="Ana@Mail.com", phone="111")
    again = upsert_customer(tenant, name="Ana Pérez", email="ana@mail.com", phone="111")
    assert again.pk == first.pk
    assert Customer.objects.get(pk=first.pk).name == "Ana Pérez"

    other_phone = upsert_customer(tenant, name="Ana", email="ana@mail.com", phone="222")
    assert other_phone.pk != first.pk
    assert Customer.objects.get(pk=first.pk).phone == "111"
