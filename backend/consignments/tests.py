from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.urls import reverse
from django.utils import timezone

from commerce.models import Product
from consignments import services
from consignments.models import ArtworkConsignment, ConsignmentLocation
from platformapp.models import AuditLog, Tenant

pytestmark = pytest.mark.django_db


@pytest.fixture
def gallery(tenant):
    return ConsignmentLocation.objects.create(tenant=tenant, name="Galería Sur", city="Córdoba", country="Argentina")


@pytest.fixture
def work(tenant):
    return Product.objects.create(tenant=tenant, name="Atardecer", price=Decimal("2000.00"))


def _assign(work, location, days_ago=0, status=ArtworkConsignment.Status.IN_GALLERY, **kw):
    return ArtworkConsignment.objects.create(
        tenant=location.tenant, work=work, location=location, status=status,
        assigned_date=timezone.now() - timedelta(days=days_ago), **kw,
    )


# ---- locations ----
class TestLocations:
    url = "/api/v1/consignments/locations/"

    def test_create_and_validate(self, owner_client, tenant):
        r = owner_client.post(self.url, {"name": "Café Arte", "city": "Rosario", "country": "AR",
                                         "latitude": "-32.95", "longitude": "-60.66",
                                         "contact_phone": "+54 (341) 555-0000"}, format="json")
        assert r.status_code == 201
        assert ConsignmentLocation.objects.get(pk=r.data["id"]).tenant == tenant
        assert AuditLog.objects.filter(action="consignment.location.create").exists()

    @pytest.mark.parametrize("field,value", [
        ("name", "ab"), ("city", "R"), ("country", "A"), ("latitude", "91"), ("longitude", "-181"),
        ("contact_email", "not-an-email"), ("contact_phone", "call me"), ("status", "closed"),
        ("description", "x" * 1001),
    ])
    def test_invalid_fields(self, owner_client, tenant, field, value):
        body = {"name": "Café Arte", "city": "Rosario", "country": "AR", field: value}
        assert owner_client.post(self.url, body, format="json").status_code == 400

    def test_list_filters_and_pagination(self, owner_client, tenant):
        for i in range(3):
            ConsignmentLocation.objects.create(tenant=tenant, name=f"Galería {i}", city="Córdoba", country="AR")
        ConsignmentLocation.objects.create(tenant=tenant, name="Estudio", city="Salta", country="AR",
                                           status=ConsignmentLocation.Status.INACTIVE)

        r = owner_client.get(self.url, {"per_page": 2})
        assert r.status_code == 200
        assert r.data["total"] == 4 and r.data["per_page"] == 2 and r.data["has_next"] is True
        assert len(r.data["items"]) == 2

        r = owner_client.get(self.url, {"search": "galer", "city": "córdoba"})
        assert r.data["total"] == 3
        r = owner_client.get(self.url, {"status": "inactive"})
        assert [l["name"] for l in r.data["items"]] == ["Estudio"]

    def test_per_page_is_capped(self, owner_client, tenant):
        r = owner_client.get(self.url, {"per_page": 500})
        assert r.data["per_page"] == 100

    def test_delete_archives(self, owner_client, gallery):
        r = owner_client.delete(f"{self.url}{gallery.pk}/")
        assert r.status_code == 200
        gallery.refresh_from_db()
        assert gallery.status == "archived"

    def test_other_tenant_location_is_404(self, owner_client, stranger):
        other = Tenant.objects.create(slug="otra", name="Otra", owner=stranger)
        loc = ConsignmentLocation.objects.create(tenant=other, name="Ajena", city="Lima", country="PE")
        assert owner_client.get(f"{self.url}{loc.pk}/").status_code == 404

    def test_requires_owner(self, client, stranger, tenant):
        client.force_authenticate(stranger)
        assert client.get(self.url, {"tenant": str(tenant.id)}).status_code == 403


# ---- assignments ----
class TestAssignments:
    def url(self, location, work=None):
        base = f"/api/v1/consignments/locations/{location.pk}/artworks/"
        return f"{base}{work.pk}/" if work else base

    def test_assign_and_conflict(self, owner_client, gallery, work):
        r = owner_client.post(self.url(gallery), {"work_id": str(work.pk), "notes": "pared norte"}, format="json")
        assert r.status_code == 201
        assert r.data["status"] == "in_gallery"
        assert r.data["work"]["title"] == "Atardecer"

        r = owner_client.post(self.url(gallery), {"work_id": str(work.pk)}, format="json")
        assert r.status_code == 409

        r = owner_client.get(self.url(gallery))
        assert len(r.data["items"]) == 1

    def test_artworks_status_filter_applies_to_assignments(self, owner_client, gallery, work, tenant):
        other = Product.objects.create(tenant=tenant, name="Boceto", price=Decimal("100.00"))
        _assign(work, gallery)
        _assign(other, gallery, status=ArtworkConsignment.Status.IN_TRANSIT)

        r = owner_client.get(self.url(gallery), {"status": "in_gallery"})
        assert r.status_code == 200
        assert [a["work"]["title"] for a in r.data["items"]] == ["Atardecer"]

        r = owner_client.patch(f"{self.url(gallery, work)}?city=Salta", {"notes": "vitrina"}, format="json")
        assert r.status_code == 200

    def test_database_rejects_second_active_assignment(self, gallery, work):
        _assign(work, gallery, status=ArtworkConsignment.Status.IN_TRANSIT)
        with pytest.raises(IntegrityError), transaction.atomic():
            _assign(work, gallery)
        # closed rows do not count
        _assign(work, gallery, status=ArtworkConsignment.Status.SOLD, unassigned_date=timezone.now())

    def test_reassign_after_return(self, owner_client, gallery, work):
        _assign(work, gallery, days_ago=10, status=ArtworkConsignment.Status.RETURNED,
                unassigned_date=timezone.now())
        r = owner_client.post(self.url(gallery), {"work_id": str(work.pk)}, format="json")
        assert r.status_code == 201

    def test_foreign_work_is_404(self, owner_client, gallery, stranger):
        other = Tenant.objects.create(slug="otra", name="Otra", owner=stranger)
        foreign = Product.objects.create(tenant=other, name="Ajena", price=1)
        r = owner_client.post(self.url(gallery), {"work_id": str(foreign.pk)}, format="json")
        assert r.status_code == 404

    def test_patch_sold_closes_assignment(self, owner_client, gallery, work):
        a = _assign(work, gallery)
        r = owner_client.patch(self.url(gallery, work), {"status": "sold"}, format="json")
        assert r.status_code == 200
        a.refresh_from_db()
        assert a.status == "sold" and a.unassigned_date is not None
        assert owner_client.patch(self.url(gallery, work), {"notes": "x"}, format="json").status_code == 404

    def test_delete_returns_work(self, owner_client, gallery, work):
        a = _assign(work, gallery)
        r = owner_client.delete(self.url(gallery, work))
        assert r.status_code == 200
        assert r.data["success"] is True
        assert r.data["assignment"]["status"] == "returned"
        a.refresh_from_db()
        assert a.unassigned_date is not None
        assert ArtworkConsignment.objects.filter(pk=a.pk).exists()


# ---- history / overview / alerts ----
def test_history_newest_first_with_days(owner_client, gallery, work, tenant):
    other = ConsignmentLocation.objects.create(tenant=tenant, name="Feria", city="Tucumán", country="AR")
    old = _assign(work, other, days_ago=40, status=ArtworkConsignment.Status.RETURNED)
    old.unassigned_date = old.assigned_date + timedelta(days=15)
    old.save()
    _assign(work, gallery, days_ago=5)

    r = owner_client.get(reverse("artwork-history", kwargs={"work_id": work.pk}))
    assert r.status_code == 200
    assert r.data["work"]["title"] == "Atardecer"
    assert [a["location_name"] for a in r.data["assignments"]] == ["Galería Sur", "Feria"]
    assert [a["days_at_location"] for a in r.data["assignments"]] == [5, 15]


def test_overview(tenant, gallery, work):
    now = timezone.now()
    second = Product.objects.create(tenant=tenant, name="Noche", price=Decimal("500.00"))
    third = Product.objects.create(tenant=tenant, name="Mar", price=Decimal("700.00"))
    _assign(work, gallery, days_ago=3, status=ArtworkConsignment.Status.SOLD, unassigned_date=now)
    _assign(second, gallery, days_ago=90)
    _assign(third, gallery, days_ago=10)

    data = services.overview(tenant)
    assert data["total_works"] == 3
    assert data["active_locations"] == 1
    assert data["works_in_gallery"] == 2
    assert data["works_sold_this_month"] == 1
    assert data["revenue_this_month"] == "2000.00"
    assert data["revenue_last_month"] == "0.00"
    assert data["top_location_by_sales"]["revenue"] == "2000.00"
    assert data["top_location_by_sales"]["location_name"] == "Galería Sur"
    assert data["longest_in_gallery"] == {
        "work_id": str(second.pk), "work_title": "Noche", "days": 90, "location_name": "Galería Sur",
    }


def test_overview_endpoint_empty(owner_client, tenant):
    r = owner_client.get(reverse("consignment-overview"))
    assert r.status_code == 200
    assert r.data["total_works"] == 0
    assert r.data["top_location_by_sales"] is None


def test_alerts(owner_client, gallery, work, tenant):
    fresh = Product.objects.create(tenant=tenant, name="Nueva", price=1)
    _assign(work, gallery, days_ago=75)
    _assign(fresh, gallery, days_ago=2)

    r = owner_client.get(reverse("consignment-alerts"))
    assert [i["work_title"] for i in r.data["items"]] == ["Atardecer"]
    assert r.data["items"][0]["days_in_gallery"] == 75

    r = owner_client.get(reverse("consignment-alerts"), {"min_days": 1})
    assert [i["work_title"] for i in r.data["items"]] == ["Atardecer", "Nueva"]

    assert owner_client.get(reverse("consignment-alerts"), {"min_days": 0}).status_code == 400
    assert owner_client.get(reverse("consignment-alerts"), {"min_days": "x"}).status_code == 400
