from datetime import timedelta

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken

from commerce.models import Product
from common.crypto import decrypt_value
from platformapp.models import AuditLog, Tenant
from platformapp.services import tenant_cache
from platformapp.theme import (
    is_valid_template, is_valid_theme_overrides, merge_overrides, resolve_theme,
)

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------- theme
class TestResolveTheme:
    def test_template_defaults(self):
        theme = resolve_theme("minimal")
        assert theme["gridCols"] == 4
        assert theme["cardVariant"] == "flat"
        assert theme["colors"]["primary"] == "#3B82F6"

    def test_override_wins_over_default(self):
        theme = resolve_theme("gallery", {"gridCols": 5, "spacing": "relaxed"})
        assert theme["gridCols"] == 5
        assert theme["spacing"] == "relaxed"
        assert theme["imageAspect"] == "1:1"

    def test_color_chain_override_then_config_then_default(self):
        theme = resolve_theme("gallery", {"colors": {"accent": "#000000"}},
                              {"primary": "#ABCDEF", "background": "#FFFFFF"})
        assert theme["colors"]["primary"] == "#ABCDEF"
        assert theme["colors"]["accent"] == "#000000"
        assert theme["colors"]["background"] == "#FFFFFF"

    def test_unknown_template_falls_back_to_gallery(self):
        assert resolve_theme("bogus")["template"] == "gallery"

    def test_validators(self):
        assert is_valid_template("restaurant")
        assert not is_valid_template("gastronomy")
        assert is_valid_theme_overrides({"gridCols": 6, "imageAspect": "3:4", "colors": {"primary": "#aabbcc"}})
        assert not is_valid_theme_overrides({"gridCols": 7})
        assert not is_valid_theme_overrides({"imageAspect": "wide"})
        assert not is_valid_theme_overrides({"colors": {"primary": "red"}})
        assert not is_valid_theme_overrides({"font": "serif"})

    def test_merge_is_shallow(self):
        merged = merge_overrides({"gridCols": 2, "colors": {"primary": "#111111", "accent": "#222222"}},
                                 {"colors": {"primary": "#333333"}})
        assert merged == {"gridCols": 2, "colors": {"primary": "#333333"}}


class TestThemeEndpoint:
    def url(self, slug="mi-tienda"):
        return reverse("tenant-theme", kwargs={"slug": slug})

    def test_requires_auth(self, client, tenant):
        assert client.get(self.url()).status_code == 401

    def test_get_returns_resolved(self, owner_client, tenant):
        r = owner_client.get(self.url())
        assert r.status_code == 200
        assert r.data["template"] == "gallery"
        assert r.data["resolved"]["colors"]["primary"] == "#111111"

    def test_bad_slug_and_missing_tenant(self, owner_client, tenant):
        assert owner_client.get(self.url("Bad_Slug")).status_code == 400
        assert owner_client.get(self.url("nope")).status_code == 404

    def test_patch_merges_and_audits(self, owner_client, tenant):
        tenant.theme_overrides = {"spacing": "compact"}
        tenant.save()
        r = owner_client.patch(self.url(), {"template": "detail", "overrides": {"gridCols": 1}}, format="json")
        assert r.status_code == 200
        tenant.refresh_from_db()
        assert tenant.template == "detail"
        assert tenant.theme_overrides == {"spacing": "compact", "gridCols": 1}
        assert r.data["resolved"]["gridCols"] == 1
        assert AuditLog.objects.filter(tenant=tenant, action="tenant.theme").exists()

    def test_patch_rejects_unknown_keys_and_empty_body(self, owner_client, tenant):
        assert owner_client.patch(self.url(), {"overrides": {"font": "x"}}, format="json").status_code == 400
        assert owner_client.patch(self.url(), {"layout": "x"}, format="json").status_code == 400
        assert owner_client.patch(self.url(), {}, format="json").status_code == 400

    def test_patch_by_stranger_forbidden(self, client, stranger, tenant):
        client.force_authenticate(stranger)
        r = client.patch(self.url(), {"template": "minimal"}, format="json")
        assert r.status_code == 403

    @override_settings(SUPER_ADMINS=["other@tienda.com"])
    def test_superadmin_may_patch(self, client, stranger, tenant):
        client.force_authenticate(stranger)
        r = client.patch(self.url(), {"template": "minimal"}, format="json")
        assert r.status_code == 200


# ---------------------------------------------------------------- middleware / storefront
class TestTenantMiddleware:
    def test_storefront_resolves_tenant(self, client, tenant):
        Product.objects.create(tenant=tenant, name="Mate", price="10.00", display_order=2)
        Product.objects.create(tenant=tenant, name="Bombilla", price="5.00", display_order=1)
        Product.objects.create(tenant=tenant, name="Old", price="1.00", active=False)
        r = client.get("/es/mi-tienda/")
        assert r.status_code == 200
        assert r["X-Tenant-ID"] == str(tenant.id)
        assert r["X-Tenant-Slug"] == "mi-tienda"
        body = r.json()
        assert body["locale"] == "es"
        assert [p["name"] for p in body["products"]] == ["Bombilla", "Mate"]
        assert "secure_config" not in body["tenant"]

    def test_path_without_locale(self, client, tenant):
        r = client.get("/mi-tienda/")
        assert r.status_code == 200
        assert r.json()["locale"] == "es"

    def test_unknown_and_inactive_redirect_to_404(self, client, tenant):
        r = client.get("/es/no-such-store/")
        assert r.status_code == 302 and r["Location"] == "/404"
        tenant.active = False
        tenant.save()
        r = client.get("/es/mi-tienda/")
        assert r.status_code == 302 and r["Location"] == "/404"

    def test_reserved_segments_are_skipped(self, client):
        assert client.get("/ping/").status_code == 200
        assert client.get("/api/v1/core/healthz/").status_code == 200

    def test_file_paths_are_not_tenant_lookups(self, client, django_assert_num_queries):
        with django_assert_num_queries(0):
            r = client.get("/favicon.ico")
        assert r.status_code == 404
        assert client.get("/es/robots.txt").status_code == 404

    def test_dashboard_anonymous_goes_to_login(self, client, tenant):
        r = client.get("/en/mi-tienda/dashboard/")
        assert r.status_code == 302 and r["Location"] == "/en/login"
        r = client.get("/mi-tienda/dashboard/")
        assert r["Location"] == "/login"

    def test_dashboard_non_owner_goes_to_storefront(self, client, stranger, tenant):
        client.force_login(stranger)
        r = client.get("/es/mi-tienda/dashboard/")
        assert r.status_code == 302 and r["Location"] == "/es/mi-tienda"

    def test_dashboard_owner_with_bearer_token(self, client, owner, tenant):
        token = RefreshToken.for_user(owner).access_token
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        r = client.get("/es/mi-tienda/dashboard/")
        assert r.status_code == 200
        assert r.json()["products"] == {"total": 0, "active": 0}
        assert r.json()["revenue"] == "0.00"

    def test_cache_bypass_sees_fresh_slug(self, client, owner):
        assert client.get("/es/late-store/").status_code == 302
        Tenant.objects.create(slug="late-store", name="Late", owner=owner)
        r = client.get("/es/late-store/", {"_t": "1"})
        assert r.status_code == 200


class TestTenantCache:
    def test_ttl_is_short_for_fresh_tenants(self, tenant):
        assert tenant_cache.tenant_cache_ttl(tenant) == 5
        later = tenant.updated_at + timedelta(seconds=30)
        assert tenant_cache.tenant_cache_ttl(tenant, now=later) == 60

    def test_save_evicts_cached_entry(self, tenant):
        assert tenant_cache.get_tenant_by_slug("mi-tienda").name == "Mi Tienda"
        tenant.name = "Renamed"
        tenant.save()
        assert tenant_cache.get_tenant_by_slug("mi-tienda").name == "Renamed"

    def test_missing_slug_is_not_cached(self):
        assert tenant_cache.get_tenant_by_slug("ghost") is None

    def test_inactive_tenant_is_not_cached(self, tenant):
        Tenant.objects.filter(pk=tenant.pk).update(active=False, updated_at=timezone.now() - timedelta(minutes=5))
        assert tenant_cache.get_tenant_by_slug("mi-tienda").active is False
        # activation written elsewhere, without this process seeing the save signal
        Tenant.objects.filter(pk=tenant.pk).update(active=True)
        assert tenant_cache.get_tenant_by_slug("mi-tienda").active is True


# ---------------------------------------------------------------- signup / onboarding
class TestSignup:
    url = "/api/v1/platform/signup/"

    def payload(self, **kw):
        data = {"email": "New@Shop.com", "password": "long-enough", "business_name": "New Shop", "slug": "new-shop"}
        data.update(kw)
        return data

    def test_creates_user_and_tenant(self, client):
        r = client.post(self.url, self.payload(), format="json")
        assert r.status_code == 201
        assert r.data["tenant_slug"] == "new-shop"
        assert r.data["access"] and r.data["refresh"]
        t = Tenant.objects.get(slug="new-shop")
        assert t.owner.email == "new@shop.com"
        assert t.template == "gallery" and t.plan == "free" and t.active
        assert t.config["colors"] == {"primary": "#3B82F6", "secondary": "#10B981"}

    def test_conflicts(self, client, tenant):
        assert client.post(self.url, self.payload(slug="mi-tienda"), format="json").status_code == 409
        r = client.post(self.url, self.payload(email="OWNER@tienda.com"), format="json")
        assert r.status_code == 409

    @pytest.mark.parametrize("field,value", [
        ("password", "short"), ("business_name", "x"), ("slug", "ab"), ("slug", "Bad--Slug"), ("email", "nope"),
    ])
    def test_validation(self, client, field, value):
        assert client.post(self.url, self.payload(**{field: value}), format="json").status_code == 400

    def test_validate_slug(self, client, tenant):
        url = reverse("signup-validate-slug")
        assert client.get(url, {"slug": "libre"}).data == {"available": True}
        r = client.get(url, {"slug": "mi-tienda"})
        assert r.data["available"] is False
        assert r.data["suggestion"] == "mi-tienda-2"
        r = client.get(url, {"slug": "X!"})
        assert r.data["available"] is False and "error" in r.data


class TestOnboarding:
    url = "/api/v1/platform/onboarding/save/"

    def test_saves_config_and_products(self, client, owner, tenant):
        tenant.active = False
        tenant.save()
        client.force_authenticate(owner)
        r = client.patch(self.url, {
            "config": {"business_name": "Mi Tienda Nueva", "colors": {"primary": "#000000", "secondary": "#FFFFFF"}},
            "products": [{"name": "Cuadro", "price": "1500.00"}, {"name": "Lámina", "price": "300", "stock": 4}],
        }, format="json")
        assert r.status_code == 200
        assert r.data["products_created"] == 2
        tenant.refresh_from_db()
        assert tenant.active
        assert tenant.config["colors"]["primary"] == "#000000"
        assert list(Product.objects.filter(tenant=tenant).order_by("display_order").values_list("name", flat=True)) == ["Cuadro", "Lámina"]

    def test_rejects_extra_color_keys(self, client, owner, tenant):
        client.force_authenticate(owner)
        r = client.patch(self.url, {
            "config": {"business_name": "Shop", "colors": {"primary": "#000000", "secondary": "#FFFFFF", "x": "#000000"}},
        }, format="json")
        assert r.status_code == 400

    def test_user_without_tenant_gets_404(self, client, stranger):
        client.force_authenticate(stranger)
        r = client.patch(self.url, {
            "config": {"business_name": "Shop", "colors": {"primary": "#000000", "secondary": "#FFFFFF"}},
        }, format="json")
        assert r.status_code == 404


# ---------------------------------------------------------------- settings
class TestSettings:
    url = "/api/v1/platform/settings/"

    def test_token_is_encrypted_at_rest(self, owner_client, tenant):
        r = owner_client.patch(self.url, {"mp_access_token": "APP_USR-123"}, format="json")
        assert r.status_code == 200
        assert r.data["mp_access_token"] == "APP_USR-123"
        tenant.refresh_from_db()
        assert tenant.mp_access_token != "APP_USR-123"
        assert decrypt_value(tenant.mp_access_token) == "APP_USR-123"

        r = owner_client.patch(self.url, {"mp_access_token": ""}, format="json")
        assert r.data["mp_access_token"] is None

    def test_get_falls_back_to_owned_tenant(self, client, owner, tenant):
        client.force_authenticate(owner)
        r = client.get(self.url)
        assert r.status_code == 200
        assert r.data["slug"] == "mi-tienda"

    def test_stranger_forbidden_and_unknown_tenant(self, client, stranger, tenant):
        client.force_authenticate(stranger)
        assert client.get(self.url, {"tenant": str(tenant.id)}).status_code == 403
        assert client.get(self.url, {"tenant": "00000000-0000-0000-0000-000000000000"}).status_code == 404

    def test_banner_upload(self, owner_client, tenant, settings, tmp_path):
        settings.MEDIA_ROOT = tmp_path
        upload = SimpleUploadedFile("banner.png", b"\x89PNG\r\n\x1a\nfake", content_type="image/png")
        r = owner_client.post("/api/v1/platform/settings/upload-banner/", {"file": upload}, format="multipart")
        assert r.status_code == 201
        tenant.refresh_from_db()
        assert tenant.config["banner_url"] == r.data["url"]
        assert str(tenant.id) in r.data["url"]

    def test_banner_upload_rejects_wrong_type(self, owner_client, tenant):
        upload = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
        r = owner_client.post("/api/v1/platform/settings/upload-banner/", {"file": upload}, format="multipart")
        assert r.status_code == 400


def test_public_tenant_list_and_resolve(client, tenant, owner):
    Tenant.objects.create(slug="cerrada", name="Cerrada", owner=owner, active=False)
    r = client.get(reverse("tenant-list"))
    assert [t["slug"] for t in r.data] == ["mi-tienda"]
    assert r.data[0]["status"] == "active"
    r = client.get(reverse("tenant-resolve"), {"slug": "mi-tienda"})
    assert r.data["id"] == str(tenant.id)
    assert client.get(reverse("tenant-resolve"), {"slug": "cerrada"}).status_code == 404
