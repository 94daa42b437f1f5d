import pytest
from django.contrib.auth import get_user_model
from django.core.cache import caches
from django.conf import settings
from rest_framework.test import APIClient

from platformapp.models import Tenant


@pytest.fixture(autouse=True)
def _clear_caches():
    # flags, tenants and throttle counters all live in LocMem caches
    for alias in settings.CACHES:
        caches[alias].clear()
    yield


@pytest.fixture
def owner(db):
    return get_user_model().objects.create_user(email="owner@tienda.com", password="secret-123", full_name="Owner")


@pytest.fixture
def stranger(db):
    return get_user_model().objects.create_user(email="other@tienda.com", password="secret-123")


@pytest.fixture
def tenant(owner):
    return Tenant.objects.create(
        slug="mi-tienda", name="Mi Tienda", owner=owner, owner_email=owner.email,
        config={"business_name": "Mi Tienda", "colors": {"primary": "#111111", "secondary": "#222222"}},
    )


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def owner_client(owner, tenant):
    c = APIClient()
    c.force_authenticate(owner)
    c.credentials(HTTP_X_TENANT_ID=str(tenant.id))
    return c
