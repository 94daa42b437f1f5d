import hashlib
import hmac
import json
from decimal import Decimal
from unittest import mock

import pytest
import requests
from django.urls import reverse

from commerce.models import Order, Product
from commerce.services import create_order
from common.crypto import encrypt_value
from payments import services
from payments.models import ProviderEvent

pytestmark = pytest.mark.django_db

SECRET = "whsec-test"
BUYER = {"name": "Ana Pérez", "email": "ana@mail.com", "phone": "1155550000"}


def _response(payload, status=200):
    r = mock.Mock()
    r.status_code = status
    r.json.return_value = payload
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        r.raise_for_status.return_value = None
    return r


@pytest.fixture
def cuadro(tenant):
    return Product.objects.create(tenant=tenant, name="Cuadro", price=Decimal("1500.00"), stock=5)


@pytest.fixture
def mp_tenant(tenant):
    tenant.mp_access_token = encrypt_value("APP_USR-tenant")
    tenant.save()
    return tenant


def _checkout(client, product, method="cash", **extra):
    body = {"tenant": "mi-tienda", "customer": BUYER, "payment_method": method,
            "items": [{"product_id": str(product.pk), "quantity": 2}]}
    body.update(extra)
    return client.post(reverse("checkout"), body, format="json")


# ---- helpers ----
@pytest.mark.parametrize("mp_status,expected", [
    ("approved", "paid"),
    ("rejected", "cancelled"),
    ("cancelled", "cancelled"),
    ("refunded", "cancelled"),
    ("charged_back", "cancelled"),
    ("in_process", "pending"),
    ("pending", "pending"),
    (None, "pending"),
])
def test_map_payment_status(mp_status, expected):
    assert services.map_payment_status(mp_status) == expected


def test_parse_signature():
    assert services.parse_signature("ts=1704908010,v1=abc") == ("1704908010", "abc")
    assert services.parse_signature(" v1=abc , ts=1 ") == ("1", "abc")
    assert services.parse_signature("v1=abc") is None
    assert services.parse_signature("garbage") is None


# ---- checkout ----
class TestCheckout:
    def test_cash(self, client, tenant, cuadro):
        r = _checkout(client, cuadro)
        assert r.status_code == 201
        assert r.data["success"] is True
        assert r.data["total"] == "3000.00"
        assert "preference_id" not in r.data

    def test_mercadopago_creates_preference(self, client, mp_tenant, cuadro, settings):
        settings.PUBLIC_BASE_URL = "https://vitrina.app"
        with mock.patch("payments.mercadopago.requests.request") as req:
            req.return_value = _response({"id": "pref-1", "init_point": "https://mp/checkout/pref-1"})
            r = _checkout(client, cuadro, method="mercadopago", locale="en")

        assert r.status_code == 201
        assert r.data["preference_id"] == "pref-1"
        assert r.data["init_point"] == "https://mp/checkout/pref-1"

        method, url = req.call_args.args
        kwargs = req.call_args.kwargs
        assert method == "POST" and url.endswith("/checkout/preferences")
        assert kwargs["headers"]["Authorization"] == "Bearer APP_USR-tenant"
        pref = kwargs["json"]
        assert pref["external_reference"] == r.data["order_id"]
        assert pref["items"][0]["unit_price"] == 1500.0
        assert pref["back_urls"]["success"] == "https://vitrina.app/en/mi-tienda/checkout/success"
        assert pref["auto_return"] == "approved"
        assert pref["notification_url"].endswith("/api/v1/payments/webhooks/mercadopago/")
        assert Order.objects.get(pk=r.data["order_id"]).checkout_id == "pref-1"

    def test_local_base_url_skips_auto_return(self, client, mp_tenant, cuadro, settings):
        settings.PUBLIC_BASE_URL = "http://localhost:3000"
        with mock.patch("payments.mercadopago.requests.request") as req:
            req.return_value = _response({"id": "pref-2", "init_point": "x"})
            _checkout(client, cuadro, method="mercadopago")
        pref = req.call_args.kwargs["json"]
        assert "auto_return" not in pref and "notification_url" not in pref
        assert pref["back_urls"]["failure"] == "http://localhost:3000/es/mi-tienda/checkout/failure"

    def test_mercadopago_without_token(self, client, tenant, cuadro):
        r = _checkout(client, cuadro, method="mercadopago")
        assert r.status_code == 400
        assert Order.objects.count() == 0

    def test_gateway_failure_is_502(self, client, mp_tenant, cuadro):
        with mock.patch("payments.mercadopago.requests.request") as req:
            req.return_value = _response({"message": "boom"}, status=500)
            r = _checkout(client, cuadro, method="mercadopago")
        assert r.status_code == 502
        assert Order.objects.count() == 0


# ---- webhook ----
def _signed(body: dict, request_id="req-1", ts="1704908010", secret=SECRET):
    raw = json.dumps(body).encode()
    digest = hmac.new(secret.encode(), f"{ts}.{request_id}.".encode() + raw, hashlib.sha256).hexdigest()
    return raw, {"HTTP_X_SIGNATURE": f"ts={ts},v1={digest}", "HTTP_X_REQUEST_ID": request_id}


class TestWebhook:
    url = "/api/v1/payments/webhooks/mercadopago/"

    @pytest.fixture(autouse=True)
    def _secret(self, settings):
        settings.MERCADOPAGO_WEBHOOK_SECRET = SECRET
        settings.MERCADOPAGO_ACCESS_TOKEN = "APP_USR-platform"

    def _post(self, client, raw, headers):
        return client.generic("POST", self.url, raw, content_type="application/json", **headers)

    def test_missing_signature(self, client):
        r = client.post(self.url, {"type": "payment"}, format="json")
        assert r.status_code == 400

    def test_secret_not_configured(self, client, settings):
        settings.MERCADOPAGO_WEBHOOK_SECRET = ""
        raw, headers = _signed({"type": "payment", "data": {"id": "1"}})
        assert self._post(client, raw, headers).status_code == 500

    def test_bad_signatures(self, client):
        raw, headers = _signed({"type": "payment", "data": {"id": "1"}}, secret="wrong")
        assert self._post(client, raw, headers).status_code == 403
        raw, headers = _signed({"type": "payment", "data": {"id": "1"}})
        headers["HTTP_X_SIGNATURE"] = "nonsense"
        assert self._post(client, raw, headers).status_code == 403
        raw, headers = _signed({"type": "payment", "data": {"id": "1"}})
        assert self._post(client, raw + b" ", headers).status_code == 403
        assert ProviderEvent.objects.count() == 0

    def test_payment_without_id(self, client):
        raw, headers = _signed({"type": "payment", "data": {}})
        assert self._post(client, raw, headers).status_code == 400

    def test_non_payment_events_are_logged_only(self, client):
        raw, headers = _signed({"type": "merchant_order", "data": {"id": "77"}})
        with mock.patch("payments.mercadopago.requests.request") as req:
            r = self._post(client, raw, headers)
        assert r.status_code == 200
        req.assert_not_called()
        assert ProviderEvent.objects.get().event_type == "merchant_order"

    def test_approved_payment_marks_order_paid(self, client, tenant, cuadro):
        order = create_order(tenant_slug="mi-tienda", customer=BUYER,
                             items=[{"product_id": str(cuadro.pk), "quantity": 1}],
                             payment_method="mercadopago")
        raw, headers = _signed({"type": "payment", "data": {"id": "9001"}})
        with mock.patch("payments.mercadopago.requests.request") as req:
            req.return_value = _response({"id": 9001, "status": "approved", "external_reference": str(order.pk)})
            r = self._post(client, raw, headers)

        assert r.status_code == 200
        method, url = req.call_args.args
        assert method == "GET" and url.endswith("/v1/payments/9001")
        assert req.call_args.kwargs["headers"]["Authorization"] == "Bearer APP_USR-platform"
        order.refresh_from_db()
        assert order.status == "paid"
        assert order.payment_id == "9001"
        event = ProviderEvent.objects.get()
        assert event.processed is True and event.tenant_id == tenant.id

    def test_rejected_payment_cancels_order(self, client, tenant, cuadro):
        order = create_order(tenant_slug="mi-tienda", customer=BUYER,
                             items=[{"product_id": str(cuadro.pk), "quantity": 1}],
                             payment_method="mercadopago")
        raw, headers = _signed({"type": "payment", "data": {"id": "9002"}})
        with mock.patch("payments.mercadopago.requests.request") as req:
            req.return_value = _response({"id": 9002, "status": "rejected", "external_reference": str(order.pk)})
            self._post(client, raw, headers)
        order.refresh_from_db()
        assert order.status == "cancelled"

    def test_gateway_failure_still_acknowledged(self, client):
        raw, headers = _signed({"type": "payment", "data": {"id": "9003"}})
        with mock.patch("payments.mercadopago.requests.request") as req:
            req.side_effect = requests.ConnectionError("down")
            r = self._post(client, raw, headers)
        assert r.status_code == 200
        assert ProviderEvent.objects.get().processed is False
