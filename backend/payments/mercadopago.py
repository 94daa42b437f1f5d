# backend/payments/mercadopago.py
"""
Thin REST client for the two MercadoPago calls the shop needs:
checkout preferences and payment lookups.
"""
import logging
from typing import Any, Dict

import requests
from django.conf import settings

from common.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


class MercadoPagoClient:
    def __init__(self, access_token: str, base_url: str = None, timeout: int = None):
        self.access_token = access_token
        self.base_url = (base_url or settings.MERCADOPAGO_API_URL).rstrip("/")
        self.timeout = timeout or settings.MERCADOPAGO_TIMEOUT

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            r = requests.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as exc:
            logger.error("mercadopago %s %s failed: %s", method, path, exc)
            raise PaymentGatewayError(f"MercadoPago request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("mercadopago %s %s returned invalid JSON", method, path)
            raise PaymentGatewayError("MercadoPago returned an invalid response") from exc

    def create_preference(self, preference: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/checkout/preferences", json=preference)

    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._call("GET", f"/v1/payments/{payment_id}")
