import logging

from celery import shared_task
from django.conf import settings

from common.exceptions import PaymentGatewayError

from .mercadopago import MercadoPagoClient
from .models import ProviderEvent
from .services import apply_payment

logger = logging.getLogger(__name__)


def _backoff(attempt: int) -> int:
    return min(300, 10 * 2 ** attempt)  # 10,20,40,...,300


@shared_task(bind=True, max_retries=5)
def sync_payment_status(self, payment_id: str, event_id=None):
    """
    Fetch a MercadoPago payment and mirror its status on the order.
    Returns the new order status, or None when nothing matched.
    """
    try:
        payment = MercadoPagoClient(settings.MERCADOPAGO_ACCESS_TOKEN).get_payment(payment_id)
    except PaymentGatewayError as exc:
        if self.request.is_eager:
            logger.error("payment %s: lookup failed, notification left unprocessed", payment_id)
            return None
        raise self.retry(exc=exc, countdown=_backoff(self.request.retries))

    order = apply_payment(payment)
    if event_id:
        ProviderEvent.objects.filter(pk=event_id).update(
            processed=True, tenant=order.tenant if order else None,
        )
    return order.status if order else None
