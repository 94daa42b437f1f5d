from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import CheckoutView, MercadoPagoWebhookView, ProviderEventViewSet

router = DefaultRouter()
router.register(r'events', ProviderEventViewSet, basename='provider-event')

urlpatterns = [
    path('checkout/', CheckoutView.as_view(), name='checkout'),
    path('webhooks/mercadopago/', MercadoPagoWebhookView.as_view(), name='mercadopago-webhook'),
    path('', include(router.urls)),
]
