from rest_framework import serializers

from commerce.models import Order
from commerce.serializers import CustomerInputSerializer, OrderItemInputSerializer
from .models import ProviderEvent


class CheckoutSerializer(serializers.Serializer):
    tenant = serializers.SlugField(max_length=100)
    customer = CustomerInputSerializer()
    payment_method = serializers.ChoiceField(
        choices=[Order.PaymentMethod.CASH, Order.PaymentMethod.MERCADOPAGO]
    )
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    currency = serializers.CharField(max_length=3, required=False)
    locale = serializers.CharField(max_length=5, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ProviderEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProviderEvent
        fields = ("id", "provider", "event_type", "resource_id", "processed", "payload", "created_at")
