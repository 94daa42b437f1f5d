from rest_framework import serializers

from .models import Product, Order


class ProductSizeSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=40)
    label = serializers.CharField(max_length=60)
    stock = serializers.IntegerField(min_value=0)


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = (
            "id", "tenant", "name", "description", "price", "currency", "stock", "category",
            "image_url", "active", "display_order", "metadata_json", "created_at", "updated_at",
        )
        read_only_fields = ("id", "tenant", "created_at", "updated_at")

    def validate_metadata_json(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Must be an object.")
        if "sizes" in value:
            sizes = ProductSizeSerializer(data=value["sizes"], many=True)
            sizes.is_valid(raise_exception=True)
            value = {**value, "sizes": [dict(s) for s in sizes.validated_data]}
        return value


# ---- Order creation (public storefront) ----
class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1, max_value=999)
    size_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CustomerInputSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(min_length=6, max_length=32)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class CreateOrderSerializer(serializers.Serializer):
    tenant = serializers.SlugField()
    customer = CustomerInputSerializer()
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000, default="")


# ---- Dashboard ----
class OrderCustomerSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    email = serializers.EmailField()
    phone = serializers.CharField()


class OrderSerializer(serializers.ModelSerializer):
    customer = OrderCustomerSerializer(read_only=True)
    items = serializers.JSONField(source="items_json", read_only=True)

    class Meta:
        model = Order
        fields = (
            "id", "tenant", "customer", "items", "total", "currency", "status",
            "payment_method", "payment_id", "notes", "created_at", "updated_at",
        )
        read_only_fields = fields


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)
