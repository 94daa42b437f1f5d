from rest_framework.filters import SearchFilter, OrderingFilter
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from common.mixins import TenantScopedModelViewSet

from .models import Customer
from .serializers import CustomerSerializer, CustomerListSerializer


class CustomerViewSet(TenantScopedModelViewSet):
    """
    Owner-only customer book. Customers are created by checkout, so only
    reads and edits are exposed.
    """
    http_method_names = ["get", "patch", "head", "options"]
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_fields = {"email": ["exact"], "phone": ["exact"]}
    search_fields = ["name", "email", "phone"]
    ordering_fields = ["created_at", "name", "total_spent", "last_order_at"]
    ordering = ("-created_at",)

    queryset = Customer.objects.all()

    def get_serializer_class(self):
        return CustomerListSerializer if self.action == "list" else CustomerSerializer
