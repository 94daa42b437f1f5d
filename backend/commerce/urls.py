from rest_framework.routers import DefaultRouter
from django.urls import path, include
from .views import ProductViewSet, OrderViewSet, OrderCreateView

router = DefaultRouter()  # trailing_slash=True (default)
router.register(r'products', ProductViewSet, basename='product')
router.register(r'orders',   OrderViewSet,   basename='order')

urlpatterns = [
    path('orders/create/', OrderCreateView.as_view(), name='order-create'),
    path('', include(router.urls)),
]
