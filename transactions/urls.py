from django.urls import path
from .views import (
    PlaceOrderView, MyOrdersView, AdminOrderListView, OrderDetailView, OrderStatusUpdateView,
    DiscountListCreateView, DiscountDetailView, ValidateDiscountView
)

urlpatterns = [
    # Order endpoints
    path('orders/', PlaceOrderView.as_view(), name='order-create'),
    path('orders/me/', MyOrdersView.as_view(), name='my-orders'),
    path('orders/admin/', AdminOrderListView.as_view(), name='admin-order-list'),
    path('orders/<uuid:order_id>/', OrderDetailView.as_view(), name='order-detail'),
    path('orders/<uuid:order_id>/status/', OrderStatusUpdateView.as_view(), name='order-status'),

    # Discount endpoints
    path('discounts/', DiscountListCreateView.as_view(), name='discount-list-create'),
    path('discounts/validate/', ValidateDiscountView.as_view(), name='discount-validate'),
    path('discounts/<int:pk>/', DiscountDetailView.as_view(), name='discount-detail'),
]
