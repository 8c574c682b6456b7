from django.urls import path
from .views import (
    ProductListCreateView, ProductDetailView, ProductImageUploadView,
    CategoryListCreateView, CategoryDetailView,
    CartView, CartItemView, ClearCartView, AdminCartListView, AdminClearCartView
)

urlpatterns = [
    # Products
    path('products/', ProductListCreateView.as_view(), name='product-list'),
    path('products/<int:pk>/', ProductDetailView.as_view(), name='product-detail'),
    path('products/<int:pk>/image/', ProductImageUploadView.as_view(), name='product-image'),

    # Categories
    path('categories/', CategoryListCreateView.as_view(), name='category-list'),
    path('categories/<int:pk>/', CategoryDetailView.as_view(), name='category-detail'),

    # Cart
    path('cart/', CartView.as_view(), name='cart-view'),
    path('cart/items/<int:product_id>/', CartItemView.as_view(), name='cart-item'),
    path('cart/clear/', ClearCartView.as_view(), name='cart-clear'),
    path('cart/admin/', AdminCartListView.as_view(), name='admin-cart-list'),
    path('cart/admin/<int:user_id>/', AdminClearCartView.as_view(), name='admin-cart-clear'),
]
