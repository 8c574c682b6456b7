from django.contrib import admin
from .models import Discount, Order, OrderItem, ShippingAddress


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('product', 'product_name', 'price_at_purchase', 'image_url', 'quantity')


class ShippingAddressInline(admin.StackedInline):
    model = ShippingAddress
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_id', 'customer', 'status', 'total', 'payment_status', 'ordered_at')
    search_fields = ('order_id', 'customer__email', 'customer__username')
    list_filter = ('status', 'payment_status', 'ordered_at')
    readonly_fields = ('order_id', 'subtotal', 'discount_amount', 'total', 'ordered_at', 'updated_at')
    inlines = [OrderItemInline, ShippingAddressInline]


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ('id', 'order', 'product_name', 'quantity', 'price_at_purchase', 'item_subtotal')
    search_fields = ('product_name', 'order__order_id')
    list_filter = ('order__ordered_at',)


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ('code', 'discount_type', 'value', 'min_order_amount', 'used_count', 'max_uses', 'is_active', 'expiry_date')
    list_filter = ('discount_type', 'is_active')
    search_fields = ('code',)
    readonly_fields = ('used_count', 'created_at', 'updated_at')
