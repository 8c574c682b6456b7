from rest_framework import serializers
from .models import Discount, Order, OrderItem, ShippingAddress


class OrderItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True, allow_null=True)
    item_subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product_id', 'product_name', 'price_at_purchase', 'image_url', 'quantity', 'item_subtotal']
        read_only_fields = fields


class ShippingAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = ShippingAddress
        fields = ['full_name', 'address', 'city', 'state', 'country', 'postal_code']


class ShippingInfoSerializer(serializers.Serializer):
    """Shipping details as submitted at checkout"""
    name = serializers.CharField(max_length=255)
    address = serializers.CharField()
    city = serializers.CharField(max_length=100)
    country = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')


class OrderSerializer(serializers.ModelSerializer):
    customer_username = serializers.CharField(source='customer.username', read_only=True, default=None)
    customer_email = serializers.EmailField(source='customer.email', read_only=True, default=None)
    order_items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = ShippingAddressSerializer(read_only=True)
    total_items = serializers.IntegerField(read_only=True)
    is_delivered = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_id', 'customer', 'customer_username', 'customer_email',
            'status', 'payment_method', 'payment_status',
            'subtotal', 'discount_code', 'discount_amount', 'total', 'total_items', 'is_delivered',
            'ordered_at', 'updated_at', 'order_items', 'shipping_address'
        ]
        read_only_fields = fields


class PlaceOrderSerializer(serializers.Serializer):
    shipping_info = ShippingInfoSerializer()
    payment_method = serializers.CharField(max_length=30, required=False, default='credit-card')
    discount_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)


# ---------------------------
# Discount Serializers
# ---------------------------
class DiscountSerializer(serializers.ModelSerializer):
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Discount
        fields = [
            'id', 'code', 'discount_type', 'value', 'min_order_amount', 'expiry_date',
            'max_uses', 'used_count', 'is_active', 'is_expired', 'created_at', 'updated_at'
        ]
        read_only_fields = ['used_count', 'created_at', 'updated_at']

    def validate_code(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("Discount code is required.")
        duplicates = Discount.objects.filter(code__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError("Discount code already exists.")
        return value

    def validate(self, attrs):
        discount_type = attrs.get('discount_type', getattr(self.instance, 'discount_type', None))
        value = attrs.get('value', getattr(self.instance, 'value', None))
        if discount_type == Discount.DiscountType.PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError({'value': "Percentage discounts cannot exceed 100."})
        return attrs


class ValidateDiscountSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    order_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
