from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
import uuid
from decimal import Decimal, ROUND_HALF_UP
from authentication.models import CustomUser


# ========================
# DISCOUNT CODES
# ========================
class Discount(models.Model):
    class DiscountType(models.TextChoices):
        PERCENTAGE = 'percentage', 'Percentage'
        FIXED = 'fixed', 'Fixed amount'

    code = models.CharField(max_length=50, unique=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    min_order_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(Decimal('0'))]
    )
    expiry_date = models.DateTimeField(null=True, blank=True)
    max_uses = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(1)])
    used_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def save(self, *args, **kwargs):
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return bool(self.expiry_date and self.expiry_date < timezone.now())

    @property
    def is_exhausted(self):
        return self.max_uses is not None and self.used_count >= self.max_uses

    def unavailable_reason(self, order_amount):
        """Why this code cannot be applied to ``order_amount``, or None when it can"""
        if not self.is_active:
            return "This discount code is no longer active."
        if self.is_expired:
            return "This discount code has expired."
        if self.is_exhausted:
            return "This discount code has reached its usage limit."
        if Decimal(order_amount) < self.min_order_amount:
            return f"A minimum order of {self.min_order_amount} is required for this code."
        return None

    def calculate_discount(self, order_amount):
        order_amount = Decimal(order_amount)
        if self.discount_type == self.DiscountType.PERCENTAGE:
            amount = order_amount * self.value / Decimal('100')
        else:
            amount = self.value
        amount = min(amount, order_amount)
        return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    def __str__(self):
        return f"{self.code} ({self.value} {self.discount_type})"


# ========================
# ORDER SYSTEM
# ========================
class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PROCESSING = 'processing', 'Processing'
        SHIPPED = 'shipped', 'Shipped'
        DELIVERED = 'delivered', 'Delivered'
        CANCELLED = 'cancelled', 'Cancelled'

    class PaymentStatus(models.TextChoices):
        PAID = 'paid', 'Paid'
        UNPAID = 'unpaid', 'Unpaid'
        REFUNDED = 'refunded', 'Refunded'

    order_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    customer = models.ForeignKey(CustomUser, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_method = models.CharField(max_length=30, default='credit-card')
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PAID)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount = models.ForeignKey(Discount, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    discount_code = models.CharField(max_length=50, blank=True, default='')
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    ordered_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-ordered_at']
        indexes = [
            models.Index(fields=['status'], name='order_status_idx'),
        ]

    @property
    def total_items(self):
        return sum(item.quantity for item in self.order_items.all())

    @property
    def is_delivered(self):
        return self.status == self.Status.DELIVERED

    def __str__(self):
        return f"Order {self.order_id} ({getattr(self.customer, 'email', 'Unknown')})"


class OrderItem(models.Model):
    """A point-in-time copy of a cart line; later product edits never change it"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='order_items')
    product = models.ForeignKey('store.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    product_name = models.CharField(max_length=100)
    price_at_purchase = models.DecimalField(max_digits=10, decimal_places=2)
    image_url = models.CharField(max_length=500, blank=True, default='')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    @property
    def item_subtotal(self):
        return self.price_at_purchase * self.quantity

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"


# ========================
# SHIPPING / DELIVERY DETAILS
# ========================
class ShippingAddress(models.Model):
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='shipping_address')
    full_name = models.CharField(max_length=255)
    address = models.TextField()
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100, blank=True, default='')
    country = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=20, blank=True, default='')

    def __str__(self):
        return f"Shipping for {self.order.order_id} - {self.city}, {self.country}"
