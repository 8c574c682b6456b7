from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from authentication.models import CustomUser


# ==========================================
# Category Model
# ==========================================
class Category(models.Model):
    """
    A named product grouping. Names are trimmed and unique.
    """
    name = models.CharField(max_length=50, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Categories"
        ordering = ['name']

    def save(self, *args, **kwargs):
        if self.name:
            self.name = self.name.strip()
        super().save(*args, **kwargs)

    @property
    def product_count(self):
        return self.products.count()

    def __str__(self):
        return self.name


class Product(models.Model):
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    name = models.CharField(max_length=100)
    description = models.TextField(max_length=1000)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    stock = models.PositiveIntegerField(default=0)
    image = models.ImageField(upload_to='products/', null=True, blank=True)
    created_by = models.ForeignKey(
        CustomUser, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_products'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    @property
    def in_stock(self):
        return self.stock > 0

    @property
    def image_url(self):
        """Stored image URL, or the shared placeholder when no image was uploaded"""
        if self.image:
            return self.image.url
        return settings.PRODUCT_PLACEHOLDER_IMAGE

    def __str__(self):
        return self.name


# -------------------------------
# Cart & Related Models
# -------------------------------
class Cart(models.Model):
    customer = models.OneToOneField(CustomUser, on_delete=models.CASCADE, related_name='cart', help_text="Each customer has one active cart")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        # Ensure one cart per customer
        constraints = [
            models.UniqueConstraint(fields=['customer'], name='one_cart_per_customer')
        ]

    @property
    def total(self):
        return sum((item.subtotal for item in self.items.all()), Decimal('0.00'))

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items.all())

    def __str__(self):
        return f"Cart for {self.customer.email}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        # Prevent duplicate products in same cart
        unique_together = ('cart', 'product')
        ordering = ['added_at', 'id']

    @property
    def subtotal(self):
        return self.product.price * self.quantity

    def __str__(self):
        return f"{self.quantity} x {self.product.name}"
