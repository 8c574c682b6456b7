from django.conf import settings
from rest_framework import serializers
from .models import Category, Product, Cart, CartItem
from authentication.core.uploads import validate_image_upload


# ---------------------------
# Category Serializer
# ---------------------------
class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Category name is required.")
        duplicates = Category.objects.filter(name__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError("Category already exists.")
        return value


class CategoryNameField(serializers.SlugRelatedField):
    """Resolve a category by its name, ignoring case"""

    def __init__(self, **kwargs):
        kwargs.setdefault('slug_field', 'name')
        kwargs.setdefault('queryset', Category.objects.all())
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        name = str(data).strip()
        try:
            return self.get_queryset().get(name__iexact=name)
        except Category.DoesNotExist:
            raise serializers.ValidationError(f"Category '{name}' does not exist.")
        except (TypeError, ValueError):
            self.fail('invalid')


# ---------------------------
# Product Serializer
# ---------------------------
class ProductSerializer(serializers.ModelSerializer):
    category = CategoryNameField()
    image = serializers.ImageField(write_only=True, required=False, allow_null=True)
    image_url = serializers.CharField(read_only=True)
    in_stock = serializers.BooleanField(read_only=True)
    created_by = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'category', 'price', 'stock',
            'image', 'image_url', 'in_stock', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'stock': {'required': True},
        }
        ref_name = "StoreProductSerializer"

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Product name is required.")
        return value

    def validate_image(self, value):
        if value is None:
            return value
        return validate_image_upload(value, settings.PRODUCT_IMAGE_MAX_BYTES)


class ProductImageSerializer(serializers.Serializer):
    image = serializers.ImageField()

    def validate_image(self, value):
        return validate_image_upload(value, settings.PRODUCT_IMAGE_MAX_BYTES)


class CartProductSerializer(serializers.ModelSerializer):
    image_url = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'price', 'stock', 'image_url']
        ref_name = "CartProductSerializer"


# ---------------------------
# Cart Item Serializer
# ---------------------------
class CartItemSerializer(serializers.ModelSerializer):
    product_details = CartProductSerializer(source='product', read_only=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = ['id', 'product', 'product_details', 'quantity', 'subtotal']


# ---------------------------
# Cart Serializer
# ---------------------------
class CartSerializer(serializers.ModelSerializer):
    items = CartItemSerializer(many=True, read_only=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total_items = serializers.IntegerField(read_only=True)

    class Meta:
        model = Cart
        fields = ['id', 'customer', 'items', 'total', 'total_items', 'created_at', 'updated_at']


class AdminCartSerializer(CartSerializer):
    username = serializers.CharField(source='customer.username', read_only=True)
    email = serializers.CharField(source='customer.email', read_only=True)
    total_amount = serializers.DecimalField(source='total', max_digits=12, decimal_places=2, read_only=True)

    class Meta(CartSerializer.Meta):
        fields = [
            'id', 'customer', 'username', 'email', 'items',
            'total_items', 'total_amount', 'updated_at'
        ]


# ---------------------------
# Cart input serializers
# ---------------------------
class AddToCartSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class SetCartQuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0)


class ChangeCartQuantitySerializer(serializers.Serializer):
    change = serializers.ChoiceField(choices=[1, -1])
