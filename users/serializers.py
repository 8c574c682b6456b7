from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import serializers

from authentication.core.uploads import validate_image_upload
from authentication.serializers import UserBaseSerializer
from store.serializers import CartItemSerializer
from transactions.serializers import OrderSerializer

User = get_user_model()


class StrictBooleanField(serializers.BooleanField):
    """Only accepts real JSON booleans, not "true"/1 and friends"""
    default_error_messages = {
        'invalid': 'Must be a boolean (true or false).'
    }

    def to_internal_value(self, data):
        if not isinstance(data, bool):
            self.fail('invalid')
        return data


# =====================================================
# USER MANAGEMENT SERIALIZERS
# =====================================================
class UserUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['username', 'email', 'role']
        extra_kwargs = {
            'username': {'min_length': 3, 'max_length': 30},
        }

    def validate_username(self, value):
        value = value.strip()
        if User.objects.filter(username__iexact=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("Username is already taken.")
        return value

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value


class UserRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.Role.choices)


class UserStatusSerializer(serializers.Serializer):
    is_active = StrictBooleanField()


class AvatarUploadSerializer(serializers.Serializer):
    avatar = serializers.ImageField()

    def validate_avatar(self, value):
        return validate_image_upload(value, settings.AVATAR_MAX_BYTES)


class UserActivitySerializer(serializers.Serializer):
    user = UserBaseSerializer()
    orders = OrderSerializer(many=True)
    cart_items = CartItemSerializer(many=True)


# =====================================================
# STATS SERIALIZERS
# =====================================================
class SalesStatsSerializer(serializers.Serializer):
    total_sales = serializers.DecimalField(max_digits=14, decimal_places=2)
    delivered_orders = serializers.IntegerField()


class TopProductSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(allow_null=True)
    name = serializers.CharField()
    total_quantity = serializers.IntegerField()


class ActiveUsersSerializer(serializers.Serializer):
    active_users = serializers.IntegerField()
