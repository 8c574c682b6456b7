import logging
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from rest_framework.exceptions import PermissionDenied

from authentication.core.exceptions import LastAdminException
from store.models import CartItem
from transactions.models import Order

logger = logging.getLogger(__name__)

User = get_user_model()


class UserAdminService:
    """User management operations shared by the admin panel and self-service profile"""

    @staticmethod
    def search(search=None, role=None):
        queryset = User.objects.all().order_by('-created_at')
        if search:
            search = search.strip()
            queryset = queryset.filter(Q(username__icontains=search) | Q(email__icontains=search))
        if role:
            queryset = queryset.filter(role=role)
        return queryset

    @staticmethod
    def ensure_not_last_admin(user):
        """
        Refuse to demote, deactivate or delete the only active administrator.
        """
        if not (user.is_admin and user.is_active):
            return
        others = User.objects.filter(role=User.Role.ADMIN, is_active=True).exclude(pk=user.pk)
        if not others.exists():
            logger.warning(f"Blocked change to last active admin {user.email}")
            raise LastAdminException()

    @staticmethod
    @transaction.atomic
    def update_profile(actor, user, validated_data):
        if 'role' in validated_data and validated_data['role'] != user.role:
            if not actor.is_admin:
                raise PermissionDenied("Only administrators can change user roles.")
            if validated_data['role'] != User.Role.ADMIN:
                UserAdminService.ensure_not_last_admin(user)

        for field, value in validated_data.items():
            setattr(user, field, value)
        user.save()
        logger.info(f"User {user.pk} profile updated by {actor.email}: {sorted(validated_data)}")
        return user

    @staticmethod
    @transaction.atomic
    def set_role(actor, user, role):
        if role == user.role:
            return user
        if role != User.Role.ADMIN:
            UserAdminService.ensure_not_last_admin(user)
        old_role = user.role
        user.role = role
        user.save(update_fields=['role', 'updated_at'])
        logger.info(f"User {user.email} role changed from '{old_role}' to '{role}' by {actor.email}")
        return user

    @staticmethod
    @transaction.atomic
    def set_active(actor, user, is_active):
        if not is_active:
            UserAdminService.ensure_not_last_admin(user)
        user.is_active = is_active
        user.save(update_fields=['is_active', 'updated_at'])
        logger.info(
            f"User {user.email} {'activated' if is_active else 'deactivated'} by {actor.email}"
        )
        return user

    @staticmethod
    @transaction.atomic
    def delete_user(actor, user):
        UserAdminService.ensure_not_last_admin(user)
        email = user.email
        user.delete()
        logger.info(f"User {email} deleted by {actor.email}")

    @staticmethod
    def set_avatar(user, avatar):
        user.avatar = avatar
        user.save(update_fields=['avatar', 'updated_at'])
        logger.info(f"Avatar updated for user {user.pk}: {user.avatar.name}")
        return user

    @staticmethod
    def activity(user):
        orders = (
            Order.objects.filter(customer=user)
            .select_related('shipping_address')
            .prefetch_related('order_items')
            .order_by('-ordered_at')
        )
        cart_items = CartItem.objects.filter(cart__customer=user).select_related('product')
        return {
            'user': user,
            'orders': orders,
            'cart_items': cart_items,
        }
