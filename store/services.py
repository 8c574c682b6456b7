import logging
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.http import Http404

from authentication.core.exceptions import InsufficientStockException
from .models import Cart, CartItem, Product

logger = logging.getLogger(__name__)


class CartService:
    """Cart line reconciliation for a single customer's cart"""

    @staticmethod
    def get_cart(user):
        cart, created = Cart.objects.get_or_create(customer=user)
        if created:
            logger.info(f"Created cart for user {user.pk}")
        return cart

    @staticmethod
    def _get_existing_cart(user):
        try:
            return Cart.objects.get(customer=user)
        except Cart.DoesNotExist:
            raise Http404("Cart not found")

    @staticmethod
    def _get_line(cart, product_id, lock=False):
        lines = cart.items.select_related('product')
        if lock:
            # locks the joined product row as well
            lines = lines.select_for_update()
        try:
            return lines.get(product_id=product_id)
        except CartItem.DoesNotExist:
            raise Http404("Item not found in cart")

    @staticmethod
    @transaction.atomic
    def add_item(user, product_id, quantity):
        """
        Add ``quantity`` of a product. An existing line is merged; the merged
        quantity may never exceed the product's current stock.
        """
        product = get_object_or_404(Product.objects.select_for_update(), pk=product_id)
        cart = CartService.get_cart(user)

        line = cart.items.select_for_update().filter(product=product).first()
        if line is not None:
            new_quantity = line.quantity + quantity
            if new_quantity > product.stock:
                available = max(product.stock - line.quantity, 0)
                logger.warning(
                    f"User {user.pk} tried to raise '{product.name}' to {new_quantity} (stock {product.stock})"
                )
                raise InsufficientStockException(
                    f"Cannot add {quantity} more. Only {available} more can be added "
                    f"(stock: {product.stock}, in cart: {line.quantity})."
                )
            line.quantity = new_quantity
            line.save(update_fields=['quantity'])
        else:
            if quantity > product.stock:
                logger.warning(
                    f"User {user.pk} tried to add {quantity} of '{product.name}' (stock {product.stock})"
                )
                raise InsufficientStockException(
                    f"Only {product.stock} of '{product.name}' in stock."
                )
            line = CartItem.objects.create(cart=cart, product=product, quantity=quantity)

        cart.save(update_fields=['updated_at'])
        logger.info(f"User {user.pk} cart: '{product.name}' quantity now {line.quantity}")
        return cart

    @staticmethod
    @transaction.atomic
    def set_quantity(user, product_id, quantity):
        """Set a line to an exact quantity; zero removes it"""
        cart = CartService._get_existing_cart(user)
        line = CartService._get_line(cart, product_id, lock=True)

        if quantity == 0:
            line.delete()
            logger.info(f"User {user.pk} cart: removed '{line.product.name}'")
        else:
            if quantity > line.product.stock:
                raise InsufficientStockException(
                    f"Only {line.product.stock} of '{line.product.name}' in stock."
                )
            line.quantity = quantity
            line.save(update_fields=['quantity'])
            logger.info(f"User {user.pk} cart: '{line.product.name}' quantity set to {quantity}")

        cart.save(update_fields=['updated_at'])
        return cart

    @staticmethod
    @transaction.atomic
    def change_quantity(user, product_id, change):
        """Step a line by +1 or -1; dropping to zero removes it"""
        cart = CartService._get_existing_cart(user)
        line = CartService._get_line(cart, product_id, lock=True)

        new_quantity = line.quantity + change
        if new_quantity <= 0:
            line.delete()
            logger.info(f"User {user.pk} cart: removed '{line.product.name}'")
        else:
            if change > 0 and new_quantity > line.product.stock:
                raise InsufficientStockException(
                    f"Only {line.product.stock} of '{line.product.name}' in stock."
                )
            line.quantity = new_quantity
            line.save(update_fields=['quantity'])

        cart.save(update_fields=['updated_at'])
        return cart

    @staticmethod
    def remove_item(user, product_id):
        cart = CartService._get_existing_cart(user)
        line = CartService._get_line(cart, product_id)
        line.delete()
        cart.save(update_fields=['updated_at'])
        logger.info(f"User {user.pk} cart: removed product {product_id}")
        return cart

    @staticmethod
    def clear(user):
        cart = CartService.get_cart(user)
        deleted, _ = cart.items.all().delete()
        cart.save(update_fields=['updated_at'])
        logger.info(f"User {user.pk} cart cleared ({deleted} line(s))")
        return cart

    @staticmethod
    def admin_list_carts():
        """Every cart that currently holds at least one line"""
        return (
            Cart.objects.filter(items__isnull=False)
            .distinct()
            .select_related('customer')
            .prefetch_related('items__product')
            .order_by('-updated_at')
        )

    @staticmethod
    def admin_clear_cart(user_id):
        try:
            cart = Cart.objects.get(customer_id=user_id)
        except Cart.DoesNotExist:
            raise Http404("Cart not found for this user")
        deleted, _ = cart.items.all().delete()
        cart.save(update_fields=['updated_at'])
        logger.info(f"Admin cleared cart of user {user_id} ({deleted} line(s))")
        return cart
