import logging
from decimal import Decimal
from django.db import transaction
from django.db.models import F

from authentication.core.exceptions import (
    EmptyCartException,
    InsufficientStockException,
    InvalidDiscountException,
)
from store.models import Cart, Product
from .models import Discount, Order, OrderItem, ShippingAddress

logger = logging.getLogger(__name__)


class DiscountService:

    @staticmethod
    def get_applicable(code, order_amount, lock=False):
        """
        Look up ``code`` and make sure it can be applied to ``order_amount``.
        Raises InvalidDiscountException with the reason otherwise.
        """
        code = (code or '').strip().upper()
        queryset = Discount.objects.select_for_update() if lock else Discount.objects.all()
        try:
            discount = queryset.get(code=code)
        except Discount.DoesNotExist:
            logger.warning(f"Unknown discount code submitted: {code}")
            raise InvalidDiscountException("Invalid discount code.")

        reason = discount.unavailable_reason(order_amount)
        if reason:
            logger.warning(f"Discount {code} rejected for amount {order_amount}: {reason}")
            raise InvalidDiscountException(reason)
        return discount

    @staticmethod
    def preview(code, order_amount):
        discount = DiscountService.get_applicable(code, order_amount)
        order_amount = Decimal(order_amount).quantize(Decimal('0.01'))
        amount = discount.calculate_discount(order_amount)
        return {
            'code': discount.code,
            'discount_type': discount.discount_type,
            'value': str(discount.value),
            'order_amount': str(order_amount),
            'discount_amount': str(amount),
            'final_total': str(order_amount - amount),
        }


class OrderService:

    @staticmethod
    @transaction.atomic
    def place_order(user, shipping_info, payment_method='credit-card', discount_code=''):
        """
        Turn the user's cart into an order.

        Every line is checked against locked, current stock before anything is
        written; items are snapshotted, stock decremented and the cart emptied
        in the same transaction.
        """
        cart = Cart.objects.filter(customer=user).first()
        lines = list(cart.items.select_related('product').order_by('id')) if cart else []
        if not lines:
            logger.warning(f"User {user.pk} attempted checkout with an empty cart")
            raise EmptyCartException()

        products = Product.objects.select_for_update().in_bulk([line.product_id for line in lines])

        subtotal = Decimal('0.00')
        for line in lines:
            product = products[line.product_id]
            if line.quantity > product.stock:
                logger.warning(
                    f"Checkout for user {user.pk} blocked: '{product.name}' has {product.stock}, needs {line.quantity}"
                )
                raise InsufficientStockException(
                    f"Insufficient stock for '{product.name}'. Available: {product.stock}, requested: {line.quantity}."
                )
            subtotal += product.price * line.quantity

        discount = None
        discount_amount = Decimal('0.00')
        if discount_code:
            discount = DiscountService.get_applicable(discount_code, subtotal, lock=True)
            discount_amount = discount.calculate_discount(subtotal)

        order = Order.objects.create(
            customer=user,
            payment_method=payment_method or 'credit-card',
            payment_status=Order.PaymentStatus.PAID,
            subtotal=subtotal,
            discount=discount,
            discount_code=discount.code if discount else '',
            discount_amount=discount_amount,
            total=subtotal - discount_amount,
        )

        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=products[line.product_id],
                product_name=products[line.product_id].name,
                price_at_purchase=products[line.product_id].price,
                image_url=products[line.product_id].image_url,
                quantity=line.quantity,
            )
            for line in lines
        ])

        for line in lines:
            Product.objects.filter(pk=line.product_id).update(stock=F('stock') - line.quantity)

        ShippingAddress.objects.create(
            order=order,
            full_name=shipping_info['name'],
            address=shipping_info['address'],
            city=shipping_info['city'],
            state=shipping_info.get('state', ''),
            country=shipping_info['country'],
            postal_code=shipping_info.get('postal_code', ''),
        )

        if discount is not None:
            Discount.objects.filter(pk=discount.pk).update(used_count=F('used_count') + 1)

        cart.items.all().delete()

        logger.info(
            f"Order {order.order_id} placed by user {user.pk}: {len(lines)} line(s), total {order.total}"
        )
        return order

    @staticmethod
    def update_status(order, new_status, admin_user=None):
        old_status = order.status
        order.status = new_status
        order.save(update_fields=['status', 'updated_at'])
        logger.info(
            f"Order {order.order_id} status changed from '{old_status}' to '{new_status}'"
            f" by {getattr(admin_user, 'email', 'system')}"
        )
        return order
