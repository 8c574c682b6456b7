from decimal import Decimal
from django.contrib.auth import get_user_model
from django.db.models import Max, Sum

from transactions.models import Order, OrderItem

User = get_user_model()


class StatsService:
    """Fixed aggregate queries for the admin dashboard"""

    TOP_PRODUCTS_LIMIT = 5

    @staticmethod
    def total_sales():
        delivered = Order.objects.filter(status=Order.Status.DELIVERED)
        total = delivered.aggregate(total=Sum('total'))['total'] or Decimal('0.00')
        return {
            'total_sales': total,
            'delivered_orders': delivered.count(),
        }

    @staticmethod
    def top_products(limit=TOP_PRODUCTS_LIMIT):
        """
        Best sellers over delivered orders, named from the order snapshot.

        Lines still linked to a product are grouped by product id; lines whose
        product was deleted are grouped by their snapshotted name.
        """
        delivered = OrderItem.objects.filter(order__status=Order.Status.DELIVERED)

        rows = list(
            delivered.filter(product__isnull=False)
            .order_by()
            .values('product_id')
            .annotate(name=Max('product_name'), total_quantity=Sum('quantity'))
        )
        rows += list(
            delivered.filter(product__isnull=True)
            .order_by()
            .values('product_name')
            .annotate(total_quantity=Sum('quantity'))
            .values('product_name', 'total_quantity')
        )

        ranked = sorted(
            (
                {
                    'product_id': row.get('product_id'),
                    'name': row.get('name', row.get('product_name')),
                    'total_quantity': row['total_quantity'],
                }
                for row in rows
            ),
            key=lambda row: (-row['total_quantity'], row['name']),
        )
        return ranked[:limit]

    @staticmethod
    def active_users():
        return {'active_users': User.objects.filter(is_active=True).count()}
