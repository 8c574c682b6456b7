import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from store.models import Cart, CartItem, Product
from transactions.models import Discount, Order, OrderItem

SHIPPING = {"name": "Ada Lovelace", "address": "12 Analytical Way", "city": "London", "country": "UK"}


class OrderTestBase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        User = get_user_model()

        self.customer = User.objects.create_user(
            email="customer@test.com", username="customer", password="S3cure-pass!"
        )
        self.other = User.objects.create_user(
            email="other@test.com", username="othercustomer", password="S3cure-pass!"
        )
        self.admin = User.objects.create_user(
            email="admin@test.com", username="shopadmin", password="S3cure-pass!", role="admin"
        )

        self.mug = Product.objects.create(name="Mug", description="Ceramic", price="8.50", stock=10)
        self.lamp = Product.objects.create(name="Lamp", description="Desk lamp", price="20.00", stock=2)

        self.cart = Cart.objects.create(customer=self.customer)
        CartItem.objects.create(cart=self.cart, product=self.mug, quantity=2)
        CartItem.objects.create(cart=self.cart, product=self.lamp, quantity=1)

    def place(self, **extra):
        payload = {"shipping_info": SHIPPING}
        payload.update(extra)
        return self.client.post("/api/transactions/orders/", payload, format="json")


class PlaceOrderTests(OrderTestBase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.customer)

    def test_place_order_snapshots_cart_and_decrements_stock(self):
        resp = self.place()
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

        data = resp.data["data"]
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["payment_status"], "paid")
        self.assertEqual(data["payment_method"], "credit-card")
        self.assertEqual(data["total"], "37.00")
        self.assertEqual(data["shipping_address"]["full_name"], "Ada Lovelace")
        self.assertEqual({i["product_name"] for i in data["order_items"]}, {"Mug", "Lamp"})

        self.mug.refresh_from_db()
        self.lamp.refresh_from_db()
        self.assertEqual(self.mug.stock, 8)
        self.assertEqual(self.lamp.stock, 1)
        self.assertFalse(CartItem.objects.filter(cart=self.cart).exists())

    def test_snapshot_survives_product_changes(self):
        self.place()
        self.mug.price = Decimal("99.00")
        self.mug.name = "Renamed mug"
        self.mug.save()
        self.lamp.delete()

        item = OrderItem.objects.get(product_name="Mug")
        self.assertEqual(item.price_at_purchase, Decimal("8.50"))
        self.assertTrue(OrderItem.objects.filter(product_name="Lamp", product__isnull=True).exists())

    def test_empty_cart_is_rejected(self):
        CartItem.objects.all().delete()
        resp = self.place()
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error_code"], "empty_cart")

    def test_user_without_cart_is_rejected(self):
        self.client.force_authenticate(user=self.other)
        resp = self.place()
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_insufficient_stock_writes_nothing(self):
        self.lamp.stock = 0
        self.lamp.save()

        resp = self.place()
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Lamp", resp.data["error"])
        self.assertEqual(Order.objects.count(), 0)
        self.mug.refresh_from_db()
        self.assertEqual(self.mug.stock, 10)
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 2)

    def test_shipping_fields_are_required(self):
        resp = self.client.post("/api/transactions/orders/", {"shipping_info": {"name": "X"}}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_cannot_place_orders(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.place()
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_custom_payment_method(self):
        resp = self.place(payment_method="paypal")
        self.assertEqual(resp.data["data"]["payment_method"], "paypal")

    @patch("transactions.services.ShippingAddress.objects.create", side_effect=RuntimeError("disk full"))
    def test_failure_mid_checkout_rolls_back(self, mock_create):
        resp = self.place()
        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(Order.objects.count(), 0)
        self.mug.refresh_from_db()
        self.assertEqual(self.mug.stock, 10)
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 2)


class DiscountCheckoutTests(OrderTestBase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.customer)

    def test_percentage_discount_applied(self):
        discount = Discount.objects.create(code="save10", discount_type="percentage", value="10")
        self.assertEqual(discount.code, "SAVE10")

        resp = self.place(discount_code="save10")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.data["data"]
        self.assertEqual(data["subtotal"], "37.00")
        self.assertEqual(data["discount_amount"], "3.70")
        self.assertEqual(data["total"], "33.30")
        discount.refresh_from_db()
        self.assertEqual(discount.used_count, 1)

    def test_fixed_discount_is_capped_at_subtotal(self):
        Discount.objects.create(code="BIG", discount_type="fixed", value="100.00")
        resp = self.place(discount_code="BIG")
        self.assertEqual(resp.data["data"]["total"], "0.00")

    def test_min_order_amount(self):
        Discount.objects.create(code="BULK", discount_type="fixed", value="5", min_order_amount="50")
        resp = self.place(discount_code="BULK")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_expired_and_exhausted_codes(self):
        Discount.objects.create(
            code="OLD", discount_type="fixed", value="5", expiry_date=timezone.now() - timedelta(days=1)
        )
        Discount.objects.create(code="USED", discount_type="fixed", value="5", max_uses=1, used_count=1)

        self.assertEqual(self.place(discount_code="OLD").status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.place(discount_code="USED").status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_code(self):
        resp = self.place(discount_code="NOPE")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error_code"], "invalid_discount")

    def test_validate_endpoint(self):
        Discount.objects.create(code="QUARTER", discount_type="percentage", value="25")
        resp = self.client.post(
            "/api/transactions/discounts/validate/", {"code": "quarter", "order_amount": "80"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["discount_amount"], "20.00")
        self.assertEqual(resp.data["data"]["final_total"], "60.00")

    def test_validate_inactive_code(self):
        Discount.objects.create(code="OFF", discount_type="fixed", value="5", is_active=False)
        resp = self.client.post(
            "/api/transactions/discounts/validate/", {"code": "OFF", "order_amount": "80"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)


class OrderAccessTests(OrderTestBase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.customer)
        self.order_id = self.place().data["data"]["order_id"]

    def test_my_orders(self):
        resp = self.client.get("/api/transactions/orders/me/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data["data"]), 1)

        self.client.force_authenticate(user=self.other)
        resp = self.client.get("/api/transactions/orders/me/")
        self.assertEqual(resp.data["data"], [])

    def test_owner_and_admin_can_view(self):
        resp = self.client.get(f"/api/transactions/orders/{self.order_id}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(f"/api/transactions/orders/{self.order_id}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["customer_username"], "customer")

    def test_other_user_is_forbidden(self):
        self.client.force_authenticate(user=self.other)
        resp = self.client.get(f"/api/transactions/orders/{self.order_id}/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_order(self):
        resp = self.client.get(f"/api/transactions/orders/{uuid.uuid4()}/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_list_and_status_filter(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get("/api/transactions/orders/admin/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["total_items"], 1)

        resp = self.client.get("/api/transactions/orders/admin/", {"status": "delivered"})
        self.assertEqual(resp.data["data"]["total_items"], 0)

    def test_customer_cannot_list_all_orders(self):
        resp = self.client.get("/api/transactions/orders/admin/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_updates_status(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.put(
            f"/api/transactions/orders/{self.order_id}/status/", {"status": "shipped"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(Order.objects.get().status, "shipped")

    def test_invalid_status(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.put(
            f"/api/transactions/orders/{self.order_id}/status/", {"status": "lost"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_is_admin_only(self):
        resp = self.client.delete(f"/api/transactions/orders/{self.order_id}/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.delete(f"/api/transactions/orders/{self.order_id}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(Order.objects.exists())

    def test_order_survives_customer_deletion(self):
        self.customer.delete()
        order = Order.objects.get()
        self.assertIsNone(order.customer)
        self.assertEqual(order.order_items.count(), 2)


class DiscountAdminTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        User = get_user_model()
        self.admin = User.objects.create_user(
            email="admin@test.com", username="shopadmin", password="S3cure-pass!", role="admin"
        )
        self.customer = User.objects.create_user(
            email="customer@test.com", username="customer", password="S3cure-pass!"
        )
        self.client.force_authenticate(user=self.admin)

    def test_create_and_list(self):
        resp = self.client.post(
            "/api/transactions/discounts/",
            {"code": " spring ", "discount_type": "percentage", "value": "15"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"]["code"], "SPRING")

        resp = self.client.get("/api/transactions/discounts/")
        self.assertEqual(len(resp.data["data"]), 1)

    def test_duplicate_code_rejected(self):
        Discount.objects.create(code="SPRING", discount_type="fixed", value="5")
        resp = self.client.post(
            "/api/transactions/discounts/",
            {"code": "spring", "discount_type": "fixed", "value": "5"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_percentage_above_hundred_rejected(self):
        resp = self.client.post(
            "/api/transactions/discounts/",
            {"code": "HUGE", "discount_type": "percentage", "value": "150"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_rechecks_code_uniqueness(self):
        Discount.objects.create(code="ONE", discount_type="fixed", value="5")
        two = Discount.objects.create(code="TWO", discount_type="fixed", value="5")

        resp = self.client.put(f"/api/transactions/discounts/{two.pk}/", {"code": "one"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.put(f"/api/transactions/discounts/{two.pk}/", {"value": "7.50"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        two.refresh_from_db()
        self.assertEqual(two.value, Decimal("7.50"))

    def test_delete(self):
        discount = Discount.objects.create(code="BYE", discount_type="fixed", value="5")
        resp = self.client.delete(f"/api/transactions/discounts/{discount.pk}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(Discount.objects.exists())

    def test_customer_cannot_manage_discounts(self):
        self.client.force_authenticate(user=self.customer)
        resp = self.client.get("/api/transactions/discounts/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
