from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from store.models import Cart, CartItem, Product
from transactions.models import Order, OrderItem


class UserManagementTests(TestCase):
    def setUp(self):
        cache.clear()
        User = get_user_model()
        self.client = APIClient()

        self.admin_user = User.objects.create_user(
            email="admin@test.com",
            username="headadmin",
            password="S3cure-pass!",
            role=User.Role.ADMIN,
        )
        self.alice = User.objects.create_user(email="alice@test.com", username="alice", password="S3cure-pass!")
        self.bob = User.objects.create_user(email="bob@shop.org", username="bobby", password="S3cure-pass!")
        self.client.force_authenticate(user=self.admin_user)

    def test_admin_lists_users_with_pagination(self):
        response = self.client.get("/api/user/users/", {"limit": 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data["data"]
        self.assertEqual(data["total_items"], 3)
        self.assertEqual(data["total_pages"], 2)
        self.assertEqual(len(data["results"]), 2)

    def test_page_outside_range_is_lenient(self):
        response = self.client.get("/api/user/users/", {"limit": 2, "page": 9})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data["data"]
        self.assertEqual(data["results"], [])
        self.assertEqual(data["page"], 9)
        self.assertEqual(data["total_pages"], 2)

        response = self.client.get("/api/user/users/", {"limit": 2, "page": "abc"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["page"], 1)
        self.assertEqual(len(response.data["data"]["results"]), 2)

    def test_search_and_role_filter(self):
        response = self.client.get("/api/user/users/", {"search": "shop.org"})
        self.assertEqual([u["username"] for u in response.data["data"]["results"]], ["bobby"])

        response = self.client.get("/api/user/users/", {"role": "admin"})
        self.assertEqual([u["username"] for u in response.data["data"]["results"]], ["headadmin"])

    def test_customer_cannot_list_users(self):
        self.client.force_authenticate(user=self.alice)
        response = self.client.get("/api/user/users/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_self_or_admin_can_view_profile(self):
        self.client.force_authenticate(user=self.alice)
        response = self.client.get(f"/api/user/users/{self.alice.pk}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["email"], "alice@test.com")

        response = self.client.get(f"/api/user/users/{self.bob.pk}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_user_updates_own_profile(self):
        self.client.force_authenticate(user=self.alice)
        response = self.client.put(
            f"/api/user/users/{self.alice.pk}/",
            {"username": "alice2", "email": "Alice2@Test.com"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.username, "alice2")
        self.assertEqual(self.alice.email, "alice2@test.com")

    def test_user_cannot_change_own_role(self):
        self.client.force_authenticate(user=self.alice)
        response = self.client.put(f"/api/user/users/{self.alice.pk}/", {"role": "admin"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.role, "user")

    def test_update_rejects_taken_email(self):
        self.client.force_authenticate(user=self.alice)
        response = self.client.put(f"/api/user/users/{self.alice.pk}/", {"email": "BOB@shop.org"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_changes_role(self):
        response = self.client.put(f"/api/user/users/{self.alice.pk}/role/", {"role": "admin"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.alice.refresh_from_db()
        self.assertTrue(self.alice.is_admin)

    def test_invalid_role(self):
        response = self.client.put(f"/api/user/users/{self.alice.pk}/role/", {"role": "owner"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_last_admin_cannot_be_demoted(self):
        response = self.client.put(f"/api/user/users/{self.admin_user.pk}/role/", {"role": "user"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error_code"], "last_admin")

    def test_admin_can_be_demoted_when_another_exists(self):
        self.client.put(f"/api/user/users/{self.alice.pk}/role/", {"role": "admin"}, format="json")
        response = self.client.put(f"/api/user/users/{self.admin_user.pk}/role/", {"role": "user"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_status_requires_boolean(self):
        response = self.client.put(f"/api/user/users/{self.alice.pk}/status/", {"is_active": "no"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.put(f"/api/user/users/{self.alice.pk}/status/", {"is_active": False}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.alice.refresh_from_db()
        self.assertFalse(self.alice.is_active)

    def test_last_admin_cannot_be_deactivated(self):
        response = self.client.put(
            f"/api/user/users/{self.admin_user.pk}/status/", {"is_active": False}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_deletes_user(self):
        response = self.client.delete(f"/api/user/users/{self.bob.pk}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(get_user_model().objects.filter(pk=self.bob.pk).exists())

    def test_last_admin_cannot_be_deleted(self):
        response = self.client.delete(f"/api/user/users/{self.admin_user.pk}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customer_cannot_delete(self):
        self.client.force_authenticate(user=self.alice)
        response = self.client.delete(f"/api/user/users/{self.bob.pk}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_user(self):
        response = self.client.get("/api/user/users/99999/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @patch("users.views.UserAdminService.activity")
    def test_activity_uses_service(self, mock_activity):
        mock_activity.return_value = {"user": self.alice, "orders": [], "cart_items": []}
        response = self.client.get(f"/api/user/users/{self.alice.pk}/activity/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        mock_activity.assert_called_once_with(self.alice)

    def test_activity_lists_orders_and_cart(self):
        product = Product.objects.create(name="Kettle", description="Steel", price="30.00", stock=4)
        cart = Cart.objects.create(customer=self.alice)
        CartItem.objects.create(cart=cart, product=product, quantity=2)
        Order.objects.create(customer=self.alice, subtotal="30.00", total="30.00")

        self.client.force_authenticate(user=self.alice)
        response = self.client.get(f"/api/user/users/{self.alice.pk}/activity/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["data"]["orders"]), 1)
        self.assertEqual(response.data["data"]["cart_items"][0]["quantity"], 2)


class AdminStatsTests(TestCase):
    def setUp(self):
        cache.clear()
        User = get_user_model()
        self.client = APIClient()
        self.admin_user = User.objects.create_user(
            email="admin@test.com", username="headadmin", password="S3cure-pass!", role=User.Role.ADMIN
        )
        self.customer = User.objects.create_user(email="c@test.com", username="buyer", password="S3cure-pass!")
        User.objects.create_user(email="gone@test.com", username="dormant", password="S3cure-pass!", is_active=False)
        self.client.force_authenticate(user=self.admin_user)

        self.products = [
            Product.objects.create(name=f"Item {i}", description="x", price="10.00", stock=100)
            for i in range(7)
        ]

    def make_order(self, status_value, lines, total):
        order = Order.objects.create(customer=self.customer, status=status_value, subtotal=total, total=total)
        for product, quantity in lines:
            OrderItem.objects.create(
                order=order, product=product, product_name=product.name,
                price_at_purchase=product.price, quantity=quantity
            )
        return order

    def test_total_sales_counts_delivered_orders_only(self):
        self.make_order("delivered", [(self.products[0], 1)], "10.00")
        self.make_order("delivered", [(self.products[1], 2)], "20.50")
        self.make_order("pending", [(self.products[2], 9)], "90.00")

        response = self.client.get("/api/user/stats/sales/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["total_sales"], "30.50")
        self.assertEqual(response.data["data"]["delivered_orders"], 2)

    def test_total_sales_without_orders(self):
        response = self.client.get("/api/user/stats/sales/")
        self.assertEqual(response.data["data"]["total_sales"], "0.00")

    def test_top_products(self):
        lines = [(product, i + 1) for i, product in enumerate(self.products)]
        self.make_order("delivered", lines, "100.00")
        self.make_order("cancelled", [(self.products[0], 50)], "500.00")

        response = self.client.get("/api/user/stats/top-products/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        top = response.data["data"]
        self.assertEqual(len(top), 5)
        self.assertEqual(top[0]["name"], "Item 6")
        self.assertEqual(top[0]["total_quantity"], 7)
        self.assertNotIn("Item 0", [row["name"] for row in top])

    def test_top_products_use_purchase_time_names(self):
        self.make_order("delivered", [(self.products[3], 9), (self.products[4], 8)], "170.00")
        renamed = self.products[3]
        renamed.name = "Renamed"
        renamed.save()
        removed_pk = self.products[4].pk
        self.products[4].delete()

        response = self.client.get("/api/user/stats/top-products/")
        top = response.data["data"]
        self.assertEqual(len(top), 2)
        self.assertEqual(top[0], {"product_id": renamed.pk, "name": "Item 3", "total_quantity": 9})
        self.assertEqual(top[1], {"product_id": None, "name": "Item 4", "total_quantity": 8})
        self.assertFalse(OrderItem.objects.filter(product_id=removed_pk).exists())

    def test_active_users(self):
        response = self.client.get("/api/user/stats/active-users/")
        self.assertEqual(response.data["data"]["active_users"], 2)

    def test_stats_are_admin_only(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get("/api/user/stats/sales/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
