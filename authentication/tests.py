from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import IntegrityError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

User = get_user_model()


class RegistrationTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = "/api/auth/register/"

    def test_register_returns_user_and_tokens(self):
        response = self.client.post(
            self.url,
            {"username": "newbie", "email": "New@Example.com", "password": "S3cure-pass!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data["data"]
        self.assertEqual(data["user"]["email"], "new@example.com")
        self.assertEqual(data["user"]["role"], "user")
        self.assertIn("access_token", data["tokens"])
        self.assertIn("refresh_token", data["tokens"])
        self.assertTrue(User.objects.get(email="new@example.com").check_password("S3cure-pass!"))

    def test_duplicate_email_rejected(self):
        User.objects.create_user(email="taken@example.com", username="taken", password="S3cure-pass!")
        response = self.client.post(
            self.url,
            {"username": "another", "email": "TAKEN@example.com", "password": "S3cure-pass!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", response.data["error"])

    def test_duplicate_username_rejected(self):
        User.objects.create_user(email="one@example.com", username="shopper", password="S3cure-pass!")
        response = self.client.post(
            self.url,
            {"username": "Shopper", "email": "two@example.com", "password": "S3cure-pass!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("username", response.data["error"])

    @patch("authentication.auth.services.CustomUser.objects.create_user", side_effect=IntegrityError)
    def test_concurrent_duplicate_is_a_client_error(self, mock_create):
        response = self.client.post(
            self.url,
            {"username": "racer", "email": "race@example.com", "password": "S3cure-pass!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
        self.assertEqual(response.data["error_code"], "duplicate")
        mock_create.assert_called_once()

    def test_short_password_rejected(self):
        response = self.client.post(
            self.url,
            {"username": "newbie", "email": "new@example.com", "password": "abc"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email="new@example.com").exists())

    def test_short_username_rejected(self):
        response = self.client.post(
            self.url,
            {"username": "ab", "email": "new@example.com", "password": "S3cure-pass!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class LoginTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = "/api/auth/login/"
        self.user = User.objects.create_user(email="login@example.com", username="loginuser", password="S3cure-pass!")

    def login(self, password="S3cure-pass!", email="login@example.com"):
        return self.client.post(self.url, {"email": email, "password": password}, format="json")

    def test_login_success(self):
        response = self.login(email="LOGIN@example.com")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["user"]["username"], "loginuser")
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_wrong_password(self):
        response = self.login(password="wrong-pass")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["error_code"], "invalid_credentials")

    def test_unknown_email(self):
        response = self.login(email="nobody@example.com")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_missing_fields(self):
        response = self.client.post(self.url, {"email": "login@example.com"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_malformed_email_rejected(self):
        for email in (123, ["login@example.com"], None):
            response = self.client.post(self.url, {"email": email, "password": "x"}, format="json")
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertFalse(response.data["success"])

    def test_account_locks_after_repeated_failures(self):
        for _ in range(4):
            self.assertEqual(self.login(password="wrong-pass").status_code, status.HTTP_401_UNAUTHORIZED)

        response = self.login(password="wrong-pass")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error_code"], "account_locked")

        # correct password is refused while locked
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_disabled_account(self):
        self.user.is_active = False
        self.user.save()
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error_code"], "account_disabled")

    @patch("authentication.auth.services.TokenManager.generate_tokens")
    def test_login_uses_token_manager(self, mock_generate):
        mock_generate.return_value = {"access_token": "a", "refresh_token": "r"}
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["tokens"]["access_token"], "a")
        mock_generate.assert_called_once()


class TokenLifecycleTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(email="token@example.com", username="tokenuser", password="S3cure-pass!")
        response = self.client.post(
            "/api/auth/login/", {"email": "token@example.com", "password": "S3cure-pass!"}, format="json"
        )
        self.tokens = response.data["data"]["tokens"]

    def authorize(self, access_token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token}")

    def test_me_with_bearer_token(self):
        self.authorize(self.tokens["access_token"])
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["email"], "token@example.com")

    def test_me_requires_authentication(self):
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data["success"])

    def test_refresh_rotates_tokens(self):
        url = "/api/auth/token/refresh/"
        response = self.client.post(url, {"refresh_token": self.tokens["refresh_token"]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        new_tokens = response.data["data"]["tokens"]
        self.assertNotEqual(new_tokens["refresh_token"], self.tokens["refresh_token"])

        response = self.client.post(url, {"refresh_token": self.tokens["refresh_token"]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_requires_token(self):
        response = self.client.post("/api/auth/token/refresh/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_refresh_rejects_garbage(self):
        response = self.client.post("/api/auth/token/refresh/", {"refresh_token": "not-a-jwt"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["error_code"], "invalid_token")

    def test_logout_revokes_tokens(self):
        self.authorize(self.tokens["access_token"])
        response = self.client.post(
            "/api/auth/logout/", {"refresh_token": self.tokens["refresh_token"]}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["tokens_blacklisted"], 2)

        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.credentials()
        response = self.client.post(
            "/api/auth/token/refresh/", {"refresh_token": self.tokens["refresh_token"]}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ChangePasswordTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(email="pw@example.com", username="pwuser", password="S3cure-pass!")
        self.client.force_authenticate(user=self.user)

    def test_change_password(self):
        response = self.client.put(
            "/api/auth/change-password/",
            {"current_password": "S3cure-pass!", "new_password": "An0ther-pass!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("An0ther-pass!"))

    def test_wrong_current_password(self):
        response = self.client.put(
            "/api/auth/change-password/",
            {"current_password": "nope-nope", "new_password": "An0ther-pass!"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("S3cure-pass!"))
