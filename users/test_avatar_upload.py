import io
import os
import shutil
import tempfile

from PIL import Image
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import transaction
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

User = get_user_model()


def make_avatar(name="avatar.png", fmt="PNG", content_type="image/png"):
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color="blue").save(buffer, format=fmt)
    return SimpleUploadedFile(name, buffer.getvalue(), content_type=content_type)


class AvatarUploadTests(APITestCase):
    """Tests for PUT /api/user/users/<id>/avatar/"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.media_root = tempfile.mkdtemp()
        cls._media_override = override_settings(MEDIA_ROOT=cls.media_root)
        cls._media_override.enable()

    @classmethod
    def tearDownClass(cls):
        cls._media_override.disable()
        shutil.rmtree(cls.media_root, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(email="pic@test.com", username="picture", password="S3cure-pass!")
        self.admin_user = User.objects.create_user(
            email="admin@test.com", username="headadmin", password="S3cure-pass!", role=User.Role.ADMIN
        )
        self.url = f"/api/user/users/{self.user.pk}/avatar/"
        self.client.force_authenticate(user=self.user)

    def upload(self, avatar):
        return self.client.put(self.url, {"avatar": avatar}, format="multipart")

    def test_upload_avatar(self):
        response = self.upload(make_avatar())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["success"])

        self.user.refresh_from_db()
        self.assertTrue(self.user.avatar.name.startswith("avatars/"))
        self.assertTrue(os.path.exists(self.user.avatar.path))
        self.assertIn("/media/avatars/", response.data["data"]["avatar_url"])

    def test_replacing_avatar_deletes_previous_file(self):
        self.upload(make_avatar("first.png"))
        self.user.refresh_from_db()
        first_path = self.user.avatar.path

        with self.captureOnCommitCallbacks(execute=True):
            response = self.upload(make_avatar("second.jpg", fmt="JPEG", content_type="image/jpeg"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(os.path.exists(first_path))

    def test_rolled_back_replacement_keeps_previous_avatar(self):
        self.upload(make_avatar("first.png"))
        self.user.refresh_from_db()
        first_name = self.user.avatar.name
        first_path = self.user.avatar.path

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with transaction.atomic():
                    self.user.avatar = make_avatar("second.png")
                    self.user.save()
                    raise RuntimeError("save aborted")

        self.assertTrue(os.path.exists(first_path))
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar.name, first_name)

    def test_missing_file(self):
        response = self.client.put(self.url, {}, format="multipart")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    def test_rejects_non_image_extension(self):
        fake = SimpleUploadedFile("notes.txt", b"plain text", content_type="text/plain")
        response = self.upload(fake)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(AVATAR_MAX_BYTES=10)
    def test_rejects_oversized_file(self):
        response = self.upload(make_avatar())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.user.refresh_from_db()
        self.assertFalse(self.user.avatar)

    def test_admin_cannot_upload_for_someone_else(self):
        self.client.force_authenticate(user=self.admin_user)
        response = self.upload(make_avatar())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_deleting_user_removes_avatar(self):
        self.upload(make_avatar())
        self.user.refresh_from_db()
        path = self.user.avatar.path

        self.client.force_authenticate(user=self.admin_user)
        response = self.client.delete(f"/api/user/users/{self.user.pk}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(os.path.exists(path))
