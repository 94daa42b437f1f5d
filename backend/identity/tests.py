from django.contrib.auth import get_user_model
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from platformapp.models import Tenant

User = get_user_model()


class UserManagerTest(APITestCase):

    def test_create_user_derives_username_and_lowercases_email(self):
        user = User.objects.create_user(email="Owner@Example.com", password="secret-123")
        self.assertEqual(user.email, "owner@example.com")
        self.assertEqual(user.username, "owner")
        self.assertTrue(user.check_password("secret-123"))
        self.assertFalse(user.is_staff)

    def test_username_collision_gets_suffix(self):
        User.objects.create_user(email="ana@one.com", password="x12345678")
        other = User.objects.create_user(email="ana@two.com", password="x12345678")
        self.assertTrue(other.username.startswith("ana_"))


@override_settings(SUPER_ADMINS=["boss@vitrina.app"])
class CheckSuperAdminTest(APITestCase):

    def setUp(self):
        self.url = reverse("check-superadmin")

    def test_anonymous_is_not_superadmin(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"is_super_admin": False})

    def test_listed_email_is_superadmin(self):
        user = User.objects.create_user(email="Boss@Vitrina.app", password="x12345678")
        self.client.force_authenticate(user)
        response = self.client.get(self.url)
        self.assertTrue(response.data["is_super_admin"])

    def test_regular_user_is_not_superadmin(self):
        self.client.force_authenticate(User.objects.create_user(email="a@b.com", password="x12345678"))
        self.assertFalse(self.client.get(self.url).data["is_super_admin"])


class SessionViewTest(APITestCase):

    def test_requires_authentication(self):
        response = self.client.get(reverse("identity-session"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_lists_owned_tenants(self):
        user = User.objects.create_user(email="owner@shop.com", password="x12345678")
        Tenant.objects.create(slug="mi-tienda", name="Mi Tienda", owner=user, owner_email=user.email)
        self.client.force_authenticate(user)
        response = self.client.get(reverse("identity-session"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["email"], "owner@shop.com")
        self.assertEqual([t["slug"] for t in response.data["tenants"]], ["mi-tienda"])
