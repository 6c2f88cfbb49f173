"""Tests for member registration and sign-in."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from accounts.models import MemberProfile


class MemberAccountTests(TestCase):
    password = "Sunrise2024stay"

    def _register(self, **overrides):
        payload = {"email": "guest@example.com", "password": self.password, "phone": "0912345678"}
        payload.update(overrides)
        return self.client.post(reverse("accounts:register"), payload)

    def test_register_creates_member_with_salted_hash(self) -> None:
        response = self._register(email="Guest@Example.com")

        self.assertEqual(response.status_code, 201, response.json())
        user = get_user_model().objects.get(username="guest@example.com")
        self.assertNotEqual(user.password, self.password)
        self.assertTrue(user.password.startswith("pbkdf2_sha256$"))
        self.assertTrue(user.check_password(self.password))
        self.assertEqual(MemberProfile.objects.get(user=user).phone, "0912345678")

    def test_register_rejects_duplicate_email(self) -> None:
        self._register()
        self.client.logout()

        response = self._register()

        self.assertEqual(response.status_code, 400)
        self.assertIn("email", response.json()["fields"])

    def test_register_rejects_password_without_digit(self) -> None:
        response = self._register(password="onlyletterspassword")

        self.assertEqual(response.status_code, 400)
        self.assertIn("password", response.json()["fields"])

    def test_register_rejects_bad_phone(self) -> None:
        response = self._register(phone="12345")

        self.assertEqual(response.status_code, 400)
        self.assertIn("phone", response.json()["fields"])

    def test_login_and_logout(self) -> None:
        self._register()
        self.client.logout()

        bad = self.client.post(reverse("accounts:login"), {"email": "guest@example.com", "password": "wrong1234"})
        good = self.client.post(reverse("accounts:login"), {"email": "guest@example.com", "password": self.password})

        self.assertEqual(bad.status_code, 401)
        self.assertEqual(good.status_code, 200)
        self.assertEqual(good.json()["member"]["phone"], "0912345678")
        self.assertEqual(self.client.post(reverse("accounts:logout")).status_code, 200)
        self.assertEqual(self.client.get(reverse("orders:cart")).status_code, 302)

    def test_change_password_keeps_session(self) -> None:
        self._register()

        response = self.client.post(
            reverse("accounts:change_password"),
            {"old_password": self.password, "new_password1": "Moonrise2025stay", "new_password2": "Moonrise2025stay"},
        )

        self.assertEqual(response.status_code, 200, response.json())
        self.assertTrue(get_user_model().objects.get().check_password("Moonrise2025stay"))
        self.assertEqual(self.client.get(reverse("orders:cart")).status_code, 200)

    def test_change_phone(self) -> None:
        self._register()

        response = self.client.post(reverse("accounts:change_phone"), {"phone": "0987654321"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(MemberProfile.objects.get().phone, "0987654321")

    def test_anonymous_redirect_ends_in_json_sign_in_prompt(self) -> None:
        response = self.client.get(reverse("orders:cart"), follow=True)

        self.assertEqual(response.redirect_chain[0][1], 302)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "authentication_required")
        self.assertEqual(response.json()["next"], reverse("orders:cart"))
