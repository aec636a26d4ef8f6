"""
Login, token claims and role permission tests.
"""

from unittest.mock import patch

from django.core.cache import cache
from django.test import RequestFactory, TestCase, override_settings
from rest_framework import status
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.tokens import AccessToken

from scholarships.permissions import ADMIN, DONOR, STUDENT, IsAdmin, IsDonor, get_user_type
from scholarships.students.models import Student

from .base import (
    DONOR_PASSWORD,
    STUDENT_PASSWORD,
    GradVillageTestCase,
    create_admin,
    create_donor,
    create_student,
)

LOGIN_URL = "/api/auth/login"


class LoginTests(GradVillageTestCase):
    def login(self, email, password, **extra):
        return self.client.post(LOGIN_URL, {"email": email, "password": password, **extra}, format="json")

    def test_student_login(self):
        student = create_student()

        response = self.login(student.email, STUDENT_PASSWORD)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["message"], "Login successful")
        self.assertEqual(body["data"]["user"]["userType"], STUDENT)
        self.assertTrue(body["data"]["user"]["registrationComplete"])

        token = AccessToken(body["data"]["token"])
        self.assertEqual(token["userType"], STUDENT)
        self.assertEqual(token["id"], student.pk)
        self.assertEqual(token["userId"], str(student.user_uid))
        self.assertEqual(token["email"], student.email)

    def test_donor_login_updates_last_login(self):
        donor = create_donor()

        response = self.login(donor.email, DONOR_PASSWORD)

        self.assertEqual(response.json()["data"]["user"]["userType"], DONOR)
        donor.refresh_from_db()
        self.assertIsNotNone(donor.last_login)

    def test_admin_login(self):
        admin = create_admin(password="Adm1n-secret-pass")

        response = self.login(admin.email, "Adm1n-secret-pass")

        self.assertEqual(response.json()["data"]["user"]["userType"], ADMIN)

    def test_wrong_password(self):
        student = create_student()

        response = self.login(student.email, "wrong-password")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["error"], "Invalid email or password")

    def test_requested_role_must_exist(self):
        student = create_student()

        response = self.login(student.email, STUDENT_PASSWORD, userType=DONOR)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_suspended_student(self):
        student = create_student(status=Student.AccountStatus.SUSPENDED)

        response = self.login(student.email, STUDENT_PASSWORD)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            response.json()["error"], "Account is suspended. Please contact support."
        )

    def test_me(self):
        donor = create_donor()
        self.login_donor(donor)

        response = self.client.get("/api/auth/me")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["data"]["user"]["id"], donor.pk)

    def test_token_in_cookie(self):
        student = create_student()
        token = self.login(student.email, STUDENT_PASSWORD).json()["data"]["token"]
        self.client.cookies["access_token"] = token

        response = self.client.get("/api/students/profile")

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_invalid_token(self):
        self.authenticate("not-a-token")

        response = self.client.get("/api/students/profile")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.json()["success"])


@override_settings(
    CACHES={"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
)
class LoginThrottleTests(GradVillageTestCase):
    def setUp(self):
        cache.clear()

    def test_repeated_logins_are_rate_limited(self):
        student = create_student()
        login = {"email": student.email, "password": "wrong-password"}

        with patch.dict(ScopedRateThrottle.THROTTLE_RATES, {"auth": "2/minute"}):
            for _ in range(2):
                response = self.client.post(LOGIN_URL, login, format="json")
                self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

            response = self.client.post(
                LOGIN_URL, {**login, "password": STUDENT_PASSWORD}, format="json"
            )

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(
            body["error"], "Too many authentication attempts, please try again later."
        )
        self.assertIn("retryAfter", body)

    def test_donor_registration_shares_the_auth_limit(self):
        with patch.dict(ScopedRateThrottle.THROTTLE_RATES, {"auth": "1/minute"}):
            self.client.post(LOGIN_URL, {"email": "x@example.com", "password": "x"}, format="json")
            response = self.client.post("/api/donors/register", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)


class UserTypeTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def request_for(self, user, token=None):
        request = self.factory.get("/")
        request.user = user
        request.auth = token
        return request

    def test_profile_fallback_without_claim(self):
        student = create_student()
        donor = create_donor()
        admin = create_admin()

        self.assertEqual(get_user_type(self.request_for(student.user)), STUDENT)
        self.assertEqual(get_user_type(self.request_for(donor.user)), DONOR)
        self.assertEqual(get_user_type(self.request_for(admin)), ADMIN)

    def test_claim_wins_over_profile(self):
        donor = create_donor()
        token = AccessToken.for_user(donor.user)
        token["userType"] = STUDENT

        self.assertEqual(get_user_type(self.request_for(donor.user, token)), STUDENT)

    def test_admin_claim_requires_staff(self):
        donor = create_donor()
        token = AccessToken.for_user(donor.user)
        token["userType"] = ADMIN
        request = self.request_for(donor.user, token)

        self.assertIsNone(get_user_type(request))
        self.assertFalse(IsAdmin().has_permission(request, None))
        self.assertFalse(IsDonor().has_permission(request, None))
