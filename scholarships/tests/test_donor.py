"""
Donor API tests: registration, profile, dashboard, student discovery and
bookmarks.
"""

from django.contrib.auth import get_user_model
from rest_framework import status

from scholarships.donations.models import Donation, Donor, DonorBookmark
from scholarships.students.models import Student

from .base import GradVillageTestCase, create_donation, create_donor, create_student

User = get_user_model()


class DonorRegistrationTests(GradVillageTestCase):
    payload = {
        "email": "Grace@Example.com",
        "password": "D0nor-secret-pass",
        "firstName": "Grace",
        "lastName": "Hopper",
        "phone": "555-0100",
    }

    def test_register_returns_donor_token(self):
        response = self.client.post("/api/donors/register", self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body["message"], "Donor account created successfully")
        self.assertEqual(body["data"]["donor"]["email"], "grace@example.com")
        self.assertEqual(body["data"]["donor"]["totalDonated"], 0.0)

        donor = Donor.objects.get(email="grace@example.com")
        self.assertTrue(donor.user.check_password("D0nor-secret-pass"))

        self.authenticate(body["data"]["token"])
        response = self.client.get("/api/donors/profile")
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_duplicate_email(self):
        self.client.post("/api/donors/register", self.payload, format="json")
        response = self.client.post("/api/donors/register", self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "A donor account with this email already exists")

    def test_email_of_other_account(self):
        create_student(email="grace@example.com")

        response = self.client.post("/api/donors/register", self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "An account with this email already exists")

    def test_invalid_payload(self):
        response = self.client.post(
            "/api/donors/register", {**self.payload, "password": "short"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", response.json()["errors"])


class DonorProfileTests(GradVillageTestCase):
    def setUp(self):
        self.donor = create_donor()
        self.login_donor(self.donor)

    def test_update_merges_preferences(self):
        response = self.client.put(
            "/api/donors/profile",
            {"phone": "555-0199", "preferences": {"monthlyReport": False}},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.donor.refresh_from_db()
        self.assertEqual(self.donor.phone, "555-0199")
        self.assertEqual(
            self.donor.preferences,
            {"emailNotifications": True, "anonymousByDefault": False, "monthlyReport": False},
        )

    def test_dashboard_stats(self):
        student = create_student()
        other = create_student()
        create_donation(self.donor, student, amount="100.00", status=Donation.Status.COMPLETED)
        create_donation(self.donor, other, amount="40.00", status=Donation.Status.COMPLETED)
        create_donation(self.donor, other, amount="500.00", status=Donation.Status.FAILED)

        response = self.client.get("/api/donors/dashboard/stats")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertEqual(data["overview"]["totalDonated"], 140.0)
        self.assertEqual(data["overview"]["studentsSupported"], 2)
        self.assertEqual(data["monthlyStats"]["thisMonth"], 140.0)
        self.assertEqual(data["monthlyStats"]["lastMonth"], 0.0)
        self.assertEqual(data["monthlyStats"]["percentChange"], 100.0)
        self.assertEqual(len(data["recentActivity"]), 2)


class DonorDiscoveryTests(GradVillageTestCase):
    def setUp(self):
        self.donor = create_donor()
        self.login_donor(self.donor)
        self.visible = create_student(major="Computer Science")
        create_student(paid=False)
        create_student(is_public=False)
        create_student(status=Student.AccountStatus.SUSPENDED)

    def test_only_discoverable_students_are_listed(self):
        response = self.client.get("/api/donors/students")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertEqual([s["id"] for s in data["students"]], [self.visible.pk])
        self.assertEqual(data["pagination"]["limit"], 12)
        self.assertNotIn("email", data["students"][0])

    def test_search(self):
        response = self.client.get("/api/donors/students", {"search": "computer"})
        self.assertEqual(len(response.json()["data"]["students"]), 1)

        response = self.client.get("/api/donors/students", {"search": "chemistry"})
        self.assertEqual(response.json()["data"]["students"], [])

    def test_student_detail(self):
        DonorBookmark.objects.create(donor=self.donor, student=self.visible)
        create_donation(self.donor, self.visible, status=Donation.Status.COMPLETED)

        response = self.client.get(f"/api/donors/students/{self.visible.pk}")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()["data"]
        self.assertTrue(data["isBookmarked"])
        self.assertEqual(len(data["myDonations"]), 1)
        self.assertEqual(data["amountRaised"], 97.5)

    def test_hidden_student_detail(self):
        hidden = Student.objects.get(is_public=False)

        response = self.client.get(f"/api/donors/students/{hidden.pk}")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["error"], "Student not found or not publicly available")


class DonorBookmarkTests(GradVillageTestCase):
    def setUp(self):
        self.donor = create_donor()
        self.student = create_student()
        self.login_donor(self.donor)

    def test_add_update_and_remove(self):
        response = self.client.post(
            "/api/donors/bookmarks",
            {"studentId": self.student.pk, "notes": "Donate in May"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        bookmark_id = response.json()["data"]["id"]

        response = self.client.get("/api/donors/bookmarks")
        self.assertEqual(response.json()["data"][0]["student"]["id"], self.student.pk)

        response = self.client.patch(
            f"/api/donors/bookmarks/{bookmark_id}", {"notes": "Donate in June"}, format="json"
        )
        self.assertEqual(response.json()["data"]["notes"], "Donate in June")

        response = self.client.delete(f"/api/donors/bookmarks/{bookmark_id}")
        self.assertEqual(response.json()["message"], "Bookmark removed successfully")
        self.assertFalse(DonorBookmark.objects.exists())

    def test_duplicate_bookmark(self):
        DonorBookmark.objects.create(donor=self.donor, student=self.student)

        response = self.client.post(
            "/api/donors/bookmarks", {"studentId": self.student.pk}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "Student is already in your bookmarks")

    def test_student_id_is_required(self):
        response = self.client.post("/api/donors/bookmarks", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error"], "Student ID is required")

    def test_other_donors_bookmark_is_not_found(self):
        bookmark = DonorBookmark.objects.create(donor=create_donor(), student=self.student)

        response = self.client.delete(f"/api/donors/bookmarks/{bookmark.pk}")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(DonorBookmark.objects.filter(pk=bookmark.pk).exists())
