"""
GradVillage API URL Configuration

URL Structure:
- /api/auth/: Login and identity
- /api/registration-payment/: Student registration fee workflow and receipts
- /api/students/: Student self-service (verification, welcome box, profile)
- /api/admin/: Platform administration
- /api/donors/: Donor accounts, discovery and bookmarks
- /api/donations/: Donation creation, payment, history and the Stripe webhook
- /api/receipt/: Receipt PDF download

Paths carry no trailing slash; the web and mobile clients call them that way.

Author: GradVillage Development Team
Version: 1.0.0
"""

from typing import List

from django.urls import URLPattern, include, path

from core.stripe_integration.views import StripeWebhookView

from .accounts import views as account_views
from .donations import views as donation_views
from .receipts import views as receipt_views
from .registration import urls as registration_urls
from .registration import views as registration_views
from .students import views as student_views

# --- Authentication ---

auth_urlpatterns: List[URLPattern] = [
    path("login", account_views.LoginView.as_view(), name="login"),
    path("me", account_views.MeView.as_view(), name="me"),
]

# --- Students ---

students_urlpatterns: List[URLPattern] = [
    path("schools", student_views.SchoolListView.as_view(), name="school-list"),
    path(
        "verify-school",
        student_views.SchoolVerificationRequestView.as_view(),
        name="verify-school",
    ),
    path(
        "registration-fee/process",
        student_views.RegistrationFeeIntentView.as_view(),
        name="registration-fee-process",
    ),
    path(
        "registration-fee/confirm",
        student_views.RegistrationFeeConfirmView.as_view(),
        name="registration-fee-confirm",
    ),
    path(
        "welcome-box/request",
        student_views.WelcomeBoxRequestView.as_view(),
        name="welcome-box-request",
    ),
    path(
        "welcome-box/status",
        student_views.WelcomeBoxStatusView.as_view(),
        name="welcome-box-status",
    ),
    path("profile", student_views.StudentProfileView.as_view(), name="profile"),
]

# --- Administration ---

admin_urlpatterns: List[URLPattern] = [
    path("students", student_views.AdminStudentListView.as_view(), name="student-list"),
    path(
        "students/<int:student_id>",
        student_views.AdminStudentDetailView.as_view(),
        name="student-detail",
    ),
    path(
        "students/<int:student_id>/status",
        student_views.AdminStudentStatusView.as_view(),
        name="student-status",
    ),
    path(
        "verifications",
        student_views.AdminVerificationListView.as_view(),
        name="verification-list",
    ),
    path(
        "verifications/<int:verification_id>",
        student_views.AdminVerificationReviewView.as_view(),
        name="verification-review",
    ),
    path(
        "verifications/<int:verification_id>/approve",
        student_views.AdminVerificationApproveView.as_view(),
        name="verification-approve",
    ),
    path(
        "verifications/<int:verification_id>/reject",
        student_views.AdminVerificationRejectView.as_view(),
        name="verification-reject",
    ),
    path("analytics", student_views.AdminAnalyticsView.as_view(), name="analytics"),
    path(
        "welcome-boxes/<int:box_id>",
        student_views.AdminWelcomeBoxUpdateView.as_view(),
        name="welcome-box-update",
    ),
]

# --- Donors ---

donors_urlpatterns: List[URLPattern] = [
    path("register", donation_views.DonorRegisterView.as_view(), name="register"),
    path("profile", donation_views.DonorProfileView.as_view(), name="profile"),
    path(
        "dashboard/stats",
        donation_views.DonorDashboardStatsView.as_view(),
        name="dashboard-stats",
    ),
    path("students", donation_views.DonorStudentListView.as_view(), name="student-list"),
    path(
        "students/<int:student_id>",
        donation_views.DonorStudentDetailView.as_view(),
        name="student-detail",
    ),
    path("donations", donation_views.DonationHistoryView.as_view(), name="donation-history"),
    path("bookmarks", donation_views.DonorBookmarkListView.as_view(), name="bookmark-list"),
    path(
        "bookmarks/<int:bookmark_id>",
        donation_views.DonorBookmarkDetailView.as_view(),
        name="bookmark-detail",
    ),
]

# --- Donations ---

donations_urlpatterns: List[URLPattern] = [
    path("create", donation_views.DonationCreateView.as_view(), name="create"),
    path(
        "process-payment",
        donation_views.DonationProcessPaymentView.as_view(),
        name="process-payment",
    ),
    path("history", donation_views.DonationHistoryView.as_view(), name="history"),
    path(
        "tax-receipt/<str:receipt_number>",
        registration_views.TaxReceiptDetailView.as_view(),
        name="tax-receipt",
    ),
    path("tax-receipts", registration_views.TaxReceiptListView.as_view(), name="tax-receipts"),
    path("stripe/webhook", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("<int:donation_id>", donation_views.DonationDetailView.as_view(), name="detail"),
]

# --- Main URL Configuration ---

urlpatterns: List[URLPattern] = [
    path("auth/", include((auth_urlpatterns, "auth"))),
    path(
        "registration-payment/",
        include((registration_urls.urlpatterns, "registration_payment")),
    ),
    path("students/", include((students_urlpatterns, "students"))),
    path("admin/", include((admin_urlpatterns, "admin"))),
    path("donors/", include((donors_urlpatterns, "donors"))),
    path("donations/", include((donations_urlpatterns, "donations"))),
    path(
        "receipt/<str:receipt_number>",
        receipt_views.ReceiptDownloadView.as_view(),
        name="receipt-download",
    ),
]
