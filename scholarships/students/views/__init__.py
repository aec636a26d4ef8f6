"""
Student Views Package - GradVillage

Views for the student side of the platform and for the admins who manage
students.

Features:
- School verification requests and admin review
- Registration fee payment intents
- Welcome box requests and shipping updates
- Student profiles and the admin student list

Author: GradVillage Development Team
Version: 1.0.0
"""

from .student_views import (
    SchoolVerificationRequestView,
    RegistrationFeeIntentView,
    RegistrationFeeConfirmView,
    WelcomeBoxRequestView,
    WelcomeBoxStatusView,
    StudentProfileView,
    SchoolListView,
)
from .admin_views import (
    AdminStudentListView,
    AdminStudentDetailView,
    AdminStudentStatusView,
    AdminVerificationListView,
    AdminVerificationReviewView,
    AdminVerificationApproveView,
    AdminVerificationRejectView,
    AdminAnalyticsView,
    AdminWelcomeBoxUpdateView,
)
