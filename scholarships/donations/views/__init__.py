"""
Donation Views Package - GradVillage

Views for donors and their donations.

Features:
- Donor registration, profile and dashboard statistics
- Student discovery and bookmarks
- Donation creation, payment and history

Author: GradVillage Development Team
Version: 1.0.0
"""

from .donation_views import (
    DonationCreateView,
    DonationProcessPaymentView,
    DonationHistoryView,
    DonationDetailView,
)
from .donor_views import (
    DonorRegisterView,
    DonorProfileView,
    DonorDashboardStatsView,
    DonorStudentListView,
    DonorStudentDetailView,
    DonorBookmarkListView,
    DonorBookmarkDetailView,
)
