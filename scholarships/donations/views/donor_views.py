"""
Donor Views

Views:
- DonorRegisterView: POST register (public), returns a donor token
- DonorProfileView: GET / PUT / PATCH profile
- DonorDashboardStatsView: GET dashboard/stats
- DonorStudentListView: GET students (discovery)
- DonorStudentDetailView: GET students/<id>
- DonorBookmarkListView: GET / POST bookmarks
- DonorBookmarkDetailView: PATCH / DELETE bookmarks/<id>

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q, Sum
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from ...accounts.tokens import get_or_create_account_user, token_for_donor
from ...exceptions import Conflict, NotFound, ValidationFailed
from ...pagination import get_page_params, paginate
from ...permissions import IsDonor
from ...students.models import Student
from ...students.serializers import PublicStudentSerializer
from ..models import Donation, Donor, DonorBookmark
from ..serializers import (
    DonationSerializer,
    DonorBookmarkSerializer,
    DonorProfileUpdateSerializer,
    DonorRegistrationSerializer,
    DonorSerializer,
)
from .donation_views import get_request_donor

logger = logging.getLogger(__name__)

User = get_user_model()

RECENT_ACTIVITY_LIMIT = 5


def month_start(moment):
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def previous_month_start(moment):
    first = month_start(moment)
    if first.month == 1:
        return first.replace(year=first.year - 1, month=12)
    return first.replace(month=first.month - 1)


def percent_change(current: Decimal, previous: Decimal) -> float:
    if previous > 0:
        return round(float((current - previous) / previous * 100), 2)
    return 100.0 if current > 0 else 0.0


class DonorRegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = "auth"

    def post(self, request):
        serializer = DonorRegistrationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "success": False,
                    "message": "Validation failed",
                    "errors": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = serializer.validated_data

        if Donor.objects.filter(email__iexact=data["email"]).exists():
            raise Conflict("A donor account with this email already exists")
        if User.objects.filter(username=data["email"]).exists():
            raise Conflict("An account with this email already exists")

        try:
            with transaction.atomic():
                user = get_or_create_account_user(
                    data["email"],
                    password=data["password"],
                    first_name=data["firstName"],
                    last_name=data["lastName"],
                )
                donor = Donor.objects.create(
                    user=user,
                    email=data["email"],
                    first_name=data["firstName"],
                    last_name=data["lastName"],
                    phone=data.get("phone") or "",
                    address=data.get("address") or {},
                    last_login=timezone.now(),
                )
        except IntegrityError:
            raise Conflict("A donor account with this email already exists") from None

        logger.info("Donor %s registered", donor.pk)
        return Response(
            {
                "success": True,
                "message": "Donor account created successfully",
                "data": {
                    "donor": DonorSerializer(donor).data,
                    "token": token_for_donor(donor),
                },
            },
            status=status.HTTP_201_CREATED,
        )


class DonorView(APIView):
    permission_classes = [IsDonor]


class DonorProfileView(DonorView):
    def get(self, request):
        donor = get_request_donor(request)
        return Response({"success": True, "data": DonorSerializer(donor).data})

    def put(self, request):
        donor = get_request_donor(request)
        serializer = DonorProfileUpdateSerializer(donor, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(
                {
                    "success": False,
                    "message": "Validation failed",
                    "errors": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        donor = serializer.save()
        return Response(
            {
                "success": True,
                "message": "Profile updated successfully",
                "data": DonorSerializer(donor).data,
            }
        )

    patch = put


class DonorDashboardStatsView(DonorView):
    def get(self, request):
        donor = get_request_donor(request)
        now = timezone.now()
        this_month = month_start(now)
        last_month = previous_month_start(now)
        completed = donor.completed_donations()

        this_month_total = (
            completed.filter(created_at__gte=this_month).aggregate(total=Sum("amount"))["total"]
            or Decimal("0")
        )
        last_month_total = (
            completed.filter(created_at__gte=last_month, created_at__lt=this_month).aggregate(
                total=Sum("amount")
            )["total"]
            or Decimal("0")
        )
        recent = completed.select_related("student").order_by("-created_at")[
            :RECENT_ACTIVITY_LIMIT
        ]

        return Response(
            {
                "success": True,
                "data": {
                    "overview": {
                        "totalDonated": float(donor.total_donated),
                        "studentsSupported": donor.students_supported,
                        "memberSince": donor.member_since,
                    },
                    "monthlyStats": {
                        "thisMonth": float(this_month_total),
                        "lastMonth": float(last_month_total),
                        "percentChange": percent_change(this_month_total, last_month_total),
                    },
                    "recentActivity": [
                        {
                            "id": donation.pk,
                            "amount": float(donation.amount),
                            "studentName": donation.student.full_name,
                            "studentPhoto": donation.student.profile_photo or None,
                            "date": donation.created_at,
                            "message": donation.donor_message or None,
                        }
                        for donation in recent
                    ],
                },
            }
        )


class DonorStudentListView(DonorView):
    """
    Query params: page, limit, search (name, school, major), school,
    graduationYear.
    """

    def get(self, request):
        params = request.query_params
        page, limit = get_page_params(params, default_limit=12)
        students = Student.objects.discoverable().with_amount_raised()

        search = (params.get("search") or "").strip()
        if search:
            students = students.filter(
                Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(school_name__icontains=search)
                | Q(major__icontains=search)
            )
        if params.get("school"):
            students = students.filter(school_name__icontains=params["school"])
        if params.get("graduationYear"):
            students = students.filter(graduation_year=params["graduationYear"])

        items, pagination = paginate(students.order_by("-created_at", "-id"), page, limit)
        return Response(
            {
                "success": True,
                "data": {
                    "students": PublicStudentSerializer(items, many=True).data,
                    "pagination": pagination,
                },
            }
        )


class DonorStudentDetailView(DonorView):
    def get(self, request, student_id):
        donor = get_request_donor(request)
        student = Student.objects.discoverable().with_amount_raised().filter(pk=student_id).first()
        if student is None:
            raise NotFound("Student not found or not publicly available")

        data = PublicStudentSerializer(student).data
        data["isBookmarked"] = DonorBookmark.objects.filter(donor=donor, student=student).exists()
        data["myDonations"] = DonationSerializer(
            Donation.objects.filter(donor=donor, student=student).order_by("-created_at"),
            many=True,
        ).data
        return Response({"success": True, "data": data})


class DonorBookmarkListView(DonorView):
    def get(self, request):
        donor = get_request_donor(request)
        bookmarks = DonorBookmark.objects.filter(donor=donor).select_related("student")
        return Response(
            {"success": True, "data": DonorBookmarkSerializer(bookmarks, many=True).data}
        )

    def post(self, request):
        donor = get_request_donor(request)
        student_id = request.data.get("studentId")
        if not student_id:
            raise ValidationFailed("Student ID is required")
        try:
            student = Student.objects.discoverable().filter(pk=int(student_id)).first()
        except (TypeError, ValueError):
            student = None
        if student is None:
            raise NotFound("Student not found or not publicly available")
        if DonorBookmark.objects.filter(donor=donor, student=student).exists():
            raise Conflict("Student is already in your bookmarks")

        bookmark = DonorBookmark.objects.create(
            donor=donor, student=student, notes=request.data.get("notes") or ""
        )
        return Response(
            {
                "success": True,
                "message": "Student bookmarked successfully",
                "data": DonorBookmarkSerializer(bookmark).data,
            },
            status=status.HTTP_201_CREATED,
        )


class DonorBookmarkDetailView(DonorView):
    def get_object(self, request, bookmark_id) -> DonorBookmark:
        donor = get_request_donor(request)
        bookmark = DonorBookmark.objects.filter(pk=bookmark_id, donor=donor).first()
        if bookmark is None:
            raise NotFound("Bookmark not found")
        return bookmark

    def patch(self, request, bookmark_id):
        bookmark = self.get_object(request, bookmark_id)
        bookmark.notes = request.data.get("notes") or ""
        bookmark.save(update_fields=["notes"])
        return Response(
            {
                "success": True,
                "message": "Bookmark updated successfully",
                "data": DonorBookmarkSerializer(bookmark).data,
            }
        )

    def delete(self, request, bookmark_id):
        self.get_object(request, bookmark_id).delete()
        return Response({"success": True, "message": "Bookmark removed successfully"})
