"""
Admin Views

Platform administration endpoints (token `userType` = admin, staff user).

Views:
- AdminStudentListView: GET students (filters, sorting, pagination)
- AdminStudentDetailView: GET students/<id>
- AdminStudentStatusView: PATCH students/<id>/status
- AdminVerificationListView: GET verifications (pending queue)
- AdminVerificationReviewView: PATCH verifications/<id>
- AdminVerificationApproveView: POST verifications/<id>/approve
- AdminVerificationRejectView: POST verifications/<id>/reject
- AdminAnalyticsView: GET analytics
- AdminWelcomeBoxUpdateView: PATCH welcome-boxes/<id>

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from ...donations.models import Donation, RegistrationFee
from ...donations.serializers import AdminDonationSerializer
from ...exceptions import Conflict, NotFound, ValidationFailed
from ...notifications.outbox import dispatch, enqueue
from ...pagination import get_page_params, paginate
from ...permissions import IsAdmin
from ..models import SchoolVerification, Student, WelcomeBox
from ..serializers import AdminVerificationSerializer, StudentSerializer, WelcomeBoxSerializer

logger = logging.getLogger(__name__)

STUDENT_SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "schoolName": "school_name",
    "graduationYear": "graduation_year",
    "status": "status",
}

VERIFICATION_SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "schoolName": "school__name",
}


def get_ordering(query_params, fields, default="createdAt") -> str:
    field = fields.get(query_params.get("sortBy"), fields[default])
    return field if query_params.get("sortOrder") == "asc" else f"-{field}"


def get_verification(verification_id) -> SchoolVerification:
    verification = (
        SchoolVerification.objects.select_related("student", "school")
        .filter(pk=verification_id)
        .first()
    )
    if verification is None:
        raise NotFound("Verification not found")
    return verification


def apply_review(verification, new_status, reviewer, reason="", notes=None):
    """
    Record an admin decision on a verification and queue the student email.

    Approving also marks the student verified. Must run inside a transaction;
    returns the queued outbox messages.
    """
    verification.status = new_status
    verification.reviewed_by = reviewer
    if new_status == SchoolVerification.Status.VERIFIED:
        verification.verified_at = timezone.now()
    verification.rejection_reason = reason or ""
    if notes is not None:
        verification.notes = notes
    verification.save()

    if new_status == SchoolVerification.Status.VERIFIED:
        student = Student.objects.select_for_update().get(pk=verification.student_id)
        student.verified = True
        student.registration_status = Student.RegistrationStatus.VERIFIED
        student.save(update_fields=["verified", "registration_status", "updated_at"])

    messages = []
    if verification.verification_email:
        messages.append(enqueue("email.verification_update", verification_id=verification.pk))
    return messages


class AdminView(APIView):
    permission_classes = [IsAdmin]


class AdminStudentListView(AdminView):
    """
    Query params: page, limit, status, schoolName, graduationYear,
    verificationStatus, sortBy, sortOrder.
    """

    def get(self, request):
        params = request.query_params
        page, limit = get_page_params(params)

        students = Student.objects.with_amount_raised().select_related(
            "school_verification__school", "welcome_box"
        )
        if params.get("status"):
            students = students.filter(status=params["status"])
        if params.get("schoolName"):
            students = students.filter(school_name__icontains=params["schoolName"])
        if params.get("graduationYear"):
            students = students.filter(graduation_year=params["graduationYear"])
        if params.get("verificationStatus"):
            students = students.filter(school_verification__status=params["verificationStatus"])

        students = students.order_by(get_ordering(params, STUDENT_SORT_FIELDS), "-id")
        items, pagination = paginate(students, page, limit)
        return Response(
            {
                "success": True,
                "data": {
                    "students": StudentSerializer(items, many=True).data,
                    "pagination": pagination,
                },
            }
        )


class AdminStudentDetailView(AdminView):
    def get(self, request, student_id):
        student = (
            Student.objects.with_amount_raised()
            .select_related("school_verification__school", "welcome_box")
            .filter(pk=student_id)
            .first()
        )
        if student is None:
            raise NotFound("Student not found")

        donations = (
            Donation.objects.filter(student=student)
            .select_related("donor")
            .order_by("-created_at")
        )
        data = StudentSerializer(student).data
        data["donations"] = AdminDonationSerializer(donations, many=True).data
        return Response({"success": True, "data": data})


class AdminStudentStatusView(AdminView):
    """Suspend, reactivate or deactivate a student account. Body: `{status, reason?}`."""

    def patch(self, request, student_id):
        new_status = request.data.get("status")
        reason = request.data.get("reason") or ""
        if new_status not in Student.AccountStatus.values:
            raise ValidationFailed(
                "Invalid status. Must be one of: " + ", ".join(Student.AccountStatus.values)
            )

        with transaction.atomic():
            student = Student.objects.select_for_update().filter(pk=student_id).first()
            if student is None:
                raise NotFound("Student not found")
            student.status = new_status
            student.save(update_fields=["status", "updated_at"])
            messages = [
                enqueue(
                    "email.account_status",
                    student_id=student.pk,
                    status=new_status,
                    reason=reason,
                )
            ]
        dispatch(messages)

        logger.info(
            "Admin %s set student %s status to %s", request.user.pk, student.pk, new_status
        )
        student = Student.objects.with_amount_raised().get(pk=student.pk)
        return Response(
            {
                "success": True,
                "message": "Student status updated successfully",
                "data": StudentSerializer(student).data,
            }
        )


class AdminVerificationListView(AdminView):
    def get(self, request):
        params = request.query_params
        page, limit = get_page_params(params)
        verifications = (
            SchoolVerification.objects.filter(status=SchoolVerification.Status.PENDING)
            .select_related("student", "school")
            .order_by(get_ordering(params, VERIFICATION_SORT_FIELDS), "-id")
        )
        items, pagination = paginate(verifications, page, limit)
        return Response(
            {
                "success": True,
                "data": {
                    "verifications": AdminVerificationSerializer(items, many=True).data,
                    "pagination": pagination,
                },
            }
        )


class AdminVerificationReviewView(AdminView):
    """
    Body: `{status: verified | rejected, rejectionReason?}`. The reason is
    stored as given and included in the student's notification email.
    """

    def patch(self, request, verification_id):
        new_status = request.data.get("status")
        reason = request.data.get("rejectionReason") or ""
        if new_status not in (
            SchoolVerification.Status.VERIFIED,
            SchoolVerification.Status.REJECTED,
        ):
            raise ValidationFailed("Status must be either verified or rejected")

        with transaction.atomic():
            verification = get_verification(verification_id)
            messages = apply_review(verification, new_status, request.user, reason=reason)
        dispatch(messages)

        return Response(
            {
                "success": True,
                "message": "School verification reviewed successfully",
                "data": {"verification": AdminVerificationSerializer(verification).data},
            }
        )


class AdminVerificationApproveView(AdminView):
    def post(self, request, verification_id):
        with transaction.atomic():
            verification = get_verification(verification_id)
            if not verification.is_pending:
                raise Conflict("Can only approve pending verifications")
            messages = apply_review(
                verification,
                SchoolVerification.Status.VERIFIED,
                request.user,
                notes=request.data.get("notes"),
            )
        dispatch(messages)

        logger.info("Admin %s approved verification %s", request.user.pk, verification.pk)
        return Response(
            {
                "success": True,
                "message": "Verification approved successfully",
                "data": {"verification": AdminVerificationSerializer(verification).data},
            }
        )


class AdminVerificationRejectView(AdminView):
    def post(self, request, verification_id):
        reason = (request.data.get("reason") or "").strip()
        if not reason:
            raise ValidationFailed("Rejection reason is required")

        with transaction.atomic():
            verification = get_verification(verification_id)
            if not verification.is_pending:
                raise Conflict("Can only reject pending verifications")
            messages = apply_review(
                verification,
                SchoolVerification.Status.REJECTED,
                request.user,
                reason=reason,
                notes=request.data.get("notes"),
            )
        dispatch(messages)

        logger.info("Admin %s rejected verification %s", request.user.pk, verification.pk)
        return Response(
            {
                "success": True,
                "message": "Verification rejected successfully",
                "data": {"verification": AdminVerificationSerializer(verification).data},
            }
        )


class AdminAnalyticsView(AdminView):
    def get(self, request):
        completed = Donation.objects.filter(status=Donation.Status.COMPLETED)
        fees = RegistrationFee.objects.filter(status=RegistrationFee.Status.COMPLETED)
        total_amount = completed.aggregate(total=Sum("amount"))["total"] or 0
        fees_total = fees.aggregate(total=Sum("amount"))["total"] or 0
        return Response(
            {
                "success": True,
                "data": {
                    "totalStudents": Student.objects.count(),
                    "totalDonations": completed.count(),
                    "totalAmount": float(total_amount),
                    "pendingVerifications": SchoolVerification.objects.filter(
                        status=SchoolVerification.Status.PENDING
                    ).count(),
                    "registrationFeesCollected": float(fees_total),
                },
            }
        )


class AdminWelcomeBoxUpdateView(AdminView):
    """Body: `{status, trackingNumber?}`. Shipping stamps `shippedAt` once."""

    def patch(self, request, box_id):
        new_status = request.data.get("status")
        if new_status not in WelcomeBox.Status.values:
            raise ValidationFailed(
                "Invalid status. Must be one of: " + ", ".join(WelcomeBox.Status.values)
            )

        box = WelcomeBox.objects.filter(pk=box_id).first()
        if box is None:
            raise NotFound("Welcome box not found")

        box.status = new_status
        if request.data.get("trackingNumber"):
            box.tracking_number = request.data["trackingNumber"]
        if new_status == WelcomeBox.Status.SHIPPED and box.shipped_at is None:
            box.shipped_at = timezone.now()
        box.save()
        return Response(
            {
                "success": True,
                "message": "Welcome box status updated successfully",
                "data": WelcomeBoxSerializer(box).data,
            }
        )
