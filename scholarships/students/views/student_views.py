"""
Student Views

Endpoints available to a logged-in student (token `userType` = student).

Views:
- SchoolVerificationRequestView: POST verify-school
- RegistrationFeeIntentView: POST registration-fee/process
- RegistrationFeeConfirmView: POST registration-fee/confirm
- WelcomeBoxRequestView: POST welcome-box/request
- WelcomeBoxStatusView: GET welcome-box/status
- StudentProfileView: GET / PATCH profile
- SchoolListView: GET schools (public)

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging

from django.db import transaction
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.stripe_integration.gateway import get_payment_gateway

from ...exceptions import Conflict, NotFound, PaymentDeclined, ValidationFailed
from ...notifications.outbox import dispatch, enqueue
from ...permissions import IsStudent
from ..models import School, SchoolVerification, Student, WelcomeBox
from ..serializers import (
    SchoolSerializer,
    SchoolVerificationSerializer,
    StudentProfileSerializer,
    WelcomeBoxSerializer,
)

logger = logging.getLogger(__name__)

REGISTRATION_FEE_CENTS = 2500
REGISTRATION_FEE_CURRENCY = "usd"


def get_request_student(request) -> Student:
    """The student profile linked to the authenticated user."""
    student = Student.objects.filter(user_id=request.user.pk).first()
    if student is None:
        raise NotFound("Student not found")
    return student


class StudentView(APIView):
    permission_classes = [IsStudent]


class SchoolVerificationRequestView(StudentView):
    """
    Submit a school verification request.

    Body: `{schoolId, verificationMethod, verificationEmail?}`. Email
    verifications send the student a link to confirm their school address.
    """

    def post(self, request):
        school_id = request.data.get("schoolId")
        method = request.data.get("verificationMethod")
        verification_email = request.data.get("verificationEmail") or ""

        if not school_id or not method:
            raise ValidationFailed("Missing required fields")
        if method == SchoolVerification.Method.EMAIL and not verification_email:
            raise ValidationFailed(
                "Verification email is required when using email verification method"
            )

        student = get_request_student(request)
        try:
            school = School.objects.filter(pk=int(school_id)).first()
        except (TypeError, ValueError):
            school = None
        if school is None:
            raise NotFound("School not found")
        if not school.supports(method):
            raise ValidationFailed("Verification method not supported by school")
        if SchoolVerification.objects.filter(student=student).exists():
            raise Conflict("A verification request already exists for this student")

        messages = []
        with transaction.atomic():
            verification = SchoolVerification.objects.create(
                student=student,
                school=school,
                verification_method=method,
                verification_email=verification_email,
            )
            if method == SchoolVerification.Method.EMAIL:
                messages.append(
                    enqueue("email.verification_request", verification_id=verification.pk)
                )
        dispatch(messages)

        logger.info(
            "Student %s requested %s verification for %s", student.pk, method, school.name
        )
        return Response(
            {
                "success": True,
                "message": "School verification request submitted successfully",
                "data": SchoolVerificationSerializer(verification).data,
            },
            status=status.HTTP_201_CREATED,
        )


class RegistrationFeeIntentView(StudentView):
    """Create the $25 registration fee payment intent for the client to confirm."""

    def post(self, request):
        student = get_request_student(request)
        gateway = get_payment_gateway()
        intent = gateway.create_payment_intent(
            amount_cents=REGISTRATION_FEE_CENTS,
            currency=REGISTRATION_FEE_CURRENCY,
            payment_method_id=request.data.get("paymentMethodId"),
            metadata={"studentId": student.pk, "purpose": "registration_fee"},
        )
        return Response(
            {
                "success": True,
                "data": {
                    "paymentIntentId": intent.get("id"),
                    "clientSecret": intent.get("client_secret"),
                },
            }
        )


class RegistrationFeeConfirmView(StudentView):
    def post(self, request):
        intent_id = request.data.get("paymentIntentId")
        if not intent_id:
            raise ValidationFailed("Payment intent ID is required")

        student = get_request_student(request)
        gateway = get_payment_gateway()
        intent = gateway.retrieve_payment_intent(intent_id)
        if intent.get("status") == "requires_confirmation":
            intent = gateway.confirm_payment(intent_id)

        if intent.get("status") != "succeeded":
            raise PaymentDeclined(
                "Payment not successful", details={"data": {"status": intent.get("status")}}
            )

        student.registration_paid = True
        student.payment_intent_id = intent_id
        student.save(update_fields=["registration_paid", "payment_intent_id", "updated_at"])
        return Response(
            {
                "success": True,
                "message": "Registration fee payment confirmed",
                "data": StudentProfileSerializer(student).data,
            }
        )


class WelcomeBoxRequestView(StudentView):
    def post(self, request):
        student = get_request_student(request)
        if not student.registration_paid:
            raise Conflict("Registration fee must be paid before requesting welcome box")
        if WelcomeBox.objects.filter(student=student).exists():
            raise Conflict("A welcome box request already exists for this student")

        shipping_address = request.data.get("shippingAddress")
        if not isinstance(shipping_address, dict) or not shipping_address:
            raise ValidationFailed("Shipping address is required")

        box = WelcomeBox.objects.create(student=student, shipping_address=shipping_address)
        return Response(
            {
                "success": True,
                "message": "Welcome box request submitted successfully",
                "data": WelcomeBoxSerializer(box).data,
            },
            status=status.HTTP_201_CREATED,
        )


class WelcomeBoxStatusView(StudentView):
    def get(self, request):
        student = get_request_student(request)
        box = WelcomeBox.objects.filter(student=student).first()
        if box is None:
            raise NotFound("No welcome box request found")
        return Response({"success": True, "data": WelcomeBoxSerializer(box).data})


class StudentProfileView(StudentView):
    """
    The student's own profile. PATCH accepts bio, profilePhoto, major,
    graduationYear, fundingGoal and isPublic.
    """

    def get_object(self, request):
        student = get_request_student(request)
        return Student.objects.with_amount_raised().get(pk=student.pk)

    def get(self, request):
        student = self.get_object(request)
        return Response({"success": True, "data": StudentProfileSerializer(student).data})

    def patch(self, request):
        student = self.get_object(request)
        serializer = StudentProfileSerializer(student, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(
                {
                    "success": False,
                    "message": "Invalid profile data",
                    "errors": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        serializer.save()
        return Response(
            {
                "success": True,
                "message": "Profile updated successfully",
                "data": serializer.data,
            }
        )


class SchoolListView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        schools = School.objects.filter(is_active=True).order_by("name")
        return Response({"success": True, "data": SchoolSerializer(schools, many=True).data})
