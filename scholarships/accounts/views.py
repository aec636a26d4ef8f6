"""
Authentication Views

Views:
- LoginView: POST /api/auth/login, email + password for all account types
- MeView: GET /api/auth/me, identity of the token holder

One Django user backs every account (username = email). The role is
decided at login: staff users are admins, otherwise the linked student or
donor profile. A user with both profiles picks one with `userType`.

Author: GradVillage Development Team
Version: 1.0.0
"""

import logging

from django.contrib.auth import authenticate
from django.contrib.auth.models import update_last_login
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..donations.models import Donor
from ..exceptions import AccountInactive, InvalidCredentials, NotFound
from ..permissions import ADMIN, DONOR, STUDENT, get_user_type
from ..students.models import Student
from .serializers import LoginSerializer
from .tokens import token_for_admin, token_for_donor, token_for_student

logger = logging.getLogger(__name__)


def available_roles(user):
    roles = {}
    if user.is_staff:
        roles[ADMIN] = user
    student = Student.objects.filter(user=user).first()
    if student is not None:
        roles[STUDENT] = student
    donor = Donor.objects.filter(user=user).first()
    if donor is not None:
        roles[DONOR] = donor
    return roles


def identity(user, user_type, profile=None):
    """The `user` block returned by login and me."""
    if user_type == STUDENT:
        return {
            "id": profile.pk,
            "email": profile.email,
            "firstName": profile.first_name,
            "lastName": profile.last_name,
            "userType": STUDENT,
            "school": profile.school_name,
            "verified": profile.verified,
            "registrationComplete": profile.registration_complete,
            "profileUrl": profile.profile_url,
        }
    if user_type == DONOR:
        return {
            "id": profile.pk,
            "email": profile.email,
            "firstName": profile.first_name,
            "lastName": profile.last_name,
            "userType": DONOR,
            "verified": profile.verified,
        }
    return {
        "id": user.pk,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "userType": ADMIN,
        "verified": True,
    }


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = "auth"

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
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

        user = authenticate(request, username=data["email"], password=data["password"])
        if user is None:
            raise InvalidCredentials("Invalid email or password")

        roles = available_roles(user)
        requested = data.get("userType")
        if requested:
            if requested not in roles:
                raise InvalidCredentials("Invalid email or password")
            user_type = requested
        elif roles:
            user_type = next(iter(roles))
        else:
            raise InvalidCredentials("Invalid email or password")

        profile = roles[user_type]
        if user_type == STUDENT:
            if profile.status != Student.AccountStatus.ACTIVE:
                raise AccountInactive(f"Account is {profile.status}. Please contact support.")
            token = token_for_student(profile)
        elif user_type == DONOR:
            profile.last_login = timezone.now()
            profile.save(update_fields=["last_login", "updated_at"])
            token = token_for_donor(profile)
        else:
            token = token_for_admin(user)

        update_last_login(None, user)
        logger.info("User %s logged in as %s", user.pk, user_type)
        return Response(
            {
                "success": True,
                "message": "Login successful",
                "data": {"user": identity(user, user_type, profile), "token": token},
            }
        )


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user_type = get_user_type(request)
        roles = available_roles(request.user)
        if user_type not in roles:
            raise NotFound("Account not found")
        return Response(
            {
                "success": True,
                "data": {"user": identity(request.user, user_type, roles[user_type])},
            }
        )
