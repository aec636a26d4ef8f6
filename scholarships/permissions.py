"""
Role permissions for the GradVillage API.

Roles are declared on the views (`permission_classes = [IsAdmin]`) instead of
being checked inside the handlers. The role of a request is the `userType`
claim of its access token; sessions without the claim (admin site, tests using
`force_authenticate`) fall back to the linked profile.
"""

from typing import Optional

from rest_framework.permissions import BasePermission

ADMIN = "admin"
STUDENT = "student"
DONOR = "donor"


def get_user_type(request) -> Optional[str]:
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        return None

    token = getattr(request, "auth", None)
    claim = token.get("userType") if hasattr(token, "get") else None
    if claim:
        if claim == ADMIN and not user.is_staff:
            return None
        return claim

    if user.is_staff:
        return ADMIN
    if getattr(user, "student_profile", None) is not None:
        return STUDENT
    if getattr(user, "donor_profile", None) is not None:
        return DONOR
    return None


class UserTypePermission(BasePermission):
    """
    Grants access when the request's user type equals `user_type`.
    Subclasses only declare the type and the denial message.
    """

    user_type: str = ""
    message = "Access denied."

    def has_permission(self, request, view):
        return get_user_type(request) == self.user_type


class IsAdmin(UserTypePermission):
    user_type = ADMIN
    message = "Access denied. Admin privileges required."


class IsStudent(UserTypePermission):
    user_type = STUDENT
    message = "Access denied. Student account required."


class IsDonor(UserTypePermission):
    user_type = DONOR
    message = "Access denied. Donor account required."
