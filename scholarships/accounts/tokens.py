"""
Access token issuing.

Tokens are simplejwt access tokens (lifetime from SIMPLE_JWT, 24 hours) with
the claims the frontends read: `id`, `userId`, `email`, `userType` and
`verified`.
"""

from typing import Any

from django.contrib.auth import get_user_model
from rest_framework_simplejwt.tokens import AccessToken

from ..permissions import ADMIN, DONOR, STUDENT

User = get_user_model()


def issue_token(user, user_type: str, **claims: Any) -> str:
    token = AccessToken.for_user(user)
    token["userType"] = user_type
    for key, value in claims.items():
        token[key] = value
    return str(token)


def token_for_student(student) -> str:
    return issue_token(
        student.user,
        STUDENT,
        id=student.pk,
        userId=str(student.user_uid),
        email=student.email,
        verified=True,
    )


def token_for_donor(donor) -> str:
    return issue_token(
        donor.user,
        DONOR,
        id=donor.pk,
        userId=str(donor.user_id),
        email=donor.email,
        verified=donor.verified,
    )


def token_for_admin(user) -> str:
    return issue_token(
        user,
        ADMIN,
        id=user.pk,
        userId=str(user.pk),
        email=user.email,
        verified=True,
    )


def get_or_create_account_user(email: str, password: str = None, first_name: str = "", last_name: str = ""):
    """
    Django user backing a student or donor account (username = email).
    An existing user with that username is reused. Without a password the
    account can only log in after a reset.
    """
    existing = User.objects.filter(username=email).first()
    if existing is not None:
        return existing
    user = User(username=email, email=email, first_name=first_name, last_name=last_name)
    if password:
        user.set_password(password)
    else:
        user.set_unusable_password()
    user.save()
    return user
