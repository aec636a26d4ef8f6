from rest_framework import serializers

from ..permissions import ADMIN, DONOR, STUDENT


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    userType = serializers.ChoiceField(choices=[ADMIN, STUDENT, DONOR], required=False)

    def validate_email(self, value):
        return value.strip()
