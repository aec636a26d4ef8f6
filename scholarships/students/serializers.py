"""
Student Serializers

camelCase API representations of schools, students, verifications and
welcome boxes. Money is rendered as numbers.

Serializers:
- SchoolSerializer: Active schools for the signup / verification forms
- SchoolVerificationSerializer: Verification with school name
- AdminVerificationSerializer: Verification plus student summary (review queue)
- WelcomeBoxSerializer: Welcome box request
- StudentSerializer: Admin view of a student, nested verification / box
- StudentProfileSerializer: The student's own editable profile
- PublicStudentSerializer: What donors see

Author: GradVillage Development Team
Version: 1.0.0
"""

from decimal import Decimal

from rest_framework import serializers

from .models import School, SchoolVerification, Student, WelcomeBox


class SchoolSerializer(serializers.ModelSerializer):
    verificationMethods = serializers.ListField(source="verification_methods", read_only=True)

    class Meta:
        model = School
        fields = ["id", "name", "domain", "verificationMethods"]


class SchoolVerificationSerializer(serializers.ModelSerializer):
    studentId = serializers.IntegerField(source="student_id", read_only=True)
    schoolId = serializers.IntegerField(source="school_id", read_only=True)
    schoolName = serializers.CharField(source="school.name", read_only=True)
    verificationMethod = serializers.CharField(source="verification_method")
    verificationEmail = serializers.CharField(source="verification_email")
    verificationDocument = serializers.CharField(source="verification_document")
    rejectionReason = serializers.CharField(source="rejection_reason")
    verifiedAt = serializers.DateTimeField(source="verified_at")
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = SchoolVerification
        fields = [
            "id",
            "studentId",
            "schoolId",
            "schoolName",
            "verificationMethod",
            "verificationEmail",
            "verificationDocument",
            "status",
            "rejectionReason",
            "notes",
            "verifiedAt",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class StudentSummarySerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source="first_name")
    lastName = serializers.CharField(source="last_name")
    schoolName = serializers.CharField(source="school_name")

    class Meta:
        model = Student
        fields = ["id", "email", "firstName", "lastName", "schoolName"]
        read_only_fields = fields


class AdminVerificationSerializer(SchoolVerificationSerializer):
    student = StudentSummarySerializer(read_only=True)

    class Meta(SchoolVerificationSerializer.Meta):
        fields = SchoolVerificationSerializer.Meta.fields + ["student"]
        read_only_fields = fields


class WelcomeBoxSerializer(serializers.ModelSerializer):
    studentId = serializers.IntegerField(source="student_id", read_only=True)
    shippingAddress = serializers.JSONField(source="shipping_address")
    trackingNumber = serializers.CharField(source="tracking_number")
    shippedAt = serializers.DateTimeField(source="shipped_at")
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = WelcomeBox
        fields = [
            "id",
            "studentId",
            "status",
            "shippingAddress",
            "trackingNumber",
            "shippedAt",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class StudentSerializer(serializers.ModelSerializer):
    """
    Admin representation. `amountRaised` is computed from donations.
    """

    firstName = serializers.CharField(source="first_name")
    lastName = serializers.CharField(source="last_name")
    schoolName = serializers.CharField(source="school_name")
    graduationYear = serializers.CharField(source="graduation_year")
    registrationStatus = serializers.CharField(source="registration_status")
    paymentComplete = serializers.BooleanField(source="payment_complete")
    registrationPaid = serializers.BooleanField(source="registration_paid")
    fundingGoal = serializers.FloatField(source="funding_goal")
    amountRaised = serializers.FloatField(source="amount_raised")
    profileUrl = serializers.CharField(source="profile_url")
    createdAt = serializers.DateTimeField(source="created_at")
    schoolVerification = serializers.SerializerMethodField()
    welcomeBox = serializers.SerializerMethodField()

    class Meta:
        model = Student
        fields = [
            "id",
            "email",
            "firstName",
            "lastName",
            "schoolName",
            "major",
            "graduationYear",
            "registrationStatus",
            "paymentComplete",
            "registrationPaid",
            "verified",
            "status",
            "fundingGoal",
            "amountRaised",
            "profileUrl",
            "createdAt",
            "schoolVerification",
            "welcomeBox",
        ]
        read_only_fields = fields

    def get_schoolVerification(self, obj):
        verification = getattr(obj, "school_verification", None)
        return SchoolVerificationSerializer(verification).data if verification else None

    def get_welcomeBox(self, obj):
        box = getattr(obj, "welcome_box", None)
        return WelcomeBoxSerializer(box).data if box else None


class StudentProfileSerializer(serializers.ModelSerializer):
    """
    The student's own profile. Only the presentation fields are writable.
    """

    firstName = serializers.CharField(source="first_name", read_only=True)
    lastName = serializers.CharField(source="last_name", read_only=True)
    schoolName = serializers.CharField(source="school_name", read_only=True)
    graduationYear = serializers.CharField(
        source="graduation_year", required=False, allow_blank=True, max_length=4
    )
    profilePhoto = serializers.CharField(
        source="profile_photo", required=False, allow_blank=True, max_length=500
    )
    fundingGoal = serializers.DecimalField(
        source="funding_goal",
        max_digits=12,
        decimal_places=2,
        required=False,
        min_value=Decimal("0"),
        coerce_to_string=False,
    )
    isPublic = serializers.BooleanField(source="is_public", required=False)
    amountRaised = serializers.FloatField(source="amount_raised", read_only=True)
    fundingProgress = serializers.FloatField(source="funding_progress", read_only=True)
    profileUrl = serializers.CharField(source="profile_url", read_only=True)
    registrationStatus = serializers.CharField(source="registration_status", read_only=True)
    registrationPaid = serializers.BooleanField(source="registration_paid", read_only=True)

    class Meta:
        model = Student
        fields = [
            "id",
            "email",
            "firstName",
            "lastName",
            "schoolName",
            "major",
            "graduationYear",
            "bio",
            "profilePhoto",
            "fundingGoal",
            "isPublic",
            "amountRaised",
            "fundingProgress",
            "profileUrl",
            "registrationStatus",
            "registrationPaid",
            "verified",
        ]
        read_only_fields = ["id", "email", "verified"]
        extra_kwargs = {
            "major": {"required": False, "allow_blank": True},
            "bio": {"required": False, "allow_blank": True},
        }


class PublicStudentSerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source="first_name")
    lastName = serializers.CharField(source="last_name")
    schoolName = serializers.CharField(source="school_name")
    graduationYear = serializers.CharField(source="graduation_year")
    profilePhoto = serializers.CharField(source="profile_photo")
    profileUrl = serializers.CharField(source="profile_url")
    fundingGoal = serializers.FloatField(source="funding_goal")
    amountRaised = serializers.FloatField(source="amount_raised")
    fundingProgress = serializers.FloatField(source="funding_progress")

    class Meta:
        model = Student
        fields = [
            "id",
            "firstName",
            "lastName",
            "schoolName",
            "major",
            "graduationYear",
            "bio",
            "profilePhoto",
            "profileUrl",
            "fundingGoal",
            "amountRaised",
            "fundingProgress",
            "verified",
        ]
        read_only_fields = fields
