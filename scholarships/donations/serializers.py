"""
Donation Serializers

Serializers:
- DonorSerializer / DonorRegistrationSerializer / DonorProfileUpdateSerializer
- DonationCreateSerializer: Input of POST /api/donations/create
- DonationSerializer: Donation as shown to its donor
- AdminDonationSerializer: Donation with the donor block for admins
- DonorBookmarkSerializer: Saved student with public profile

Author: GradVillage Development Team
Version: 1.0.0
"""

from decimal import Decimal

from rest_framework import serializers

from ..students.serializers import PublicStudentSerializer
from .models import Donation, Donor, DonorBookmark


class DonorSerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source="first_name")
    lastName = serializers.CharField(source="last_name")
    memberSince = serializers.DateTimeField(source="member_since")
    lastLogin = serializers.DateTimeField(source="last_login")
    totalDonated = serializers.FloatField(source="total_donated")
    studentsSupported = serializers.IntegerField(source="students_supported")

    class Meta:
        model = Donor
        fields = [
            "id",
            "email",
            "firstName",
            "lastName",
            "phone",
            "address",
            "preferences",
            "verified",
            "memberSince",
            "lastLogin",
            "totalDonated",
            "studentsSupported",
        ]
        read_only_fields = fields


class DonorRegistrationSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)
    firstName = serializers.CharField(max_length=100)
    lastName = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    address = serializers.DictField(required=False)

    def validate_email(self, value):
        return value.strip().lower()


class DonorProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Profile update. `preferences` is merged into the stored preferences
    instead of replacing them.
    """

    firstName = serializers.CharField(source="first_name", required=False, max_length=100)
    lastName = serializers.CharField(source="last_name", required=False, max_length=100)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    address = serializers.DictField(required=False)
    preferences = serializers.DictField(required=False)

    class Meta:
        model = Donor
        fields = ["firstName", "lastName", "phone", "address", "preferences"]

    def update(self, instance, validated_data):
        preferences = validated_data.pop("preferences", None)
        if preferences is not None:
            instance.preferences = {**(instance.preferences or {}), **preferences}
        return super().update(instance, validated_data)


class DonationCreateSerializer(serializers.Serializer):
    studentId = serializers.IntegerField()
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("1.00")
    )
    donationType = serializers.ChoiceField(
        choices=[
            Donation.DonationType.GENERAL,
            Donation.DonationType.REGISTRY_ITEM,
            Donation.DonationType.EMERGENCY,
        ],
        default=Donation.DonationType.GENERAL,
    )
    paymentMethod = serializers.ChoiceField(choices=Donation.PaymentMethod.choices)
    isAnonymous = serializers.BooleanField(default=False)
    donorMessage = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class DonationSerializer(serializers.ModelSerializer):
    studentId = serializers.IntegerField(source="student_id", read_only=True)
    studentName = serializers.CharField(source="student.full_name", read_only=True)
    amount = serializers.FloatField()
    donationType = serializers.CharField(source="donation_type")
    paymentMethod = serializers.CharField(source="payment_method")
    paymentIntentId = serializers.CharField(source="payment_intent_id")
    transactionFee = serializers.FloatField(source="transaction_fee")
    netAmount = serializers.FloatField(source="net_amount")
    isAnonymous = serializers.BooleanField(source="is_anonymous")
    donorMessage = serializers.CharField(source="donor_message")
    taxReceiptNumber = serializers.CharField(source="tax_receipt_number")
    failureReason = serializers.CharField(source="failure_reason")
    processedAt = serializers.DateTimeField(source="processed_at")
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = Donation
        fields = [
            "id",
            "studentId",
            "studentName",
            "amount",
            "currency",
            "donationType",
            "paymentMethod",
            "paymentIntentId",
            "transactionFee",
            "netAmount",
            "status",
            "isAnonymous",
            "donorMessage",
            "taxReceiptNumber",
            "failureReason",
            "processedAt",
            "createdAt",
        ]
        read_only_fields = fields


class AdminDonationSerializer(DonationSerializer):
    donor = serializers.SerializerMethodField()

    class Meta(DonationSerializer.Meta):
        fields = DonationSerializer.Meta.fields + ["donor"]
        read_only_fields = fields

    def get_donor(self, obj):
        return {
            "firstName": obj.donor_first_name or (obj.donor.first_name if obj.donor else ""),
            "lastName": obj.donor_last_name or (obj.donor.last_name if obj.donor else ""),
            "email": obj.donor_email or (obj.donor.email if obj.donor else ""),
        }


class DonorBookmarkSerializer(serializers.ModelSerializer):
    studentId = serializers.IntegerField(source="student_id", read_only=True)
    student = PublicStudentSerializer(read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = DonorBookmark
        fields = ["id", "studentId", "student", "notes", "createdAt"]
        read_only_fields = fields
