from rest_framework import serializers

from .models import TaxReceipt


class TaxReceiptSerializer(serializers.ModelSerializer):
    """
    Public receipt lookup payload (camelCase, amounts as numbers).
    """

    receiptNumber = serializers.CharField(source="receipt_number")
    receiptDate = serializers.DateTimeField(source="receipt_date")
    taxYear = serializers.IntegerField(source="tax_year")
    donorName = serializers.CharField(source="donor_name")
    donationAmount = serializers.FloatField(source="donation_amount")
    donationDate = serializers.DateTimeField(source="donation_date")
    donationDescription = serializers.CharField(source="donation_description")
    receiptPdfUrl = serializers.SerializerMethodField()
    issuedAt = serializers.DateTimeField(source="issued_at")
    nonprofitName = serializers.CharField(source="nonprofit_name")
    nonprofitEin = serializers.CharField(source="nonprofit_ein")

    class Meta:
        model = TaxReceipt
        fields = [
            "receiptNumber",
            "receiptDate",
            "taxYear",
            "donorName",
            "donationAmount",
            "donationDate",
            "donationDescription",
            "receiptPdfUrl",
            "issued",
            "issuedAt",
            "nonprofitName",
            "nonprofitEin",
        ]
        read_only_fields = fields

    def get_receiptPdfUrl(self, obj):
        return obj.receipt_pdf_url or None


class TaxReceiptListSerializer(serializers.ModelSerializer):
    """Row of the caller's receipt history."""

    receiptNumber = serializers.CharField(source="receipt_number")
    receiptDate = serializers.DateTimeField(source="receipt_date")
    taxYear = serializers.IntegerField(source="tax_year")
    donationAmount = serializers.FloatField(source="donation_amount")
    donationType = serializers.CharField(source="donation_type")
    donationDescription = serializers.CharField(source="donation_description")
    receiptPdfUrl = serializers.SerializerMethodField()
    issuedAt = serializers.DateTimeField(source="issued_at")
    processedAt = serializers.SerializerMethodField()

    class Meta:
        model = TaxReceipt
        fields = [
            "receiptNumber",
            "receiptDate",
            "taxYear",
            "donationAmount",
            "donationType",
            "donationDescription",
            "receiptPdfUrl",
            "issued",
            "issuedAt",
            "processedAt",
        ]
        read_only_fields = fields

    def get_receiptPdfUrl(self, obj):
        return obj.receipt_pdf_url or None

    def get_processedAt(self, obj):
        source = obj.registration_fee or obj.donation
        processed_at = getattr(source, "processed_at", None)
        return serializers.DateTimeField().to_representation(processed_at) if processed_at else None
