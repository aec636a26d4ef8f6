from django.urls import path

from .views import (
    RegistrationHealthView,
    RegistrationPaymentView,
    TaxReceiptDetailView,
    TaxReceiptListView,
)

urlpatterns = [
    path("process", RegistrationPaymentView.as_view(), name="registration-payment-process"),
    path(
        "tax-receipt/<str:receipt_number>",
        TaxReceiptDetailView.as_view(),
        name="registration-tax-receipt",
    ),
    path("tax-receipts", TaxReceiptListView.as_view(), name="registration-tax-receipts"),
    path("health", RegistrationHealthView.as_view(), name="registration-payment-health"),
]
