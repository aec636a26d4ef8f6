from .donation_service import (
    DonationPaymentResult,
    DonationService,
    calculate_transaction_fee,
)

__all__ = [
    "DonationPaymentResult",
    "DonationService",
    "calculate_transaction_fee",
]
