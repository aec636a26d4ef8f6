from .registration_payment_service import (
    AmountProcessing,
    RegistrationPaymentService,
    get_card_brand,
    normalize_amount,
)

__all__ = [
    "AmountProcessing",
    "RegistrationPaymentService",
    "get_card_brand",
    "normalize_amount",
]
