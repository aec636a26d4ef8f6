"""
Tax Receipt Services

├── tax_receipt_service.py   # receipt rows, PDF rendering, issuing
└── receipt_storage.py       # S3 / default storage for the PDFs
"""

from .receipt_storage import ReceiptStorage, ReceiptStorageError
from .tax_receipt_service import TaxReceiptService, generate_receipt_number

__all__ = [
    "ReceiptStorage",
    "ReceiptStorageError",
    "TaxReceiptService",
    "generate_receipt_number",
]
