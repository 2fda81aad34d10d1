"""Receipt recognition services package."""

from fuel_ledger.services.recognition.gemini_service import (
    RECEIPT_PROMPT,
    RECEIPT_SCHEMA,
    GeminiReceiptService,
)
from fuel_ledger.services.recognition.interface import (
    ReceiptRecognizer,
    RecognitionError,
    RecognitionFailedError,
    RecognitionUnavailableError,
)

__all__ = [
    "GeminiReceiptService",
    "RECEIPT_PROMPT",
    "RECEIPT_SCHEMA",
    "ReceiptRecognizer",
    "RecognitionError",
    "RecognitionFailedError",
    "RecognitionUnavailableError",
]
