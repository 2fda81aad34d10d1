"""Services package."""

from fuel_ledger.services.image import (
    ImageProcessingError,
    ImageRejectedError,
    PreparedImage,
    ReceiptImageService,
)
from fuel_ledger.services.recognition import (
    GeminiReceiptService,
    ReceiptRecognizer,
    RecognitionError,
    RecognitionFailedError,
    RecognitionUnavailableError,
)
from fuel_ledger.services.storage import (
    CorruptDataError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    LedgerStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Image services
    "ImageProcessingError",
    "ImageRejectedError",
    "PreparedImage",
    "ReceiptImageService",
    # Recognition services
    "GeminiReceiptService",
    "ReceiptRecognizer",
    "RecognitionError",
    "RecognitionFailedError",
    "RecognitionUnavailableError",
    # Storage services
    "CorruptDataError",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LedgerStore",
    "NotFoundError",
    "StorageError",
]
