"""Receipt image preparation package."""

from fuel_ledger.services.image.receipt_image import (
    ImageProcessingError,
    ImageRejectedError,
    PreparedImage,
    ReceiptImageService,
)

__all__ = [
    "ImageProcessingError",
    "ImageRejectedError",
    "PreparedImage",
    "ReceiptImageService",
]
