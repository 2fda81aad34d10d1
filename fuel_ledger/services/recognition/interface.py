"""
Receipt Recognition Interface

DESIGN DECISION: Recognition is an external collaborator behind a small
async interface, so the editor never depends on a particular vendor and
tests can substitute a fake.

The result is a GUESS. Every field may be missing; callers merge only
what was found and the user still confirms by submitting.
"""

from abc import ABC, abstractmethod

from fuel_ledger.models.record import ReceiptData


class RecognitionError(Exception):
    """Base exception for receipt recognition errors."""
    pass


class RecognitionUnavailableError(RecognitionError):
    """Recognition is not configured (e.g. no API key)."""
    pass


class RecognitionFailedError(RecognitionError):
    """The service could not produce a usable answer."""
    pass


class ReceiptRecognizer(ABC):
    """Reads a receipt photo and proposes record fields."""

    @abstractmethod
    async def recognize(self, image: bytes, mime_type: str = "image/jpeg") -> ReceiptData:
        """
        Interpret a receipt photo.

        Args:
            image: Encoded image bytes
            mime_type: MIME type of `image`

        Returns:
            ReceiptData, with None for every field that could not be read

        Raises:
            RecognitionUnavailableError: If the service is not configured
            RecognitionFailedError: If the request or its answer failed
        """
        pass
