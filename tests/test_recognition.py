"""
Tests for receipt recognition and receipt image preparation.

Gemini is never called: the service gets a fake model object.
"""

import json
from io import BytesIO

import pytest
from PIL import Image

from fuel_ledger.config import AppSettings, GeminiSettings
from fuel_ledger.services.image import ImageRejectedError, ReceiptImageService
from fuel_ledger.services.recognition import (
    RECEIPT_PROMPT,
    GeminiReceiptService,
    RecognitionFailedError,
    RecognitionUnavailableError,
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel; replays canned answers."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.requests = []

    async def generate_content_async(self, contents, request_options=None):
        self.requests.append((contents, request_options))
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return FakeResponse(answer)


def make_service(*answers):
    model = FakeModel(*answers)
    service = GeminiReceiptService(settings=GeminiSettings(api_key="test-key"), model=model)
    return service, model


def image_bytes(fmt="PNG", size=(400, 300), mode="RGB", color=(128, 128, 128)):
    img = Image.new(mode, size, color=color)
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class TestGeminiReceiptService:
    """Tests for GeminiReceiptService."""

    @pytest.mark.asyncio
    async def test_parses_full_answer(self):
        """Test a complete, well-formed answer."""
        service, model = make_service(json.dumps({
            "totalCost": 10.42,
            "volume": 45.5,
            "pricePerUnit": 0.229,
            "stationName": "Oman Oil",
            "date": "2023-11-14",
        }))

        receipt = await service.recognize(b"jpeg-bytes")

        assert receipt.total_cost == 10.42
        assert receipt.volume == 45.5
        assert receipt.price_per_unit == 0.229
        assert receipt.station_name == "Oman Oil"
        assert receipt.date == "2023-11-14"

        contents, options = model.requests[0]
        assert contents[0] == {"mime_type": "image/jpeg", "data": b"jpeg-bytes"}
        assert contents[1] == RECEIPT_PROMPT
        assert options == {"timeout": 30.0}

    @pytest.mark.asyncio
    async def test_nulls_stay_none(self):
        """Test that unclear values come back as None."""
        service, _ = make_service(json.dumps({
            "totalCost": 5, "volume": None, "pricePerUnit": None,
            "stationName": None, "date": None,
        }))
        receipt = await service.recognize(b"x")
        assert receipt.total_cost == 5
        assert receipt.volume is None
        assert receipt.station_name is None

    @pytest.mark.asyncio
    async def test_answer_wrapped_in_prose(self):
        """Test a JSON object surrounded by other text."""
        service, _ = make_service('Here you go:\n```json\n{"totalCost": 7.5}\n```')
        receipt = await service.recognize(b"x")
        assert receipt.total_cost == 7.5

    @pytest.mark.asyncio
    async def test_empty_image_is_rejected(self):
        """Test that no bytes means no request."""
        service, model = make_service()
        with pytest.raises(RecognitionFailedError):
            await service.recognize(b"")
        assert model.requests == []

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self):
        """Test that one failed request is retried."""
        service, model = make_service(RuntimeError("503"), '{"volume": 20}')
        receipt = await service.recognize(b"x")
        assert receipt.volume == 20
        assert len(model.requests) == 2

    @pytest.mark.asyncio
    async def test_missing_key_is_unavailable(self):
        """Test that a blank key is reported before any request."""
        service = GeminiReceiptService(settings=GeminiSettings(api_key="  "), model=FakeModel())
        with pytest.raises(RecognitionUnavailableError):
            await service.recognize(b"x")

    def test_non_json_answer_fails(self):
        """Test that prose without JSON is a failure."""
        service, _ = make_service()
        with pytest.raises(RecognitionFailedError):
            service._parse_response("I cannot read this receipt")

    def test_non_object_answer_fails(self):
        """Test that a JSON list is not accepted."""
        service, _ = make_service()
        with pytest.raises(RecognitionFailedError):
            service._parse_response("[1, 2]")

    def test_dates_are_normalised(self):
        """Test common receipt date layouts."""
        service, _ = make_service()
        assert service._safe_date("2024-01-05") == "2024-01-05"
        assert service._safe_date("05/01/2024") == "2024-01-05"
        assert service._safe_date("05.01.2024") == "2024-01-05"
        assert service._safe_date("yesterday") is None
        assert service._safe_date(None) is None

    def test_unusable_values_are_dropped(self):
        """Test that bad numbers and dates become None, not errors."""
        service, _ = make_service()
        receipt = service._parse_response(json.dumps({
            "totalCost": -4, "volume": "n/a", "stationName": 12, "date": "soon",
        }))
        assert receipt.is_empty


class TestReceiptImageService:
    """Tests for receipt photo preparation."""

    @pytest.fixture
    def service(self):
        return ReceiptImageService(AppSettings())

    def test_png_becomes_jpeg(self, service):
        """Test the normalised output."""
        prepared = service.prepare(image_bytes("PNG"), "receipt.png")
        assert prepared.mime_type == "image/jpeg"
        assert prepared.data[:2] == b"\xff\xd8"
        assert (prepared.width, prepared.height) == (400, 300)
        assert prepared.original_format == "PNG"
        assert prepared.size_bytes == len(prepared.data)

    def test_rgba_is_converted(self, service):
        """Test that transparency does not break JPEG output."""
        prepared = service.prepare(
            image_bytes("PNG", mode="RGBA", color=(128, 128, 128, 255)), "receipt.png"
        )
        assert prepared.mime_type == "image/jpeg"

    def test_large_photo_is_downscaled(self, service):
        """Test the longest side is capped."""
        prepared = service.prepare(image_bytes("JPEG", size=(4000, 3000)), "receipt.jpg")
        assert max(prepared.width, prepared.height) == 2048

    def test_dark_photo_gets_a_tip(self, service):
        """Test that quality problems are advisory."""
        prepared = service.prepare(image_bytes(color=(5, 5, 5)), "receipt.png")
        assert any("dark" in issue for issue in prepared.quality_issues)

    def test_too_small_is_rejected(self, service):
        """Test the minimum size."""
        with pytest.raises(ImageRejectedError, match="too small"):
            service.prepare(image_bytes(size=(100, 400)), "receipt.png")

    def test_unsupported_extension_is_rejected(self, service):
        """Test the file extension check."""
        with pytest.raises(ImageRejectedError, match="Unsupported"):
            service.prepare(image_bytes(), "receipt.gif")

    def test_garbage_is_rejected(self, service):
        """Test bytes that are not an image."""
        with pytest.raises(ImageRejectedError):
            service.prepare(b"definitely not an image", "receipt.jpg")

    def test_empty_upload_is_rejected(self, service):
        """Test an empty file."""
        with pytest.raises(ImageRejectedError, match="empty"):
            service.prepare(b"", "receipt.jpg")
