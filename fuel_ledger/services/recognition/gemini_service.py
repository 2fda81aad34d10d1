"""
Receipt Recognition using Gemini

DESIGN DECISION: We use Gemini with a JSON response schema because:
1. One multimodal call reads the photo and returns structured fields
2. The schema pins the field names, so no free-text parsing is needed
3. Nullable fields let the model say "unclear" instead of guessing

CRITICAL: The model's answer is still validated. Numbers that are
negative or non-finite and dates that do not parse are dropped (None),
never corrected.
"""

import json
from datetime import date, datetime
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fuel_ledger.config import GeminiSettings
from fuel_ledger.models.record import ReceiptData
from fuel_ledger.services.recognition.interface import (
    ReceiptRecognizer,
    RecognitionFailedError,
    RecognitionUnavailableError,
)


logger = structlog.get_logger(__name__)


RECEIPT_PROMPT = (
    "Analyze this fuel receipt. Extract the total cost, fuel volume (liters), "
    "price per unit, date, and gas station name. "
    "If a value is missing or unclear, return null."
)

RECEIPT_SCHEMA = {
    "type": "object",
    "properties": {
        "totalCost": {
            "type": "number",
            "nullable": True,
            "description": "The total amount paid.",
        },
        "volume": {
            "type": "number",
            "nullable": True,
            "description": "The amount of fuel in liters.",
        },
        "pricePerUnit": {
            "type": "number",
            "nullable": True,
            "description": "The price per single unit of fuel.",
        },
        "stationName": {
            "type": "string",
            "nullable": True,
            "description": "The name of the gas station vendor.",
        },
        "date": {
            "type": "string",
            "nullable": True,
            "description": "The date of the transaction in YYYY-MM-DD format.",
        },
    },
    "required": ["totalCost", "volume", "pricePerUnit", "stationName", "date"],
}

# Receipts print dates in many ways; the model is asked for ISO but not trusted
DATE_FORMATS = ["%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d", "%d.%m.%Y"]


class GeminiReceiptService(ReceiptRecognizer):
    """
    Receipt recognition with Gemini.

    The API key is read lazily, so the rest of the app works without one;
    only `recognize` reports the missing configuration.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None, model=None):
        self._settings = settings
        self._model = model

    def _get_settings(self) -> GeminiSettings:
        if self._settings is None:
            try:
                self._settings = GeminiSettings()
            except ValidationError:
                raise RecognitionUnavailableError(
                    "Receipt scanning is not configured: set GEMINI_API_KEY"
                )
        if not self._settings.api_key.strip():
            raise RecognitionUnavailableError(
                "Receipt scanning is not configured: GEMINI_API_KEY is empty"
            )
        return self._settings

    def _get_model(self):
        """Configure Google Generative AI and build the model once."""
        if self._model is None:
            settings = self._get_settings()
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,
                    "max_output_tokens": settings.max_tokens,
                    "response_mime_type": "application/json",
                    "response_schema": RECEIPT_SCHEMA,
                },
            )
        return self._model

    @retry(
        retry=retry_if_exception_type(RecognitionFailedError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _request(self, image: bytes, mime_type: str) -> str:
        model = self._get_model()
        timeout = self._settings.request_timeout_seconds if self._settings else None
        try:
            response = await model.generate_content_async(
                [{"mime_type": mime_type, "data": image}, RECEIPT_PROMPT],
                request_options={"timeout": timeout} if timeout else None,
            )
            text = response.text
        except ValueError as e:
            # `response.text` raises ValueError when the answer was blocked
            raise RecognitionFailedError(f"Gemini returned no usable answer: {e}")
        except Exception as e:
            raise RecognitionFailedError(f"Gemini request failed: {e}")

        if not text or not text.strip():
            raise RecognitionFailedError("No response from Gemini")
        return text

    async def recognize(self, image: bytes, mime_type: str = "image/jpeg") -> ReceiptData:
        """Send the photo to Gemini and parse its JSON answer."""
        if not image:
            raise RecognitionFailedError("No image data to recognize")

        self._get_settings()
        text = await self._request(image, mime_type)
        receipt = self._parse_response(text)

        logger.info(
            "receipt_recognized",
            fields=[
                name
                for name, value in receipt.model_dump().items()
                if value is not None
            ],
        )
        return receipt

    def _parse_response(self, text: str) -> ReceiptData:
        """
        Parse the model's JSON answer into ReceiptData.

        Raises:
            RecognitionFailedError: If the answer is not a JSON object
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            # Tolerate a JSON object wrapped in prose or code fences
            start = text.find("{")
            end = text.rfind("}") + 1
            if start < 0 or end <= start:
                raise RecognitionFailedError("Gemini answer is not JSON")
            try:
                data = json.loads(text[start:end])
            except json.JSONDecodeError as e:
                raise RecognitionFailedError(f"Gemini answer is not JSON: {e}")

        if not isinstance(data, dict):
            raise RecognitionFailedError("Gemini answer is not a JSON object")

        data["date"] = self._safe_date(data.get("date"))
        station = data.get("stationName")
        data["stationName"] = station if isinstance(station, str) else None

        try:
            return ReceiptData.model_validate(data)
        except ValidationError as e:
            raise RecognitionFailedError(f"Gemini answer has an unexpected shape: {e}")

    def _safe_date(self, value) -> Optional[str]:
        """Normalise a receipt date to YYYY-MM-DD, or None."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str):
            text = value.strip()
            for fmt in DATE_FORMATS:
                try:
                    return datetime.strptime(text, fmt).date().isoformat()
                except ValueError:
                    continue
        return None
