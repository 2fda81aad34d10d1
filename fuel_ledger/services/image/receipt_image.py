"""
Receipt Image Preparation using Pillow

Turns whatever the user uploaded into a JPEG the recognition service can
read reliably:
1. Size and format checks
2. EXIF-aware orientation (phone photos are often stored sideways)
3. Downscaling of very large photos
4. Conversion to RGB JPEG

Quality heuristics (too dark, overexposed, low contrast) are ADVISORY:
they are returned to the surface as tips and never block the scan.
Only images that cannot be decoded, or are too small to read at all, are
rejected.
"""

from io import BytesIO
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field

from fuel_ledger.config import AppSettings, get_settings


# Longest side sent to recognition; receipts stay legible well below this
MAX_SIDE_PX = 2048
JPEG_QUALITY = 90


class ImageProcessingError(Exception):
    """Base exception for receipt image errors."""
    pass


class ImageRejectedError(ImageProcessingError):
    """The upload cannot be used as a receipt photo."""
    pass


class PreparedImage(BaseModel):
    """A receipt photo ready for recognition."""
    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="JPEG bytes")
    mime_type: str = "image/jpeg"
    width: int
    height: int
    original_format: Optional[str] = None
    quality_issues: list[str] = Field(
        default_factory=list,
        description="Advisory tips about the photo"
    )

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ReceiptImageService:
    """Validates and normalises uploaded receipt photos."""

    def __init__(self, app_settings: Optional[AppSettings] = None):
        self._settings = app_settings or get_settings().app

    def _check_upload(self, image_bytes: bytes, filename: Optional[str]) -> None:
        if not image_bytes:
            raise ImageRejectedError("The uploaded file is empty")

        if len(image_bytes) > self._settings.max_upload_size_bytes:
            raise ImageRejectedError(
                f"Image is larger than {self._settings.max_upload_size_mb} MB"
            )

        if filename and "." in filename:
            extension = filename.rsplit(".", 1)[1].lower()
            if extension not in self._settings.supported_formats_list:
                raise ImageRejectedError(
                    f"Unsupported image format '.{extension}'. "
                    f"Use one of: {', '.join(self._settings.supported_formats_list)}"
                )

    def _assess_quality(self, img: Image.Image) -> list[str]:
        """
        Cheap histogram heuristics.

        Returns a list of human-readable tips; empty means nothing to report.
        """
        issues = []

        histogram = img.convert("L").histogram()
        total_pixels = sum(histogram) or 1

        if sum(histogram[:50]) / total_pixels > 0.7:
            issues.append("Image is very dark - try better lighting")
        if sum(histogram[200:]) / total_pixels > 0.7:
            issues.append("Image is overexposed - try reducing glare")

        # Range holding the middle 90% of pixel values
        cumsum = 0
        low_percentile = 0
        high_percentile = 255
        for i, count in enumerate(histogram):
            cumsum += count
            if cumsum >= total_pixels * 0.05 and low_percentile == 0:
                low_percentile = i
            if cumsum >= total_pixels * 0.95:
                high_percentile = i
                break
        if high_percentile - low_percentile < 50:
            issues.append("Image has very low contrast - text may be hard to read")

        return issues

    def prepare(self, image_bytes: bytes, filename: Optional[str] = None) -> PreparedImage:
        """
        Validate an upload and convert it to a normalised JPEG.

        Args:
            image_bytes: Raw uploaded bytes
            filename: Original file name, used for the format check

        Returns:
            PreparedImage

        Raises:
            ImageRejectedError: If the image is unusable
        """
        self._check_upload(image_bytes, filename)

        try:
            img = Image.open(BytesIO(image_bytes))
            original_format = img.format
            img = ImageOps.exif_transpose(img)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageRejectedError(f"Could not read the image: {e}")

        width, height = img.size
        min_side = self._settings.min_image_side_px
        if min(width, height) < min_side:
            raise ImageRejectedError(
                f"Image is too small ({width}x{height}); "
                f"the shorter side must be at least {min_side}px"
            )

        if img.mode != "RGB":
            img = img.convert("RGB")

        if max(width, height) > MAX_SIDE_PX:
            img.thumbnail((MAX_SIDE_PX, MAX_SIDE_PX))

        quality_issues = self._assess_quality(img)

        output = BytesIO()
        img.save(output, format="JPEG", quality=JPEG_QUALITY)

        return PreparedImage(
            data=output.getvalue(),
            width=img.width,
            height=img.height,
            original_format=original_format,
            quality_issues=quality_issues,
        )
