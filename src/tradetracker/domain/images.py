import base64
import binascii

from tradetracker.models import ValidationResult

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def validate_image_file(content_type: str | None, size: int) -> ValidationResult:
    reasons: list[str] = []

    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        reasons.append("Please upload a valid image file (JPEG, PNG, or WebP)")

    if size > MAX_IMAGE_BYTES:
        reasons.append("Image file size must be less than 10MB")

    if size <= 0:
        reasons.append("Image file is empty")

    return ValidationResult(valid=not reasons, reasons=reasons)


def encode_image(image_bytes: bytes) -> str:
    return base64.b64encode(image_bytes).decode("ascii")


def decode_image(payload: str) -> bytes:
    """Decode base64 image content, with or without a data: URL prefix."""
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image content is not valid base64") from exc
