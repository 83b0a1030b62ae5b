from collections.abc import Sequence

from pydantic import BaseModel

from tradetracker.domain.images import validate_image_file
from tradetracker.domain.validation import generate_receipt_summary, validate_receipt_data
from tradetracker.integration.vision import OCRError, VisionClient
from tradetracker.logger import get_logger
from tradetracker.manager import ParserService
from tradetracker.models import Category, OcrResult, ReceiptParseResult, ValidationResult

logger = get_logger(__name__)


class ReceiptScanError(Exception):
    def __init__(self, message: str, reasons: list[str] | None = None, *, ocr_failed: bool = False):
        super().__init__(message)
        self.reasons = reasons or [message]
        self.ocr_failed = ocr_failed


class ReceiptScan(BaseModel):
    ocr: OcrResult
    result: ReceiptParseResult
    validation: ValidationResult
    summary: str


class ReceiptScanPipeline:
    def __init__(self, service: ParserService, vision: VisionClient) -> None:
        self.service = service
        self.vision = vision

    async def scan(
        self,
        image_bytes: bytes,
        content_type: str | None,
        categories: Sequence[Category] | None = None,
        *,
        use_ai: bool = True,
    ) -> ReceiptScan:
        image_check = validate_image_file(content_type, len(image_bytes))
        if not image_check.valid:
            logger.info("[RECEIPT] Rejected image: %s", "; ".join(image_check.reasons))
            raise ReceiptScanError("Invalid receipt image", image_check.reasons)

        try:
            ocr = await self.vision.extract_text(image_bytes)
        except OCRError as exc:
            logger.warning("[RECEIPT] OCR failed: %s", exc)
            raise ReceiptScanError(str(exc), ocr_failed=True) from exc

        result = await self.service.parse_receipt_text(ocr.text, categories, use_ai=use_ai)
        validation = validate_receipt_data(result)
        if not validation.valid:
            logger.info("[RECEIPT] Parsed receipt failed validation: %s", "; ".join(validation.reasons))

        return ReceiptScan(
            ocr=ocr,
            result=result,
            validation=validation,
            summary=generate_receipt_summary(result),
        )

    async def aclose(self) -> None:
        await self.vision.aclose()
