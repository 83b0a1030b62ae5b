from unittest.mock import AsyncMock, MagicMock

import pytest

from tradetracker.core.settings import ServiceConfig
from tradetracker.integration.vision import OCRError
from tradetracker.manager import ParserService
from tradetracker.models import Category, OcrResult
from tradetracker.services.scanning import ReceiptScanError, ReceiptScanPipeline

CATEGORIES = [Category(id="f1", name="Food & Meals", kind="expense")]


@pytest.fixture
def vision() -> MagicMock:
    mock = MagicMock()
    mock.extract_text = AsyncMock(
        return_value=OcrResult(text="NAIVAS SUPERMARKET\nBread 150\nMilk 200\nTotal: 350", confidence=0.8)
    )
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def pipeline(vision: MagicMock) -> ReceiptScanPipeline:
    return ReceiptScanPipeline(service=ParserService(config=ServiceConfig()), vision=vision)


@pytest.mark.anyio
async def test_scan_receipt(pipeline: ReceiptScanPipeline, vision: MagicMock) -> None:
    scan = await pipeline.scan(b"jpeg-bytes", "image/jpeg", CATEGORIES)

    vision.extract_text.assert_awaited_once_with(b"jpeg-bytes")
    assert scan.result.amount == 350
    assert scan.result.category_id == "f1"
    assert scan.validation.valid is True
    assert scan.summary == "from NAIVAS SUPERMARKET items: Bread, Milk"


@pytest.mark.anyio
async def test_invalid_image_is_rejected_before_ocr(pipeline: ReceiptScanPipeline, vision: MagicMock) -> None:
    with pytest.raises(ReceiptScanError) as excinfo:
        await pipeline.scan(b"%PDF", "application/pdf", CATEGORIES)

    assert excinfo.value.ocr_failed is False
    assert "Please upload a valid image file (JPEG, PNG, or WebP)" in excinfo.value.reasons
    vision.extract_text.assert_not_called()


@pytest.mark.anyio
async def test_oversized_image_is_rejected(pipeline: ReceiptScanPipeline) -> None:
    with pytest.raises(ReceiptScanError) as excinfo:
        await pipeline.scan(b"0" * (10 * 1024 * 1024 + 1), "image/png")

    assert excinfo.value.reasons == ["Image file size must be less than 10MB"]


@pytest.mark.anyio
async def test_ocr_failure_is_fatal(pipeline: ReceiptScanPipeline, vision: MagicMock) -> None:
    vision.extract_text.side_effect = OCRError("No text detected in the image")

    with pytest.raises(ReceiptScanError) as excinfo:
        await pipeline.scan(b"jpeg-bytes", "image/jpeg", CATEGORIES)

    assert excinfo.value.ocr_failed is True
    assert excinfo.value.reasons == ["No text detected in the image"]


@pytest.mark.anyio
async def test_unreadable_total_fails_validation(pipeline: ReceiptScanPipeline, vision: MagicMock) -> None:
    vision.extract_text.return_value = OcrResult(text="Thank you for shopping", confidence=0.8)

    scan = await pipeline.scan(b"jpeg-bytes", "image/webp")

    assert scan.result.success is False
    assert scan.validation.valid is False
    assert "Could not extract valid amount from receipt" in scan.validation.reasons
