from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from tradetracker.api.dependencies import get_scanner, get_service
from tradetracker.api.schemas import (
    ReceiptParseResponse,
    ReceiptScanRequest,
    ReceiptTextRequest,
    StatusResponse,
    ValidateRequest,
    VoiceParseRequest,
    VoiceParseResponse,
)
from tradetracker.domain.images import decode_image
from tradetracker.domain.validation import (
    generate_receipt_summary,
    validate_parsed_transaction,
    validate_receipt_data,
)
from tradetracker.domain.voice_session import generate_voice_feedback
from tradetracker.logger import get_logger
from tradetracker.manager import ParserService
from tradetracker.models import ReceiptParseResult, ValidationResult
from tradetracker.services.scanning import ReceiptScan, ReceiptScanError, ReceiptScanPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


@router.get("/status", response_model=StatusResponse)
async def get_status(
    service: Annotated[ParserService, Depends(get_service)],
    scanner: Annotated[ReceiptScanPipeline, Depends(get_scanner)],
) -> StatusResponse:
    return StatusResponse(
        ai_parsing=service.ai_enabled,
        ocr=scanner.vision.configured,
        model=service.config.openai_model if service.ai_enabled else None,
    )


@router.post("/parse/voice", response_model=VoiceParseResponse)
async def parse_voice(
    req: VoiceParseRequest,
    service: Annotated[ParserService, Depends(get_service)],
) -> VoiceParseResponse:
    result = await service.parse_voice(req.text, req.categories, use_ai=req.use_ai)
    logger.info("[VOICE] Parsed via %s (success=%s).", result.method, result.success)
    return VoiceParseResponse(
        result=result,
        validation=validate_parsed_transaction(result),
        feedback=generate_voice_feedback(result),
    )


@router.post("/parse/receipt", response_model=ReceiptParseResponse)
async def parse_receipt(
    req: ReceiptTextRequest,
    service: Annotated[ParserService, Depends(get_service)],
) -> ReceiptParseResponse:
    result = await service.parse_receipt_text(req.ocr_text, req.categories, use_ai=req.use_ai)
    logger.info("[RECEIPT] Parsed via %s (success=%s).", result.method, result.success)
    return ReceiptParseResponse(
        result=result,
        validation=validate_receipt_data(result),
        summary=generate_receipt_summary(result),
    )


@router.post("/scan/receipt", response_model=ReceiptScan)
async def scan_receipt(
    req: ReceiptScanRequest,
    scanner: Annotated[ReceiptScanPipeline, Depends(get_scanner)],
) -> ReceiptScan:
    try:
        image_bytes = decode_image(req.image_base64)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        return await scanner.scan(image_bytes, req.content_type, req.categories, use_ai=req.use_ai)
    except ReceiptScanError as exc:
        status_code = 502 if exc.ocr_failed else 422
        raise HTTPException(status_code=status_code, detail=exc.reasons) from exc


@router.post("/validate", response_model=ValidationResult)
async def validate_result(req: ValidateRequest) -> ValidationResult:
    if req.kind == "receipt":
        return validate_receipt_data(ReceiptParseResult(**req.result.model_dump()))
    return validate_parsed_transaction(req.result)
