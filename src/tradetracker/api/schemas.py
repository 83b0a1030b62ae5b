from typing import Literal

from pydantic import BaseModel, Field

from tradetracker.models import (
    Category,
    ParsedTransaction,
    ReceiptParseResult,
    TransactionRecord,
    ValidationResult,
)
from tradetracker.services.analytics import AnalyticsReport, Insight


class VoiceParseRequest(BaseModel):
    text: str
    categories: list[Category] = Field(default_factory=list)
    use_ai: bool = True


class VoiceParseResponse(BaseModel):
    result: ParsedTransaction
    validation: ValidationResult
    feedback: str


class ReceiptTextRequest(BaseModel):
    ocr_text: str
    categories: list[Category] = Field(default_factory=list)
    use_ai: bool = True


class ReceiptParseResponse(BaseModel):
    result: ReceiptParseResult
    validation: ValidationResult
    summary: str


class ReceiptScanRequest(BaseModel):
    image_base64: str
    content_type: str
    categories: list[Category] = Field(default_factory=list)
    use_ai: bool = True


class ValidateRequest(BaseModel):
    result: ParsedTransaction
    kind: Literal["voice", "receipt"] = "voice"


class AnalyticsRequest(BaseModel):
    transactions: list[TransactionRecord] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    period: str | None = None


class AnalyticsResponse(BaseModel):
    period: str | None
    report: AnalyticsReport
    insights: list[Insight]


class StatusResponse(BaseModel):
    ai_parsing: bool
    ocr: bool
    model: str | None
