from datetime import date
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

TransactionKind = Literal["income", "expense"]
ParseMethod = Literal["pattern_matching", "openai_api", "ai_receipt_parsing", "simple_parsing"]

TRANSACTION_KINDS: tuple[str, ...] = ("income", "expense")


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    # Stored as "type" by the hosted backend
    kind: TransactionKind = Field(validation_alias=AliasChoices("kind", "type"))
    icon: str = "📦"
    color: str = "#6B7280"
    is_default: bool = False


class ParsedTransaction(BaseModel):
    success: bool = False
    type: TransactionKind | None = None
    amount: float | None = None
    description: str = ""
    category_id: str | None = None
    confidence: float = 0.0  # 0.0 to 1.0, only comparable within one method
    method: ParseMethod = "pattern_matching"


class ReceiptParseResult(ParsedTransaction):
    type: TransactionKind | None = "expense"
    method: ParseMethod = "simple_parsing"
    vendor: str | None = None
    items: list[str] = Field(default_factory=list)
    transaction_date: str | None = None  # YYYY-MM-DD


class ValidationResult(BaseModel):
    valid: bool
    reasons: list[str] = Field(default_factory=list)


class OcrResult(BaseModel):
    text: str
    confidence: float


class TransactionRecord(BaseModel):
    id: str | None = None
    type: TransactionKind
    amount: float
    description: str = ""
    category_id: str | None = None
    transaction_date: date
