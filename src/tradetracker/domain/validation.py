from tradetracker.domain.text import is_positive_amount
from tradetracker.models import TRANSACTION_KINDS, ParsedTransaction, ReceiptParseResult, ValidationResult

MIN_DESCRIPTION_LENGTH = 3
MIN_CONFIDENCE = 0.3


def validate_parsed_transaction(result: ParsedTransaction) -> ValidationResult:
    """Run every check and collect all failing reasons."""
    reasons: list[str] = []

    if not result.success:
        reasons.append("Failed to parse transaction")

    if result.type not in TRANSACTION_KINDS:
        reasons.append("Invalid transaction type")

    if not is_positive_amount(result.amount):
        reasons.append("Invalid amount")

    if len(result.description or "") < MIN_DESCRIPTION_LENGTH:
        reasons.append("Description too short")

    if result.confidence < MIN_CONFIDENCE:
        reasons.append("Low confidence in parsing")

    return ValidationResult(valid=not reasons, reasons=reasons)


def validate_receipt_data(result: ReceiptParseResult) -> ValidationResult:
    reasons: list[str] = []

    if not result.success:
        reasons.append("Failed to parse receipt")

    if result.type != "expense":
        reasons.append("Receipts must be expenses")

    if not is_positive_amount(result.amount):
        reasons.append("Could not extract valid amount from receipt")

    if len(result.description or "") < MIN_DESCRIPTION_LENGTH:
        reasons.append("Description is too short")

    if result.confidence < MIN_CONFIDENCE:
        reasons.append("Low confidence in receipt parsing")

    return ValidationResult(valid=not reasons, reasons=reasons)


def generate_receipt_summary(result: ReceiptParseResult) -> str:
    parts: list[str] = []

    if result.vendor:
        parts.append(f"from {result.vendor}")

    if result.items:
        parts.append(f"items: {', '.join(result.items[:3])}")
        if len(result.items) > 3:
            parts.append(f"and {len(result.items) - 3} more")

    if result.transaction_date:
        parts.append(f"on {result.transaction_date}")

    return " ".join(parts) if parts else "Receipt details extracted"
