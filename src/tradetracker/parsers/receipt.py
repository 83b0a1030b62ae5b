import re
from collections.abc import Sequence
from datetime import datetime

from tradetracker.domain.text import collapse_whitespace, format_amount, normalize_text, parse_amount
from tradetracker.logger import get_logger
from tradetracker.models import Category, ReceiptParseResult

from .base import Parser, find_keyword_category
from .patterns import (
    MAX_RECEIPT_ITEMS,
    RECEIPT_AMOUNT_PATTERNS,
    RECEIPT_CATEGORY_KEYWORDS,
    RECEIPT_DATE_PATTERNS,
    RECEIPT_ITEM_RE,
    RECEIPT_NON_ITEM_WORDS,
    RECEIPT_VENDOR_PATTERNS,
)

logger = get_logger(__name__)

SIMPLE_CONFIDENCE = 0.5

_WORD_RE = re.compile(r"[a-z]+(?:-[a-z]+)*")


def extract_total(text: str) -> float | None:
    for pattern in RECEIPT_AMOUNT_PATTERNS:
        match = pattern.search(text)
        if match:
            amount = parse_amount(match.group(1))
            if amount is not None:
                return amount
    return None


def extract_vendor(ocr_text: str) -> str | None:
    for pattern in RECEIPT_VENDOR_PATTERNS:
        match = pattern.search(ocr_text)
        if match:
            vendor = collapse_whitespace(match.group(1))
            if vendor:
                return vendor
    return None


def extract_items(ocr_text: str, limit: int = MAX_RECEIPT_ITEMS) -> list[str]:
    items: list[str] = []
    for line in ocr_text.splitlines():
        match = RECEIPT_ITEM_RE.match(line)
        if not match:
            continue
        name = collapse_whitespace(match.group(1))
        if set(_WORD_RE.findall(name.lower())) & RECEIPT_NON_ITEM_WORDS:
            continue
        items.append(name)
        if len(items) >= limit:
            break
    return items


def extract_date(ocr_text: str) -> str | None:
    for pattern, fmt in RECEIPT_DATE_PATTERNS:
        for match in pattern.finditer(ocr_text):
            try:
                return datetime.strptime(match.group(1), fmt).date().isoformat()
            except ValueError:
                continue
    return None


def describe_receipt(vendor: str | None, amount: float | None) -> str:
    if vendor:
        return f"Purchase from {vendor}"
    if amount:
        return f"Receipt expense of KES {format_amount(amount)}"
    return "Receipt purchase"


class ReceiptPatternParser(Parser):
    """Regex fallback for OCR receipt text. Receipts are always expenses."""

    def parse(self, text: str, categories: Sequence[Category] | None = None) -> ReceiptParseResult:
        ocr_text = text or ""
        normalized = normalize_text(ocr_text)
        logger.debug("[RECEIPT] Simple parsing %d characters of OCR text.", len(ocr_text))

        amount = extract_total(normalized)
        vendor = extract_vendor(ocr_text)

        category_id = None
        if categories:
            category = find_keyword_category(normalized, categories, "expense", RECEIPT_CATEGORY_KEYWORDS)
            if category:
                category_id = category.id

        result = ReceiptParseResult(
            success=amount is not None,
            type="expense",
            amount=amount,
            description=describe_receipt(vendor, amount),
            category_id=category_id,
            confidence=SIMPLE_CONFIDENCE,
            method="simple_parsing",
            vendor=vendor,
            items=extract_items(ocr_text),
            transaction_date=extract_date(ocr_text),
        )

        if result.success:
            logger.debug(
                "[RECEIPT] Total %s from %s (%d items).",
                format_amount(amount),
                vendor or "unknown vendor",
                len(result.items),
            )
        else:
            logger.info("[RECEIPT] No total amount found in OCR text.")
        return result
