from collections.abc import Sequence

from tradetracker.domain.text import (
    capitalize_first,
    collapse_whitespace,
    format_amount,
    normalize_text,
    parse_amount,
)
from tradetracker.logger import get_logger
from tradetracker.models import Category, ParsedTransaction, TransactionKind

from .base import Parser, find_keyword_category
from .patterns import (
    AMOUNT_WITH_CURRENCY_RE,
    EXPENSE_PATTERNS,
    INCOME_PATTERNS,
    VOICE_CATEGORY_KEYWORDS,
)

logger = get_logger(__name__)

BASE_CONFIDENCE = 0.8
CATEGORY_BONUS = 0.1
MIN_DESCRIPTION_LENGTH = 5


def match_transaction(text: str) -> tuple[TransactionKind, float] | None:
    """Income patterns are tried before expense patterns, so a sentence matching both is income."""
    banks: tuple[tuple[TransactionKind, Sequence], ...] = (
        ("income", INCOME_PATTERNS),
        ("expense", EXPENSE_PATTERNS),
    )
    for kind, patterns in banks:
        for pattern in patterns:
            match = pattern.search(text)
            if not match:
                continue
            amount = parse_amount(match.group(1))
            if amount is not None:
                return kind, amount
    return None


def generate_description(original_text: str, kind: TransactionKind, amount: float | None) -> str:
    description = AMOUNT_WITH_CURRENCY_RE.sub("", original_text)
    description = capitalize_first(collapse_whitespace(description))

    if len(description) < MIN_DESCRIPTION_LENGTH:
        label = "Income" if kind == "income" else "Expense"
        description = f"{label} of {format_amount(amount)}"

    return description


class VoicePatternParser(Parser):
    def parse(self, text: str, categories: Sequence[Category] | None = None) -> ParsedTransaction:
        original = text or ""
        normalized = normalize_text(original)
        logger.debug("[VOICE] Pattern parsing: '%s'", normalized[:80])

        matched = match_transaction(normalized)
        if matched is None:
            logger.debug("[VOICE] No income or expense pattern matched.")
            return ParsedTransaction(
                success=False,
                description=original,
                confidence=0.0,
                method="pattern_matching",
            )

        kind, amount = matched
        confidence = BASE_CONFIDENCE
        category_id = None

        if categories:
            category = find_keyword_category(normalized, categories, kind, VOICE_CATEGORY_KEYWORDS)
            if category:
                category_id = category.id
                confidence += CATEGORY_BONUS

        result = ParsedTransaction(
            success=True,
            type=kind,
            amount=amount,
            description=generate_description(original, kind, amount),
            category_id=category_id,
            confidence=confidence,
            method="pattern_matching",
        )
        logger.debug(
            "[VOICE] Matched %s of %s (category: %s, confidence: %.2f)",
            kind,
            format_amount(amount),
            category_id or "none",
            confidence,
        )
        return result
