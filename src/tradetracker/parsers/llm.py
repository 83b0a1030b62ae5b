import asyncio
import json
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from openai import AsyncOpenAI

from tradetracker.domain.text import is_positive_amount, normalize_text
from tradetracker.logger import get_logger
from tradetracker.models import Category, ParsedTransaction, ReceiptParseResult

from .base import find_category_by_name
from .receipt import ReceiptPatternParser, describe_receipt
from .voice import VoicePatternParser, generate_description

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.7
TEMPERATURE = 0.1
VOICE_MAX_TOKENS = 200
RECEIPT_MAX_TOKENS = 300
MAX_ITEMS = 10

VOICE_SYSTEM_PROMPT = (
    "You are an AI assistant that parses voice input for business expense tracking. "
    "Always respond with valid JSON only, no additional text."
)

RECEIPT_SYSTEM_PROMPT = (
    "You are an AI assistant that parses receipt text for business expense tracking in Kenya. "
    "Always respond with valid JSON only, no additional text."
)

VOICE_PROMPT = """
Parse this voice transaction input for a small business expense tracker:
"{text}"

Available categories: {categories}

Extract and format as JSON:
{{
  "type": "income" or "expense",
  "amount": number (no currency symbols),
  "description": "clear description",
  "category": "exact category name from the list above",
  "confidence": 0.0-1.0
}}

Rules:
- If amount is unclear, return confidence < 0.5
- Match category exactly from the provided list
- Keep description concise and professional
- Consider African business context (shillings, matatu, etc.)

Examples:
"I sold 5 bags of rice for 2000 shillings" -> {{"type": "income", "amount": 2000, "description": "Sold 5 bags of rice", "category": "Sales", "confidence": 0.9}}
"Bought transport fuel for 800 shillings" -> {{"type": "expense", "amount": 800, "description": "Transport fuel", "category": "Transport", "confidence": 0.9}}
"""

RECEIPT_PROMPT = """
Parse this receipt OCR text for a small business expense tracker:

"{text}"

Available expense categories: {categories}

Extract and format as JSON:
{{
  "type": "expense",
  "amount": number (total amount, no currency symbols),
  "description": "clear description of purchase",
  "category": "best matching category from the list",
  "vendor": "store/vendor name",
  "items": ["item1", "item2", "item3"],
  "date": "YYYY-MM-DD" or null,
  "confidence": 0.0-1.0
}}

Rules:
- Extract the TOTAL amount (look for words like "Total", "Amount Due", "Grand Total")
- Ignore tax breakdowns, focus on final amount
- Match category based on items purchased or vendor type
- Keep description concise but descriptive
- Consider African business context (KES, shillings, common stores)
- If date is unclear, return null
"""


@dataclass(frozen=True)
class Completion:
    payload: dict[str, Any]


@dataclass(frozen=True)
class Fallback:
    reason: str


CompletionOutcome = Completion | Fallback


def format_category_list(categories: Sequence[Category], kind: str | None = None) -> str:
    if kind is not None:
        return ", ".join(category.name for category in categories if category.kind == kind)
    return ", ".join(f"{category.name} ({category.kind})" for category in categories)


def coerce_amount(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.replace(",", "").strip())
        except ValueError:
            return None
    if not is_positive_amount(value):
        return None
    return float(value)


def coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if not math.isfinite(value) or value < 0 or value > 1:
        return DEFAULT_CONFIDENCE
    return float(value)


def coerce_date(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        return None


def coerce_items(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    items = [str(item).strip() for item in value if item is not None and str(item).strip()]
    return items[:MAX_ITEMS]


def _clean_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class LLMParser:
    """
    Parses transactions through an OpenAI-compatible chat completion.

    Every failure (no client, transport error, timeout, abort, malformed
    reply) resolves to the deterministic parsers, so callers always get a
    result back.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str = "gpt-3.5-turbo",
        timeout: float = 10.0,
        voice_parser: VoicePatternParser | None = None,
        receipt_parser: ReceiptPatternParser | None = None,
    ):
        self.client = client
        self.model = model
        self.timeout = timeout
        self.voice_parser = voice_parser or VoicePatternParser()
        self.receipt_parser = receipt_parser or ReceiptPatternParser()

    @classmethod
    def from_credentials(
        cls,
        api_key: str | None,
        model: str = "gpt-3.5-turbo",
        base_url: str | None = None,
        timeout: float = 10.0,
    ) -> "LLMParser":
        client = None
        if api_key:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url or None,
                timeout=timeout,
                max_retries=0,
            )
        return cls(client=client, model=model, timeout=timeout)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()

    async def parse_voice(
        self,
        text: str,
        categories: Sequence[Category] | None = None,
        *,
        abort: asyncio.Event | None = None,
    ) -> ParsedTransaction:
        categories = list(categories or [])
        normalized = normalize_text(text)

        outcome = await self._complete(
            VOICE_SYSTEM_PROMPT,
            VOICE_PROMPT.format(text=normalized, categories=format_category_list(categories)),
            max_tokens=VOICE_MAX_TOKENS,
            abort=abort,
        )
        if isinstance(outcome, Completion):
            result = self._build_voice_result(text, outcome.payload, categories)
            if isinstance(result, ParsedTransaction):
                logger.debug("[AI] Voice parse succeeded: %s %s", result.type, result.amount)
                return result
            outcome = result

        logger.info("[AI] Voice parsing fell back to pattern matching (%s).", outcome.reason)
        return self.voice_parser.parse(text, categories)

    async def parse_receipt(
        self,
        ocr_text: str,
        categories: Sequence[Category] | None = None,
        *,
        abort: asyncio.Event | None = None,
    ) -> ReceiptParseResult:
        categories = list(categories or [])

        outcome = await self._complete(
            RECEIPT_SYSTEM_PROMPT,
            RECEIPT_PROMPT.format(text=ocr_text, categories=format_category_list(categories, "expense")),
            max_tokens=RECEIPT_MAX_TOKENS,
            abort=abort,
        )
        if isinstance(outcome, Completion):
            result = self._build_receipt_result(outcome.payload, categories)
            if isinstance(result, ReceiptParseResult):
                logger.debug("[AI] Receipt parse succeeded: %s from %s", result.amount, result.vendor)
                return result
            outcome = result

        logger.info("[AI] Receipt parsing fell back to simple parsing (%s).", outcome.reason)
        return self.receipt_parser.parse(ocr_text, categories)

    async def _complete(
        self,
        system_prompt: str,
        prompt: str,
        *,
        max_tokens: int,
        abort: asyncio.Event | None = None,
    ) -> CompletionOutcome:
        if self.client is None:
            return Fallback("no API key configured")

        request = asyncio.ensure_future(self._send(system_prompt, prompt, max_tokens))
        waiter = asyncio.ensure_future(abort.wait()) if abort is not None else None

        try:
            if waiter is not None:
                done, _ = await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
                if request not in done:
                    # Cancelling the task closes the in-flight HTTP request
                    request.cancel()
                    logger.info("[AI] Request aborted by caller.")
                    return Fallback("aborted")
            response = await request
        except asyncio.CancelledError:
            request.cancel()
            raise
        except Exception as e:
            logger.error(f"[AI] Completion request failed: {e}")
            return Fallback(f"request failed: {type(e).__name__}")
        finally:
            if waiter is not None:
                waiter.cancel()

        content = self._extract_content(response)
        if not content:
            logger.warning("[AI] Completion returned no content.")
            return Fallback("empty response")

        try:
            payload = json.loads(content.strip())
        except ValueError:
            logger.warning("[AI] Completion was not valid JSON: %s", content[:120])
            return Fallback("malformed JSON")

        if not isinstance(payload, dict):
            logger.warning("[AI] Completion JSON was %s, expected an object.", type(payload).__name__)
            return Fallback("malformed JSON")

        return Completion(payload)

    async def _send(self, system_prompt: str, prompt: str, max_tokens: int) -> object:
        return await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=TEMPERATURE,
            max_tokens=max_tokens,
            timeout=self.timeout,
        )

    @staticmethod
    def _extract_content(response: object) -> str | None:
        choices = getattr(response, "choices", None)
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if isinstance(content, str):
            return content
        return None

    def _build_voice_result(
        self,
        text: str,
        payload: dict[str, Any],
        categories: Sequence[Category],
    ) -> ParsedTransaction | Fallback:
        kind = payload.get("type")
        if kind not in ("income", "expense"):
            return Fallback("missing transaction type")

        amount = coerce_amount(payload.get("amount"))
        if amount is None:
            return Fallback("missing amount")

        category = find_category_by_name(payload.get("category"), categories, kind)
        description = _clean_text(payload.get("description")) or generate_description(text, kind, amount)

        return ParsedTransaction(
            success=True,
            type=kind,
            amount=amount,
            description=description,
            category_id=category.id if category else None,
            confidence=coerce_confidence(payload.get("confidence")),
            method="openai_api",
        )

    def _build_receipt_result(
        self,
        payload: dict[str, Any],
        categories: Sequence[Category],
    ) -> ReceiptParseResult | Fallback:
        amount = coerce_amount(payload.get("amount"))
        if amount is None:
            return Fallback("missing amount")

        vendor = _clean_text(payload.get("vendor"))
        category = find_category_by_name(payload.get("category"), categories, "expense")
        description = _clean_text(payload.get("description")) or describe_receipt(vendor, amount)

        return ReceiptParseResult(
            success=True,
            type="expense",
            amount=amount,
            description=description,
            category_id=category.id if category else None,
            confidence=coerce_confidence(payload.get("confidence")),
            method="ai_receipt_parsing",
            vendor=vendor,
            items=coerce_items(payload.get("items")),
            transaction_date=coerce_date(payload.get("date")),
        )
