import math
import re

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    return text.strip().lower()


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def capitalize_first(text: str) -> str:
    # str.capitalize() would lower-case the rest of the sentence
    if not text:
        return text
    return text[0].upper() + text[1:]


def parse_amount(raw: str) -> float | None:
    value = float(raw.replace(",", ""))
    return value if math.isfinite(value) else None


def format_amount(amount: float | None) -> str:
    if amount is None:
        return ""
    if math.isfinite(amount) and amount == int(amount):
        return str(int(amount))
    return f"{amount:g}"


def is_positive_amount(amount: object) -> bool:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return False
    try:
        value = float(amount)
    except OverflowError:
        return False
    return math.isfinite(value) and value > 0
