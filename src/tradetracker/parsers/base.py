from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from tradetracker.models import Category, ParsedTransaction


class Parser(ABC):
    @abstractmethod
    def parse(self, text: str, categories: Sequence[Category] | None = None) -> ParsedTransaction:
        """Turn free text into a ParsedTransaction. Must not raise or do I/O."""
        pass


def find_keyword_category(
    text: str,
    categories: Sequence[Category],
    kind: str,
    keyword_table: Mapping[str, Sequence[str]],
) -> Category | None:
    """
    Scan the keyword table in order. Every keyword present in ``text`` is
    checked against the caller's categories of ``kind`` whose name contains
    the table label; the first such category wins.
    """
    candidates = [category for category in categories if category.kind == kind]
    if not candidates:
        return None

    for label, keywords in keyword_table.items():
        label_lower = label.lower()
        for keyword in keywords:
            if keyword not in text:
                continue
            for category in candidates:
                if label_lower in category.name.lower():
                    return category
    return None


def find_category_by_name(
    name: object,
    categories: Sequence[Category],
    kind: str,
) -> Category | None:
    if not isinstance(name, str) or not name.strip():
        return None
    wanted = name.strip().lower()
    for category in categories:
        if category.kind == kind and category.name.lower() == wanted:
            return category
    return None
