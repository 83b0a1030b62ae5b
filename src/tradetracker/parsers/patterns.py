import re

AMOUNT = r"(\d+(?:,\d{3})*(?:\.\d{2})?)"
CURRENCY = r"(?:shillings?|ksh|kes|dollars?|usd)"
RECEIPT_CURRENCY = r"(?:ksh?|kes)"

# Order matters: the first matching pattern wins.
INCOME_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?:sold|earned|received|got|made)\s+(?:.*?)\s+(?:for|worth|of)\s+{AMOUNT}\s*{CURRENCY}?", re.I),
    re.compile(rf"(?:income|revenue|sales?)\s+(?:of|worth)\s+{AMOUNT}\s*{CURRENCY}?", re.I),
    re.compile(rf"(?:client|customer)\s+paid\s+(?:me\s+)?{AMOUNT}\s*{CURRENCY}?", re.I),
)

EXPENSE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?:bought|purchased|spent|paid)\s+(?:.*?)\s+(?:for|worth|of)\s+{AMOUNT}\s*{CURRENCY}?", re.I),
    re.compile(rf"(?:expense|cost)\s+(?:of|worth)\s+{AMOUNT}\s*{CURRENCY}?", re.I),
    re.compile(rf"(?:transport|fuel|food|lunch)\s+(?:cost|was)\s+{AMOUNT}\s*{CURRENCY}?", re.I),
)

AMOUNT_WITH_CURRENCY_RE = re.compile(rf"\d+(?:,\d{{3}})*(?:\.\d{{2}})?\s*{CURRENCY}?", re.I)

# label -> keywords, scanned in insertion order
VOICE_CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    # income
    "Sales": ("sold", "sale", "customer", "client", "product", "goods"),
    "Services": ("service", "work", "job", "consultation", "repair", "fix"),
    "Other Income": ("bonus", "gift", "refund", "interest", "dividend"),
    # expense
    "Inventory": ("bought", "purchase", "stock", "goods", "materials", "supplies"),
    "Transport": ("transport", "fuel", "petrol", "diesel", "taxi", "bus", "matatu"),
    "Food & Meals": ("food", "lunch", "dinner", "breakfast", "meal", "tea", "coffee"),
    "Utilities": ("electricity", "water", "internet", "phone", "airtime", "data"),
    "Marketing": ("advert", "marketing", "promotion", "banner", "flyer"),
    "Other Expenses": ("expense", "cost", "fee", "charge", "payment"),
}

RECEIPT_AMOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"grand\s*total[:\s]*{RECEIPT_CURRENCY}?\s*{AMOUNT}", re.I),
    re.compile(rf"(?<!sub)(?<!sub )(?<!sub-)\btotal[:\s]*{RECEIPT_CURRENCY}?\s*{AMOUNT}", re.I),
    re.compile(rf"amount(?:\s*due)?[:\s]*{RECEIPT_CURRENCY}?\s*{AMOUNT}", re.I),
    re.compile(rf"{RECEIPT_CURRENCY}\s*{AMOUNT}", re.I),
    re.compile(rf"{AMOUNT}\s*{RECEIPT_CURRENCY}\b", re.I),
)

RECEIPT_VENDOR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^([A-Z][A-Za-z &'.-]*?(?:SUPERMARKET|STORE|SHOP|MART|LTD|LIMITED))\b", re.I | re.M),
    re.compile(r"^([A-Z][A-Za-z &'.-]+?)[ \t]+(?:RECEIPT|INVOICE)\b", re.I | re.M),
)

RECEIPT_ITEM_RE = re.compile(
    rf"^\s*([A-Za-z][A-Za-z0-9 &'./-]*?)\s+(?:x\s*\d+\s+|\d+\s*x\s+)?{RECEIPT_CURRENCY}?\s*{AMOUNT}\s*$",
    re.I,
)

RECEIPT_NON_ITEM_WORDS = frozenset((
    "total",
    "amount",
    "tax",
    "vat",
    "cash",
    "change",
    "balance",
    "paid",
    "tendered",
    "mpesa",
    "m-pesa",
    "card",
    "discount",
    "till",
    "tel",
    "pin",
))

MAX_RECEIPT_ITEMS = 10

RECEIPT_DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(\d{4}-\d{2}-\d{2})\b"), "%Y-%m-%d"),
    (re.compile(r"\b(\d{2}/\d{2}/\d{4})\b"), "%d/%m/%Y"),
    (re.compile(r"\b(\d{2}-\d{2}-\d{4})\b"), "%d-%m-%Y"),
)

RECEIPT_CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Food & Meals": ("food", "meal", "restaurant", "cafe", "supermarket", "grocery"),
    "Transport": ("fuel", "petrol", "diesel", "parking", "taxi", "bus"),
    "Utilities": ("electricity", "water", "internet", "phone", "airtime"),
    "Inventory": ("wholesale", "supplies", "materials", "stock"),
    "Other Expenses": ("receipt", "purchase", "payment"),
}
