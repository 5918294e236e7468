"""Static vocabulary used to interpret free-text invoice queries.

Pure data: invoice-type synonyms, the client-name exclusion list, month
names and the relative-period phrases understood by the temporal extractor.
"""

from services.invoices.schema import InvoiceFrequency, InvoiceType

# Declaration order matters for equal-length keys; longer keys are tried first.
INVOICE_TYPE_SYNONYMS: dict[str, InvoiceType] = {
    "ps": InvoiceType.PS,
    "professional services": InvoiceType.PS,
    "maint": InvoiceType.MAINT,
    "maintenance": InvoiceType.MAINT,
    "sub": InvoiceType.SUB,
    "subscription": InvoiceType.SUB,
    "hosting": InvoiceType.HOSTING,
    "ms": InvoiceType.MS,
    "managed services": InvoiceType.MS,
    "sw": InvoiceType.SW,
    "software": InvoiceType.SW,
    "hw": InvoiceType.HW,
    "hardware": InvoiceType.HW,
    "3pp": InvoiceType.THIRD_PARTY,
    "third party": InvoiceType.THIRD_PARTY,
    "credit memo": InvoiceType.CREDIT_MEMO,
}

# Words that are never a client name on their own.
EXCLUDED_CLIENT_WORDS: frozenset[str] = frozenset(
    [
        # status
        "unpaid",
        "paid",
        "overdue",
        "pending",
        "outstanding",
        # invoice types
        "professional",
        "professional services",
        "maintenance",
        "subscription",
        "hosting",
        "managed",
        "managed services",
        "software",
        "hardware",
        "ps",
        "maint",
        "sub",
        "ms",
        "sw",
        "hw",
        "3pp",
        "third",
        "third party",
        "credit",
        "credit memo",
        # frequency
        "monthly",
        "quarterly",
        "annual",
        "adhoc",
        # commands
        "show",
        "show me",
    ]
)

EXCLUDED_CLIENT_TOKENS: frozenset[str] = frozenset(
    token for phrase in EXCLUDED_CLIENT_WORDS for token in phrase.split()
)

MONTH_NAMES: tuple[str, ...] = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

# phrase -> (unit, offset from the current period)
RELATIVE_PERIODS: dict[str, tuple[str, int]] = {
    "this month": ("month", 0),
    "current month": ("month", 0),
    "last month": ("month", -1),
    "previous month": ("month", -1),
    "next month": ("month", 1),
    "this year": ("year", 0),
    "current year": ("year", 0),
    "last year": ("year", -1),
    "previous year": ("year", -1),
    "next year": ("year", 1),
}

# Checked in order: "unpaid" must win over "paid".
STATUS_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("overdue", "overdue"),
    ("unpaid", "pending"),
    ("pending", "pending"),
    ("outstanding", "pending"),
    ("paid", "paid"),
)

FREQUENCY_KEYWORDS: dict[str, InvoiceFrequency] = {
    "monthly": InvoiceFrequency.MONTHLY,
    "quarterly": InvoiceFrequency.QUARTERLY,
    "annual": InvoiceFrequency.ANNUAL,
    "adhoc": InvoiceFrequency.ADHOC,
    "one-time": InvoiceFrequency.ONE_TIME,
}

CURRENCY_CODES: tuple[str, ...] = ("usd", "aud", "eur", "gbp", "sgd", "nzd")

# Checked in order; the first intent with a matching phrase wins.
INTENT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("average", ("average", "mean")),
    ("total", ("total", "sum", "how much", "value")),
    ("count", ("how many", "count", "number of")),
)

# Leading words dropped from a captured client span ("what are the X invoices").
CLIENT_FILLER_WORDS: frozenset[str] = frozenset(
    [
        "what",
        "which",
        "are",
        "is",
        "the",
        "all",
        "any",
        "my",
        "our",
        "show",
        "me",
        "list",
        "find",
        "get",
        "how",
        "many",
        "much",
        "number",
        "of",
        "total",
        "sum",
        "average",
        "count",
    ]
)
