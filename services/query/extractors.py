"""Filter extractors for free-text invoice queries.

Each extractor recognizes one kind of constraint in a normalized
(lower-cased, trimmed, whitespace-collapsed) query and reports the value
together with the span it was captured from. Extractors are independent
of each other; see services.query.compiler for ordering and conflict
resolution.
"""

import calendar
import re
from datetime import date

from services.query.base import FilterExtractor
from services.query.schema import (
    DateField,
    DateRange,
    ExtractorMatch,
    QueryIntent,
    StatusFilter,
)
from services.query.vocabulary import (
    CLIENT_FILLER_WORDS,
    CURRENCY_CODES,
    EXCLUDED_CLIENT_TOKENS,
    EXCLUDED_CLIENT_WORDS,
    FREQUENCY_KEYWORDS,
    INTENT_KEYWORDS,
    INVOICE_TYPE_SYNONYMS,
    MONTH_NAMES,
    RELATIVE_PERIODS,
    STATUS_KEYWORDS,
)

_KEYWORD_PATTERNS: dict[str, re.Pattern[str]] = {}


def find_keyword(text: str, term: str) -> re.Match[str] | None:
    """Find a whole-word occurrence of term in text.

    Word boundaries are enforced on both sides so that "sub" does not match
    inside "subscription" and "paid" does not match inside "unpaid".
    """
    if not text or not term:
        return None
    pattern = _KEYWORD_PATTERNS.get(term)
    if pattern is None:
        pattern = re.compile(rf"(?<!\w){re.escape(term)}(?!\w)")
        _KEYWORD_PATTERNS[term] = pattern
    return pattern.search(text)


def _strip_span(match: re.Match[str], group: int, chars: str | None = None) -> ExtractorMatch:
    """Build an ExtractorMatch for a group with surrounding characters trimmed."""
    raw = match.group(group)
    leading = len(raw) - len(raw.lstrip(chars))
    value = raw.strip(chars)
    start = match.start(group) + leading
    return ExtractorMatch(value=value, start=start, end=start + len(value))


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

_CONTRACT_STOP_WORDS = (
    "what|total|sum|how|in|during|are|is|invoices?"
    # temporal qualifiers never belong to a contract identifier
    "|this|last|next|current|previous|between|due"
)

CONTRACT_PATTERN = re.compile(
    r"\b(?:on\s+contract|for\s+contract|contract)\s+"
    r"(?!(?:invoices?|contracts?)\b)"
    r"([a-z0-9\s\-_'.&,]+?)"
    rf"(?=\s+(?:{_CONTRACT_STOP_WORDS})\b|\s*\?|$)"
)


class ContractExtractor(FilterExtractor):
    """Recognizes "on contract X", "for contract X" and "contract X"."""

    def extract(self, query: str) -> ExtractorMatch | None:
        match = CONTRACT_PATTERN.search(query)
        if not match:
            return None
        result = _strip_span(match, 1, " .,")
        if not result.value:
            return None
        return result

    @property
    def name(self) -> str:
        return "contract"


# ---------------------------------------------------------------------------
# Invoice type
# ---------------------------------------------------------------------------

# sorted() is stable, so equal-length keys keep declaration order
_TYPE_KEYS_BY_SPECIFICITY = sorted(INVOICE_TYPE_SYNONYMS, key=len, reverse=True)


class InvoiceTypeExtractor(FilterExtractor):
    """Resolves invoice-type synonyms to canonical type codes."""

    def extract(self, query: str) -> ExtractorMatch | None:
        for key in _TYPE_KEYS_BY_SPECIFICITY:
            match = find_keyword(query, key)
            if match:
                return ExtractorMatch(
                    value=INVOICE_TYPE_SYNONYMS[key], start=match.start(), end=match.end()
                )
        return None

    @property
    def name(self) -> str:
        return "invoice_type"


# ---------------------------------------------------------------------------
# Temporal
# ---------------------------------------------------------------------------

BETWEEN_PATTERN = re.compile(r"\bbetween\s+(\d{4}-\d{2}-\d{2})\s+and\s+(\d{4}-\d{2}-\d{2})\b")
MONTH_PATTERN = re.compile(rf"\b({'|'.join(MONTH_NAMES)})\b")
YEAR_PATTERN = re.compile(r"\b(20\d{2})\b")
RELATIVE_PATTERN = re.compile(
    rf"\b({'|'.join(sorted(RELATIVE_PERIODS, key=len, reverse=True))})\b"
)
DUE_PATTERN = re.compile(r"\bdue\b")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def shift_month(today: date, offset: int) -> tuple[int, int]:
    """(year, month) of the month `offset` months away from today's month."""
    index = today.year * 12 + (today.month - 1) + offset
    return index // 12, index % 12 + 1


class TemporalExtractor(FilterExtractor):
    """Turns date phrases into a concrete inclusive date range.

    Precedence when several phrases appear: explicit "between A and B",
    then a month name (with an explicit 20xx year or the current year),
    then relative phrases such as "last month", then a bare year.
    """

    def __init__(self, today: date | None = None) -> None:
        """Initialize extractor.

        Args:
            today: Reference date for relative phrases (defaults to the current date)
        """
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def extract(self, query: str) -> ExtractorMatch | None:
        today = self.today
        field = DateField.DUE_DATE if DUE_PATTERN.search(query) else DateField.INVOICE_DATE

        between = BETWEEN_PATTERN.search(query)
        if between:
            try:
                first = date.fromisoformat(between.group(1))
                second = date.fromisoformat(between.group(2))
            except ValueError:
                first = second = None
            if first and second:
                start, end = sorted((first, second))
                return self._match(between, start, end, field)

        month = MONTH_PATTERN.search(query)
        if month:
            year_match = YEAR_PATTERN.search(query)
            year = int(year_match.group(1)) if year_match else today.year
            start, end = month_bounds(year, MONTH_NAMES.index(month.group(1)) + 1)
            label = f"{month.group(1)} {year}"
            return self._match(month, start, end, field, label)

        relative = RELATIVE_PATTERN.search(query)
        if relative:
            unit, offset = RELATIVE_PERIODS[relative.group(1)]
            if unit == "month":
                start, end = month_bounds(*shift_month(today, offset))
            else:
                year = today.year + offset
                start, end = date(year, 1, 1), date(year, 12, 31)
            return self._match(relative, start, end, field)

        year_match = YEAR_PATTERN.search(query)
        if year_match:
            year = int(year_match.group(1))
            return self._match(year_match, date(year, 1, 1), date(year, 12, 31), field)

        return None

    @staticmethod
    def _match(
        match: re.Match[str],
        start: date,
        end: date,
        field: DateField,
        label: str | None = None,
    ) -> ExtractorMatch:
        date_range = DateRange(start=start, end=end, label=label or match.group(0), field=field)
        return ExtractorMatch(value=date_range, start=match.start(), end=match.end())

    @property
    def name(self) -> str:
        return "temporal"


# ---------------------------------------------------------------------------
# Client name
# ---------------------------------------------------------------------------

_CLIENT_CHARS = r"[a-z0-9\s&'.,-]"
_DOCS = r"(?:contracts?|invoices?)"

# 1. "which/what X contracts|invoices"
INTERROGATIVE_PATTERN = re.compile(rf"\b(?:which|what)\s+({_CLIENT_CHARS}+?)\s+{_DOCS}")
# 2. "show me X contracts|invoices", unless followed by "on/for contract"
SHOW_ME_PATTERN = re.compile(
    rf"\bshow\s+me\s+({_CLIENT_CHARS}+?)\s+{_DOCS}(?:\s+(?:on|for)\s+contract)?"
)
# 3. "invoices|contracts for|from|to|by X"
PREPOSITION_PATTERN = re.compile(
    rf"\b{_DOCS}\s+(?:for|from|to|by)\s+({_CLIENT_CHARS}+?)"
    r"(?:\s+(?:this|last|next|that|are|is|in|during|between|due"
    r"|from\s+(?:this|last|next)|for\s+(?:this|last|next)|on\s+contract)\b|\s*\?|$)"
)
# 4. "X contracts|invoices" at the very start
LEADING_PATTERN = re.compile(rf"^({_CLIENT_CHARS}+?)\s+{_DOCS}(?:\s+(?:for|from|to|by))?")
TRAILING_PREPOSITION = re.compile(r"\s+(?:for|from|to|by)\s*$")
DATE_LIKE_PATTERN = re.compile(
    r"^(?:\d{4}(?:-\d{1,2}(?:-\d{1,2})?)?|\d{1,2}[/-]\d{1,2}(?:[/-]\d{2,4})?)$"
)


def is_temporal_phrase(candidate: str) -> bool:
    """True if a captured span is really a temporal qualifier.

    Covers relative phrases ("last month"), anything starting with a month
    name ("january 2025") and date-like tokens ("2024", "2025-01-31").
    """
    tokens = candidate.split()
    if not tokens:
        return False
    return (
        candidate in RELATIVE_PERIODS
        or tokens[0] in MONTH_NAMES
        or bool(DATE_LIKE_PATTERN.match(candidate))
    )


def is_excluded_client(candidate: str) -> bool:
    """True if a captured span must never be treated as a client name."""
    tokens = candidate.split()
    if not tokens:
        return True
    if candidate in EXCLUDED_CLIENT_WORDS:
        return True
    if all(token in EXCLUDED_CLIENT_TOKENS or token in CURRENCY_CODES for token in tokens):
        return True
    return is_temporal_phrase(candidate)


def _drop_leading_fillers(candidate: ExtractorMatch) -> ExtractorMatch:
    value: str = candidate.value
    start = candidate.start
    while value:
        head, _, rest = value.partition(" ")
        if head not in CLIENT_FILLER_WORDS:
            break
        start += len(value) - len(rest)
        value = rest
    return ExtractorMatch(value=value, start=start, end=start + len(value))


class ClientNameExtractor(FilterExtractor):
    """Four-pattern cascade that picks out a client name.

    More specific phrasings are tried first: interrogatives, then
    "show me X invoices", then "invoices for X", then a leading "X invoices".
    A rejected candidate falls through to the next pattern.
    """

    def extract(self, query: str) -> ExtractorMatch | None:
        for candidate in self._candidates(query):
            candidate = _drop_leading_fillers(candidate)
            if not is_excluded_client(candidate.value):
                return candidate
        return None

    def _candidates(self, query: str) -> list[ExtractorMatch]:
        candidates: list[ExtractorMatch] = []

        match = INTERROGATIVE_PATTERN.search(query)
        if match:
            candidates.append(_strip_span(match, 1))

        match = SHOW_ME_PATTERN.search(query)
        if match and not re.search(r"\s(?:on|for)\s+contract$", match.group(0)):
            candidates.append(_strip_span(match, 1))

        match = PREPOSITION_PATTERN.search(query)
        if match:
            candidates.append(_strip_span(match, 1))

        match = LEADING_PATTERN.match(query)
        if match and not TRAILING_PREPOSITION.search(match.group(0)):
            candidates.append(_strip_span(match, 1))

        return candidates

    @property
    def name(self) -> str:
        return "client"


# ---------------------------------------------------------------------------
# Keyword extractors
# ---------------------------------------------------------------------------


class StatusExtractor(FilterExtractor):
    """Status keywords, independent of the client cascade."""

    def extract(self, query: str) -> ExtractorMatch | None:
        for keyword, status in STATUS_KEYWORDS:
            match = find_keyword(query, keyword)
            if match:
                return ExtractorMatch(
                    value=StatusFilter(status), start=match.start(), end=match.end()
                )
        return None

    @property
    def name(self) -> str:
        return "status"


class CurrencyExtractor(FilterExtractor):
    """Currency codes such as "aud" or "usd"."""

    def extract(self, query: str) -> ExtractorMatch | None:
        for code in CURRENCY_CODES:
            match = find_keyword(query, code)
            if match:
                return ExtractorMatch(value=code.upper(), start=match.start(), end=match.end())
        return None

    @property
    def name(self) -> str:
        return "currency"


class FrequencyExtractor(FilterExtractor):
    """Billing frequency words."""

    def extract(self, query: str) -> ExtractorMatch | None:
        for keyword, frequency in FREQUENCY_KEYWORDS.items():
            match = find_keyword(query, keyword)
            if match:
                return ExtractorMatch(value=frequency, start=match.start(), end=match.end())
        return None

    @property
    def name(self) -> str:
        return "frequency"


class IntentExtractor(FilterExtractor):
    """Whether the query asks for a list, a count, a total or an average."""

    def extract(self, query: str) -> ExtractorMatch | None:
        for intent, phrases in INTENT_KEYWORDS:
            for phrase in phrases:
                match = find_keyword(query, phrase)
                if match:
                    return ExtractorMatch(
                        value=QueryIntent(intent), start=match.start(), end=match.end()
                    )
        return None

    @property
    def name(self) -> str:
        return "intent"
