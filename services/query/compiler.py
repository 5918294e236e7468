"""Query compiler: free-text search string to StructuredFilter.

Runs the filter extractors in a fixed order and resolves conflicts
between them:

1. contract   - high precision; its captured identifier is masked out of
                the text seen by every later extractor
2. invoice type
3. temporal range
4. client name (four-pattern cascade)
5. status, currency, frequency and intent keywords

A client match is dropped whenever a contract was found, so the two are
never populated together. Unparseable input is not an error: the compiler
fails open to an empty filter that matches every invoice.
"""

import logging
import re
from datetime import date
from typing import Any

from services.query.base import FilterExtractor
from services.query.extractors import (
    ClientNameExtractor,
    ContractExtractor,
    CurrencyExtractor,
    FrequencyExtractor,
    IntentExtractor,
    InvoiceTypeExtractor,
    StatusExtractor,
    TemporalExtractor,
)
from services.query.schema import ExtractorMatch, QueryIntent, StructuredFilter
from services.shared import metrics

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: Any) -> str:
    """Lower-case, trim and collapse whitespace.

    Args:
        query: Raw query (anything that is not a string normalizes to "")

    Returns:
        Normalized query text
    """
    if not isinstance(query, str):
        return ""
    return _WHITESPACE.sub(" ", query).strip().lower()


def mask_span(text: str, match: ExtractorMatch) -> str:
    """Blank out a matched span, keeping every other offset unchanged."""
    return text[: match.start] + " " * (match.end - match.start) + text[match.end :]


class QueryCompiler:
    """Compiles free-text queries into structured invoice filters.

    Attributes:
        today: Reference date for relative temporal phrases
        record_metrics: Whether to update Prometheus counters
    """

    def __init__(self, today: date | None = None, record_metrics: bool = True) -> None:
        """Initialize compiler.

        Args:
            today: Reference date for "this month" etc. (defaults to the current date)
            record_metrics: Update Prometheus counters on each compilation
        """
        self.today = today
        self.record_metrics = record_metrics
        self.contract_extractor = ContractExtractor()
        self.type_extractor = InvoiceTypeExtractor()
        self.temporal_extractor = TemporalExtractor(today)
        self.client_extractor = ClientNameExtractor()
        self.status_extractor = StatusExtractor()
        self.currency_extractor = CurrencyExtractor()
        self.frequency_extractor = FrequencyExtractor()
        self.intent_extractor = IntentExtractor()

    def compile(self, query: Any) -> StructuredFilter:
        """Compile a query into a StructuredFilter.

        Args:
            query: Free-text query, e.g. "Show me Barwon Health invoices this month"

        Returns:
            Immutable StructuredFilter (empty when nothing was recognized)
        """
        normalized = normalize_query(query)
        if not normalized:
            return self._finish(StructuredFilter(query=normalized))

        contract = self._run(self.contract_extractor, normalized)
        remaining = mask_span(normalized, contract) if contract else normalized

        invoice_type = self._run(self.type_extractor, remaining)
        temporal = self._run(self.temporal_extractor, remaining)
        client = self._run(self.client_extractor, remaining)
        status = self._run(self.status_extractor, remaining)
        currency = self._run(self.currency_extractor, remaining)
        frequency = self._run(self.frequency_extractor, remaining)
        intent = self._run(self.intent_extractor, remaining)

        if client and contract:
            if client.overlaps(contract):
                logger.debug(f"Client span '{client.value}' overlaps contract span, discarded")
            else:
                logger.debug(f"Client '{client.value}' dropped in favour of contract")
            client = None

        compiled = StructuredFilter(
            query=normalized,
            contract=contract.value if contract else None,
            invoice_type=invoice_type.value if invoice_type else None,
            date_range=temporal.value if temporal else None,
            client=client.value if client else None,
            status=status.value if status else None,
            currency=currency.value if currency else None,
            frequency=frequency.value if frequency else None,
            intent=intent.value if intent else QueryIntent.LIST,
        )
        return self._finish(compiled)

    def _run(self, extractor: FilterExtractor, text: str) -> ExtractorMatch | None:
        try:
            match = extractor.extract(text)
        except Exception:
            # Fail open: a broken rule must not turn a search into an error
            logger.exception(f"Extractor '{extractor.name}' failed on query: {text!r}")
            return None
        if match is not None and self.record_metrics:
            metrics.query_extractor_matches_total.labels(extractor=extractor.name).inc()
        return match

    def _finish(self, compiled: StructuredFilter) -> StructuredFilter:
        if self.record_metrics:
            outcome = "unfiltered" if compiled.is_empty else "filtered"
            metrics.queries_compiled_total.labels(outcome=outcome).inc()
        logger.debug(f"Compiled query {compiled.query!r}: {compiled.detected_filters()}")
        return compiled


def compile_query(query: Any, today: date | None = None) -> StructuredFilter:
    """Compile a query with a fresh QueryCompiler.

    Example:
        >>> compile_query("Show me invoices on contract 527995").contract
        '527995'
    """
    return QueryCompiler(today=today).compile(query)
