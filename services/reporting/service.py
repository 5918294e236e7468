"""Reporting engine and end-to-end query service.

Typical use from the HTTP layer:

    service = InvoiceQueryService(get_settings())
    report = service.run("Show me Barwon Health invoices this month", invoices)

The engine performs no I/O: the caller supplies the invoice snapshot and
serializes the returned report.
"""

import logging
import time
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from services.invoices.schema import InvoiceRecord
from services.query.compiler import QueryCompiler
from services.query.evaluator import apply_filter
from services.query.schema import QueryIntent, StructuredFilter
from services.reporting.aging import AgingSummary, build_aging_summary
from services.reporting.cashflow import (
    CashFlowProjection,
    CashFlowSchedule,
    build_cash_flow_schedule,
    project_cash_flow,
)
from services.reporting.exchange import (
    ExchangeRateTable,
    currency_label,
    unknown_currency_warning,
)
from services.shared import metrics
from services.shared.config import Settings

logger = logging.getLogger(__name__)


class QueryAnswer(BaseModel):
    """Direct answer to the query's intent.

    Attributes:
        intent: list, count, total or average
        count: Number of matching invoices
        value: Total or average in the reporting currency (None for list/count)
        reporting_currency: Currency of value
        unknown_currencies: Codes converted at the fallback rate for value, sorted
    """

    intent: QueryIntent
    count: int
    value: Decimal | None = None
    reporting_currency: str
    unknown_currencies: list[str] = Field(default_factory=list)


class InvoiceReport(BaseModel):
    """Everything derived from one query over one invoice snapshot."""

    filter: StructuredFilter
    matching_invoices: list[InvoiceRecord]
    answer: QueryAnswer
    aging_summary: AgingSummary | None = None
    cash_flow: CashFlowProjection | None = None
    cash_flow_schedule: CashFlowSchedule | None = None
    warnings: list[str] = Field(default_factory=list)
    generated_for: date


class ReportingEngine:
    """Derives financial reports from a filtered invoice set.

    Attributes:
        rates: Immutable exchange rate table
        horizon_days: Cash-flow projection horizon
        record_metrics: Update Prometheus metrics for each report
    """

    def __init__(
        self, rates: ExchangeRateTable, horizon_days: int = 30, record_metrics: bool = True
    ) -> None:
        """Initialize reporting engine.

        Args:
            rates: Exchange rate table for the reporting currency
            horizon_days: Days ahead included in the cash-flow projection
            record_metrics: Update the unknown-currency counter and duration histogram

        Raises:
            ValueError: If horizon_days is negative
        """
        if horizon_days < 0:
            raise ValueError(f"horizon_days must not be negative, got {horizon_days}")
        self.rates = rates
        self.horizon_days = horizon_days
        self.record_metrics = record_metrics

    def aging(self, invoices: Iterable[InvoiceRecord], today: date | None = None) -> AgingSummary:
        return build_aging_summary(invoices, self.rates, today)

    def cash_flow(
        self,
        invoices: Iterable[InvoiceRecord],
        today: date | None = None,
        horizon_days: int | None = None,
    ) -> CashFlowProjection:
        horizon = self.horizon_days if horizon_days is None else horizon_days
        return project_cash_flow(invoices, self.rates, today, horizon)

    def answer(self, intent: QueryIntent, invoices: list[InvoiceRecord]) -> QueryAnswer:
        """Answer a count/total/average/list intent over matching invoices."""
        answer = QueryAnswer(
            intent=intent, count=len(invoices), reporting_currency=self.rates.reporting_currency
        )
        if intent in (QueryIntent.TOTAL, QueryIntent.AVERAGE):
            total = Decimal("0")
            unknown: set[str] = set()
            for inv in invoices:
                if inv.amount_due is None:
                    continue
                conversion = self.rates.convert(inv.amount_due, inv.currency)
                if not conversion.known:
                    unknown.add(currency_label(inv.currency))
                total += conversion.amount
            answer.unknown_currencies = sorted(unknown)
            if intent is QueryIntent.AVERAGE:
                answer.value = total / len(invoices) if invoices else Decimal("0")
            else:
                answer.value = total
        return answer

    def build_report(
        self,
        structured_filter: StructuredFilter,
        invoices: Iterable[InvoiceRecord],
        today: date | None = None,
        include_aging: bool = True,
        include_cash_flow: bool = True,
    ) -> InvoiceReport:
        """Filter a snapshot and derive every report for it.

        Args:
            structured_filter: Compiled filter
            invoices: Invoice snapshot (never modified)
            today: Reference date (defaults to the current date)
            include_aging: Build the aging summary
            include_cash_flow: Build the cash-flow projection and schedule

        Returns:
            InvoiceReport
        """
        start_time = time.time()
        today = today or date.today()
        matching = apply_filter(structured_filter, invoices, today)

        aging = self.aging(matching, today) if include_aging else None
        cash_flow = self.cash_flow(matching, today) if include_cash_flow else None
        schedule = (
            build_cash_flow_schedule(matching, self.rates, today) if include_cash_flow else None
        )

        answer = self.answer(structured_filter.intent, matching)

        # Each section lists its own fallback conversions; flag each code once
        unknown: set[str] = set(answer.unknown_currencies)
        for part in (aging, cash_flow, schedule):
            if part is not None:
                unknown.update(part.unknown_currencies)

        warnings: list[str] = []
        for code in sorted(unknown):
            warning = unknown_currency_warning(code, self.rates.reporting_currency)
            logger.warning(warning)
            warnings.append(warning)
            if self.record_metrics:
                metrics.report_unknown_currency_total.labels(currency=code).inc()

        report = InvoiceReport(
            filter=structured_filter,
            matching_invoices=matching,
            answer=answer,
            aging_summary=aging,
            cash_flow=cash_flow,
            cash_flow_schedule=schedule,
            warnings=warnings,
            generated_for=today,
        )

        if self.record_metrics:
            metrics.report_generation_duration_seconds.observe(time.time() - start_time)
        logger.info(
            f"Report for {structured_filter.query!r}: {len(matching)} invoices, "
            f"{len(warnings)} warnings"
        )
        return report


class InvoiceQueryService:
    """End-to-end entry point: query string + snapshot -> report.

    Stateless between calls; safe to share across concurrent requests.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize query service.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self.rates = ExchangeRateTable.from_settings(settings)
        self.engine = ReportingEngine(
            self.rates,
            settings.cash_flow_horizon_days,
            record_metrics=settings.metrics_enabled,
        )

    def compile(self, query: str, today: date | None = None) -> StructuredFilter:
        """Compile a query for "detected filters" display without running it."""
        return QueryCompiler(today=today, record_metrics=self.settings.metrics_enabled).compile(
            query
        )

    def run(
        self,
        query: str,
        invoices: Iterable[InvoiceRecord],
        today: date | None = None,
    ) -> InvoiceReport:
        """Compile a query, filter the snapshot and build the report.

        Args:
            query: Free-text query
            invoices: Invoice snapshot from the persistence layer
            today: Reference date (defaults to the current date)

        Returns:
            InvoiceReport
        """
        today = today or date.today()
        structured_filter = self.compile(query, today)
        return self.engine.build_report(structured_filter, invoices, today)
