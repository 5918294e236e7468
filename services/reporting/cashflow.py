"""Currency-normalized cash-flow projection for pending invoices."""

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field

from services.invoices.schema import InvoiceRecord, InvoiceStatus
from services.reporting.exchange import (
    ExchangeRateTable,
    currency_label,
    unknown_currency_warning,
)


class CurrencySubtotal(BaseModel):
    """Pre-conversion subtotal for one currency and its converted contribution."""

    count: int = 0
    subtotal: Decimal = Decimal("0")
    converted: Decimal = Decimal("0")
    rate: Decimal = Decimal("1")


class CashFlowProjection(BaseModel):
    """Expected receipts from pending invoices due within the horizon.

    Attributes:
        reporting_currency: Currency of total_reporting
        horizon_end: Last due date included (today + horizon days)
        total_reporting: Sum of all converted amounts
        by_currency: Audit breakdown per invoice currency
        invoice_count: Number of invoices included
        missing_due_date: Pending invoices left out because they have no due date
        unknown_currencies: Codes converted at the fallback rate, sorted
        warnings: Operator-facing notes (unknown currencies)
    """

    reporting_currency: str
    horizon_end: date
    total_reporting: Decimal = Decimal("0")
    by_currency: dict[str, CurrencySubtotal] = Field(default_factory=dict)
    invoice_count: int = 0
    missing_due_date: int = 0
    unknown_currencies: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CashFlowSchedule(BaseModel):
    """Pending amounts by when they fall due, in the reporting currency."""

    reporting_currency: str
    overdue: Decimal = Decimal("0")
    next_30: Decimal = Decimal("0")
    days_31_to_60: Decimal = Decimal("0")
    days_61_to_90: Decimal = Decimal("0")
    beyond_90: Decimal = Decimal("0")
    missing_due_date: int = 0
    unknown_currencies: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def project_cash_flow(
    invoices: Iterable[InvoiceRecord],
    rates: ExchangeRateTable,
    today: date | None = None,
    horizon_days: int = 30,
) -> CashFlowProjection:
    """Sum pending invoices due on or before today + horizon_days.

    Already-overdue pending invoices are included. The total is the sum of
    the per-currency converted subtotals, so it does not depend on how the
    invoice set is ordered or partitioned by currency.

    Args:
        invoices: Filtered invoice set
        rates: Exchange rate table for the reporting currency
        today: Reference date (defaults to the current date)
        horizon_days: Days ahead of today to include

    Returns:
        CashFlowProjection with total and per-currency breakdown

    Raises:
        ValueError: If horizon_days is negative
    """
    if horizon_days < 0:
        raise ValueError(f"horizon_days must not be negative, got {horizon_days}")

    today = today or date.today()
    horizon_end = today + timedelta(days=horizon_days)
    projection = CashFlowProjection(
        reporting_currency=rates.reporting_currency, horizon_end=horizon_end
    )
    unknown: set[str] = set()

    for invoice in invoices:
        if invoice.status is not InvoiceStatus.PENDING:
            continue
        if invoice.due_date is None:
            projection.missing_due_date += 1
            continue
        if invoice.due_date > horizon_end:
            continue

        amount = invoice.amount_due or Decimal("0")
        conversion = rates.convert(amount, invoice.currency)
        currency = currency_label(invoice.currency)
        if not conversion.known:
            unknown.add(currency)

        subtotal = projection.by_currency.setdefault(
            currency, CurrencySubtotal(rate=conversion.rate)
        )
        subtotal.count += 1
        subtotal.subtotal += amount
        subtotal.converted += conversion.amount
        projection.invoice_count += 1

    projection.total_reporting = sum(
        (s.converted for s in projection.by_currency.values()), Decimal("0")
    )
    projection.unknown_currencies = sorted(unknown)
    projection.warnings = [
        unknown_currency_warning(code, rates.reporting_currency)
        for code in projection.unknown_currencies
    ]
    return projection


def build_cash_flow_schedule(
    invoices: Iterable[InvoiceRecord],
    rates: ExchangeRateTable,
    today: date | None = None,
) -> CashFlowSchedule:
    """Split pending amounts by days until due.

    Buckets: overdue (< 0 days), next 30, 31-60, 61-90 and beyond 90 days.
    """
    today = today or date.today()
    schedule = CashFlowSchedule(reporting_currency=rates.reporting_currency)
    unknown: set[str] = set()

    for invoice in invoices:
        if invoice.status is not InvoiceStatus.PENDING:
            continue
        if invoice.due_date is None:
            schedule.missing_due_date += 1
            continue

        conversion = rates.convert(invoice.amount_due or Decimal("0"), invoice.currency)
        if not conversion.known:
            unknown.add(currency_label(invoice.currency))
        amount = conversion.amount
        days_until_due = (invoice.due_date - today).days
        if days_until_due < 0:
            schedule.overdue += amount
        elif days_until_due <= 30:
            schedule.next_30 += amount
        elif days_until_due <= 60:
            schedule.days_31_to_60 += amount
        elif days_until_due <= 90:
            schedule.days_61_to_90 += amount
        else:
            schedule.beyond_90 += amount

    schedule.unknown_currencies = sorted(unknown)
    schedule.warnings = [
        unknown_currency_warning(code, rates.reporting_currency)
        for code in schedule.unknown_currencies
    ]
    return schedule
