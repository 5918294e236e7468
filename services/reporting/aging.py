"""Aging-bucket classification of unpaid invoices."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from services.invoices.schema import InvoiceRecord
from services.reporting.exchange import (
    ExchangeRateTable,
    currency_label,
    unknown_currency_warning,
)


class AgingBucket(str, Enum):
    """How far past due an unpaid invoice is, in whole days."""

    CURRENT = "Current"
    DAYS_31_60 = "31-60"
    DAYS_61_90 = "61-90"
    DAYS_91_120 = "91-120"
    DAYS_121_180 = "121-180"
    DAYS_181_270 = "181-270"
    DAYS_271_365 = "271-365"
    OVER_365 = ">365"


# Inclusive upper bound of each bucket, in order
AGING_BOUNDARIES: tuple[tuple[int, AgingBucket], ...] = (
    (30, AgingBucket.CURRENT),
    (60, AgingBucket.DAYS_31_60),
    (90, AgingBucket.DAYS_61_90),
    (120, AgingBucket.DAYS_91_120),
    (180, AgingBucket.DAYS_121_180),
    (270, AgingBucket.DAYS_181_270),
    (365, AgingBucket.DAYS_271_365),
)


def days_overdue(due_date: date, today: date) -> int:
    """Whole days between the due date and today (negative if not yet due)."""
    return (today - due_date).days


def classify_aging(days: int) -> AgingBucket:
    """Map days overdue to its bucket; anything not yet due is Current."""
    for upper, bucket in AGING_BOUNDARIES:
        if days <= upper:
            return bucket
    return AgingBucket.OVER_365


class AgingBucketSummary(BaseModel):
    """Totals for one aging bucket."""

    count: int = 0
    total_by_currency: dict[str, Decimal] = Field(default_factory=dict)
    total_reporting: Decimal = Decimal("0")
    clients: dict[str, Decimal] = Field(
        default_factory=dict, description="Reporting-currency total per client"
    )


class AgingSummary(BaseModel):
    """Aging report over a set of invoices.

    Attributes:
        buckets: Summary per bucket, every bucket present in order
        missing_due_date: Unpaid invoices left out because they have no due date
        skipped_credits: Unpaid invoices left out because their amount is negative
        unknown_currencies: Codes converted at the fallback rate, sorted
        warnings: Operator-facing notes (unknown currencies)
    """

    reporting_currency: str
    buckets: dict[AgingBucket, AgingBucketSummary]
    missing_due_date: int = 0
    skipped_credits: int = 0
    unknown_currencies: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def total_reporting(self) -> Decimal:
        return sum((b.total_reporting for b in self.buckets.values()), Decimal("0"))

    @property
    def invoice_count(self) -> int:
        return sum(b.count for b in self.buckets.values())


def build_aging_summary(
    invoices: Iterable[InvoiceRecord],
    rates: ExchangeRateTable,
    today: date | None = None,
) -> AgingSummary:
    """Bucket unpaid invoices by days past due.

    Only Pending/Overdue invoices take part. Invoices without a due date and
    negative amounts (credits) are counted but not bucketed. Invoices without
    an amount count toward the bucket with a zero amount.

    Args:
        invoices: Filtered invoice set
        rates: Exchange rate table for the reporting currency
        today: Reference date (defaults to the current date)

    Returns:
        AgingSummary with every bucket present
    """
    today = today or date.today()
    summary = AgingSummary(
        reporting_currency=rates.reporting_currency,
        buckets={bucket: AgingBucketSummary() for bucket in AgingBucket},
    )
    unknown: set[str] = set()

    for invoice in invoices:
        if not invoice.is_unpaid:
            continue
        if invoice.due_date is None:
            summary.missing_due_date += 1
            continue

        amount = invoice.amount_due or Decimal("0")
        conversion = rates.convert(amount, invoice.currency)
        if conversion.amount < 0:
            summary.skipped_credits += 1
            continue
        currency = currency_label(invoice.currency)
        if not conversion.known:
            unknown.add(currency)

        bucket = summary.buckets[classify_aging(days_overdue(invoice.due_date, today))]
        client = invoice.client or "Unknown"
        bucket.count += 1
        bucket.total_by_currency[currency] = (
            bucket.total_by_currency.get(currency, Decimal("0")) + amount
        )
        bucket.total_reporting += conversion.amount
        bucket.clients[client] = bucket.clients.get(client, Decimal("0")) + conversion.amount

    summary.unknown_currencies = sorted(unknown)
    summary.warnings = [
        unknown_currency_warning(code, rates.reporting_currency)
        for code in summary.unknown_currencies
    ]
    return summary
