"""Unit tests for aging-bucket classification."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from services.invoices.schema import InvoiceRecord, InvoiceStatus
from services.reporting.aging import (
    AgingBucket,
    build_aging_summary,
    classify_aging,
    days_overdue,
)
from services.reporting.exchange import ExchangeRateTable

TODAY = date(2025, 6, 15)


@pytest.fixture
def rates() -> ExchangeRateTable:
    """Default USD rate table."""
    return ExchangeRateTable()


def _unpaid(
    invoice_id: str,
    days_past_due: int | None,
    amount: str = "100",
    currency: str | None = "USD",
    client: str | None = "Barwon Health",
    status: InvoiceStatus = InvoiceStatus.PENDING,
) -> InvoiceRecord:
    due = TODAY - timedelta(days=days_past_due) if days_past_due is not None else None
    return InvoiceRecord(
        id=invoice_id,
        client=client,
        due_date=due,
        status=status,
        amount_due=Decimal(amount),
        currency=currency,
    )


@pytest.mark.parametrize(
    "days,expected",
    [
        (-10, AgingBucket.CURRENT),
        (0, AgingBucket.CURRENT),
        (30, AgingBucket.CURRENT),
        (31, AgingBucket.DAYS_31_60),
        (60, AgingBucket.DAYS_31_60),
        (61, AgingBucket.DAYS_61_90),
        (90, AgingBucket.DAYS_61_90),
        (91, AgingBucket.DAYS_91_120),
        (120, AgingBucket.DAYS_91_120),
        (121, AgingBucket.DAYS_121_180),
        (180, AgingBucket.DAYS_121_180),
        (181, AgingBucket.DAYS_181_270),
        (270, AgingBucket.DAYS_181_270),
        (271, AgingBucket.DAYS_271_365),
        (365, AgingBucket.DAYS_271_365),
        (366, AgingBucket.OVER_365),
    ],
)
def test_classify_aging_boundaries(days: int, expected: AgingBucket) -> None:
    """Test inclusive upper bounds of every bucket."""
    assert classify_aging(days) is expected


def test_days_overdue() -> None:
    """Test whole-day difference, negative before the due date."""
    assert days_overdue(date(2025, 6, 1), TODAY) == 14
    assert days_overdue(date(2025, 7, 1), TODAY) == -16


def test_every_bucket_present_in_order(rates: ExchangeRateTable) -> None:
    """Test empty input still lists each bucket."""
    summary = build_aging_summary([], rates, TODAY)

    assert list(summary.buckets) == list(AgingBucket)
    assert summary.invoice_count == 0
    assert summary.total_reporting == Decimal("0")


def test_unpaid_invoices_bucketed(rates: ExchangeRateTable) -> None:
    """Test each unpaid invoice lands in exactly one bucket."""
    invoices = [
        _unpaid("1", 5),
        _unpaid("2", 45),
        _unpaid("3", 61, amount="1000", currency="AUD", client="Alfred Health"),
        _unpaid("4", 400, status=InvoiceStatus.OVERDUE),
    ]

    summary = build_aging_summary(invoices, rates, TODAY)

    assert summary.buckets[AgingBucket.CURRENT].count == 1
    assert summary.buckets[AgingBucket.DAYS_31_60].count == 1
    assert summary.buckets[AgingBucket.OVER_365].count == 1
    bucket = summary.buckets[AgingBucket.DAYS_61_90]
    assert bucket.count == 1
    assert bucket.total_by_currency == {"AUD": Decimal("1000")}
    assert bucket.total_reporting == Decimal("650")
    assert bucket.clients == {"Alfred Health": Decimal("650")}
    assert summary.invoice_count == 4
    assert summary.total_reporting == Decimal("950")


def test_paid_invoices_ignored(rates: ExchangeRateTable) -> None:
    """Test paid invoices never appear in aging."""
    summary = build_aging_summary(
        [_unpaid("1", 100, status=InvoiceStatus.PAID)], rates, TODAY
    )

    assert summary.invoice_count == 0


def test_missing_due_date_counted(rates: ExchangeRateTable) -> None:
    """Test invoices without a due date are reported, not bucketed."""
    summary = build_aging_summary([_unpaid("1", None)], rates, TODAY)

    assert summary.missing_due_date == 1
    assert summary.invoice_count == 0


def test_negative_amounts_skipped(rates: ExchangeRateTable) -> None:
    """Test credits are left out of bucket totals."""
    summary = build_aging_summary(
        [_unpaid("1", 10, amount="-200"), _unpaid("2", 10)], rates, TODAY
    )

    assert summary.skipped_credits == 1
    assert summary.buckets[AgingBucket.CURRENT].count == 1
    assert summary.buckets[AgingBucket.CURRENT].total_reporting == Decimal("100")


def test_unknown_currency_warns(rates: ExchangeRateTable) -> None:
    """Test unknown currencies convert at 1 with a warning."""
    summary = build_aging_summary([_unpaid("1", 10, currency="JPY")], rates, TODAY)

    assert summary.buckets[AgingBucket.CURRENT].total_reporting == Decimal("100")
    assert summary.warnings == [
        "Unknown currency 'JPY': amounts converted to USD at fallback rate 1"
    ]


def test_missing_client_grouped_as_unknown(rates: ExchangeRateTable) -> None:
    """Test per-client totals use a placeholder for missing names."""
    summary = build_aging_summary([_unpaid("1", 10, client=None)], rates, TODAY)

    assert summary.buckets[AgingBucket.CURRENT].clients == {"Unknown": Decimal("100")}
