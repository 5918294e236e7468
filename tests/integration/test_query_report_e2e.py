"""Integration tests: free-text query to financial report.

Runs realistic queries through InvoiceQueryService over a fixed invoice
snapshot and a fixed reference date, so relative phrases and aging are
reproducible.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from services.invoices.schema import (
    InvoiceFrequency,
    InvoiceRecord,
    InvoiceStatus,
    InvoiceType,
)
from services.query.schema import QueryIntent
from services.reporting.aging import AgingBucket
from services.reporting.service import InvoiceQueryService
from services.shared.config import Settings

TODAY = date(2025, 6, 15)


def _days_ago(days: int) -> date:
    return TODAY - timedelta(days=days)


@pytest.fixture
def service() -> InvoiceQueryService:
    """Create query service with USD reporting and default rates."""
    return InvoiceQueryService(
        Settings(reporting_currency="USD", cash_flow_horizon_days=30, metrics_enabled=False)
    )


@pytest.fixture
def invoices() -> list[InvoiceRecord]:
    """Ten-invoice snapshot spanning clients, currencies and aging boundaries."""
    return [
        InvoiceRecord(
            id="1",
            invoice_number="INV-001",
            client="Barwon Health",
            customer_contract="527995",
            invoice_type=InvoiceType.MAINT,
            frequency=InvoiceFrequency.ANNUAL,
            invoice_date=date(2025, 6, 2),
            due_date=_days_ago(30),
            status=InvoiceStatus.PENDING,
            amount_due=Decimal("2000"),
            currency="AUD",
        ),
        InvoiceRecord(
            id="2",
            invoice_number="INV-002",
            client="Barwon Health",
            customer_contract="527995",
            invoice_type=InvoiceType.PS,
            invoice_date=date(2025, 4, 10),
            due_date=_days_ago(31),
            status=InvoiceStatus.PENDING,
            amount_due=Decimal("400"),
            currency="USD",
        ),
        InvoiceRecord(
            id="3",
            invoice_number="INV-003",
            client="Alfred Health",
            customer_contract="ALF-2024",
            invoice_type=InvoiceType.SUB,
            frequency=InvoiceFrequency.MONTHLY,
            invoice_date=date(2025, 3, 1),
            due_date=_days_ago(60),
            status=InvoiceStatus.OVERDUE,
            amount_due=Decimal("300"),
            currency="USD",
        ),
        InvoiceRecord(
            id="4",
            invoice_number="INV-004",
            client="Monash Health",
            invoice_type=InvoiceType.MAINT,
            invoice_date=date(2025, 3, 16),
            due_date=_days_ago(61),
            status=InvoiceStatus.PENDING,
            amount_due=Decimal("1000"),
            currency="AUD",
        ),
        InvoiceRecord(
            id="5",
            invoice_number="INV-005",
            client="Western Health",
            invoice_type=InvoiceType.HOSTING,
            invoice_date=date(2024, 5, 1),
            due_date=_days_ago(365),
            status=InvoiceStatus.OVERDUE,
            amount_due=Decimal("100"),
            currency="EUR",
        ),
        InvoiceRecord(
            id="6",
            invoice_number="INV-006",
            client="Western Health",
            invoice_type=InvoiceType.HOSTING,
            invoice_date=date(2024, 5, 1),
            due_date=_days_ago(366),
            status=InvoiceStatus.OVERDUE,
            amount_due=Decimal("200"),
            currency="EUR",
        ),
        InvoiceRecord(
            id="7",
            invoice_number="INV-007",
            client="Barwon Health",
            customer_contract="611000",
            invoice_type=InvoiceType.MAINT,
            invoice_date=date(2025, 5, 20),
            due_date=TODAY + timedelta(days=20),
            status=InvoiceStatus.PENDING,
            amount_due=Decimal("500"),
            currency="GBP",
        ),
        InvoiceRecord(
            id="8",
            invoice_number="INV-008",
            client="Alfred Health",
            invoice_type=InvoiceType.PS,
            invoice_date=date(2025, 5, 5),
            due_date=TODAY + timedelta(days=45),
            status=InvoiceStatus.PENDING,
            amount_due=Decimal("800"),
            currency="NZD",
        ),
        InvoiceRecord(
            id="9",
            invoice_number="INV-009",
            client="Barwon Health",
            invoice_type=InvoiceType.MAINT,
            invoice_date=date(2025, 1, 10),
            due_date=date(2025, 2, 9),
            payment_date=date(2025, 2, 1),
            status=InvoiceStatus.PAID,
            amount_due=Decimal("750"),
            currency="AUD",
        ),
        InvoiceRecord(
            id="10",
            invoice_number="CM-010",
            client="Monash Health",
            invoice_type=InvoiceType.CREDIT_MEMO,
            invoice_date=date(2025, 6, 1),
            due_date=_days_ago(5),
            status=InvoiceStatus.PENDING,
            amount_due=Decimal("-150"),
            currency="USD",
        ),
    ]


def _ids(records: list[InvoiceRecord]) -> list[str]:
    return [r.id for r in records]


def test_contract_query_returns_contract_invoices(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test the contract example yields only the contract constraint."""
    report = service.run("Show me invoices on contract 527995", invoices, today=TODAY)

    assert report.filter.detected_filters() == {"contract": "527995"}
    assert report.filter.client is None
    assert _ids(report.matching_invoices) == ["1", "2"]


def test_type_and_client_query(service: InvoiceQueryService, invoices: list[InvoiceRecord]) -> None:
    """Test "Maintenance invoices for Barwon Health"."""
    report = service.run("Maintenance invoices for Barwon Health", invoices, today=TODAY)

    assert report.filter.invoice_type is InvoiceType.MAINT
    assert report.filter.client == "barwon health"
    assert _ids(report.matching_invoices) == ["1", "7", "9"]


def test_unrecognized_query_returns_everything(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test a query with no constraints fails open to all invoices."""
    report = service.run("!!!", invoices, today=TODAY)

    assert report.filter.is_empty is True
    assert len(report.matching_invoices) == len(invoices)


def test_aging_bucket_boundaries(service: InvoiceQueryService, invoices: list[InvoiceRecord]) -> None:
    """Test 30/31, 60/61 and 365/366 days land on either side of each boundary."""
    report = service.run("unpaid invoices", invoices, today=TODAY)
    aging = report.aging_summary

    assert aging is not None
    buckets = aging.buckets
    # 30 days (INV-001) plus INV-007 and INV-008, not yet due
    assert buckets[AgingBucket.CURRENT].count == 3
    # 31 and 60 days
    assert buckets[AgingBucket.DAYS_31_60].count == 2
    # 61 days
    assert buckets[AgingBucket.DAYS_61_90].count == 1
    assert buckets[AgingBucket.DAYS_91_120].count == 0
    # 365 days
    assert buckets[AgingBucket.DAYS_271_365].count == 1
    # 366 days
    assert buckets[AgingBucket.OVER_365].count == 1
    # the credit memo
    assert aging.skipped_credits == 1


def test_aging_buckets_partition_unpaid_invoices(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test every unpaid, non-credit invoice with a due date is bucketed exactly once."""
    report = service.run("outstanding invoices", invoices, today=TODAY)
    aging = report.aging_summary

    assert aging is not None
    unpaid = [inv for inv in invoices if inv.is_unpaid]
    assert aging.invoice_count + aging.skipped_credits + aging.missing_due_date == len(unpaid)


def test_aud_example_converted_in_cash_flow(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test AUD 1000, 61 days overdue, ages to 61-90 and projects as USD 650."""
    report = service.run("Monash Health invoices", invoices, today=TODAY)

    assert report.filter.client == "monash health"
    assert report.aging_summary is not None
    bucket = report.aging_summary.buckets[AgingBucket.DAYS_61_90]
    assert bucket.total_by_currency == {"AUD": Decimal("1000")}
    assert bucket.total_reporting == Decimal("650")

    cash_flow = report.cash_flow
    assert cash_flow is not None
    assert cash_flow.by_currency["AUD"].converted == Decimal("650")
    # the credit memo is pending and due, so it is netted into the USD subtotal
    assert cash_flow.by_currency["USD"].subtotal == Decimal("-150")
    assert cash_flow.total_reporting == Decimal("500")


def test_cash_flow_sums_converted_subtotals(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test the projected total equals the sum of per-currency converted subtotals."""
    report = service.run("pending invoices", invoices, today=TODAY)
    cash_flow = report.cash_flow

    assert cash_flow is not None
    assert cash_flow.total_reporting == sum(
        (s.converted for s in cash_flow.by_currency.values()), Decimal("0")
    )
    # INV-008 falls due after the 30-day horizon; overdue-status invoices are not projected
    assert "NZD" not in cash_flow.by_currency
    assert cash_flow.by_currency["GBP"].converted == Decimal("635")


def test_cash_flow_independent_of_currency_partition(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test projecting each currency separately adds up to the combined projection."""
    combined = service.engine.cash_flow(invoices, TODAY)

    currencies = {inv.currency for inv in invoices}
    separate = sum(
        (
            service.engine.cash_flow(
                [inv for inv in invoices if inv.currency == code], TODAY
            ).total_reporting
            for code in currencies
        ),
        Decimal("0"),
    )

    assert combined.total_reporting == separate


def test_count_intent_with_due_range(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test counting invoices due next month."""
    report = service.run("How many invoices are due next month?", invoices, today=TODAY)

    assert report.filter.intent is QueryIntent.COUNT
    assert report.answer.count == 2
    assert _ids(report.matching_invoices) == ["7", "8"]


def test_total_intent_in_reporting_currency(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test a total question is answered in USD."""
    report = service.run("What is the total for contract 527995?", invoices, today=TODAY)

    assert report.filter.contract == "527995"
    assert report.answer.intent is QueryIntent.TOTAL
    # AUD 2000 x 0.65 + USD 400
    assert report.answer.value == Decimal("1700")
    assert report.answer.reporting_currency == "USD"


def test_relative_month_follows_reference_date(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test "this month" resolves against the supplied reference date."""
    report = service.run("Show me this month invoices", invoices, today=TODAY)

    assert report.filter.client is None
    assert _ids(report.matching_invoices) == ["1", "10"]


def test_reports_are_reproducible(
    service: InvoiceQueryService, invoices: list[InvoiceRecord]
) -> None:
    """Test identical query, snapshot and date give identical reports."""
    query = "Which Alfred Health invoices are overdue?"

    first = service.run(query, invoices, today=TODAY)
    second = service.run(query, invoices, today=TODAY)

    assert first == second
    assert _ids(first.matching_invoices) == ["3"]
