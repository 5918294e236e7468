"""Applies a StructuredFilter to an in-memory invoice snapshot."""

import logging
from collections.abc import Iterable
from datetime import date

from services.invoices.schema import InvoiceRecord, InvoiceStatus
from services.query.schema import StatusFilter, StructuredFilter

logger = logging.getLogger(__name__)


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.lower() in haystack.lower()


def _status_matches(record: InvoiceRecord, status: StatusFilter, today: date) -> bool:
    if status is StatusFilter.PAID:
        return record.status is InvoiceStatus.PAID
    if status is StatusFilter.PENDING:
        return record.is_unpaid
    # Overdue: flagged explicitly, or still pending past its due date
    if record.status is InvoiceStatus.OVERDUE:
        return True
    return (
        record.status is InvoiceStatus.PENDING
        and record.due_date is not None
        and record.due_date < today
    )


def matches_filter(
    record: InvoiceRecord, structured_filter: StructuredFilter, today: date | None = None
) -> bool:
    """Check a single record against every populated filter field.

    A record missing an attribute referenced by the filter does not match;
    it is never an error.

    Args:
        record: Invoice to test
        structured_filter: Compiled filter
        today: Reference date for the overdue status (defaults to the current date)

    Returns:
        True if the record satisfies all constraints
    """
    f = structured_filter

    if f.client is not None and not _contains(record.client, f.client):
        return False
    if f.contract is not None and not _contains(record.customer_contract, f.contract):
        return False
    if f.invoice_type is not None and record.invoice_type is not f.invoice_type:
        return False
    if f.status is not None and not _status_matches(record, f.status, today or date.today()):
        return False
    if f.date_range is not None:
        value = getattr(record, f.date_range.field.value)
        if value is None or not f.date_range.contains(value):
            return False
    if f.currency is not None and (record.currency or "").upper() != f.currency.upper():
        return False
    if f.frequency is not None and record.frequency is not f.frequency:
        return False
    return True


def apply_filter(
    structured_filter: StructuredFilter,
    invoices: Iterable[InvoiceRecord],
    today: date | None = None,
) -> list[InvoiceRecord]:
    """Return the invoices matching a filter, in input order.

    The input collection is never modified. An empty filter returns every
    invoice.

    Args:
        structured_filter: Compiled filter
        invoices: Invoice snapshot supplied by the persistence layer
        today: Reference date for the overdue status

    Returns:
        Matching invoices
    """
    today = today or date.today()
    snapshot = list(invoices)
    if structured_filter.is_empty:
        return snapshot

    matching = [inv for inv in snapshot if matches_filter(inv, structured_filter, today)]
    logger.debug(f"Filter matched {len(matching)} of {len(snapshot)} invoices")
    return matching
