"""Structured filter models produced by the query compiler."""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from services.invoices.schema import InvoiceFrequency, InvoiceType


class DateField(str, Enum):
    """Invoice attribute a date range is applied to."""

    INVOICE_DATE = "invoice_date"
    DUE_DATE = "due_date"


class StatusFilter(str, Enum):
    """Status constraint recognized from status keywords."""

    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class QueryIntent(str, Enum):
    """What kind of answer the query asks for."""

    LIST = "list"
    COUNT = "count"
    TOTAL = "total"
    AVERAGE = "average"


class DateRange(BaseModel):
    """Inclusive date range derived from a temporal phrase."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date
    label: str = Field(..., description="Phrase the range was derived from")
    field: DateField = DateField.INVOICE_DATE

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError(f"Date range end {self.end} precedes start {self.start}")
        return self

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


class ExtractorMatch(BaseModel):
    """Value captured by an extractor plus its span in the normalized query.

    Attributes:
        value: Extracted value (string, enum member or DateRange)
        start: Index of the first captured character
        end: Index one past the last captured character
    """

    model_config = ConfigDict(frozen=True)

    value: Any
    start: int
    end: int

    def overlaps(self, other: "ExtractorMatch") -> bool:
        return self.start < other.end and other.start < self.end


class StructuredFilter(BaseModel):
    """Compiled, machine-usable representation of a free-text query.

    Empty fields impose no constraint; a filter with every constraint empty
    matches all invoices.
    """

    model_config = ConfigDict(frozen=True)

    query: str = Field("", description="Normalized query text")
    client: str | None = Field(None, description="Lower-cased client name substring")
    contract: str | None = Field(None, description="Lower-cased contract identifier substring")
    invoice_type: InvoiceType | None = None
    date_range: DateRange | None = None
    status: StatusFilter | None = None
    currency: str | None = Field(None, description="Upper-cased currency code")
    frequency: InvoiceFrequency | None = None
    intent: QueryIntent = QueryIntent.LIST

    @model_validator(mode="after")
    def _client_or_contract(self) -> "StructuredFilter":
        if self.client is not None and self.contract is not None:
            raise ValueError("A filter cannot carry both a client and a contract constraint")
        return self

    @property
    def is_empty(self) -> bool:
        """True when the filter matches every invoice."""
        return all(
            value is None
            for value in (
                self.client,
                self.contract,
                self.invoice_type,
                self.date_range,
                self.status,
                self.currency,
                self.frequency,
            )
        )

    def detected_filters(self) -> dict[str, str]:
        """Human-readable summary of populated constraints for UI display."""
        detected: dict[str, str] = {}
        if self.client:
            detected["client"] = self.client
        if self.contract:
            detected["contract"] = self.contract
        if self.invoice_type:
            detected["invoice_type"] = self.invoice_type.value
        if self.date_range:
            detected["date_range"] = (
                f"{self.date_range.label} ({self.date_range.field.value}: "
                f"{self.date_range.start.isoformat()} to {self.date_range.end.isoformat()})"
            )
        if self.status:
            detected["status"] = self.status.value
        if self.currency:
            detected["currency"] = self.currency
        if self.frequency:
            detected["frequency"] = self.frequency.value
        return detected
