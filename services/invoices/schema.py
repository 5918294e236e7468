"""Invoice record models consumed by the query engine.

Records are owned by the persistence layer; the engine only reads them,
so the model is frozen for the duration of a query.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value: object) -> "_CaseInsensitiveEnum | None":
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None


class InvoiceType(_CaseInsensitiveEnum):
    """Canonical invoice type codes."""

    PS = "PS"
    MAINT = "Maint"
    SUB = "Sub"
    HOSTING = "Hosting"
    MS = "MS"
    SW = "SW"
    HW = "HW"
    THIRD_PARTY = "3PP"
    CREDIT_MEMO = "Credit Memo"


class InvoiceStatus(_CaseInsensitiveEnum):
    """Invoice payment status."""

    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"


class InvoiceFrequency(_CaseInsensitiveEnum):
    """Billing frequency of the contract line an invoice belongs to."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    ADHOC = "adhoc"
    ONE_TIME = "one-time"


class InvoiceRecord(BaseModel):
    """Read-only view of one invoice.

    Every attribute except the identifier is optional: a record missing a
    field simply fails to match filters that reference it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique invoice identifier")
    invoice_number: str | None = Field(None, description="Invoice number printed on the document")
    client: str | None = Field(None, description="Client name (free text)")
    customer_contract: str | None = Field(None, description="Customer contract identifier")
    invoice_type: InvoiceType | None = Field(None, description="Canonical invoice type")
    frequency: InvoiceFrequency | None = Field(None, description="Billing frequency")

    invoice_date: date | None = Field(None, description="Date invoice was issued")
    due_date: date | None = Field(None, description="Payment due date")
    payment_date: date | None = Field(None, description="Date paid (only when status is Paid)")
    status: InvoiceStatus | None = Field(None, description="Payment status")

    amount_due: Decimal | None = Field(None, description="Amount due in invoice currency")
    currency: str | None = Field("USD", description="Currency code (ISO 4217)")

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None

    @property
    def is_unpaid(self) -> bool:
        """True for Pending and Overdue invoices."""
        return self.status in (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)
