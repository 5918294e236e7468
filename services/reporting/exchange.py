"""Currency normalization for aggregate reports.

The rate table is an immutable value handed to the reporting engine, so
two reports built from the same table and invoices are always identical.
"""

from collections.abc import Mapping
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from services.shared.config import DEFAULT_EXCHANGE_RATES, Settings

FALLBACK_RATE = Decimal("1")


class ConversionResult(BaseModel):
    """Result of converting one amount into the reporting currency.

    Attributes:
        amount: Converted amount
        rate: Multiplier that was applied
        known: False when the currency was missing from the table and the
            fallback multiplier of 1 was used
    """

    model_config = ConfigDict(frozen=True)

    amount: Decimal
    rate: Decimal
    known: bool


class ExchangeRateTable(BaseModel):
    """Multipliers from each currency into the reporting currency.

    Rate semantics: 1 unit of the foreign currency is worth `rate` units of
    the reporting currency (AUD 100 x 0.65 = USD 65).
    """

    model_config = ConfigDict(frozen=True)

    reporting_currency: str = Field(default="USD", description="Currency totals are reported in")
    rates: dict[str, Decimal] = Field(default_factory=lambda: dict(DEFAULT_EXCHANGE_RATES))

    @field_validator("reporting_currency")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("rates")
    @classmethod
    def _upper_keys(cls, value: Mapping[str, Decimal]) -> dict[str, Decimal]:
        normalized = {}
        for code, rate in value.items():
            if rate < 0:
                raise ValueError(f"Exchange rate for {code} must not be negative: {rate}")
            normalized[code.strip().upper()] = rate
        return normalized

    @model_validator(mode="after")
    def _reporting_currency_is_unit(self) -> "ExchangeRateTable":
        # The reporting currency always converts 1:1
        self.rates[self.reporting_currency] = Decimal("1")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExchangeRateTable":
        """Build the table from application settings."""
        return cls(reporting_currency=settings.reporting_currency, rates=settings.exchange_rates)

    def is_known(self, currency: str | None) -> bool:
        return bool(currency) and currency.upper() in self.rates

    def rate_for(self, currency: str | None) -> Decimal:
        """Multiplier for a currency, or the fallback of 1 when unknown."""
        if not currency:
            return FALLBACK_RATE
        return self.rates.get(currency.upper(), FALLBACK_RATE)

    def convert(self, amount: Decimal, currency: str | None) -> ConversionResult:
        """Convert an amount into the reporting currency.

        Unknown currencies are converted at 1 and flagged rather than
        rejected, since report totals must still be produced. Nothing is
        logged here; ReportingEngine flags each unknown currency once per report.

        Args:
            amount: Amount in the invoice currency
            currency: ISO 4217 code of the amount

        Returns:
            ConversionResult with the converted amount and whether the rate was known
        """
        rate = self.rate_for(currency)
        return ConversionResult(amount=amount * rate, rate=rate, known=self.is_known(currency))


def currency_label(currency: str | None) -> str:
    """Upper-cased currency code, or "MISSING" when the invoice has none."""
    return (currency or "").strip().upper() or "MISSING"


def unknown_currency_warning(currency: str | None, reporting_currency: str) -> str:
    """Operator-facing message for an amount converted at the fallback rate."""
    return (
        f"Unknown currency '{currency_label(currency)}': amounts converted to "
        f"{reporting_currency} at fallback rate 1"
    )
