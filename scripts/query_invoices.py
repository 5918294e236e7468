#!/usr/bin/env python3
"""Run one free-text query over a JSON invoice snapshot.

Prints the detected filters, the matching invoices, the aging summary and
the cash-flow projection.

Usage:
    python scripts/query_invoices.py "Show me Barwon Health invoices this month" \\
        --invoices data/sample/invoices.json --today 2025-06-15

The snapshot is a JSON list of invoice objects using InvoiceRecord field
names (id, client, customer_contract, invoice_type, invoice_date, due_date,
status, amount_due, currency, ...).
"""

import argparse
import json
import logging
from datetime import date
from pathlib import Path

from services.invoices.schema import InvoiceRecord
from services.reporting.service import InvoiceQueryService, InvoiceReport
from services.shared.config import get_settings

logger = logging.getLogger(__name__)


def load_invoices(path: Path) -> list[InvoiceRecord]:
    """Load an invoice snapshot from JSON.

    Args:
        path: Path to a JSON list of invoice objects

    Returns:
        Parsed invoice records
    """
    with open(path) as f:
        data = json.load(f)

    records = [InvoiceRecord.model_validate(item) for item in data]
    logger.info(f"Loaded {len(records)} invoices from {path}")
    return records


def print_report(report: InvoiceReport) -> None:
    """Print a report as plain-text tables."""
    currency = report.answer.reporting_currency

    print("=" * 80)
    print(f"QUERY: {report.filter.query!r}")
    print("=" * 80)

    detected = report.filter.detected_filters()
    if detected:
        for name, value in detected.items():
            print(f"  {name:<14} {value}")
    else:
        print("  (no filters detected - showing all invoices)")

    print(f"\nIntent: {report.answer.intent.value}  Matching invoices: {report.answer.count}")
    if report.answer.value is not None:
        print(f"Value: {currency} {report.answer.value:,.2f}")

    print("\n" + "-" * 80)
    for inv in report.matching_invoices[:20]:
        client = (inv.client or "")[:30]
        amount = f"{inv.amount_due:,.2f}" if inv.amount_due is not None else "-"
        print(
            f"{inv.invoice_number or inv.id:<14} {client:<30} "
            f"{inv.invoice_type.value if inv.invoice_type else '-':<12} "
            f"{inv.currency or '-':<4} {amount:>14}  due {inv.due_date or '-'}"
        )
    if len(report.matching_invoices) > 20:
        print(f"... {len(report.matching_invoices) - 20} more")

    if report.aging_summary:
        print("\nAGING")
        print("-" * 80)
        for bucket, data in report.aging_summary.buckets.items():
            print(f"{bucket.value:<10} {data.count:>5}  {currency} {data.total_reporting:>16,.2f}")
        if report.aging_summary.missing_due_date:
            print(f"(no due date: {report.aging_summary.missing_due_date})")

    if report.cash_flow:
        cash_flow = report.cash_flow
        print(f"\nCASH FLOW (due by {cash_flow.horizon_end.isoformat()})")
        print("-" * 80)
        for code, subtotal in sorted(cash_flow.by_currency.items()):
            print(
                f"{code:<8} {subtotal.count:>5}  {code} {subtotal.subtotal:>16,.2f}"
                f" = {currency} {subtotal.converted:>16,.2f}"
            )
        print(f"TOTAL {currency} {cash_flow.total_reporting:,.2f}")

    for warning in report.warnings:
        print(f"WARNING: {warning}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Query an invoice snapshot")
    parser.add_argument("query", help="Free-text query")
    parser.add_argument(
        "--invoices",
        type=Path,
        required=True,
        help="Path to JSON invoice snapshot",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Reference date YYYY-MM-DD (defaults to the current date)",
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=None,
        help="Cash-flow horizon in days (defaults to APP_CASH_FLOW_HORIZON_DAYS)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of tables",
    )

    args = parser.parse_args()

    settings = get_settings()
    if args.horizon is not None:
        settings = settings.model_copy(update={"cash_flow_horizon_days": args.horizon})
    logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(message)s")

    service = InvoiceQueryService(settings)
    report = service.run(args.query, load_invoices(args.invoices), today=args.today)

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print_report(report)
