"""Evaluation metrics for query interpretation.

Computes precision, recall and F1 per filter field by comparing compiled
filters with hand-labelled expectations, plus the share of queries whose
filter was reproduced exactly.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from services.query.schema import DateRange, StructuredFilter

FILTER_FIELDS = [
    "client",
    "contract",
    "invoice_type",
    "date_range",
    "status",
    "currency",
    "frequency",
    "intent",
]


@dataclass
class FieldMetrics:
    """Metrics for a single filter field."""

    precision: float
    recall: float
    f1: float
    support: int  # Number of queries


@dataclass
class QueryEvaluationReport:
    """Complete evaluation report."""

    field_metrics: dict[str, FieldMetrics]
    exact_match_rate: float
    total_samples: int


def _normalize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, DateRange):
        return (value.start.isoformat(), value.end.isoformat())
    if isinstance(value, dict) and "start" in value and "end" in value:
        return (str(value["start"]), str(value["end"]))
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return " ".join(value.strip().lower().split())
    return value


def calculate_filter_match(expected: Any, predicted: Any) -> bool:
    """Check if a compiled filter field matches the expected value.

    Enums compare by value, date ranges by their start/end dates and
    strings case-insensitively with whitespace collapsed.

    Args:
        expected: Ground truth value
        predicted: Compiled value

    Returns:
        True if values match
    """
    if expected is None and predicted is None:
        return True
    if expected is None or predicted is None:
        return False
    return bool(_normalize(expected) == _normalize(predicted))


def evaluate_queries(
    expected: list[dict[str, Any]], predicted: list[StructuredFilter]
) -> QueryEvaluationReport:
    """Evaluate compiled filters against ground truth.

    Args:
        expected: Expected field values per query (missing keys mean "no constraint";
            a missing intent means "list")
        predicted: Compiled filters, same order as expected

    Returns:
        Evaluation report with per-field and overall metrics
    """
    if len(expected) != len(predicted):
        raise ValueError("Expected and predicted lists must have same length")

    field_metrics: dict[str, FieldMetrics] = {}
    exact_matches = [True] * len(expected)

    for field in FILTER_FIELDS:
        true_positives = 0
        false_positives = 0
        false_negatives = 0

        for index, (exp, pred) in enumerate(zip(expected, predicted, strict=True)):
            exp_value = exp.get(field, "list" if field == "intent" else None)
            pred_value = getattr(pred, field)

            if not calculate_filter_match(exp_value, pred_value):
                exact_matches[index] = False

            if exp_value is not None and pred_value is not None:
                if calculate_filter_match(exp_value, pred_value):
                    true_positives += 1
                else:
                    false_positives += 1
                    false_negatives += 1
            elif exp_value is not None:
                false_negatives += 1
            elif pred_value is not None:
                false_positives += 1

        precision = (
            true_positives / (true_positives + false_positives)
            if (true_positives + false_positives) > 0
            else 1.0
        )
        recall = (
            true_positives / (true_positives + false_negatives)
            if (true_positives + false_negatives) > 0
            else 1.0
        )
        f1 = 2 * (precision * recall) / (precision + recall) if (precision + recall) > 0 else 0.0

        field_metrics[field] = FieldMetrics(
            precision=precision,
            recall=recall,
            f1=f1,
            support=len(expected),
        )

    exact_match_rate = sum(exact_matches) / len(expected) if expected else 0.0

    return QueryEvaluationReport(
        field_metrics=field_metrics,
        exact_match_rate=exact_match_rate,
        total_samples=len(expected),
    )
