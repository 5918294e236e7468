"""Evaluation harness for query interpretation.

Compiles every query in the gold dataset and computes per-field metrics.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from pipeline.eval.metrics import evaluate_queries
from services.query.compiler import QueryCompiler
from services.query.schema import StructuredFilter
from services.shared.config import get_settings

logger = logging.getLogger(__name__)


def load_gold_dataset(gold_file: Path) -> list[tuple[str, date | None, dict[str, Any]]]:
    """Load gold dataset from JSON file.

    Each item holds the raw query, an optional reference date ("today",
    YYYY-MM-DD) for relative phrases, and the expected filter fields.

    Args:
        gold_file: Path to gold dataset JSON

    Returns:
        List of (query, today, expected_fields) tuples
    """
    with open(gold_file) as f:
        data = json.load(f)

    samples = []
    for item in data:
        today = date.fromisoformat(item["today"]) if item.get("today") else None
        samples.append((item["query"], today, item.get("expected", {})))

    return samples


def run_evaluation(gold_file: Path) -> dict[str, Any]:
    """Run evaluation on gold dataset.

    Args:
        gold_file: Path to gold dataset JSON file

    Returns:
        Evaluation results dict, including the queries that did not match exactly
    """
    samples = load_gold_dataset(gold_file)

    expected_list: list[dict[str, Any]] = []
    predicted_list: list[StructuredFilter] = []

    for query, today, expected in samples:
        compiled = QueryCompiler(today=today, record_metrics=False).compile(query)
        expected_list.append(expected)
        predicted_list.append(compiled)

    report = evaluate_queries(expected_list, predicted_list)

    mismatches = []
    for (query, _, expected), compiled in zip(samples, predicted_list, strict=True):
        single = evaluate_queries([expected], [compiled])
        if single.exact_match_rate < 1.0:
            mismatches.append({"query": query, "detected": compiled.detected_filters()})

    results = {
        "total_samples": report.total_samples,
        "exact_match_rate": round(report.exact_match_rate, 4),
        "field_metrics": {
            field: {
                "precision": round(metrics.precision, 4),
                "recall": round(metrics.recall, 4),
                "f1": round(metrics.f1, 4),
                "support": metrics.support,
            }
            for field, metrics in report.field_metrics.items()
        },
        "mismatches": mismatches,
    }

    return results


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    gold_file = Path("data/gold/queries.json")
    results = run_evaluation(gold_file)

    print("\n" + "=" * 60)
    print("QUERY INTERPRETATION EVALUATION RESULTS")
    print("=" * 60)
    print(f"\nTotal Samples: {results['total_samples']}")
    print(f"Exact Match Rate: {results['exact_match_rate']:.1%}\n")

    print("Per-Field Metrics:")
    print("-" * 60)
    print(f"{'Field':<20} {'Precision':<12} {'Recall':<12} {'F1':<12}")
    print("-" * 60)

    for field, metrics in results["field_metrics"].items():
        print(
            f"{field:<20} {metrics['precision']:<12.1%} "
            f"{metrics['recall']:<12.1%} {metrics['f1']:<12.1%}"
        )

    print("=" * 60)

    for mismatch in results["mismatches"]:
        print(f"MISMATCH {mismatch['query']!r}: {mismatch['detected']}")
