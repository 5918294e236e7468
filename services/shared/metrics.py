"""Prometheus metrics for query compilation and reporting.

Exposes key metrics for monitoring:
- Query compilations by outcome (filtered vs. match-all)
- Extractor hit counts
- Unknown currencies flagged per report
- Report generation duration

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Query compilation metrics
queries_compiled_total = Counter(
    "queries_compiled_total",
    "Total free-text queries compiled into structured filters",
    ["outcome"],  # filtered, unfiltered
)

query_extractor_matches_total = Counter(
    "query_extractor_matches_total",
    "Total extractor matches while compiling queries",
    ["extractor"],
)

# Reporting metrics
report_unknown_currency_total = Counter(
    "report_unknown_currency_total",
    "Reports that converted amounts of an unknown currency at the fallback multiplier",
    ["currency"],
)

report_generation_duration_seconds = Histogram(
    "report_generation_duration_seconds",
    "Invoice report generation duration in seconds",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
