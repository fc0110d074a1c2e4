"""Prometheus metrics for monitoring grade distribution, contact gating and rule fallbacks"""

from typing import Iterable
from prometheus_client import Counter, Histogram

from arrearsflow.domain.models import AnalysisResult

# Grading metrics
analysis_counter = Counter(
    "arrearsflow_analysis_total",
    "Total debtor analyses performed",
    ["grade"],
)

contact_gate_counter = Counter(
    "arrearsflow_contact_gate_total",
    "Anti-spam gate decisions",
    ["outcome"],  # blocked | open
)

rule_fallback_counter = Counter(
    "arrearsflow_rule_fallback_total",
    "Analyses where no rule matched and the last rule was applied",
)

simulation_counter = Counter(
    "arrearsflow_simulation_total",
    "What-if simulator runs by resulting grade",
    ["grade"],
)

invalid_configuration_counter = Counter(
    "arrearsflow_invalid_configuration_total",
    "Evaluations rejected because the rule set was empty",
)

batch_size_histogram = Histogram(
    "arrearsflow_batch_size",
    "Debtors evaluated per list or dashboard pass",
    buckets=[1, 10, 50, 100, 250, 500, 1000],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_analysis(result: AnalysisResult) -> None:
    """Record grade, gate and fallback metrics for one evaluation"""
    analysis_counter.labels(grade=result.assigned_grade).inc()

    outcome = "blocked" if result.is_contact_blocked else "open"
    contact_gate_counter.labels(outcome=outcome).inc()

    if result.fallback_applied:
        rule_fallback_counter.inc()


def record_simulation(result: AnalysisResult) -> None:
    """Synthetic debtors stay out of the grade distribution"""
    simulation_counter.labels(grade=result.assigned_grade).inc()


def record_batch(results: Iterable[AnalysisResult]) -> None:
    results = list(results)
    batch_size_histogram.observe(len(results))
    for result in results:
        record_analysis(result)
