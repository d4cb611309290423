"""Prometheus metrics for monitoring score distribution, affordability outcomes, and AI advice"""

from prometheus_client import Counter, Histogram

# Credit risk metrics
credit_score_counter = Counter(
    "finadvisor_credit_score_total",
    "Credit risk scores calculated",
    ["band"],  # excellent | good | fair | poor | very_poor
)

affordability_counter = Counter(
    "finadvisor_affordability_assessment_total",
    "Loan affordability assessments made",
    ["band"],  # very_affordable | affordable | stretching | risky | unaffordable
)

# Advisor metrics
advice_counter = Counter(
    "finadvisor_advice_total",
    "Personalised advice generated",
    ["source"],  # ai | partial | fallback
)

ai_latency_histogram = Histogram(
    "ai_request_latency_seconds",
    "Text generation API response time",
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0],
)

ai_failure_counter = Counter(
    "ai_request_failures_total",
    "Failed text generation API calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_credit_score(score_band: str) -> None:
    credit_score_counter.labels(band=score_band).inc()


def record_affordability(affordability_band: str) -> None:
    affordability_counter.labels(band=affordability_band).inc()


def record_advice(fallback_sections: int, total_sections: int = 4) -> None:
    """Record where an advice response came from"""
    if fallback_sections == 0:
        source = "ai"
    elif fallback_sections < total_sections:
        source = "partial"
    else:
        source = "fallback"
    advice_counter.labels(source=source).inc()
