"""
Prometheus instruments, exported on /metrics.
"""
from prometheus_client import Counter, Histogram

PROFILES_CALCULATED = Counter(
    "sentinel_risk_profiles_calculated_total",
    "Risk profiles written, by profile type and lifecycle transition",
    ["profile_type", "transition"],
)

PROFILE_CALCULATION_SECONDS = Histogram(
    "sentinel_risk_profile_calculation_seconds",
    "End-to-end latency of calculate_risk_profile (fetch, score, persist)",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

VAR_CALCULATIONS = Counter(
    "sentinel_risk_var_calculations_total",
    "Value-at-Risk calculations, by confidence level",
    ["confidence_level"],
)

EVENT_PUBLISH_FAILURES = Counter(
    "sentinel_risk_event_publish_failures_total",
    "Risk events that could not be handed to the event sink",
    ["event_type"],
)
