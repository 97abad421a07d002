"""
Prometheus Metrics for Observability

Tracks provider performance, fallback usage, cost and job lifecycle.
Exposes /metrics endpoint for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Generation outcomes per task and provider
generation_requests_total = Counter(
    "generation_requests_total",
    "Total number of provider generation attempts",
    labelnames=["task", "provider", "status"]
)

# Provider latency
provider_latency_seconds = Histogram(
    "provider_latency_seconds",
    "Time spent in a provider call, including artifact persistence",
    labelnames=["provider", "status"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0]
)

# Fallback attempts
generation_fallbacks_total = Counter(
    "generation_fallbacks_total",
    "Number of times the fallback provider was attempted",
    labelnames=["task", "fallback_provider"]
)

# Cost accounting
generation_cost_units_total = Counter(
    "generation_cost_units_total",
    "Cost units reported by successful provider calls",
    labelnames=["provider"]
)

# Jobs Counter
jobs_total = Counter(
    "generation_jobs_total",
    "Total number of asynchronous generation jobs by terminal status",
    labelnames=["status", "task"]
)

# Active Jobs
active_jobs_gauge = Gauge(
    "generation_active_jobs",
    "Number of currently processing jobs"
)

# API Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Application Info
app_info = Info(
    "studio_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment
    })


@contextmanager
def track_provider_latency(provider: str):
    """
    Context manager to track provider latency.

    Usage:
        with track_provider_latency("gemini"):
            # call provider
    """
    start = time.time()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        provider_latency_seconds.labels(provider=provider, status=status).observe(time.time() - start)


def record_generation_attempt(task: str, provider: str, status: str, cost_units: int = 0):
    """Record one provider attempt and its cost."""
    generation_requests_total.labels(task=task, provider=provider, status=status).inc()
    if status == "success" and cost_units:
        generation_cost_units_total.labels(provider=provider).inc(cost_units)


def record_fallback(task: str, fallback_provider: str):
    """Record a fallback attempt."""
    generation_fallbacks_total.labels(task=task, fallback_provider=fallback_provider).inc()


def record_job_started():
    """Record a job entering processing."""
    active_jobs_gauge.inc()


def record_job_completion(status: str, task: str, was_active: bool = True):
    """Record a job reaching a terminal state."""
    jobs_total.labels(status=status, task=task).inc()
    if was_active:
        active_jobs_gauge.dec()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
