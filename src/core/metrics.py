"""
Prometheus Metrics for Observability

Tracks enhancement throughput, latency and HTTP traffic.
Exposes /metrics endpoint for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Enhancement outcomes
enhance_requests_total = Counter(
    "enhance_requests_total",
    "Total number of enhancement requests",
    labelnames=["status", "output_format"]
)

# Time spent in decode + sharpen + encode
enhance_latency_seconds = Histogram(
    "enhance_latency_seconds",
    "Time spent enhancing a single image",
    labelnames=["status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Upload sizes
enhance_input_bytes = Histogram(
    "enhance_input_bytes",
    "Size of uploaded images in bytes",
    buckets=[1e3, 1e4, 1e5, 5e5, 1e6, 2.5e6, 5e6, 1e7]
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
    "image_enhancer_app",
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
def track_enhance_latency():
    """
    Context manager to track enhancement latency.

    Usage:
        with track_enhance_latency():
            # do work
    """
    start = time.time()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        enhance_latency_seconds.labels(status=status).observe(time.time() - start)


def record_enhance_request(status: str, output_format: str):
    """Record an enhancement outcome."""
    enhance_requests_total.labels(
        status=status,
        output_format=output_format
    ).inc()


def record_input_size(size_bytes: int):
    enhance_input_bytes.observe(size_bytes)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
