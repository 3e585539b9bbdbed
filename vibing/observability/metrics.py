"""
Metrics Collection with Prometheus.

Client-side metrics: API calls, session expirations, chat polling and
payment handshakes. Exposed with start_metrics_server() when enabled.
"""

import time
from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info, start_http_server

from vibing.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    PHASE = "phase"
    OUTCOME = "outcome"
    ERROR_TYPE = "error_type"


class ClientMetrics:
    """
    Centralized metrics for the storefront client.

    - API requests (rate, duration, status)
    - Session expirations
    - Chat polls (success/failure)
    - Payment handshake (initiate/verify outcomes)
    """

    def __init__(self) -> None:
        self.client_info = Info("vibing_client", "Client information")
        self.client_info.info(
            {
                "version": settings.client_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # API Metrics
        # ====================================================================
        self.api_requests_total = Counter(
            "vibing_api_requests_total",
            "Total API requests issued",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.api_request_duration_seconds = Histogram(
            "vibing_api_request_duration_seconds",
            "API request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.api_requests_in_progress = Gauge(
            "vibing_api_requests_in_progress",
            "Number of API requests currently in flight",
        )

        self.session_expirations_total = Counter(
            "vibing_session_expirations_total",
            "Total 401 responses that ended the session",
        )

        # ====================================================================
        # Chat Metrics
        # ====================================================================
        self.chat_polls_total = Counter(
            "vibing_chat_polls_total",
            "Total conversation list polls",
            ["success"],
        )

        self.chat_messages_sent_total = Counter(
            "vibing_chat_messages_sent_total",
            "Total chat messages sent",
            ["message_type"],
        )

        # ====================================================================
        # Payment Metrics
        # ====================================================================
        self.payments_total = Counter(
            "vibing_payments_total",
            "Payment handshake steps by phase and outcome",
            [MetricLabels.PHASE, MetricLabels.OUTCOME],
        )

        self.payment_amount_krw = Histogram(
            "vibing_payment_amount_krw",
            "Verified payment totals in KRW",
            buckets=(1000, 5000, 10000, 25000, 50000, 100000, 250000, 500000),
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "vibing_errors_total",
            "Total client errors by type",
            [MetricLabels.ERROR_TYPE],
        )

    def record_api_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record API request metrics."""
        self.api_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.api_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_chat_poll(self, success: bool) -> None:
        self.chat_polls_total.labels(success=str(success)).inc()

    def record_payment(self, phase: str, success: bool, amount_krw: int | None = None) -> None:
        """Record one phase of the payment handshake."""
        self.payments_total.labels(phase=phase, outcome="success" if success else "failure").inc()
        if success and amount_krw is not None and phase == "verify":
            self.payment_amount_krw.observe(amount_krw)

    def record_error(self, error_type: str) -> None:
        self.errors_total.labels(error_type=error_type).inc()


# Global metrics instance
metrics = ClientMetrics()


class track_api_request:
    """
    Context manager for tracking API requests.

    Usage:
        with track_api_request("/products", "GET") as tracker:
            response = await http.get(...)
            tracker.set_status_code(response.status_code)
    """

    def __init__(self, endpoint: str, method: str) -> None:
        self.endpoint = endpoint
        self.method = method
        self.status_code = 0
        self.start_time: float = 0.0

    def set_status_code(self, status_code: int) -> None:
        self.status_code = status_code

    def __enter__(self) -> "track_api_request":
        self.start_time = time.monotonic()
        metrics.api_requests_in_progress.inc()
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        duration = time.monotonic() - self.start_time
        metrics.record_api_request(self.endpoint, self.method, self.status_code, duration)
        metrics.api_requests_in_progress.dec()


def start_metrics_server(port: int) -> bool:
    """Expose metrics over HTTP when enabled. Returns True if started."""
    if not settings.metrics_enabled:
        return False
    start_http_server(port)
    return True
