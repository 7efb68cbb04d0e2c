"""Prometheus metrics for monitoring the Stack Overflow MCP server."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Define metrics
API_CALLS = Counter(
    "stackoverflow_mcp_api_calls_total",
    "Number of Stack Exchange API calls issued",
    ["operation"],
)

API_ERRORS = Counter(
    "stackoverflow_mcp_api_errors_total",
    "Number of Stack Exchange API errors encountered",
    ["error_type"],
)

THROTTLE_EVENTS = Counter(
    "stackoverflow_mcp_throttle_events_total",
    "Number of times a call was delayed by rate limiting",
    ["kind"],
)

POLICY_REJECTIONS = Counter(
    "stackoverflow_mcp_policy_rejections_total",
    "Number of write operations rejected by the policy gate",
    ["tool"],
)

TOOL_CALLS = Counter(
    "stackoverflow_mcp_tool_calls_total",
    "Number of tool invocations received",
    ["tool", "outcome"],
)

QUOTA_REMAINING = Gauge(
    "stackoverflow_mcp_quota_remaining",
    "Daily request quota remaining as reported by the API",
)

REQUEST_DURATION = Histogram(
    "stackoverflow_mcp_request_duration_seconds",
    "Duration of API requests in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the Stack Overflow MCP server."""

    def __init__(self, port: int = 8000):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
        """
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Start the Prometheus metrics server."""
        if not self.server_started:
            try:
                start_http_server(self.port)
                self.server_started = True
                logger.info(f"Started Prometheus metrics server on port {self.port}")
            except OSError as e:
                logger.error(f"Failed to start Prometheus metrics server: {str(e)}")

    def record_api_call(self, operation: str) -> None:
        """
        Record an outbound API call.

        Args:
            operation: Client operation name (e.g., 'search', 'fetch_answers')
        """
        API_CALLS.labels(operation=operation).inc()

    def record_api_error(self, error_type: str) -> None:
        """
        Record an API error.

        Args:
            error_type: Type of API error (e.g., '429', 'bad_parameter', 'transport')
        """
        API_ERRORS.labels(error_type=error_type).inc()

    def record_throttle(self, kind: str) -> None:
        """
        Record a throttling delay.

        Args:
            kind: 'local' for our own window, 'remote' for an API rate-limit response
        """
        THROTTLE_EVENTS.labels(kind=kind).inc()

    def record_policy_rejection(self, tool: str) -> None:
        """Record a write rejected by the policy gate."""
        POLICY_REJECTIONS.labels(tool=tool).inc()

    def record_tool_call(self, tool: str, outcome: str) -> None:
        """Record a tool invocation and whether it succeeded."""
        TOOL_CALLS.labels(tool=tool, outcome=outcome).inc()

    def set_quota_remaining(self, remaining: int) -> None:
        """Set the remaining-quota gauge."""
        QUOTA_REMAINING.set(remaining)

    def time_request(self) -> "RequestTimer":
        """
        Create a context manager for timing API requests.

        Returns:
            RequestTimer context manager
        """
        return RequestTimer()


class RequestTimer:
    """Context manager that observes the elapsed time into REQUEST_DURATION."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            REQUEST_DURATION.observe(time.perf_counter() - self.start_time)
