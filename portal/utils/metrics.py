"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
users_created_total = Counter(
    "users_created_total",
    "Total number of user records created on first access",
)

job_rest_requests_total = Counter(
    "job_rest_requests_total",
    "Total requests to the job REST server",
    ["operation", "status"],
)

job_summary_reloads_total = Counter(
    "job_summary_reloads_total",
    "Total job summary reloads pushed over websocket",
    ["trigger"],  # timer, manual, stop
)

job_stop_requests_total = Counter(
    "job_stop_requests_total",
    "Total stop requests issued from the job summary view",
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
job_rest_request_duration_seconds = Histogram(
    "job_rest_request_duration_seconds",
    "Job REST server request duration",
    ["operation"],
    buckets=[0.05, 0.1, 0.5, 1, 2, 5, 10],
)

# Gauges
active_summary_sessions = Gauge(
    "active_summary_sessions",
    "Currently open job summary websocket sessions",
)


router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


class PortalMetrics:
    """Thin helpers so call sites don't repeat label names."""

    def inc_users_created(self) -> None:
        users_created_total.inc()

    def inc_job_request(self, operation: str, status: str) -> None:
        job_rest_requests_total.labels(operation=operation, status=status).inc()

    def inc_summary_reload(self, trigger: str) -> None:
        job_summary_reloads_total.labels(trigger=trigger).inc()

    def inc_job_stop(self) -> None:
        job_stop_requests_total.inc()


metrics = PortalMetrics()
