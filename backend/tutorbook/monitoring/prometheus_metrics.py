"""
Prometheus metrics module for the tutor booking engine.

Service timings come from the ``@measure_operation`` decorator on
``BaseService``; booking rejections and tutor lock activity are recorded by
the orchestrator and the lock helper.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "tutorbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "tutorbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "tutorbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_rejections_total = Counter(
    "tutorbook_booking_rejections_total",
    "Booking operations rejected by a business rule",
    ["operation", "code"],
    registry=REGISTRY,
)

tutor_lock_events_total = Counter(
    "tutorbook_tutor_lock_events_total",
    "Per-tutor booking lock acquire/release outcomes",
    ["action", "outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records and exposes Prometheus metrics."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingOrchestrator')
            operation: Operation/method name (e.g., 'book_session')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_booking_rejection(operation: str, code: str) -> None:
        booking_rejections_total.labels(operation=operation, code=code).inc()

    @staticmethod
    def record_tutor_lock(action: str, outcome: str) -> None:
        tutor_lock_events_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
