"""Application metrics collection using Prometheus"""
import time
import functools
import logging
from prometheus_client import (
    Counter, Histogram, CollectorRegistry, CONTENT_TYPE_LATEST, generate_latest
)
from flask import Response

logger = logging.getLogger(__name__)

REGISTRY = CollectorRegistry()

filter_counter = Counter(
    'directory_filter_applications_total',
    'Total number of filter pipeline evaluations',
    ['trigger'],
    registry=REGISTRY
)

filter_duration = Histogram(
    'directory_filter_duration_seconds',
    'Time spent evaluating the filter pipeline',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1],
    registry=REGISTRY
)

result_count_histogram = Histogram(
    'directory_result_count',
    'Number of locations in each rendered dataset',
    buckets=[0, 1, 10, 50, 100, 250, 500, 1000, 5000],
    registry=REGISTRY
)

records_dropped_counter = Counter(
    'directory_records_dropped_total',
    'Feed records excluded at load time',
    ['reason'],
    registry=REGISTRY
)

interaction_counter = Counter(
    'directory_interactions_total',
    'Resolved pointer interactions',
    ['event', 'outcome'],
    registry=REGISTRY
)

tracking_counter = Counter(
    'directory_tracking_events_total',
    'Tracking deliveries by event kind and status',
    ['event_type', 'status'],
    registry=REGISTRY
)

error_counter = Counter(
    'application_errors_total',
    'Total application errors',
    ['error_type', 'component'],
    registry=REGISTRY
)


class MetricsCollector:
    @staticmethod
    def track_filter(trigger: str = 'interactive'):
        def decorator(func):
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                start = time.time()
                result = func(*args, **kwargs)
                filter_duration.observe(time.time() - start)
                filter_counter.labels(trigger=trigger).inc()
                count = getattr(result, 'count', None)
                if count is not None:
                    result_count_histogram.observe(count)
                return result
            return wrapper
        return decorator

    @staticmethod
    def record_interaction(event: str, outcome: str):
        interaction_counter.labels(event=event, outcome=outcome).inc()

    @staticmethod
    def record_tracking(event_type: str, status: str):
        tracking_counter.labels(event_type=event_type, status=status).inc()

    @staticmethod
    def record_dropped(reason: str, count: int = 1):
        if count > 0:
            records_dropped_counter.labels(reason=reason).inc(count)

    @staticmethod
    def record_error(error: Exception, component: str):
        error_counter.labels(error_type=type(error).__name__, component=component).inc()


def get_metrics() -> Response:
    return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)


metrics_collector = MetricsCollector()
