"""Prometheus metrics for monitoring the Hacker News tracker."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

SNAPSHOTS_TAKEN = Counter(
    "hn_tracker_snapshots_taken_total",
    "Number of front page snapshots stored",
)

ARTICLES_STORED = Counter(
    "hn_tracker_articles_stored_total",
    "Number of front page articles stored",
)

COMMENTS_STORED = Counter(
    "hn_tracker_comments_stored_total",
    "Number of comments stored",
)

THREAD_EDGES_STORED = Counter(
    "hn_tracker_thread_edges_stored_total",
    "Number of closure table rows stored",
)

MALFORMED_ROWS = Counter(
    "hn_tracker_malformed_rows_total",
    "Number of comment rows skipped because they could not be parsed",
)

FETCH_ERRORS = Counter(
    "hn_tracker_fetch_errors_total",
    "Number of failed page fetches",
    ["page_type"],
)

STORE_ERRORS = Counter(
    "hn_tracker_store_errors_total",
    "Number of units of work rolled back after a database error",
    ["operation"],
)

QUEUED_SNAPSHOTS = Gauge(
    "hn_tracker_queued_snapshots",
    "Snapshots waiting for their comments to be processed",
)

REQUEST_DURATION = Histogram(
    "hn_tracker_request_duration_seconds",
    "Duration of page requests in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the Hacker News tracker."""

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

    def record_snapshot(self) -> None:
        SNAPSHOTS_TAKEN.inc()

    def record_article_stored(self) -> None:
        ARTICLES_STORED.inc()

    def record_comment_stored(self, edges: int) -> None:
        """
        Record a stored comment.

        Args:
            edges: Closure rows written for it, including its self row
        """
        COMMENTS_STORED.inc()
        THREAD_EDGES_STORED.inc(edges)

    def record_malformed_row(self) -> None:
        MALFORMED_ROWS.inc()

    def record_fetch_error(self, page_type: str) -> None:
        """
        Record a failed fetch.

        Args:
            page_type: Kind of page requested ('front_page' or 'comments')
        """
        FETCH_ERRORS.labels(page_type=page_type).inc()

    def record_store_error(self, operation: str) -> None:
        STORE_ERRORS.labels(operation=operation).inc()

    def set_queued_snapshots(self, count: int) -> None:
        QUEUED_SNAPSHOTS.set(count)

    def time_request(self) -> "RequestTimer":
        """
        Create a context manager for timing page requests.

        Returns:
            RequestTimer context manager
        """
        return RequestTimer()


class RequestTimer:
    """Context manager for timing page requests."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            duration = time.time() - self.start_time
            REQUEST_DURATION.observe(duration)
