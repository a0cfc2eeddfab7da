"""
Prometheus metrics for observability.

Exposes metrics on /metrics endpoint for Prometheus scraping when a long
replay is being watched.

Metrics Categories:
- Stream: records and messages processed
- Consistency: crossed-book purges, updates for unknown orders
- Checkpoints: snapshots emitted
"""

from prometheus_client import (
    Counter,
    Gauge,
    start_http_server,
)

from streamsim.infrastructure.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Stream Metrics
# =============================================================================

RECORDS_TOTAL = Counter(
    "streamsim_records_total",
    "Captured records fed to the simulator",
    ["exchange", "record_type"],
)

MESSAGES_TOTAL = Counter(
    "streamsim_messages_total",
    "Server messages processed, by resolved channel",
    ["exchange", "channel"],
)

# =============================================================================
# Consistency Metrics
# =============================================================================

CROSSED_PURGES = Counter(
    "streamsim_crossed_book_purges_total",
    "Orders purged because they crossed an incoming order",
    ["exchange"],
)

UNKNOWN_UPDATES = Counter(
    "streamsim_unknown_order_updates_total",
    "Updates referencing an order id that is not in the book",
    ["exchange"],
)

BOOK_ENTRIES = Gauge(
    "streamsim_book_entries",
    "Orders currently held in the reconstructed book",
    ["exchange"],
)

# =============================================================================
# Checkpoint Metrics
# =============================================================================

SNAPSHOTS_TOTAL = Counter(
    "streamsim_snapshots_total",
    "Snapshots taken",
    ["exchange", "kind"],
)


class MetricsCollector:
    """
    Collects and exposes Prometheus metrics.

    Usage:
        collector = MetricsCollector()
        collector.start_server(port=9090)
        collector.record_message("bitmex", "orderBookL2")
    """

    def start_server(self, port: int = 9090) -> None:
        """Start the Prometheus metrics HTTP server."""
        try:
            start_http_server(port)
            logger.info("Metrics server started", port=port)
        except OSError as e:
            logger.error("Failed to start metrics server", error=str(e))

    def record_record(self, exchange: str, record_type: str) -> None:
        RECORDS_TOTAL.labels(exchange=exchange, record_type=record_type).inc()

    def record_message(self, exchange: str, channel: str) -> None:
        MESSAGES_TOTAL.labels(exchange=exchange, channel=channel).inc()

    def record_diagnostics(
        self,
        exchange: str,
        crossed_purges: int = 0,
        unknown_updates: int = 0,
    ) -> None:
        """Add newly observed soft inconsistencies."""
        if crossed_purges:
            CROSSED_PURGES.labels(exchange=exchange).inc(crossed_purges)
        if unknown_updates:
            UNKNOWN_UPDATES.labels(exchange=exchange).inc(unknown_updates)

    def update_book_size(self, exchange: str, entries: int) -> None:
        BOOK_ENTRIES.labels(exchange=exchange).set(entries)

    def record_snapshot(self, exchange: str, kind: str) -> None:
        SNAPSHOTS_TOTAL.labels(exchange=exchange, kind=kind).inc()


# Pre-instantiated collector
metrics = MetricsCollector()
