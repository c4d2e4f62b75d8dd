"""
Prometheus Metrics for the Postgres source position
"""

from typing import Optional

import structlog
from prometheus_client import Counter, Gauge, start_http_server

logger = structlog.get_logger(__name__)

# Gauges
source_lsn = Gauge(
    "cdc_source_lsn", "Last log sequence number consumed from the source WAL", ["server"]
)

source_commit_timestamp_seconds = Gauge(
    "cdc_source_commit_timestamp_seconds",
    "Commit time of the last consumed transaction (seconds since epoch)",
    ["server"],
)

snapshot_in_effect = Gauge(
    "cdc_snapshot_in_effect", "1 while an initial snapshot is in effect, 0 while streaming", ["server"]
)

# Counters
source_updates_total = Counter(
    "cdc_source_updates_total", "Position updates applied to the source tracker", ["server", "kind"]
)

checkpoints_loaded_total = Counter(
    "cdc_checkpoints_loaded_total", "Stored checkpoints loaded into the source tracker", ["server"]
)


def start_metrics_server(port: int = 9090) -> None:
    """
    Start Prometheus metrics HTTP server

    Args:
        port: HTTP port to expose /metrics endpoint (default 9090)
    """
    start_http_server(port)
    logger.info("Prometheus metrics server started", port=port)


def record_position(server: str, lsn: Optional[int], commit_micros: Optional[int]) -> None:
    """Record a position update; unknown values leave the gauges as they were"""
    source_updates_total.labels(server=server, kind="position").inc()
    if lsn is not None:
        source_lsn.labels(server=server).set(lsn)
    if commit_micros is not None:
        source_commit_timestamp_seconds.labels(server=server).set(commit_micros / 1_000_000)


def record_timestamp(server: str, commit_micros: Optional[int]) -> None:
    """Record a timestamp-only (heartbeat) update"""
    source_updates_total.labels(server=server, kind="timestamp").inc()
    if commit_micros is not None:
        source_commit_timestamp_seconds.labels(server=server).set(commit_micros / 1_000_000)


def set_snapshot_in_effect(server: str, in_effect: bool) -> None:
    """Set snapshot state gauge"""
    snapshot_in_effect.labels(server=server).set(1 if in_effect else 0)


def increment_checkpoints_loaded(server: str) -> None:
    """Increment loaded checkpoints counter"""
    checkpoints_loaded_total.labels(server=server).inc()
