"""
Prometheus metrics for matchledger.

Metrics exposed:
- Hosted backend failures per operation
- Operations served by the in-memory fallback store
- Match deletions by outcome (removed remotely, retained remotely, not found)
- Stats recomputes
- Tombstone set size
"""
from prometheus_client import Counter, Gauge

backend_requests_failure_total = Counter(
    "backend_requests_failure_total",
    "Failed calls to the primary storage backend",
    ["operation", "error_type"]
)

fallback_store_operations_total = Counter(
    "fallback_store_operations_total",
    "Operations served by the in-memory fallback store",
    ["operation"]
)

match_deletions_total = Counter(
    "match_deletions_total",
    "Match deletions by outcome",
    ["outcome"]
)

stats_recomputes_total = Counter(
    "stats_recomputes_total",
    "Player stats rebuilt by replaying matches"
)

tombstones_count = Gauge(
    "tombstones_count",
    "Match ids currently hidden by the tombstone set"
)

stats_refresh_runs_total = Counter(
    "stats_refresh_runs_total",
    "Scheduled leaderboard refresh runs",
    ["status"]
)


def record_backend_failure(operation: str, error: Exception) -> None:
    """Count a primary-backend failure and the fallback that served it."""
    backend_requests_failure_total.labels(
        operation=operation, error_type=type(error).__name__
    ).inc()
    fallback_store_operations_total.labels(operation=operation).inc()
