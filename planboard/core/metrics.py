"""Prometheus metric definitions for the Planboard backend.

Every series is registered under the ``planboard`` namespace, so
``http_requests_total`` is exported as ``planboard_http_requests_total``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Info

NAMESPACE = "planboard"

# ── Application info ────────────────────────────────────────────────
app_info = Info("build", "Planboard version and environment", namespace=NAMESPACE)

# ── HTTP request metrics ────────────────────────────────────────────
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    namespace=NAMESPACE,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    namespace=NAMESPACE,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently being processed",
    ["method"],
    namespace=NAMESPACE,
)

# ── Database pool ───────────────────────────────────────────────────
# state: size | checked_in | checked_out | overflow
db_pool_connections = Gauge(
    "db_pool_connections",
    "Connection pool occupancy by state",
    ["state"],
    namespace=NAMESPACE,
)

# ── Authorization ───────────────────────────────────────────────────
authz_decisions_total = Counter(
    "authz_decisions_total",
    "Authorization decisions by operation and outcome",
    ["operation", "result"],
    namespace=NAMESPACE,
)

authz_resolution_duration_seconds = Histogram(
    "authz_resolution_duration_seconds",
    "Time spent resolving a user's effective permissions",
    namespace=NAMESPACE,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

# ── Client permission cache ─────────────────────────────────────────
# source: initial | memory | storage | server | fallback
permission_snapshot_loads_total = Counter(
    "permission_snapshot_loads_total",
    "Permission snapshots settled by the client store, by source",
    ["source"],
    namespace=NAMESPACE,
)
