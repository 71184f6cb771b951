"""Central Prometheus metrics registry.

All application metrics are defined here to avoid scattered metric definitions
and ensure consistent naming/labeling.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("sbsh_app", "sbsh tool server info")

# --- HTTP ---
http_requests_total = Counter(
    "sbsh_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
http_request_duration_seconds = Histogram(
    "sbsh_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

# --- Tool calls ---
tool_calls_total = Counter(
    "sbsh_tool_calls_total",
    "Total tool invocations by outcome",
    ["tool", "status"],
)
tool_call_duration_seconds = Histogram(
    "sbsh_tool_call_duration_seconds",
    "Tool invocation duration in seconds",
    ["tool"],
)

# --- SQL execution ---
sql_guard_denials_total = Counter(
    "sbsh_sql_guard_denials_total",
    "Statements rejected by the read-only guard",
)
query_execution_duration_seconds = Histogram(
    "sbsh_query_execution_duration_seconds",
    "Query execution duration in seconds",
    ["kind"],
)
query_result_rows = Histogram(
    "sbsh_query_result_rows",
    "Number of rows returned by the engine before truncation",
    ["kind"],
    buckets=[0, 1, 10, 100, 1000, 5000, 10000, 50000, 100000],
)

# --- Catalog introspection ---
catalog_orphan_rows_total = Counter(
    "sbsh_catalog_orphan_rows_total",
    "Index/constraint/policy rows dropped because their table had no columns",
    ["kind"],
)

# --- Store health ---
store_health_check_duration_seconds = Histogram(
    "sbsh_store_health_check_duration_seconds",
    "Duration of store health check pings in seconds",
    ["store"],
)
store_health_status = Gauge(
    "sbsh_store_health_status",
    "Store health status (1=healthy, 0=unhealthy)",
    ["store"],
)
