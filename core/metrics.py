"""
Prometheus metrics for the license server.

Custom metrics for business logic and performance monitoring.
"""

from prometheus_client import Counter, Histogram

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# License metrics
licenses_created_total = Counter(
    "licenses_created_total",
    "Total licenses created",
    ["product_id"],
)

license_status_changes_total = Counter(
    "license_status_changes_total",
    "Total administrative license status changes",
    ["status"],
)

# Activation metrics, labelled with "success" or the denial reason
license_activations_total = Counter(
    "license_activations_total",
    "Total activation attempts",
    ["result"],
)

license_validations_total = Counter(
    "license_validations_total",
    "Total heartbeat validations",
    ["result"],
)

license_deactivations_total = Counter(
    "license_deactivations_total",
    "Total deactivation attempts",
    ["result"],
)

activation_storage_retries_total = Counter(
    "activation_storage_retries_total",
    "Activation claims retried after a storage error",
)

# Download metrics
download_tokens_issued_total = Counter(
    "download_tokens_issued_total",
    "Total download tokens issued",
)

download_token_verifications_total = Counter(
    "download_token_verifications_total",
    "Total download token verifications",
    ["result"],
)

update_checks_total = Counter(
    "update_checks_total",
    "Total update checks",
    ["result"],
)

# Rate limiting metrics
rate_limit_denials_total = Counter(
    "rate_limit_denials_total",
    "Requests denied by the rate limiter",
    ["action"],
)

rate_limiter_degraded_total = Counter(
    "rate_limiter_degraded_total",
    "Rate limiter checks that failed open because the store was unavailable",
)

# Storage metrics
db_query_duration_seconds = Histogram(
    "db_query_duration_seconds",
    "Database query duration in seconds",
    ["operation", "table"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors",
    ["error_type", "endpoint"],
)
