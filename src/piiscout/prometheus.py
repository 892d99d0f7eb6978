"""Prometheus metrics for the PII Scout web API"""

from prometheus_client import Counter, Gauge, Histogram

# ============================================================================
# Request Metrics
# ============================================================================

# Total number of log analysis requests (file or inline content)
analyze_requests_total = Counter(
    'scout_analyze_requests_total',
    'Total number of log analysis requests',
    ['status'],  # success, error
)

# Total number of single-text detect requests
detect_requests_total = Counter('scout_detect_requests_total', 'Total number of detect requests')

# Pattern catalog updates
pattern_updates_total = Counter(
    'scout_pattern_updates_total',
    'Total number of pattern catalog updates',
    ['status'],  # success, invalid
)


# ============================================================================
# Performance Metrics
# ============================================================================

analyze_duration_seconds = Histogram(
    'scout_analyze_duration_seconds',
    'Time spent parsing and analyzing log records',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    # 1ms to 30s - from a few inline lines to large proxy logs
)

detect_duration_seconds = Histogram(
    'scout_detect_duration_seconds',
    'Time spent scanning a single text',
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)


# ============================================================================
# Record & Detection Metrics
# ============================================================================

records_analyzed_total = Counter('scout_records_analyzed_total', 'Total number of log records analyzed')

records_flagged_total = Counter('scout_records_flagged_total', 'Total number of analyzed records with detections')

detections_total = Counter(
    'scout_detections_total',
    'Total detections by pattern',
    ['pattern'],  # catalog key or fixed detector id
)

# Patterns currently enabled in the catalog in force
enabled_patterns = Gauge('scout_enabled_patterns', 'Number of enabled patterns in the catalog')


# ============================================================================
# Error Metrics
# ============================================================================

errors_total = Counter(
    'scout_errors_total',
    'Total errors by type',
    ['error_type'],  # invalid_pattern, file_not_found, invalid_params, internal_error
)

http_responses_total = Counter(
    'scout_http_responses_total', 'HTTP responses by status code', ['method', 'endpoint', 'status_code']
)


def record_analysis(status: str, duration: float, analyzed: list = ()):
    """
    Record metrics for an analysis request.

    Args:
        status: Request status ('success' or 'error')
        duration: Request duration in seconds
        analyzed: AnalyzedRecord results of the request
    """
    analyze_requests_total.labels(status=status).inc()
    analyze_duration_seconds.observe(duration)
    records_analyzed_total.inc(len(analyzed))
    records_flagged_total.inc(sum(1 for r in analyzed if r.has_pii))
    for record in analyzed:
        for detection in record.detections:
            detections_total.labels(pattern=detection.pattern).inc()


def record_detect_request(duration: float, detections: list):
    detect_requests_total.inc()
    detect_duration_seconds.observe(duration)
    for detection in detections:
        detections_total.labels(pattern=detection.pattern).inc()


def record_pattern_update(success: bool, catalog=None):
    """Record a catalog update and the resulting number of enabled patterns."""
    pattern_updates_total.labels(status='success' if success else 'invalid').inc()
    if catalog is not None:
        enabled_patterns.set(sum(1 for p in catalog.values() if p.enabled))


def record_error(error_type: str):
    """
    Record an error occurrence.

    Args:
        error_type: Type of error (invalid_pattern, file_not_found, etc.)
    """
    errors_total.labels(error_type=error_type).inc()


def record_http_response(method: str, endpoint: str, status_code: int):
    """
    Record HTTP response.

    Args:
        method: HTTP method (GET, POST, etc.)
        endpoint: Endpoint path
        status_code: HTTP status code
    """
    http_responses_total.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
