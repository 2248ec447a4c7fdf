from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
import time
from functools import wraps

# Cache Metrics
cache_operations_total = Counter("hymnal_cache_operations_total", "Local cache operations", ["operation"])

# Remote Metrics
remote_requests_total = Counter("hymnal_remote_requests_total", "Remote document store reads", ["operation", "status"])

remote_request_duration_seconds = Histogram(
    "hymnal_remote_request_duration_seconds", "Remote document store read duration", ["operation"]
)

remote_online = Gauge("hymnal_remote_online", "1 when the last collection load reached the remote store")

# Access Metrics
access_denials_total = Counter("hymnal_access_denials_total", "Reads refused by the access gate", ["reason"])

favorite_toggles_total = Counter("hymnal_favorite_toggles_total", "Favorite toggles", ["state"])

# API Metrics
api_request_duration_seconds = Histogram(
    "hymnal_api_request_duration_seconds", "API request duration", ["endpoint", "method"]
)

api_requests_total = Counter("hymnal_api_requests_total", "Total API requests", ["endpoint", "method", "status_code"])


def init_metrics(app):
    from flask import Response, request

    @app.route("/metrics")
    def metrics():
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    @app.before_request
    def before_request():
        request.start_time = time.time()

    @app.after_request
    def after_request(response):
        duration = time.time() - getattr(request, "start_time", time.time())
        api_request_duration_seconds.labels(endpoint=request.endpoint or "unknown", method=request.method).observe(
            duration
        )
        api_requests_total.labels(
            endpoint=request.endpoint or "unknown", method=request.method, status_code=response.status_code
        ).inc()
        return response

    app.logger.info("Prometheus metrics initialized at /metrics")


def track_remote_read(operation):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                remote_requests_total.labels(operation=operation, status="success").inc()
                return result
            except Exception:
                remote_requests_total.labels(operation=operation, status="error").inc()
                raise
            finally:
                duration = time.time() - start_time
                remote_request_duration_seconds.labels(operation=operation).observe(duration)

        return wrapper

    return decorator
