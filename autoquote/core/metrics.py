"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
import time
from functools import wraps
from typing import Callable

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation', 'table', 'status'],
    registry=registry
)

db_query_duration = Histogram(
    'db_query_duration_seconds',
    'Database query duration in seconds',
    ['table', 'operation'],
    registry=registry
)

cache_hits = Counter(
    'cache_hits_total',
    'Total cache hits',
    ['cache_key'],
    registry=registry
)

cache_misses = Counter(
    'cache_misses_total',
    'Total cache misses',
    ['cache_key'],
    registry=registry
)

quotes_priced = Counter(
    'quotes_priced_total',
    'Total quote calculations',
    ['status'],
    registry=registry
)

vehicles_priced = Counter(
    'vehicles_priced_total',
    'Total vehicles priced',
    ['portal_id'],
    registry=registry
)

quote_repairs = Counter(
    'quote_repairs_total',
    'Quotes visited by the totals repair job',
    ['outcome'],
    registry=registry
)

repair_batch_duration = Histogram(
    'quote_repair_batch_duration_seconds',
    'Duration of one repair batch in seconds',
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)

db_connected = Gauge(
    'db_connected',
    'Database connection status (1=connected, 0=disconnected)',
    registry=registry
)


def track_db_operation(operation: str, table: str):
    """Decorator to track database operation metrics"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
                db_operations.labels(
                    operation=operation,
                    table=table,
                    status='success'
                ).inc()
                return result
            except Exception:
                db_operations.labels(
                    operation=operation,
                    table=table,
                    status='error'
                ).inc()
                raise
            finally:
                db_query_duration.labels(
                    table=table,
                    operation=operation
                ).observe(time.time() - start_time)
        return wrapper
    return decorator


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    from prometheus_client import generate_latest
    return generate_latest(registry).decode('utf-8')
