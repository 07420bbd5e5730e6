"""
Prometheus metrics shared by the HTTP layer and the service adapters
"""

import time
from contextlib import contextmanager
from prometheus_client import Counter, Histogram

request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration')
external_call_duration = Histogram(
    'external_call_duration_seconds',
    'Duration of calls to external backends',
    ['service', 'outcome']
)


@contextmanager
def track_external_call(service: str):
    """Times the enclosed block and records it under the given backend name"""
    start_time = time.perf_counter()
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        external_call_duration.labels(service=service, outcome=outcome).observe(
            time.perf_counter() - start_time
        )
