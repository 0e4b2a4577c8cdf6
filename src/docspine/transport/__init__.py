"""Transports: asynchronous JSON request execution."""

from docspine.transport.futures import completed_future, failed_future, resolve
from docspine.transport.httpx_transport import HttpxTransport
from docspine.transport.protocol import Transport, TransportProperty, parallel_request_limit

__all__ = [
    "Transport",
    "TransportProperty",
    "HttpxTransport",
    "parallel_request_limit",
    "completed_future",
    "failed_future",
    "resolve",
]
