"""Transport module for tracewire."""

from tracewire.transport.base import AsyncHttpxTransport, AsyncTransport, HttpxTransport, Transport
from tracewire.transport.traced import AsyncTracedTransport, TracedTransport

__all__ = [
    "Transport",
    "AsyncTransport",
    "HttpxTransport",
    "AsyncHttpxTransport",
    "TracedTransport",
    "AsyncTracedTransport",
]
