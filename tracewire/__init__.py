"""
tracewire

Distributed tracing propagation for outbound httpx calls.

Usage:
    import httpx
    import tracewire

    # Configure the global tracer
    tracewire.init(sample_rate=1.0)

    # Build a client whose requests carry tracing headers and are each
    # surrounded by a CLIENT span
    client = tracewire.TracingClientBuilder.create().build()

    with tracewire.get_tracer().start_span("handle_order") as span:
        client.get("https://inventory.internal/items/123")

    # Or wrap an existing transport
    transport = tracewire.TracedTransport(httpx.HTTPTransport(), surround_with_subspan=False)
"""

from tracewire.builder import TracingClientBuilder
from tracewire.config import init, init_from_options
from tracewire.exceptions import NoCurrentSpanError, TracewireError
from tracewire.integrations.hooks import AsyncTracingEventHooks, TracingEventHooks
from tracewire.propagation import (
    DEFAULT_SPAN_NAME_PREFIX,
    get_subspan_span_name,
    propagate_tracing_headers,
)
from tracewire.tracing import Span, Tracer, get_current_span, get_tracer, set_tracer
from tracewire.transport import (
    AsyncTracedTransport,
    AsyncTransport,
    TracedTransport,
    Transport,
)
from tracewire.types import PropagationFormat, SpanPurpose, TracingOptions

__version__ = "0.1.0"
__all__ = [
    # Config
    "init",
    "init_from_options",
    # Tracing
    "Span",
    "Tracer",
    "get_current_span",
    "get_tracer",
    "set_tracer",
    # Propagation
    "DEFAULT_SPAN_NAME_PREFIX",
    "get_subspan_span_name",
    "propagate_tracing_headers",
    # Transports
    "Transport",
    "AsyncTransport",
    "TracedTransport",
    "AsyncTracedTransport",
    # Integrations
    "TracingClientBuilder",
    "TracingEventHooks",
    "AsyncTracingEventHooks",
    # Errors
    "TracewireError",
    "NoCurrentSpanError",
    # Types
    "PropagationFormat",
    "SpanPurpose",
    "TracingOptions",
]
