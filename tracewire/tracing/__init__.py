"""Tracing module for tracewire."""

from tracewire.tracing.context import (
    TRACEPARENT_HEADER,
    SpanContext,
    create_traceparent,
    generate_span_id,
    generate_trace_id,
    get_span_stack,
)
from tracewire.tracing.span import Span
from tracewire.tracing.tracer import (
    B3_PARENT_SPAN_ID_HEADER,
    B3_SAMPLED_HEADER,
    B3_SPAN_ID_HEADER,
    B3_TRACE_ID_HEADER,
    Tracer,
    get_current_span,
    get_tracer,
    set_tracer,
)

__all__ = [
    # Context
    "TRACEPARENT_HEADER",
    "SpanContext",
    "create_traceparent",
    "generate_span_id",
    "generate_trace_id",
    "get_span_stack",
    # Span
    "Span",
    # Tracer
    "B3_TRACE_ID_HEADER",
    "B3_SPAN_ID_HEADER",
    "B3_PARENT_SPAN_ID_HEADER",
    "B3_SAMPLED_HEADER",
    "Tracer",
    "get_current_span",
    "get_tracer",
    "set_tracer",
]
