"""Trace context management for tracewire."""

from __future__ import annotations

import contextvars
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tracewire.tracing.span import Span

TRACEPARENT_HEADER = "traceparent"

TRACE_FLAG_NONE = 0x00
TRACE_FLAG_SAMPLED = 0x01

SpanStack = tuple["Span", ...]


@dataclass
class SpanContext:
    """Span context for W3C trace propagation."""

    trace_id: str
    span_id: str
    trace_flags: int = TRACE_FLAG_SAMPLED


# Stack of active spans for the current thread or task, innermost last.
# Tuples are never mutated in place, so a context copied into a new asyncio
# task cannot disturb the stack it was copied from.
_span_stack: contextvars.ContextVar[SpanStack] = contextvars.ContextVar(
    "tracewire_span_stack", default=()
)


def generate_trace_id() -> str:
    """Generate a random trace ID (32 hex characters = 16 bytes)."""
    return os.urandom(16).hex()


def generate_span_id() -> str:
    """Generate a random span ID (16 hex characters = 8 bytes)."""
    return os.urandom(8).hex()


def get_span_stack() -> SpanStack:
    """Get the active span stack for the current context."""
    return _span_stack.get()


def set_span_stack(stack: SpanStack) -> contextvars.Token[SpanStack]:
    """Replace the active span stack. Returns token for reset."""
    return _span_stack.set(stack)


def reset_span_stack(token: contextvars.Token[SpanStack]) -> None:
    """Reset the active span stack using token."""
    _span_stack.reset(token)


def get_current_span() -> Span | None:
    """Get the innermost active span, if any."""
    stack = _span_stack.get()
    return stack[-1] if stack else None


def push_span(span: Span) -> None:
    """Make span the current span."""
    _span_stack.set(_span_stack.get() + (span,))


def remove_span(span: Span) -> bool:
    """
    Remove span from the stack.

    Returns True if span was the current (innermost) span, False if it was
    found deeper in the stack or not at all.
    """
    stack = _span_stack.get()
    if stack and stack[-1] is span:
        _span_stack.set(stack[:-1])
        return True

    _span_stack.set(tuple(s for s in stack if s is not span))
    return False


def remove_trace(trace_id: str) -> None:
    """Remove every span belonging to trace_id from the stack."""
    stack = _span_stack.get()
    _span_stack.set(tuple(s for s in stack if s.trace_id != trace_id))


def create_traceparent(context: SpanContext) -> str:
    """Create a W3C traceparent header from span context."""
    return f"00-{context.trace_id}-{context.span_id}-{context.trace_flags:02x}"
