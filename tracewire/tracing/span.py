"""Span implementation for tracewire."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from tracewire.tracing.context import (
    TRACE_FLAG_NONE,
    TRACE_FLAG_SAMPLED,
    SpanContext,
    generate_span_id,
    generate_trace_id,
)
from tracewire.types import SpanPurpose

if TYPE_CHECKING:
    from tracewire.tracing.tracer import Tracer

logger = logging.getLogger(__name__)


class Span:
    """
    One unit of traced work.

    A span without a parent is the root span of a new trace; a span with a
    parent is a child span inside an active trace. Spans are created by a
    Tracer and ended with close(). Closing a root span completes the whole
    trace, closing a child span completes only that span.
    """

    def __init__(
        self,
        name: str,
        purpose: SpanPurpose = SpanPurpose.LOCAL_ONLY,
        trace_id: str | None = None,
        parent_span_id: str | None = None,
        sampleable: bool = True,
        tracer: Tracer | None = None,
    ) -> None:
        self._name = name
        self._purpose = purpose
        self._trace_id = trace_id or generate_trace_id()
        self._span_id = generate_span_id()
        self._parent_span_id = parent_span_id
        self._sampleable = sampleable
        self._tracer = tracer
        self._start_time_ns = time.time_ns()
        self._start_perf_ns = time.perf_counter_ns()
        self._duration_ns: int | None = None

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def span_id(self) -> str:
        return self._span_id

    @property
    def parent_span_id(self) -> str | None:
        return self._parent_span_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def purpose(self) -> SpanPurpose:
        return self._purpose

    @property
    def sampleable(self) -> bool:
        return self._sampleable

    @property
    def is_root(self) -> bool:
        return self._parent_span_id is None

    @property
    def start_time_ns(self) -> int:
        return self._start_time_ns

    @property
    def duration_ns(self) -> int | None:
        """Monotonic duration in nanoseconds, None while the span is open."""
        return self._duration_ns

    @property
    def is_closed(self) -> bool:
        return self._duration_ns is not None

    def get_span_purpose(self) -> SpanPurpose:
        return self._purpose

    def close(self) -> None:
        """
        End the span and hand it back to its tracer.

        Only the first call has any effect; later calls are ignored.
        """
        if self._duration_ns is not None:
            logger.debug("Span %s (%s) is already closed", self._span_id, self._name)
            return

        self._duration_ns = time.perf_counter_ns() - self._start_perf_ns

        if self._tracer is not None:
            self._tracer._complete_span(self)

    def span_context(self) -> SpanContext:
        """Get span context for W3C propagation."""
        return SpanContext(
            trace_id=self._trace_id,
            span_id=self._span_id,
            trace_flags=TRACE_FLAG_SAMPLED if self._sampleable else TRACE_FLAG_NONE,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "trace_id": self._trace_id,
            "span_id": self._span_id,
            "span_name": self._name,
            "span_purpose": self._purpose.value,
            "sampleable": self._sampleable,
            "start_time_ns": self._start_time_ns,
        }
        if self._parent_span_id:
            result["parent_span_id"] = self._parent_span_id
        if self._duration_ns is not None:
            result["duration_ns"] = self._duration_ns
        return result

    def __enter__(self) -> Span:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Span(name={self._name!r}, trace_id={self._trace_id!r}, "
            f"span_id={self._span_id!r}, parent_span_id={self._parent_span_id!r})"
        )
