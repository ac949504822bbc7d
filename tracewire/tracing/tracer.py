"""Tracer for tracewire."""

from __future__ import annotations

import collections
import logging
import random
from typing import Callable

from tracewire.exceptions import NoCurrentSpanError
from tracewire.tracing import context
from tracewire.tracing.context import create_traceparent
from tracewire.tracing.span import Span
from tracewire.types import PropagationFormat, SpanPurpose, TracingOptions

logger = logging.getLogger(__name__)

B3_TRACE_ID_HEADER = "X-B3-TraceId"
B3_SPAN_ID_HEADER = "X-B3-SpanId"
B3_PARENT_SPAN_ID_HEADER = "X-B3-ParentSpanId"
B3_SAMPLED_HEADER = "X-B3-Sampled"

SpanListener = Callable[[Span], None]

# Global tracer instance
_tracer: Tracer | None = None


class Tracer:
    """
    Tracer manages span creation and the active span stack.

    The stack lives in a context variable, so every thread (and every
    asyncio task) sees its own current span. Tracer instances themselves
    hold only configuration, listeners and the finished span buffer, and can
    be shared freely between threads.
    """

    def __init__(
        self,
        sample_rate: float = 1.0,
        propagation: tuple[PropagationFormat, ...] = (PropagationFormat.B3,),
        log_completed_spans: bool = False,
        max_finished_spans: int = 1000,
    ) -> None:
        self.sample_rate = sample_rate
        self.propagation = propagation

        self._listeners: list[SpanListener] = []
        self._finished_spans: collections.deque[Span] = collections.deque(
            maxlen=max_finished_spans
        )

        if log_completed_spans:
            from tracewire.integrations.logging import LoggingSpanListener

            self.add_span_listener(LoggingSpanListener())

    @classmethod
    def from_options(cls, options: TracingOptions) -> Tracer:
        """Create a tracer from TracingOptions."""
        return cls(
            sample_rate=options.sample_rate,
            propagation=options.propagation,
            log_completed_spans=options.log_completed_spans,
            max_finished_spans=options.max_finished_spans,
        )

    def get_current_span(self) -> Span | None:
        """Get the current span for this thread or task."""
        return context.get_current_span()

    def start_span(self, name: str, purpose: SpanPurpose = SpanPurpose.LOCAL_ONLY) -> Span:
        """
        Start a new trace with a root span and make it the current span.

        Any span stack already active in this context is discarded.
        """
        current = context.get_current_span()
        if current is not None:
            logger.warning(
                "Starting new trace %r while span %r is still active; "
                "the previous span stack is discarded",
                name,
                current.name,
            )

        span = Span(
            name=name,
            purpose=purpose,
            sampleable=self._should_sample(),
            tracer=self,
        )
        context.set_span_stack((span,))

        logger.debug("Started root span %s (%s) trace=%s", span.span_id, name, span.trace_id)
        return span

    def start_subspan(self, name: str, purpose: SpanPurpose = SpanPurpose.LOCAL_ONLY) -> Span:
        """
        Start a child of the current span and make it the current span.

        Raises:
            NoCurrentSpanError: If there is no current span to be the parent.
        """
        parent = context.get_current_span()
        if parent is None:
            raise NoCurrentSpanError(
                f"Cannot start subspan {name!r}: there is no current span"
            )

        span = Span(
            name=name,
            purpose=purpose,
            trace_id=parent.trace_id,
            parent_span_id=parent.span_id,
            sampleable=parent.sampleable,
            tracer=self,
        )
        context.push_span(span)

        logger.debug(
            "Started subspan %s (%s) parent=%s trace=%s",
            span.span_id,
            name,
            parent.span_id,
            span.trace_id,
        )
        return span

    def start_span_in_current_context(
        self, name: str, purpose: SpanPurpose = SpanPurpose.LOCAL_ONLY
    ) -> Span:
        """Start a subspan if a span is current, otherwise a new trace."""
        if context.get_current_span() is None:
            return self.start_span(name, purpose)
        return self.start_subspan(name, purpose)

    def propagation_headers(self, span: Span) -> dict[str, str]:
        """Get the headers that carry span's tracing info downstream."""
        headers: dict[str, str] = {}

        if PropagationFormat.B3 in self.propagation:
            headers[B3_TRACE_ID_HEADER] = span.trace_id
            headers[B3_SPAN_ID_HEADER] = span.span_id
            if span.parent_span_id:
                headers[B3_PARENT_SPAN_ID_HEADER] = span.parent_span_id
            headers[B3_SAMPLED_HEADER] = "1" if span.sampleable else "0"

        if PropagationFormat.W3C in self.propagation:
            headers[context.TRACEPARENT_HEADER] = create_traceparent(span.span_context())

        return headers

    def add_span_listener(self, listener: SpanListener) -> None:
        """Register a callable notified with every completed span."""
        self._listeners.append(listener)

    def remove_span_listener(self, listener: SpanListener) -> None:
        """Unregister a span listener. Unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def finished_spans(self) -> list[Span]:
        """Sampled spans completed so far, oldest first."""
        return list(self._finished_spans)

    def pop_finished_spans(self) -> list[Span]:
        """Return and clear the finished span buffer."""
        spans = []
        while self._finished_spans:
            spans.append(self._finished_spans.popleft())
        return spans

    def _complete_span(self, span: Span) -> None:
        """Called by Span.close() once the span has ended."""
        if span.is_root:
            # Closing the root finishes the trace, including any child spans
            # that were left open.
            if context.get_current_span() is not span:
                logger.warning(
                    "Root span %s (%s) was not the current span when closed",
                    span.span_id,
                    span.name,
                )
            context.remove_trace(span.trace_id)
            logger.debug("Completed trace %s (root span %s)", span.trace_id, span.name)
        else:
            if not context.remove_span(span):
                logger.warning(
                    "Subspan %s (%s) was not the current span when closed",
                    span.span_id,
                    span.name,
                )
            logger.debug("Completed subspan %s (%s)", span.span_id, span.name)

        if span.sampleable:
            self._finished_spans.append(span)

        for listener in list(self._listeners):
            try:
                listener(span)
            except Exception:
                logger.exception("Span listener %r failed for span %s", listener, span.span_id)

    def _should_sample(self) -> bool:
        """Decide whether a new trace should be sampled."""
        if self.sample_rate >= 1:
            return True
        if self.sample_rate <= 0:
            return False
        return random.random() < self.sample_rate


def set_tracer(tracer: Tracer | None) -> None:
    """Set the global tracer instance."""
    global _tracer
    _tracer = tracer


def get_tracer() -> Tracer:
    """Get the global tracer instance, creating a default one if needed."""
    global _tracer
    if _tracer is None:
        _tracer = Tracer()
    return _tracer


def get_current_span() -> Span | None:
    """Get the current span for this thread or task."""
    return context.get_current_span()
