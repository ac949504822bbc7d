"""Transports that propagate tracing headers and surround calls in a span."""

from __future__ import annotations

from typing import Callable

import httpx

from tracewire.propagation import get_subspan_span_name, propagate_tracing_headers
from tracewire.tracing.span import Span
from tracewire.tracing.tracer import Tracer, get_tracer
from tracewire.transport.base import AsyncHttpxTransport, AsyncTransport, HttpxTransport, Transport
from tracewire.types import SpanPurpose

SpanNamer = Callable[[httpx.Request], str]


class _TracedCallMixin:
    """Span handling shared by the sync and async traced transports."""

    _surround_with_subspan: bool
    _tracer: Tracer | None
    _span_namer: SpanNamer | None

    @property
    def surround_with_subspan(self) -> bool:
        """Whether calls are surrounded by a CLIENT span. Fixed at construction."""
        return self._surround_with_subspan

    @property
    def tracer(self) -> Tracer:
        return self._tracer or get_tracer()

    def get_subspan_span_name(self, request: httpx.Request) -> str:
        """
        Name for the span surrounding the call.

        Override this, or pass span_namer, for a different naming format.
        """
        if self._span_namer is not None:
            return self._span_namer(request)
        return get_subspan_span_name(request)

    def _start_span_around_call(self, tracer: Tracer, request: httpx.Request) -> Span | None:
        if not self._surround_with_subspan:
            return None

        # Named before any headers are touched
        span_name = self.get_subspan_span_name(request)

        # A new trace if nothing is in progress, otherwise a subspan.
        if tracer.get_current_span() is None:
            return tracer.start_span(span_name, SpanPurpose.CLIENT)
        return tracer.start_subspan(span_name, SpanPurpose.CLIENT)


class TracedTransport(_TracedCallMixin, Transport):
    """
    Decorates a transport with tracing.

    Every request gets the current span's tracing headers. With the subspan
    option on (the default) each call is first surrounded by a CLIENT span:
    a subspan if a span is already current, or the root span of a new trace
    otherwise. The span is closed after the wrapped transport returns or
    raises, so it encloses everything layered below this transport.

    With the subspan option off, the current span's headers are propagated
    if there is one; if there is none the request goes out untouched.
    """

    def __init__(
        self,
        transport: Transport | httpx.BaseTransport,
        surround_with_subspan: bool = True,
        tracer: Tracer | None = None,
        span_namer: SpanNamer | None = None,
    ) -> None:
        if not isinstance(transport, Transport):
            transport = HttpxTransport(transport)

        self._transport = transport
        self._surround_with_subspan = surround_with_subspan
        self._tracer = tracer
        self._span_namer = span_namer

    def execute(self, request: httpx.Request) -> httpx.Response:
        tracer = self.tracer
        span_around_call = self._start_span_around_call(tracer, request)

        try:
            propagate_tracing_headers(request, tracer.get_current_span(), tracer)
            return self._transport.execute(request)
        finally:
            if span_around_call is not None:
                # Span.close() finishes the whole trace for a root span and
                # just the subspan otherwise.
                span_around_call.close()

    def close(self) -> None:
        self._transport.close()


class AsyncTracedTransport(_TracedCallMixin, AsyncTransport):
    """
    Async version of TracedTransport.

    The span is also closed when the call is cancelled.
    """

    def __init__(
        self,
        transport: AsyncTransport | httpx.AsyncBaseTransport,
        surround_with_subspan: bool = True,
        tracer: Tracer | None = None,
        span_namer: SpanNamer | None = None,
    ) -> None:
        if not isinstance(transport, AsyncTransport):
            transport = AsyncHttpxTransport(transport)

        self._transport = transport
        self._surround_with_subspan = surround_with_subspan
        self._tracer = tracer
        self._span_namer = span_namer

    async def execute(self, request: httpx.Request) -> httpx.Response:
        tracer = self.tracer
        span_around_call = self._start_span_around_call(tracer, request)

        try:
            propagate_tracing_headers(request, tracer.get_current_span(), tracer)
            return await self._transport.execute(request)
        finally:
            if span_around_call is not None:
                span_around_call.close()

    async def aclose(self) -> None:
        await self._transport.aclose()
