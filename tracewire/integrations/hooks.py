"""httpx event hook integration for tracewire."""

from __future__ import annotations

import logging

import httpx

from tracewire.propagation import get_subspan_span_name, propagate_tracing_headers
from tracewire.tracing.span import Span
from tracewire.tracing.tracer import Tracer, get_tracer
from tracewire.types import SpanPurpose

logger = logging.getLogger(__name__)

SPAN_EXTENSION_KEY = "tracewire.span"


class TracingEventHooks:
    """
    Request/response event hooks that propagate tracing headers and
    optionally surround each request in a subspan.

    Use these when you do not control how the httpx.Client is built. When you
    do, prefer TracingClientBuilder:
        - event hooks can be replaced by other code that sets
          ``client.event_hooks``, silently turning tracing off;
        - the span only starts when this request hook runs, so earlier
          request hooks are not inside it;
        - the request *and* response hooks must both be installed or spans
          are never closed; response hooks do not run when the transport
          raises, so call close_request_span() in your error handling.

    Usage:
        hooks = TracingEventHooks()
        client = httpx.Client(event_hooks=hooks.event_hooks())
    """

    def __init__(self, surround_with_subspan: bool = True, tracer: Tracer | None = None) -> None:
        self._surround_with_subspan = surround_with_subspan
        self._tracer = tracer

    @property
    def surround_with_subspan(self) -> bool:
        return self._surround_with_subspan

    @property
    def tracer(self) -> Tracer:
        return self._tracer or get_tracer()

    def get_subspan_span_name(self, request: httpx.Request) -> str:
        """Name for the span surrounding the call. Override for a different format."""
        return get_subspan_span_name(request)

    def on_request(self, request: httpx.Request) -> None:
        """Request hook: start the span (if enabled) and propagate headers."""
        tracer = self.tracer

        if self._surround_with_subspan:
            span = tracer.start_span_in_current_context(
                self.get_subspan_span_name(request), SpanPurpose.CLIENT
            )
            request.extensions[SPAN_EXTENSION_KEY] = span

        propagate_tracing_headers(request, tracer.get_current_span(), tracer)

    def on_response(self, response: httpx.Response) -> None:
        """Response hook: close the span started for the response's request."""
        self.close_request_span(response.request)

    def close_request_span(self, request: httpx.Request) -> None:
        """Close the span started for request, if it is still open."""
        span: Span | None = request.extensions.pop(SPAN_EXTENSION_KEY, None)
        if span is not None:
            span.close()

    def event_hooks(self) -> dict[str, list]:
        """Hooks in the shape expected by ``httpx.Client(event_hooks=...)``."""
        return {"request": [self.on_request], "response": [self.on_response]}

    def install(self, client: httpx.Client) -> None:
        """Append both hooks to an existing client."""
        hooks = client.event_hooks
        hooks["request"].append(self.on_request)
        hooks["response"].append(self.on_response)
        client.event_hooks = hooks
        logger.debug("Installed tracing event hooks on %r", client)


class AsyncTracingEventHooks(TracingEventHooks):
    """TracingEventHooks for httpx.AsyncClient, which awaits its hooks."""

    async def on_request(self, request: httpx.Request) -> None:  # type: ignore[override]
        super().on_request(request)

    async def on_response(self, response: httpx.Response) -> None:  # type: ignore[override]
        super().on_response(response)

    def install(self, client: httpx.AsyncClient) -> None:  # type: ignore[override]
        hooks = client.event_hooks
        hooks["request"].append(self.on_request)
        hooks["response"].append(self.on_response)
        client.event_hooks = hooks
        logger.debug("Installed async tracing event hooks on %r", client)
