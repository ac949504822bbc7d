"""Builder for httpx clients with tracing built into their transport."""

from __future__ import annotations

from typing import Any

import httpx

from tracewire.propagation import get_subspan_span_name
from tracewire.tracing.tracer import Tracer
from tracewire.transport.traced import AsyncTracedTransport, TracedTransport


class TracingClientBuilder:
    """
    Builds httpx clients whose transport propagates tracing headers and
    optionally surrounds each request in a subspan.

    This is the preferred integration when you control how the client is
    created: the span surrounds the whole transport call, and nothing else
    on the client can remove it. Use TracingEventHooks when the client is
    created elsewhere.

    Usage:
        builder = TracingClientBuilder.create()
        with builder.build(base_url="https://api.example.com") as client:
            client.get("/users")

    The subspan option is captured by each client when it is built. Changing
    it later only affects clients built afterwards.
    """

    def __init__(self, surround_with_subspan: bool = True) -> None:
        self._surround_with_subspan = surround_with_subspan

    @classmethod
    def create(cls, surround_with_subspan: bool = True) -> TracingClientBuilder:
        return cls(surround_with_subspan)

    @property
    def surround_with_subspan(self) -> bool:
        return self._surround_with_subspan

    def set_surround_with_subspan(self, surround_with_subspan: bool) -> TracingClientBuilder:
        """Set the subspan option for clients built from now on."""
        self._surround_with_subspan = surround_with_subspan
        return self

    def get_subspan_span_name(self, request: httpx.Request) -> str:
        """
        Name for the span surrounding each call. Defaults to
        ``httpx_downstream_call-<HTTP_METHOD>_<URL>`` without the query string.
        Override in a subclass for a different format.
        """
        return get_subspan_span_name(request)

    def decorate_transport(
        self, transport: httpx.BaseTransport | None = None, tracer: Tracer | None = None
    ) -> TracedTransport:
        """Wrap transport (a new httpx.HTTPTransport by default) with tracing."""
        return TracedTransport(
            transport if transport is not None else httpx.HTTPTransport(),
            surround_with_subspan=self._surround_with_subspan,
            tracer=tracer,
            span_namer=self.get_subspan_span_name,
        )

    def decorate_async_transport(
        self, transport: httpx.AsyncBaseTransport | None = None, tracer: Tracer | None = None
    ) -> AsyncTracedTransport:
        """Wrap an async transport (a new httpx.AsyncHTTPTransport by default) with tracing."""
        return AsyncTracedTransport(
            transport if transport is not None else httpx.AsyncHTTPTransport(),
            surround_with_subspan=self._surround_with_subspan,
            tracer=tracer,
            span_namer=self.get_subspan_span_name,
        )

    def build(
        self,
        transport: httpx.BaseTransport | None = None,
        tracer: Tracer | None = None,
        **client_kwargs: Any,
    ) -> httpx.Client:
        """Build an httpx.Client. Extra keyword arguments go to the client."""
        return httpx.Client(
            transport=self.decorate_transport(transport, tracer),
            **client_kwargs,
        )

    def build_async(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        tracer: Tracer | None = None,
        **client_kwargs: Any,
    ) -> httpx.AsyncClient:
        """Build an httpx.AsyncClient. Extra keyword arguments go to the client."""
        return httpx.AsyncClient(
            transport=self.decorate_async_transport(transport, tracer),
            **client_kwargs,
        )
