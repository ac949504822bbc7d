"""Outbound trace header propagation and client span naming."""

from __future__ import annotations

import httpx

from tracewire.tracing.span import Span
from tracewire.tracing.tracer import Tracer, get_tracer

DEFAULT_SPAN_NAME_PREFIX = "httpx_downstream_call"


def propagate_tracing_headers(
    request: httpx.Request, span: Span | None, tracer: Tracer | None = None
) -> None:
    """
    Set the tracing headers for span on the outgoing request.

    Does nothing when span is None, which is the expected case when there is
    no tracing context to propagate. Existing headers with the same names are
    overwritten.
    """
    if span is None:
        return

    tracer = tracer or get_tracer()
    for name, value in tracer.propagation_headers(span).items():
        request.headers[name] = value


def get_subspan_span_name(
    request: httpx.Request, prefix: str = DEFAULT_SPAN_NAME_PREFIX
) -> str:
    """
    Build the name for the span surrounding a downstream call.

    Format is ``<prefix>-<HTTP_METHOD>_<URL>`` with any query string and
    fragment stripped, e.g. a GET to https://foo.bar/baz?stuff=things gives
    ``httpx_downstream_call-GET_https://foo.bar/baz``.
    """
    url = request.url
    netloc = url.netloc.decode("ascii")
    # raw_path keeps percent-escapes but carries the query string
    path = url.raw_path.split(b"?", 1)[0].decode("ascii")
    return f"{prefix}-{request.method}_{url.scheme}://{netloc}{path}"
