"""Tests for tracewire transports.

Exercises TracedTransport and AsyncTracedTransport against recording
transports: span creation and closing, header injection order, failure
propagation, cancellation and thread isolation.
"""

import asyncio
import threading
import time
from unittest.mock import patch

import httpx
import pytest

from tracewire.tracing.context import set_span_stack
from tracewire.tracing.span import Span
from tracewire.tracing.tracer import (
    B3_PARENT_SPAN_ID_HEADER,
    B3_SPAN_ID_HEADER,
    B3_TRACE_ID_HEADER,
    Tracer,
    set_tracer,
)
from tracewire.transport.base import AsyncTransport, HttpxTransport, Transport
from tracewire.transport.traced import AsyncTracedTransport, TracedTransport
from tracewire.types import SpanPurpose

URL = "https://foo.bar/baz?stuff=things"


@pytest.fixture(autouse=True)
def _reset_context():
    """Ensure each test starts with an empty span stack."""
    set_span_stack(())
    yield
    set_span_stack(())


@pytest.fixture(autouse=True)
def _reset_global_tracer():
    """Ensure each test starts with no global tracer."""
    set_tracer(None)
    yield
    set_tracer(None)


class RecordingTransport(Transport):
    """Records what the wrapped pipeline sees when it is invoked."""

    def __init__(self, tracer: Tracer, error: Exception | None = None, delay: float = 0.0) -> None:
        self.tracer = tracer
        self.error = error
        self.delay = delay
        self.headers: list[httpx.Headers] = []
        self.current_spans: list[Span | None] = []
        self.call_duration_ns: int | None = None

    def execute(self, request: httpx.Request) -> httpx.Response:
        start = time.perf_counter_ns()
        self.headers.append(httpx.Headers(request.headers))
        current = self.tracer.get_current_span()
        self.current_spans.append(current)
        if current is not None:
            assert not current.is_closed
        if self.delay:
            time.sleep(self.delay)
        self.call_duration_ns = time.perf_counter_ns() - start
        if self.error is not None:
            raise self.error
        return httpx.Response(200, request=request)


def _request(url: str = URL, method: str = "GET", **kwargs) -> httpx.Request:
    return httpx.Request(method, url, **kwargs)


# ===================================================================
# 1. Subspan option on
# ===================================================================

class TestSurroundWithSubspan:
    """Test TracedTransport with the subspan option on."""

    def test_creates_root_span_when_no_current_span(self):
        tracer = Tracer()
        inner = RecordingTransport(tracer)
        transport = TracedTransport(inner, tracer=tracer)

        response = transport.execute(_request())

        assert response.status_code == 200
        [span] = tracer.finished_spans
        assert span.is_root
        assert span.purpose == SpanPurpose.CLIENT
        assert span.is_closed
        assert inner.current_spans == [span]
        assert tracer.get_current_span() is None

    def test_creates_child_span_when_span_is_current(self):
        tracer = Tracer()
        root = tracer.start_span("handle_request", SpanPurpose.SERVER)
        inner = RecordingTransport(tracer)
        transport = TracedTransport(inner, tracer=tracer)

        transport.execute(_request())

        [child] = tracer.finished_spans
        assert child.parent_span_id == root.span_id
        assert child.trace_id == root.trace_id
        assert child.purpose == SpanPurpose.CLIENT
        assert child.is_closed
        assert tracer.get_current_span() is root
        assert root.is_closed is False

    def test_span_named_from_request(self):
        tracer = Tracer()
        transport = TracedTransport(RecordingTransport(tracer), tracer=tracer)

        transport.execute(_request())

        assert tracer.finished_spans[0].name == "httpx_downstream_call-GET_https://foo.bar/baz"

    def test_headers_injected_after_span_creation_before_delegation(self):
        tracer = Tracer()
        inner = RecordingTransport(tracer)
        transport = TracedTransport(inner, tracer=tracer)

        transport.execute(_request())

        [span] = tracer.finished_spans
        [headers] = inner.headers
        assert headers[B3_TRACE_ID_HEADER] == span.trace_id
        assert headers[B3_SPAN_ID_HEADER] == span.span_id
        assert B3_PARENT_SPAN_ID_HEADER not in headers

    def test_child_headers_carry_parent_id(self):
        tracer = Tracer()
        root = tracer.start_span("root")
        inner = RecordingTransport(tracer)

        TracedTransport(inner, tracer=tracer).execute(_request())

        [headers] = inner.headers
        assert headers[B3_PARENT_SPAN_ID_HEADER] == root.span_id
        assert headers[B3_SPAN_ID_HEADER] != root.span_id

    def test_existing_tracing_headers_overwritten(self):
        tracer = Tracer()
        inner = RecordingTransport(tracer)
        request = _request(headers={"x-b3-traceid": "stale", "Accept": "application/json"})

        TracedTransport(inner, tracer=tracer).execute(request)

        [headers] = inner.headers
        assert headers.get_list(B3_TRACE_ID_HEADER) == [tracer.finished_spans[0].trace_id]
        assert headers["Accept"] == "application/json"

    def test_span_duration_encloses_transport_call(self):
        tracer = Tracer()
        inner = RecordingTransport(tracer, delay=0.02)

        TracedTransport(inner, tracer=tracer).execute(_request())

        [span] = tracer.finished_spans
        assert inner.call_duration_ns is not None
        assert span.duration_ns >= inner.call_duration_ns

    def test_each_call_gets_its_own_span(self):
        tracer = Tracer()
        transport = TracedTransport(RecordingTransport(tracer), tracer=tracer)

        transport.execute(_request())
        transport.execute(_request())

        first, second = tracer.finished_spans
        assert first.span_id != second.span_id
        assert first.trace_id != second.trace_id

    def test_close_called_exactly_once(self):
        tracer = Tracer()
        transport = TracedTransport(RecordingTransport(tracer), tracer=tracer)

        with patch.object(Span, "close", autospec=True, side_effect=Span.close) as close:
            transport.execute(_request())

        assert close.call_count == 1

    def test_uses_global_tracer_by_default(self):
        tracer = Tracer()
        set_tracer(tracer)
        transport = TracedTransport(RecordingTransport(tracer))

        transport.execute(_request())

        assert len(tracer.finished_spans) == 1


# ===================================================================
# 2. Subspan option off
# ===================================================================

class TestWithoutSubspan:
    """Test TracedTransport with the subspan option off."""

    def test_propagates_ambient_span(self):
        tracer = Tracer()
        ambient = tracer.start_span("ambient")
        inner = RecordingTransport(tracer)
        transport = TracedTransport(inner, surround_with_subspan=False, tracer=tracer)

        transport.execute(_request())

        [headers] = inner.headers
        assert headers[B3_SPAN_ID_HEADER] == ambient.span_id
        assert inner.current_spans == [ambient]
        assert tracer.get_current_span() is ambient
        assert ambient.is_closed is False
        assert tracer.finished_spans == []

    def test_no_ambient_span_leaves_request_untouched(self):
        tracer = Tracer()
        inner = RecordingTransport(tracer)
        transport = TracedTransport(inner, surround_with_subspan=False, tracer=tracer)
        request = _request(headers={"Accept": "application/json"})
        original_headers = httpx.Headers(request.headers)

        transport.execute(request)

        [headers] = inner.headers
        assert headers == original_headers
        assert B3_TRACE_ID_HEADER not in headers
        assert inner.current_spans == [None]
        assert tracer.finished_spans == []

    def test_flag_exposed(self):
        inner = RecordingTransport(Tracer())
        assert TracedTransport(inner).surround_with_subspan is True
        assert TracedTransport(inner, surround_with_subspan=False).surround_with_subspan is False


# ===================================================================
# 3. Failures
# ===================================================================

class TestFailures:
    """Test that failures propagate unchanged and spans still close."""

    def test_transport_error_propagates_unchanged(self):
        tracer = Tracer()
        error = httpx.ConnectError("connection refused")
        inner = RecordingTransport(tracer, error=error)
        transport = TracedTransport(inner, tracer=tracer)

        with pytest.raises(httpx.ConnectError) as excinfo:
            transport.execute(_request())

        assert excinfo.value is error
        [span] = tracer.finished_spans
        assert span.is_closed
        assert tracer.get_current_span() is None

    def test_child_span_closed_on_error(self):
        tracer = Tracer()
        root = tracer.start_span("root")
        inner = RecordingTransport(tracer, error=httpx.ReadTimeout("timed out"))
        transport = TracedTransport(inner, tracer=tracer)

        with patch.object(Span, "close", autospec=True, side_effect=Span.close) as close:
            with pytest.raises(httpx.ReadTimeout):
                transport.execute(_request())

        assert close.call_count == 1
        assert tracer.get_current_span() is root

    def test_non_http_exception_propagates(self):
        tracer = Tracer()
        error = KeyError("unexpected")
        transport = TracedTransport(RecordingTransport(tracer, error=error), tracer=tracer)

        with pytest.raises(KeyError) as excinfo:
            transport.execute(_request())

        assert excinfo.value is error
        assert tracer.finished_spans[0].is_closed

    def test_tracer_failure_propagates_without_close(self):
        class BrokenTracer(Tracer):
            def start_span(self, name, purpose=SpanPurpose.LOCAL_ONLY):
                raise RuntimeError("span storage unavailable")

        tracer = BrokenTracer()
        inner = RecordingTransport(tracer)
        transport = TracedTransport(inner, tracer=tracer)

        with patch.object(Span, "close", autospec=True) as close:
            with pytest.raises(RuntimeError, match="span storage unavailable"):
                transport.execute(_request())

        close.assert_not_called()
        assert inner.headers == []

    def test_naming_failure_propagates(self):
        tracer = Tracer()

        def namer(request):
            raise ValueError("bad name")

        transport = TracedTransport(RecordingTransport(tracer), tracer=tracer, span_namer=namer)

        with pytest.raises(ValueError):
            transport.execute(_request())

        assert tracer.get_current_span() is None


# ===================================================================
# 4. Span naming override
# ===================================================================

class TestSpanNaming:
    """Test overriding the span name."""

    def test_span_namer_argument(self):
        tracer = Tracer()
        transport = TracedTransport(
            RecordingTransport(tracer),
            tracer=tracer,
            span_namer=lambda request: f"call-{request.url.host}",
        )

        transport.execute(_request())

        assert tracer.finished_spans[0].name == "call-foo.bar"

    def test_subclass_override(self):
        class NamedTransport(TracedTransport):
            def get_subspan_span_name(self, request):
                return "custom"

        tracer = Tracer()
        NamedTransport(RecordingTransport(tracer), tracer=tracer).execute(_request())

        assert tracer.finished_spans[0].name == "custom"

    def test_name_computed_before_headers_are_set(self):
        tracer = Tracer()
        seen = []

        def namer(request):
            seen.append(B3_TRACE_ID_HEADER in request.headers)
            return "n"

        TracedTransport(RecordingTransport(tracer), tracer=tracer, span_namer=namer).execute(
            _request()
        )

        assert seen == [False]


# ===================================================================
# 5. httpx integration
# ===================================================================

class TestHttpxIntegration:
    """Test TracedTransport as a drop-in httpx transport."""

    def test_wraps_plain_httpx_transport(self):
        tracer = Tracer()
        received = []

        def handler(request):
            received.append(request.headers.get(B3_SPAN_ID_HEADER))
            return httpx.Response(204)

        transport = TracedTransport(httpx.MockTransport(handler), tracer=tracer)
        assert isinstance(transport._transport, HttpxTransport)

        with httpx.Client(transport=transport) as client:
            response = client.get(URL)

        assert response.status_code == 204
        assert received == [tracer.finished_spans[0].span_id]

    def test_client_errors_propagate_through_client(self):
        tracer = Tracer()

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        transport = TracedTransport(httpx.MockTransport(handler), tracer=tracer)

        with httpx.Client(transport=transport) as client:
            with pytest.raises(httpx.ConnectError):
                client.get(URL)

        assert tracer.finished_spans[0].is_closed
        assert tracer.get_current_span() is None

    def test_stacked_decorators_nest_spans(self):
        tracer = Tracer()
        inner = RecordingTransport(tracer)
        transport = TracedTransport(TracedTransport(inner, tracer=tracer), tracer=tracer)

        transport.execute(_request())

        child, root = tracer.finished_spans
        assert child.parent_span_id == root.span_id
        assert inner.headers[0][B3_SPAN_ID_HEADER] == child.span_id


# ===================================================================
# 6. Concurrency
# ===================================================================

class TestConcurrency:
    """Test that concurrent calls on separate threads do not interfere."""

    def test_threads_get_independent_spans(self):
        tracer = Tracer()
        thread_count = 8
        barrier = threading.Barrier(thread_count, timeout=5)

        class BarrierTransport(Transport):
            def execute(self, request):
                # Make sure every call is in flight at the same time
                barrier.wait()
                return httpx.Response(200, request=request)

        transport = TracedTransport(BarrierTransport(), tracer=tracer)
        results = {}
        errors = []

        def worker(index):
            try:
                set_span_stack(())
                root = tracer.start_span(f"worker-{index}")
                transport.execute(_request(f"https://svc{index}.internal/items"))
                results[index] = (root, tracer.get_current_span())
                root.close()
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(thread_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        for index, (root, current_after_call) in results.items():
            assert current_after_call is root

        children = [s for s in tracer.finished_spans if not s.is_root]
        assert len(children) == thread_count
        roots = {root.span_id: root for root, _ in results.values()}
        for child in children:
            root = roots[child.parent_span_id]
            assert child.trace_id == root.trace_id
            assert child.name.endswith(f"https://svc{root.name.split('-')[1]}.internal/items")


# ===================================================================
# 7. Async transport
# ===================================================================

class AsyncRecordingTransport(AsyncTransport):
    def __init__(self, tracer: Tracer, error: Exception | None = None) -> None:
        self.tracer = tracer
        self.error = error
        self.headers: list[httpx.Headers] = []
        self.current_spans: list[Span | None] = []

    async def execute(self, request: httpx.Request) -> httpx.Response:
        self.headers.append(httpx.Headers(request.headers))
        self.current_spans.append(self.tracer.get_current_span())
        if self.error is not None:
            raise self.error
        return httpx.Response(200, request=request)


class TestAsyncTracedTransport:
    """Test AsyncTracedTransport."""

    @pytest.mark.asyncio
    async def test_creates_and_closes_span(self):
        tracer = Tracer()
        inner = AsyncRecordingTransport(tracer)
        transport = AsyncTracedTransport(inner, tracer=tracer)

        response = await transport.execute(_request())

        assert response.status_code == 200
        [span] = tracer.finished_spans
        assert span.purpose == SpanPurpose.CLIENT
        assert inner.current_spans == [span]
        assert inner.headers[0][B3_SPAN_ID_HEADER] == span.span_id
        assert tracer.get_current_span() is None

    @pytest.mark.asyncio
    async def test_child_of_current_span(self):
        tracer = Tracer()
        root = tracer.start_span("root")
        transport = AsyncTracedTransport(AsyncRecordingTransport(tracer), tracer=tracer)

        await transport.execute(_request())

        [child] = tracer.finished_spans
        assert child.parent_span_id == root.span_id
        assert tracer.get_current_span() is root

    @pytest.mark.asyncio
    async def test_error_propagates_and_span_closes(self):
        tracer = Tracer()
        error = httpx.ConnectError("refused")
        transport = AsyncTracedTransport(AsyncRecordingTransport(tracer, error=error), tracer=tracer)

        with pytest.raises(httpx.ConnectError) as excinfo:
            await transport.execute(_request())

        assert excinfo.value is error
        assert tracer.finished_spans[0].is_closed

    @pytest.mark.asyncio
    async def test_span_closed_on_cancellation(self):
        tracer = Tracer()
        started = asyncio.Event()
        in_flight = []

        class HangingTransport(AsyncTransport):
            async def execute(self, request):
                in_flight.append(tracer.get_current_span())
                started.set()
                await asyncio.sleep(10)
                return httpx.Response(200, request=request)  # pragma: no cover

        transport = AsyncTracedTransport(HangingTransport(), tracer=tracer)
        task = asyncio.create_task(transport.execute(_request()))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        [span] = in_flight
        assert span.is_closed
        assert tracer.finished_spans == [span]

    @pytest.mark.asyncio
    async def test_without_subspan_and_no_ambient_span(self):
        tracer = Tracer()
        inner = AsyncRecordingTransport(tracer)
        transport = AsyncTracedTransport(inner, surround_with_subspan=False, tracer=tracer)

        await transport.execute(_request())

        assert B3_TRACE_ID_HEADER not in inner.headers[0]
        assert tracer.finished_spans == []

    @pytest.mark.asyncio
    async def test_with_async_client(self):
        tracer = Tracer()
        received = []

        def handler(request):
            received.append(request.headers.get(B3_TRACE_ID_HEADER))
            return httpx.Response(200)

        transport = AsyncTracedTransport(httpx.MockTransport(handler), tracer=tracer)
        async with httpx.AsyncClient(transport=transport) as client:
            await client.get(URL)

        assert received == [tracer.finished_spans[0].trace_id]
