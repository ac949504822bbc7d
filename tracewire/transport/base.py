"""Transport capability for tracewire."""

from abc import ABC, abstractmethod

import httpx


class Transport(httpx.BaseTransport, ABC):
    """
    Abstract base class for synchronous transports.

    A transport accepts a request and returns a response, or raises. Every
    Transport is also an httpx transport, so it can be handed straight to
    ``httpx.Client(transport=...)``.
    """

    @abstractmethod
    def execute(self, request: httpx.Request) -> httpx.Response:
        """Send request and return the response. Must be implemented by subclasses."""
        pass

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self.execute(request)


class AsyncTransport(httpx.AsyncBaseTransport, ABC):
    """Abstract base class for asyncio transports."""

    @abstractmethod
    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Send request and return the response. Must be implemented by subclasses."""
        pass

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self.execute(request)


class HttpxTransport(Transport):
    """Adapts any httpx transport to the Transport interface."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport if transport is not None else httpx.HTTPTransport()

    def execute(self, request: httpx.Request) -> httpx.Response:
        return self._transport.handle_request(request)

    def close(self) -> None:
        self._transport.close()


class AsyncHttpxTransport(AsyncTransport):
    """Adapts any async httpx transport to the AsyncTransport interface."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()

    async def execute(self, request: httpx.Request) -> httpx.Response:
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()
