"""Exceptions raised by tracewire."""


class TracewireError(Exception):
    """Base class for errors raised by the tracing layer itself."""


class NoCurrentSpanError(TracewireError, RuntimeError):
    """Raised when an operation needs a current span and none is active."""
