"""Integrations module for tracewire."""

from tracewire.integrations.hooks import AsyncTracingEventHooks, TracingEventHooks
from tracewire.integrations.logging import LoggingSpanListener

__all__ = ["AsyncTracingEventHooks", "TracingEventHooks", "LoggingSpanListener"]
