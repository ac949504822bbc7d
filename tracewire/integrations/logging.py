"""Logging integration for tracewire."""

from __future__ import annotations

import json
import logging

from tracewire.tracing.span import Span

SPAN_LOGGER_NAME = "tracewire.spans"


class LoggingSpanListener:
    """
    Span listener that logs completed spans as single-line JSON.

    Spans that were not sampled are skipped.

    Usage:
        from tracewire import get_tracer
        from tracewire.integrations.logging import LoggingSpanListener

        get_tracer().add_span_listener(LoggingSpanListener())
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger(SPAN_LOGGER_NAME)
        self.level = level

    def __call__(self, span: Span) -> None:
        if not span.sampleable:
            return
        if not self.logger.isEnabledFor(self.level):
            return

        self.logger.log(self.level, "[COMPLETED_SPAN] %s", json.dumps(span.to_dict()))
