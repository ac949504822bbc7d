"""Configuration entry point for tracewire."""

from __future__ import annotations

import logging

from tracewire.tracing.tracer import Tracer, set_tracer
from tracewire.types import PropagationFormat, TracingOptions

logger = logging.getLogger("tracewire")


def init(
    sample_rate: float = 1.0,
    propagation: tuple[PropagationFormat | str, ...] | str = (PropagationFormat.B3,),
    log_completed_spans: bool = False,
    max_finished_spans: int = 1000,
    debug: bool = False,
) -> Tracer:
    """
    Create the global tracer.

    Args:
        sample_rate: Fraction of new traces that are sampled (0 to 1).
        propagation: Header formats written on outgoing requests.
        log_completed_spans: Log each completed sampled span as JSON on the
            ``tracewire.spans`` logger.
        max_finished_spans: How many completed spans the tracer keeps for
            pop_finished_spans().
        debug: Set the ``tracewire`` logger to DEBUG.

    Raises:
        ValueError: If an option is out of range.

    Example:
        >>> import tracewire
        >>> tracer = tracewire.init(sample_rate=0.5, propagation=("b3", "w3c"))
    """
    options = TracingOptions(
        sample_rate=sample_rate,
        propagation=propagation,  # type: ignore[arg-type]
        log_completed_spans=log_completed_spans,
        max_finished_spans=max_finished_spans,
        debug=debug,
    )
    return init_from_options(options)


def init_from_options(options: TracingOptions) -> Tracer:
    """Create the global tracer from a TracingOptions instance."""
    if options.debug:
        logger.setLevel(logging.DEBUG)

    tracer = Tracer.from_options(options)
    set_tracer(tracer)

    logger.debug(
        "Tracer initialized (sample_rate=%s, propagation=%s)",
        options.sample_rate,
        ",".join(fmt.value for fmt in options.propagation),
    )
    return tracer
