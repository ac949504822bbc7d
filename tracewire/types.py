"""Type definitions for tracewire."""

from dataclasses import dataclass
from enum import Enum


class SpanPurpose(str, Enum):
    """What a span represents in the overall call graph."""

    SERVER = "server"
    CLIENT = "client"
    LOCAL_ONLY = "local_only"
    UNKNOWN = "unknown"


class PropagationFormat(str, Enum):
    """Header conventions used to propagate trace context downstream."""

    B3 = "b3"
    W3C = "w3c"


@dataclass
class TracingOptions:
    """Configuration options for the tracer."""

    sample_rate: float = 1.0
    propagation: tuple[PropagationFormat, ...] = (PropagationFormat.B3,)
    log_completed_spans: bool = False
    max_finished_spans: int = 1000
    debug: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.sample_rate <= 1.0:
            raise ValueError(f"sample_rate must be between 0 and 1, got: {self.sample_rate}")

        if not self.propagation:
            raise ValueError("At least one propagation format is required")

        # Accept a single format as well as plain strings such as ("b3", "w3c")
        if isinstance(self.propagation, str):
            self.propagation = (self.propagation,)
        self.propagation = tuple(PropagationFormat(fmt) for fmt in self.propagation)

        if self.max_finished_spans < 0:
            raise ValueError(
                f"max_finished_spans must not be negative, got: {self.max_finished_spans}"
            )
