"""
tracing.py

Responsibility: Pluggable tracing for client operations.

The client opens one segment per operation through a `Tracer`. Any object with a
compatible `capture(name)` works, e.g. a thin adapter over an X-Ray recorder.
`NullTracer` is used when nothing is injected.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Segment(Protocol):
    def add_annotation(self, key: str, value: Any) -> None:
        ...

    def close(self, error: BaseException | None = None) -> None:
        ...


class Tracer(Protocol):
    def capture(self, name: str) -> Segment:
        ...


class NullSegment:
    def add_annotation(self, key: str, value: Any) -> None:
        pass

    def close(self, error: BaseException | None = None) -> None:
        pass


class NullTracer:
    def capture(self, name: str) -> Segment:
        return NullSegment()


class LoggingSegment:
    def __init__(self, name: str) -> None:
        self.name = name
        self.annotations: dict[str, Any] = {}

    def add_annotation(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def close(self, error: BaseException | None = None) -> None:
        if error is not None:
            logger.debug("%s failed: %s %s", self.name, error, self.annotations)
        else:
            logger.debug("%s done: %s", self.name, self.annotations)


class LoggingTracer:
    """Writes each closed segment and its annotations to the module logger at DEBUG."""

    def capture(self, name: str) -> Segment:
        return LoggingSegment(name)
