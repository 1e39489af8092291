"""Shared test doubles for chatbridge tests."""

from __future__ import annotations

import random
from typing import Any


class FakeSleep:
    """Async sleep stand-in that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def delays_ms(self) -> list[int]:
        return [round(s * 1000) for s in self.calls]


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FixedRandom(random.Random):
    """Random whose uniform() always returns the same point in the range.

    ``position`` 0.0 yields the lower bound, 1.0 the upper bound.
    """

    def __init__(self, position: float) -> None:
        super().__init__(0)
        self.position = position

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.position


class RecordingLogger:
    """Logger stand-in capturing (level, event, fields) tuples."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, event: str, **kw: Any) -> None:
        self.records.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._record("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._record("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._record("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._record("error", event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._record("critical", event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        self._record("exception", event, **kw)

    def bind(self, **context: Any) -> RecordingLogger:
        return self

    def events(self, event: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [r for r in self.records if r[1] == event]


class ExplodingLogger(RecordingLogger):
    """Logger whose every call raises."""

    def _record(self, level: str, event: str, **kw: Any) -> None:
        raise RuntimeError("log sink unavailable")


class FlakyOperation:
    """Async callable failing with the given errors in order, then returning ``result``."""

    def __init__(self, errors: list[BaseException], result: Any = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class AlwaysFails:
    """Async callable that raises a fresh copy of one error on every call."""

    def __init__(self, message: str, error_type: type[Exception] = Exception) -> None:
        self.message = message
        self.error_type = error_type
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        raise self.error_type(self.message)
