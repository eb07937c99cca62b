"""Lazily produced, cancellable fragment streams."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling and pacing options for one generation."""

    temperature: float = 0.5
    top_p: float = 0.95
    max_tokens: Optional[int] = None
    chunk_delay: float = 0.03


class GenerationStream:
    """Iterable over generated text, re-chunked into whole lines.

    A stream can be iterated once. :meth:`cancel` may be called from any
    thread; the iterating thread stops before its next fragment and closes
    the underlying source. Fragments already delivered are unaffected.
    """

    def __init__(
        self,
        fragments: Iterable[str],
        *,
        chunk_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._fragments = fragments
        self._chunk_delay = chunk_delay
        self._sleep = sleep
        self._cancelled = threading.Event()
        self._started = False
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            if self._started:
                raise RuntimeError("GenerationStream can only be iterated once")
            self._started = True
        return self._iterate()

    def text(self) -> str:
        """Consume the stream and return everything it produced."""
        return "".join(self)

    def _iterate(self) -> Iterator[str]:
        source = iter(self._fragments)
        emitted = False
        buffer = ""
        try:
            for fragment in source:
                if self.cancelled:
                    return
                buffer += fragment
                while "\n" in buffer:
                    line, buffer = buffer.split("\n", 1)
                    if emitted and self._chunk_delay > 0:
                        self._sleep(self._chunk_delay)
                    if self.cancelled:
                        return
                    emitted = True
                    yield f"{line}\n"
            if buffer and not self.cancelled:
                if emitted and self._chunk_delay > 0:
                    self._sleep(self._chunk_delay)
                yield buffer
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()


__all__ = ["GenerationOptions", "GenerationStream"]
