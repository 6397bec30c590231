"""Running handle that groups the futures of several pull streams."""
from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, Future, wait
from typing import Callable, Sequence

ErrorTranslator = Callable[[BaseException], Exception]


class CompositeStreamingPull:
    """Implements ports.message_subscriber.StreamingPull over one future per stream.

    Stream futures resolve when their stream has shut down (after cancel()) and
    fail when the stream hits an unrecoverable error.
    """

    def __init__(
        self,
        futures: Sequence[Future],
        *,
        translate_error: ErrorTranslator | None = None,
    ) -> None:
        if not futures:
            raise ValueError("at least one stream future is required")
        self._futures = list(futures)
        self._translate_error = translate_error

    @property
    def stream_count(self) -> int:
        return len(self._futures)

    def cancel(self) -> None:
        for future in self._futures:
            future.cancel()

    def result(self, timeout: float | None = None) -> None:
        done, not_done = wait(self._futures, timeout=timeout, return_when=FIRST_EXCEPTION)
        for future in done:
            if future.cancelled():
                continue
            exc = future.exception()
            if exc is not None:
                if self._translate_error is not None:
                    raise self._translate_error(exc) from exc
                raise exc
        if not_done:
            raise TimeoutError(f"{len(not_done)} of {len(self._futures)} streams still running")
