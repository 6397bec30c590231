"""Port: streaming-pull subscription. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Callable, Protocol

from snippets.app.ports.incoming_message import ReceivedMessage

MessageCallback = Callable[[ReceivedMessage], None]


class StreamingPull(Protocol):
    """Running handle over one or more pull streams."""

    def cancel(self) -> None:
        """Request that all streams stop pulling. Does not wait."""
        ...

    def result(self, timeout: float | None = None) -> None:
        """Block until all streams end.

        Raises TimeoutError when timeout elapses first and ServiceError when a
        stream fails.
        """
        ...


class MessageSubscriber(Protocol):
    def subscribe(
        self,
        subscription_path: str,
        callback: MessageCallback,
        *,
        parallel_pull_count: int = 1,
        executor_thread_count: int = 5,
    ) -> StreamingPull:
        """Open parallel_pull_count streams, each with its own pool of executor_thread_count workers."""
        ...

    def close(self) -> None: ...
