"""Port: messaging publish contract. Implementations live in infrastructure."""
from __future__ import annotations

from concurrent.futures import Future
from typing import Protocol

from snippets.app.constants import PublisherState
from snippets.app.domain.models import OutgoingMessage


class MessagePublisher(Protocol):
    """Publishes to a single topic.

    publish() is non-blocking; the returned future resolves to the
    server-assigned message id or fails with ServiceError.
    """

    @property
    def topic(self) -> str: ...

    @property
    def state(self) -> PublisherState: ...

    def publish(self, message: OutgoingMessage) -> "Future[str]": ...

    def shutdown(self, timeout: float) -> bool:
        """Stop accepting publishes and flush in-flight ones.

        Returns False when in-flight publishes did not complete within timeout.
        """
        ...
