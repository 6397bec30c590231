"""Builds in-memory adapters sharing one InMemoryPubSub."""
from __future__ import annotations

from snippets.app.infrastructure.inmemory.clients import (
    InMemoryMessagePublisher,
    InMemorySchemaServiceClient,
    InMemoryTopicAdminClient,
)
from snippets.app.infrastructure.inmemory.in_memory_service import InMemoryPubSub
from snippets.app.infrastructure.inmemory.subscriber import InMemoryMessageSubscriber


class InMemoryClientFactory:
    """Implements ports.client_factory.PubSubClientFactory."""

    def __init__(self, service: InMemoryPubSub) -> None:
        self._service = service

    @property
    def service(self) -> InMemoryPubSub:
        return self._service

    def schema_service(self) -> InMemorySchemaServiceClient:
        return InMemorySchemaServiceClient(self._service)

    def topic_admin(self) -> InMemoryTopicAdminClient:
        return InMemoryTopicAdminClient(self._service)

    def publisher(self, topic_path: str) -> InMemoryMessagePublisher:
        return InMemoryMessagePublisher(self._service, topic_path)

    def subscriber(self) -> InMemoryMessageSubscriber:
        return InMemoryMessageSubscriber(self._service)
