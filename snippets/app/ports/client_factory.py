"""Port: source of service client handles, so services never construct vendor clients."""
from __future__ import annotations

from typing import Protocol

from snippets.app.ports.message_publisher import MessagePublisher
from snippets.app.ports.message_subscriber import MessageSubscriber
from snippets.app.ports.schema_service import SchemaServiceClient
from snippets.app.ports.topic_admin import TopicAdminClient


class PubSubClientFactory(Protocol):
    def schema_service(self) -> SchemaServiceClient: ...

    def topic_admin(self) -> TopicAdminClient: ...

    def publisher(self, topic_path: str) -> MessagePublisher: ...

    def subscriber(self) -> MessageSubscriber: ...
