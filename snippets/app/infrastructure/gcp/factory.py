"""Builds Google Cloud Pub/Sub adapters. Only place that imports the gcp adapters."""
from __future__ import annotations

from snippets.app.infrastructure.gcp.publisher import GcpMessagePublisher
from snippets.app.infrastructure.gcp.schema_client import GcpSchemaServiceClient
from snippets.app.infrastructure.gcp.subscriber import GcpMessageSubscriber
from snippets.app.infrastructure.gcp.topic_admin import GcpTopicAdminClient


class GcpClientFactory:
    """Implements ports.client_factory.PubSubClientFactory.

    Credentials and endpoint come from the environment (Application Default
    Credentials, PUBSUB_EMULATOR_HOST).
    """

    def schema_service(self) -> GcpSchemaServiceClient:
        return GcpSchemaServiceClient()

    def topic_admin(self) -> GcpTopicAdminClient:
        return GcpTopicAdminClient()

    def publisher(self, topic_path: str) -> GcpMessagePublisher:
        return GcpMessagePublisher(topic_path)

    def subscriber(self) -> GcpMessageSubscriber:
        return GcpMessageSubscriber()
