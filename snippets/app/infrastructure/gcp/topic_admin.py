"""TopicAdminClient port backed by pubsub_v1.PublisherClient.get_topic."""
from __future__ import annotations

from google.api_core import exceptions as api_exceptions
from google.cloud import pubsub_v1

from snippets.app.constants import Encoding
from snippets.app.domain.models import TopicInfo
from snippets.app.infrastructure.gcp.errors import translate_api_error


class GcpTopicAdminClient:
    """Implements ports.topic_admin.TopicAdminClient."""

    def __init__(self, client: pubsub_v1.PublisherClient | None = None) -> None:
        self._client = client or pubsub_v1.PublisherClient()

    def get_topic(self, topic_path: str) -> TopicInfo:
        try:
            topic = self._client.get_topic(request={"topic": topic_path})
        except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as exc:
            raise translate_api_error(exc, topic_path) from exc
        settings = topic.schema_settings
        return TopicInfo(
            name=topic.name,
            encoding=Encoding(settings.encoding.name),
            schema_name=settings.schema or None,
        )

    def close(self) -> None:
        transport = getattr(self._client, "transport", None)
        if callable(getattr(transport, "close", None)):
            transport.close()
