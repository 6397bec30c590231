"""Port implementations over InMemoryPubSub: schema, topic admin and publisher."""
from __future__ import annotations

import threading
from concurrent.futures import Future

from snippets.app.constants import PublisherState, SchemaType
from snippets.app.domain.errors import PubSubSnippetError, ServiceError
from snippets.app.domain.models import OutgoingMessage, SchemaInfo, TopicInfo
from snippets.app.infrastructure.inmemory.in_memory_service import InMemoryPubSub


class InMemorySchemaServiceClient:
    def __init__(self, service: InMemoryPubSub) -> None:
        self._service = service
        self.closed = False

    def create_schema(
        self,
        project_path: str,
        schema_id: str,
        schema_type: SchemaType,
        definition: str,
    ) -> SchemaInfo:
        return self._service.create_schema(project_path, schema_id, schema_type, definition)

    def get_schema(self, schema_path: str) -> SchemaInfo:
        return self._service.get_schema(schema_path)

    def close(self) -> None:
        self.closed = True


class InMemoryTopicAdminClient:
    def __init__(self, service: InMemoryPubSub) -> None:
        self._service = service
        self.closed = False

    def get_topic(self, topic_path: str) -> TopicInfo:
        return self._service.get_topic(topic_path)

    def close(self) -> None:
        self.closed = True


class InMemoryMessagePublisher:
    """Publishes synchronously; returned futures are already resolved."""

    def __init__(self, service: InMemoryPubSub, topic_path: str) -> None:
        self._service = service
        self._topic = topic_path
        self._state = PublisherState.READY
        self._lock = threading.Lock()

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def state(self) -> PublisherState:
        return self._state

    def publish(self, message: OutgoingMessage) -> "Future[str]":
        with self._lock:
            if self._state != PublisherState.READY:
                raise RuntimeError("publisher_not_ready")
        result: Future[str] = Future()
        result.set_running_or_notify_cancel()
        try:
            result.set_result(self._service.publish(self._topic, message))
        except PubSubSnippetError as exc:
            result.set_exception(exc)
        except Exception as exc:
            result.set_exception(ServiceError(f"{self._topic}: publish failed: {exc}"))
        return result

    def shutdown(self, timeout: float) -> bool:
        with self._lock:
            self._state = PublisherState.TERMINATED
        return True
