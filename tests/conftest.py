from __future__ import annotations

import json
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable

import fastavro
import pytest

from snippets.app.constants import Encoding, PublisherState, SchemaType
from snippets.app.domain.models import OutgoingMessage
from snippets.app.domain.resource_names import project_path, schema_path, subscription_path, topic_path
from snippets.app.infrastructure.inmemory.factory import InMemoryClientFactory
from snippets.app.infrastructure.inmemory.in_memory_service import InMemoryPubSub
from tests.test_data import PROJECT_ID


class SpyClientFactory:
    """Wraps InMemoryClientFactory and records which handles were opened and released."""

    def __init__(self, inner: InMemoryClientFactory, *, publisher_factory: Callable[[str], Any] | None = None) -> None:
        self._inner = inner
        self._publisher_factory = publisher_factory
        self.schema_clients: list[Any] = []
        self.topic_clients: list[Any] = []
        self.publishers: list[Any] = []

    def schema_service(self):
        client = self._inner.schema_service()
        self.schema_clients.append(client)
        return client

    def topic_admin(self):
        client = self._inner.topic_admin()
        self.topic_clients.append(client)
        return client

    def publisher(self, topic_path: str):
        publisher = ShutdownRecordingPublisher(
            self._publisher_factory(topic_path) if self._publisher_factory else self._inner.publisher(topic_path)
        )
        self.publishers.append(publisher)
        return publisher

    def subscriber(self):
        return self._inner.subscriber()


class ShutdownRecordingPublisher:
    def __init__(self, inner: Any) -> None:
        self._inner = inner
        self.shutdown_calls: list[float] = []

    @property
    def topic(self) -> str:
        return self._inner.topic

    @property
    def state(self) -> PublisherState:
        return self._inner.state

    def publish(self, message: OutgoingMessage) -> "Future[str]":
        return self._inner.publish(message)

    def shutdown(self, timeout: float) -> bool:
        self.shutdown_calls.append(timeout)
        return self._inner.shutdown(timeout)


class NeverCompletingPublisher:
    """Publisher whose futures never resolve; for publish timeout paths."""

    def __init__(self, topic_path: str) -> None:
        self._topic = topic_path
        self.published: list[OutgoingMessage] = []

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def state(self) -> PublisherState:
        return PublisherState.READY

    def publish(self, message: OutgoingMessage) -> "Future[str]":
        self.published.append(message)
        return Future()

    def shutdown(self, timeout: float) -> bool:
        return False


@pytest.fixture()
def service() -> InMemoryPubSub:
    return InMemoryPubSub()


@pytest.fixture()
def clients(service: InMemoryPubSub) -> InMemoryClientFactory:
    return InMemoryClientFactory(service)


@pytest.fixture()
def spy_clients(clients: InMemoryClientFactory) -> SpyClientFactory:
    return SpyClientFactory(clients)


@pytest.fixture()
def write_avsc(tmp_path: Path) -> Callable[..., Path]:
    def _write(schema: Any, name: str = "schema.avsc") -> Path:
        path = tmp_path / name
        path.write_text(schema if isinstance(schema, str) else json.dumps(schema, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def write_avro(tmp_path: Path) -> Callable[..., Path]:
    def _write(schema: dict[str, Any], records: list[dict[str, Any]], name: str = "records.avro") -> Path:
        path = tmp_path / name
        with path.open("wb") as fo:
            fastavro.writer(fo, fastavro.parse_schema(schema), records)
        return path

    return _write


@pytest.fixture()
def register_topic(service: InMemoryPubSub) -> Callable[..., str]:
    """Create schema (if given) and topic in the in-memory service; return the topic path."""

    def _register(
        topic_id: str,
        encoding: Encoding,
        *,
        schema_id: str | None = None,
        schema: dict[str, Any] | None = None,
    ) -> str:
        schema_name = None
        if schema_id is not None and schema is not None:
            schema_name = service.create_schema(
                project_path(PROJECT_ID), schema_id, SchemaType.AVRO, json.dumps(schema)
            ).name
        elif schema_id is not None:
            schema_name = schema_path(PROJECT_ID, schema_id)
        path = topic_path(PROJECT_ID, topic_id)
        service.create_topic(path, encoding=encoding, schema_name=schema_name)
        return path

    return _register


@pytest.fixture()
def subscription(service: InMemoryPubSub) -> str:
    topic = topic_path(PROJECT_ID, "plain-topic")
    service.create_topic(topic)
    path = subscription_path(PROJECT_ID, "plain-sub")
    service.create_subscription(path, topic)
    return path
