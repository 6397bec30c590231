"""In-memory stand-in for the managed Pub/Sub service, for tests and local mode.

Holds schemas, topics and subscriptions in process. Published messages fan
out to every subscription of the topic; a nack puts the delivery back on the
subscription queue with its attempt count incremented. Ack deadlines are not
modelled: a delivery that is never acked or nacked stays outstanding.
Messages published to a topic with a schema are validated the way the service
does: a BINARY or JSON payload that does not decode against the schema is
rejected with ServiceError.
"""
from __future__ import annotations

import itertools
import queue
import threading
from collections import defaultdict
from dataclasses import dataclass, field

from snippets.app.constants import Encoding, SchemaType
from snippets.app.domain.avro_codec import decode_binary, decode_json, parse_schema_definition
from snippets.app.domain.errors import (
    AlreadyExistsError,
    DecodeError,
    NotFoundError,
    SchemaParseError,
    ServiceError,
)
from snippets.app.domain.models import OutgoingMessage, SchemaInfo, TopicInfo


@dataclass(frozen=True)
class Delivery:
    message_id: str
    message: OutgoingMessage
    attempt: int = 1


@dataclass
class _Subscription:
    topic: str
    pending: "queue.Queue[Delivery]" = field(default_factory=queue.Queue)
    delivered: list[str] = field(default_factory=list)
    acked: list[str] = field(default_factory=list)
    nacked: list[str] = field(default_factory=list)


class InMemoryPubSub:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._schemas: dict[str, SchemaInfo] = {}
        self._topics: dict[str, TopicInfo] = {}
        self._subscriptions: dict[str, _Subscription] = {}
        self._message_ids = itertools.count(1)
        self._publish_failures: dict[str, Exception] = {}
        self.published: dict[str, list[OutgoingMessage]] = defaultdict(list)

    # -- schemas --

    def create_schema(self, project_path: str, schema_id: str, schema_type: SchemaType, definition: str) -> SchemaInfo:
        name = f"{project_path}/schemas/{schema_id}"
        if schema_type == SchemaType.AVRO:
            try:
                parse_schema_definition(definition)
            except SchemaParseError as exc:
                raise ServiceError(f"invalid schema definition for {name}: {exc}") from exc
        with self._lock:
            if name in self._schemas:
                raise AlreadyExistsError(f"{name} already exists")
            schema = SchemaInfo(name=name, type=schema_type, definition=definition)
            self._schemas[name] = schema
        return schema

    def get_schema(self, schema_path: str) -> SchemaInfo:
        with self._lock:
            try:
                return self._schemas[schema_path]
            except KeyError:
                raise NotFoundError(f"{schema_path} not found") from None

    # -- topics and subscriptions --

    def create_topic(
        self,
        topic_path: str,
        *,
        encoding: Encoding = Encoding.ENCODING_UNSPECIFIED,
        schema_name: str | None = None,
    ) -> TopicInfo:
        with self._lock:
            if topic_path in self._topics:
                raise AlreadyExistsError(f"{topic_path} already exists")
            if schema_name is not None and schema_name not in self._schemas:
                raise NotFoundError(f"{schema_name} not found")
            topic = TopicInfo(name=topic_path, encoding=encoding, schema_name=schema_name)
            self._topics[topic_path] = topic
        return topic

    def get_topic(self, topic_path: str) -> TopicInfo:
        with self._lock:
            try:
                return self._topics[topic_path]
            except KeyError:
                raise NotFoundError(f"{topic_path} not found") from None

    def create_subscription(self, subscription_path: str, topic_path: str) -> None:
        with self._lock:
            if subscription_path in self._subscriptions:
                raise AlreadyExistsError(f"{subscription_path} already exists")
            self.get_topic(topic_path)
            self._subscriptions[subscription_path] = _Subscription(topic=topic_path)

    def subscription_queue(self, subscription_path: str) -> "queue.Queue[Delivery]":
        return self._subscription(subscription_path).pending

    def _subscription(self, subscription_path: str) -> _Subscription:
        with self._lock:
            try:
                return self._subscriptions[subscription_path]
            except KeyError:
                raise NotFoundError(f"{subscription_path} not found") from None

    # -- publish and delivery --

    def fail_publishes(self, topic_path: str, error: Exception | None) -> None:
        """Make every publish to topic_path fail with error until reset with None."""
        with self._lock:
            if error is None:
                self._publish_failures.pop(topic_path, None)
            else:
                self._publish_failures[topic_path] = error

    def publish(self, topic_path: str, message: OutgoingMessage) -> str:
        with self._lock:
            topic = self.get_topic(topic_path)
            failure = self._publish_failures.get(topic_path)
            if failure is not None:
                raise failure
            self._validate(topic, message)
            message_id = str(next(self._message_ids))
            self.published[topic_path].append(message)
            for subscription in self._subscriptions.values():
                if subscription.topic == topic_path:
                    subscription.pending.put(Delivery(message_id=message_id, message=message))
        return message_id

    def _validate(self, topic: TopicInfo, message: OutgoingMessage) -> None:
        if topic.schema_name is None:
            return
        schema = self._schemas[topic.schema_name]
        if schema.type != SchemaType.AVRO:
            return
        parsed = parse_schema_definition(schema.definition)
        try:
            if topic.encoding == Encoding.BINARY:
                decode_binary(message.data, parsed)
            elif topic.encoding == Encoding.JSON:
                decode_json(message.data, parsed)
        except DecodeError as exc:
            raise ServiceError(f"message rejected by schema {schema.name}: {exc}") from exc

    def record_delivery(self, subscription_path: str, delivery: Delivery) -> None:
        with self._lock:
            self._subscription(subscription_path).delivered.append(delivery.message_id)

    def record_ack(self, subscription_path: str, delivery: Delivery) -> None:
        with self._lock:
            self._subscription(subscription_path).acked.append(delivery.message_id)

    def record_nack(self, subscription_path: str, delivery: Delivery) -> None:
        with self._lock:
            subscription = self._subscription(subscription_path)
            subscription.nacked.append(delivery.message_id)
        subscription.pending.put(
            Delivery(message_id=delivery.message_id, message=delivery.message, attempt=delivery.attempt + 1)
        )

    def delivered(self, subscription_path: str) -> list[str]:
        with self._lock:
            return list(self._subscription(subscription_path).delivered)

    def acked(self, subscription_path: str) -> list[str]:
        with self._lock:
            return list(self._subscription(subscription_path).acked)

    def nacked(self, subscription_path: str) -> list[str]:
        with self._lock:
            return list(self._subscription(subscription_path).nacked)
