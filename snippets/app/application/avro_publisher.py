"""
Publishes the records of an Avro container file to a topic with a schema.

The topic's encoding decides the payload: BINARY payloads are written with
the registered schema (not the file's embedded one), JSON payloads are the
record rendered as JSON text. Records are published one at a time and each
message id is awaited before the next record is read, so ids come back in
file order.

Failure policy: an encoding failure aborts the run. A publish failure is
recorded on that record's outcome and the run continues, unless
stop_on_publish_error is set, in which case it propagates.
"""
from __future__ import annotations

from contextlib import closing
from pathlib import Path
from typing import Any

from loguru import logger

from snippets.app.core import SERVICE_NAME
from snippets.app.domain.avro_codec import open_records, parse_schema_definition, record_encoder
from snippets.app.domain.errors import PubSubSnippetError
from snippets.app.domain.models import OutgoingMessage, PublishOutcome, PublishReport
from snippets.app.domain.resource_names import schema_path, topic_path
from snippets.app.ports.client_factory import PubSubClientFactory
from snippets.app.ports.message_publisher import MessagePublisher

DEFAULT_PUBLISH_TIMEOUT_SECONDS = 30.0
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 60.0


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class AvroRecordPublisher:
    def __init__(
        self,
        clients: PubSubClientFactory,
        *,
        publish_timeout_seconds: float = DEFAULT_PUBLISH_TIMEOUT_SECONDS,
        shutdown_timeout_seconds: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
        stop_on_publish_error: bool = False,
    ) -> None:
        self._clients = clients
        self._publish_timeout = publish_timeout_seconds
        self._shutdown_timeout = shutdown_timeout_seconds
        self._stop_on_publish_error = stop_on_publish_error

    def publish_file(
        self,
        project_id: str,
        topic_id: str,
        schema_id: str,
        avro_file: str | Path,
    ) -> PublishReport:
        topic = topic_path(project_id, topic_id)
        schema_name = schema_path(project_id, schema_id)

        with closing(self._clients.schema_service()) as schema_client:
            schema = schema_client.get_schema(schema_name)

        with closing(self._clients.topic_admin()) as topic_admin:
            encoding = topic_admin.get_topic(topic).encoding

        registered = parse_schema_definition(schema.definition)
        encode = record_encoder(encoding, registered)

        outcomes: list[PublishOutcome] = []
        publisher: MessagePublisher | None = None
        try:
            publisher = self._clients.publisher(topic)
            _log("publish_prepared", topic=topic, encoding=encoding.value, schema=schema.name)

            with open_records(avro_file, reader_schema=registered) as records:
                for index, record in enumerate(records):
                    message = OutgoingMessage(data=encode(record))
                    outcome = self._publish_one(publisher, index, message)
                    outcomes.append(outcome)
                    if outcome.error is not None and self._stop_on_publish_error:
                        raise outcome.error
        finally:
            if publisher is not None:
                publisher.shutdown(self._shutdown_timeout)

        report = PublishReport(topic=topic, encoding=encoding, outcomes=tuple(outcomes))
        _log(
            "publish_completed",
            topic=topic,
            published=report.published_count,
            failed=report.failed_count,
        )
        return report

    def _publish_one(self, publisher: MessagePublisher, index: int, message: OutgoingMessage) -> PublishOutcome:
        future = publisher.publish(message)
        try:
            message_id = future.result(timeout=self._publish_timeout)
        except (PubSubSnippetError, TimeoutError) as exc:
            logger.warning("publish failed for record {}: {}", index, exc)
            _log("publish_failed", topic=publisher.topic, index=index, error=str(exc))
            return PublishOutcome(index=index, error=exc)
        _log("message_published", topic=publisher.topic, index=index, message_id=message_id)
        return PublishOutcome(index=index, message_id=message_id)
