import json
from datetime import datetime, timezone

import pytest

from snippets.app.constants import Encoding, PublisherState, SchemaType
from snippets.app.domain.avro_codec import encode_binary, encode_json, parse_schema_definition
from snippets.app.domain.errors import AlreadyExistsError, NotFoundError, ServiceError
from snippets.app.domain.models import OutgoingMessage
from snippets.app.domain.resource_names import project_path, subscription_path, topic_path
from tests.test_data import EVENT_SCHEMA, PROJECT_ID, SINGLE_INT_SCHEMA


def test_invalid_avro_definition_is_rejected_by_service(service):
    with pytest.raises(ServiceError):
        service.create_schema(project_path(PROJECT_ID), "bad", SchemaType.AVRO, '{"type": "nope"}')


def test_duplicate_topic_and_subscription_rejected(service):
    topic = topic_path(PROJECT_ID, "t1")
    sub = subscription_path(PROJECT_ID, "s1")
    service.create_topic(topic)
    service.create_subscription(sub, topic)

    with pytest.raises(AlreadyExistsError):
        service.create_topic(topic)
    with pytest.raises(AlreadyExistsError):
        service.create_subscription(sub, topic)


def test_topic_with_unknown_schema_rejected(service):
    with pytest.raises(NotFoundError):
        service.create_topic(topic_path(PROJECT_ID, "t1"), encoding=Encoding.JSON, schema_name="projects/x/schemas/y")


def test_publish_fans_out_to_every_subscription(service):
    topic = topic_path(PROJECT_ID, "t1")
    service.create_topic(topic)
    subs = [subscription_path(PROJECT_ID, name) for name in ("a1a", "b1b")]
    for sub in subs:
        service.create_subscription(sub, topic)

    message_id = service.publish(topic, OutgoingMessage(data=b"hello", attributes={"k": "v"}))

    for sub in subs:
        delivery = service.subscription_queue(sub).get_nowait()
        assert delivery.message_id == message_id
        assert delivery.message.attributes == {"k": "v"}
        assert delivery.attempt == 1


def test_binary_topic_rejects_payload_that_does_not_decode(service, register_topic):
    topic = register_topic("t-bin", Encoding.BINARY, schema_id="s1", schema=SINGLE_INT_SCHEMA)
    schema = parse_schema_definition(json.dumps(SINGLE_INT_SCHEMA))

    assert service.publish(topic, OutgoingMessage(data=encode_binary({"x": 7}, schema))) == "1"
    with pytest.raises(ServiceError, match="rejected"):
        service.publish(topic, OutgoingMessage(data=b""))


@pytest.mark.parametrize("payload", [b"{not json", b'{"x": "one"}', b'{"y": 1}'])
def test_json_topic_rejects_payload_not_matching_schema(service, register_topic, payload):
    topic = register_topic("t1", Encoding.JSON, schema_id="s1", schema=SINGLE_INT_SCHEMA)

    with pytest.raises(ServiceError, match="rejected"):
        service.publish(topic, OutgoingMessage(data=payload))

    assert service.published[topic] == []


def test_json_topic_accepts_avro_json_payload(service, register_topic):
    topic = register_topic("t1", Encoding.JSON, schema_id="events", schema=EVENT_SCHEMA)
    schema = parse_schema_definition(json.dumps(EVENT_SCHEMA))
    record = {"raw": b"\x00\xff", "at": datetime(2024, 1, 2, tzinfo=timezone.utc), "note": "hi"}

    assert service.publish(topic, OutgoingMessage(data=encode_json(record, schema))) == "1"


def test_nack_requeues_with_next_attempt(service, subscription):
    service.publish(topic_path(PROJECT_ID, "plain-topic"), OutgoingMessage(data=b"x"))
    pending = service.subscription_queue(subscription)
    first = pending.get_nowait()

    service.record_nack(subscription, first)

    again = pending.get_nowait()
    assert (again.message_id, again.attempt) == (first.message_id, 2)
    assert service.nacked(subscription) == [first.message_id]


def test_publisher_futures_carry_service_errors(clients, service, subscription):
    topic = topic_path(PROJECT_ID, "plain-topic")
    publisher = clients.publisher(topic)
    service.fail_publishes(topic, ServiceError("down"))

    failed = publisher.publish(OutgoingMessage(data=b"x"))
    service.fail_publishes(topic, None)
    ok = publisher.publish(OutgoingMessage(data=b"y"))

    assert isinstance(failed.exception(), ServiceError)
    assert ok.result() == "1"


def test_publisher_rejects_after_shutdown(clients, subscription):
    publisher = clients.publisher(topic_path(PROJECT_ID, "plain-topic"))

    assert publisher.shutdown(1.0) is True
    assert publisher.state == PublisherState.TERMINATED
    with pytest.raises(RuntimeError):
        publisher.publish(OutgoingMessage(data=b"x"))


def test_outgoing_message_requires_bytes_and_string_attributes():
    with pytest.raises(TypeError):
        OutgoingMessage(data="text")
    with pytest.raises(TypeError):
        OutgoingMessage(data=b"x", attributes={"k": 1})
