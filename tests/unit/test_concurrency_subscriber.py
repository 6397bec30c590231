"""Concurrency-controlled subscriber over the in-memory streaming pull."""
from __future__ import annotations

import threading
import time

import pytest

from snippets.app.application.concurrency_subscriber import ConcurrencyControlledSubscriber
from snippets.app.constants import SubscriberState
from snippets.app.domain.errors import NotFoundError
from snippets.app.domain.models import OutgoingMessage
from snippets.app.domain.resource_names import subscription_path, topic_path
from tests.test_data import PROJECT_ID


def _publish(service, count: int) -> list[str]:
    topic = topic_path(PROJECT_ID, "plain-topic")
    return [service.publish(topic, OutgoingMessage(data=f"message-{i}".encode())) for i in range(count)]


def _wait_until(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


def test_every_message_is_acked_once(clients, service, subscription):
    ids = _publish(service, 10)
    subscriber = ConcurrencyControlledSubscriber(
        clients.subscriber(), subscription, parallel_pull_count=2, executor_thread_count=4
    )

    subscriber.start()
    _wait_until(lambda: subscriber.acked_count == 10)
    subscriber.stop()

    assert subscriber.state == SubscriberState.STOPPED
    assert sorted(service.acked(subscription)) == sorted(ids)
    assert sorted(service.delivered(subscription)) == sorted(ids)
    assert subscriber.delivered_count == 10


def test_callbacks_never_exceed_slot_count(clients, service, subscription):
    _publish(service, 24)
    lock = threading.Lock()
    active = 0
    peak = 0

    def slow_ack(message):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1
        message.ack()

    subscriber = ConcurrencyControlledSubscriber(
        clients.subscriber(), subscription, slow_ack, parallel_pull_count=2, executor_thread_count=3
    )
    subscriber.start()
    _wait_until(lambda: subscriber.acked_count == 24)
    subscriber.stop()

    assert subscriber.slot_count == 6
    assert 1 <= peak <= 6


def test_nacked_message_is_redelivered(clients, service, subscription):
    (message_id,) = _publish(service, 1)
    attempts: list[int] = []

    def nack_first(message):
        attempts.append(message.delivery_attempt)
        if message.delivery_attempt == 1:
            message.nack()
        else:
            message.ack()

    subscriber = ConcurrencyControlledSubscriber(clients.subscriber(), subscription, nack_first)
    subscriber.start()
    _wait_until(lambda: subscriber.acked_count == 1)
    subscriber.stop()

    assert attempts == [1, 2]
    assert service.nacked(subscription) == [message_id]
    assert service.acked(subscription) == [message_id]
    assert subscriber.nacked_count == 1


def test_failing_callback_nacks_and_message_comes_back(clients, service, subscription):
    (message_id,) = _publish(service, 1)
    calls = []

    def fail_once(message):
        calls.append(message.message_id)
        if len(calls) == 1:
            raise RuntimeError("boom")
        message.ack()

    subscriber = ConcurrencyControlledSubscriber(clients.subscriber(), subscription, fail_once)
    subscriber.start()
    _wait_until(lambda: subscriber.acked_count == 1)
    subscriber.stop()

    assert calls == [message_id, message_id]
    assert subscriber.callback_error_count == 1
    assert service.nacked(subscription) == [message_id]


def test_second_decision_on_a_message_is_ignored(clients, service, subscription):
    (message_id,) = _publish(service, 1)

    def ack_then_nack(message):
        message.ack()
        message.nack()

    subscriber = ConcurrencyControlledSubscriber(clients.subscriber(), subscription, ack_then_nack)
    subscriber.start()
    _wait_until(lambda: subscriber.acked_count == 1)
    subscriber.stop()

    assert service.acked(subscription) == [message_id]
    assert service.nacked(subscription) == []
    assert subscriber.nacked_count == 0


def test_default_callback_acks(clients, service, subscription):
    _publish(service, 3)
    subscriber = ConcurrencyControlledSubscriber(clients.subscriber(), subscription)

    subscriber.start()
    _wait_until(lambda: subscriber.acked_count == 3)
    subscriber.stop()

    assert len(service.acked(subscription)) == 3


def test_run_returns_after_timeout_and_stops(clients, subscription):
    subscriber = ConcurrencyControlledSubscriber(clients.subscriber(), subscription)

    subscriber.run(timeout=0.1)

    assert subscriber.state == SubscriberState.STOPPED


def test_stop_waits_for_in_flight_callbacks(clients, service, subscription):
    _publish(service, 1)
    started = threading.Event()
    finished = threading.Event()

    def slow(message):
        started.set()
        time.sleep(0.2)
        message.ack()
        finished.set()

    subscriber = ConcurrencyControlledSubscriber(clients.subscriber(), subscription, slow)
    subscriber.start()
    assert started.wait(5)
    subscriber.stop()

    assert finished.is_set()
    assert subscriber.acked_count == 1


def test_missing_subscription_raises_not_found(clients):
    subscriber = ConcurrencyControlledSubscriber(
        clients.subscriber(), subscription_path(PROJECT_ID, "missing-sub")
    )

    with pytest.raises(NotFoundError):
        subscriber.run(timeout=5)

    assert subscriber.state == SubscriberState.STOPPED


def test_lifecycle_transitions(clients, subscription):
    subscriber = ConcurrencyControlledSubscriber(clients.subscriber(), subscription)
    assert subscriber.state == SubscriberState.CREATED

    subscriber.start()
    assert subscriber.state == SubscriberState.RUNNING
    with pytest.raises(RuntimeError):
        subscriber.start()

    subscriber.stop()
    subscriber.stop()
    assert subscriber.state == SubscriberState.STOPPED
    with pytest.raises(RuntimeError):
        subscriber.start()


def test_stop_before_start_goes_straight_to_stopped(clients, subscription):
    client = clients.subscriber()
    subscriber = ConcurrencyControlledSubscriber(client, subscription)

    subscriber.stop()

    assert subscriber.state == SubscriberState.STOPPED
    assert client.closed
    with pytest.raises(RuntimeError):
        subscriber.start()


def test_stop_after_run_closes_subscriber_client(clients, subscription):
    client = clients.subscriber()
    subscriber = ConcurrencyControlledSubscriber(client, subscription)

    subscriber.run(timeout=0.1)

    assert client.closed


@pytest.mark.parametrize("streams,threads", [(0, 1), (1, 0)])
def test_counts_must_be_positive(clients, subscription, streams, threads):
    with pytest.raises(ValueError):
        ConcurrencyControlledSubscriber(
            clients.subscriber(), subscription, parallel_pull_count=streams, executor_thread_count=threads
        )
