"""
Subscriber with concurrency control: N pull streams, each with its own pool of M workers.

Lifecycle:
  CREATED -> RUNNING (start) -> STOPPING (timeout, stop() or stream failure) -> STOPPED.
  A STOPPED subscriber cannot be restarted; build a new one.

Concurrency:
  - Up to parallel_pull_count * executor_thread_count callbacks run at once,
    in no particular order across streams. The callback must be thread-safe.
  - The default callback only logs and acks; loguru serializes sink writes, so
    it needs no lock of its own.
  - Counters are updated under _lock from worker threads.
  - stop() cancels pulling and waits for in-flight callbacks; it never
    interrupts a running callback.
"""
from __future__ import annotations

import threading
from typing import Any, Mapping

from loguru import logger

from snippets.app.constants import SubscriberState
from snippets.app.core import SERVICE_NAME
from snippets.app.domain.errors import PubSubSnippetError
from snippets.app.ports.incoming_message import ReceivedMessage
from snippets.app.ports.message_subscriber import MessageCallback, MessageSubscriber, StreamingPull

DEFAULT_PARALLEL_PULL_COUNT = 1
DEFAULT_EXECUTOR_THREAD_COUNT = 5


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def log_and_ack(message: ReceivedMessage) -> None:
    """Default receive callback: log the message id and data, then ack."""
    _log(
        "message_received",
        message_id=message.message_id,
        data=message.data.decode("utf-8", errors="replace"),
        attributes=dict(message.attributes),
    )
    message.ack()


class _TrackedMessage:
    """Forwards to the delivered message and reports its first ack/nack."""

    def __init__(self, message: ReceivedMessage, owner: "ConcurrencyControlledSubscriber") -> None:
        self._message = message
        self._owner = owner
        self._lock = threading.Lock()
        self.decision: str | None = None

    @property
    def message_id(self) -> str:
        return self._message.message_id

    @property
    def data(self) -> bytes:
        return self._message.data

    @property
    def attributes(self) -> Mapping[str, str]:
        return self._message.attributes

    @property
    def delivery_attempt(self) -> int | None:
        return self._message.delivery_attempt

    def ack(self) -> None:
        if self._decide("ack"):
            self._message.ack()
            self._owner._record("ack")

    def nack(self) -> None:
        if self._decide("nack"):
            self._message.nack()
            self._owner._record("nack")

    def _decide(self, decision: str) -> bool:
        with self._lock:
            if self.decision is not None:
                return False
            self.decision = decision
        return True


class ConcurrencyControlledSubscriber:
    def __init__(
        self,
        subscriber: MessageSubscriber,
        subscription_path: str,
        callback: MessageCallback | None = None,
        *,
        parallel_pull_count: int = DEFAULT_PARALLEL_PULL_COUNT,
        executor_thread_count: int = DEFAULT_EXECUTOR_THREAD_COUNT,
        shutdown_timeout_seconds: float | None = None,
    ) -> None:
        if parallel_pull_count < 1:
            raise ValueError("parallel_pull_count must be >= 1")
        if executor_thread_count < 1:
            raise ValueError("executor_thread_count must be >= 1")
        self._subscriber = subscriber
        self._subscription = subscription_path
        self._callback = callback or log_and_ack
        self._parallel_pull_count = parallel_pull_count
        self._executor_thread_count = executor_thread_count
        self._shutdown_timeout = shutdown_timeout_seconds
        self._state = SubscriberState.CREATED
        self._lock = threading.Lock()
        self._pull: StreamingPull | None = None
        self._counts = {"delivered": 0, "ack": 0, "nack": 0, "callback_error": 0}

    @property
    def state(self) -> SubscriberState:
        return self._state

    @property
    def slot_count(self) -> int:
        """Total concurrent callback slots."""
        return self._parallel_pull_count * self._executor_thread_count

    @property
    def delivered_count(self) -> int:
        return self._counts["delivered"]

    @property
    def acked_count(self) -> int:
        return self._counts["ack"]

    @property
    def nacked_count(self) -> int:
        return self._counts["nack"]

    @property
    def callback_error_count(self) -> int:
        return self._counts["callback_error"]

    def _record(self, key: str) -> None:
        with self._lock:
            self._counts[key] += 1

    def start(self) -> None:
        with self._lock:
            if self._state != SubscriberState.CREATED:
                raise RuntimeError(f"subscriber cannot start from state {self._state.value}")
            self._state = SubscriberState.RUNNING
        try:
            self._pull = self._subscriber.subscribe(
                self._subscription,
                self._on_message,
                parallel_pull_count=self._parallel_pull_count,
                executor_thread_count=self._executor_thread_count,
            )
        except Exception:
            self._state = SubscriberState.STOPPED
            self._close_subscriber()
            raise
        _log(
            "subscriber_listening",
            subscription=self._subscription,
            streams=self._parallel_pull_count,
            threads_per_stream=self._executor_thread_count,
        )

    def run(self, timeout: float | None) -> None:
        """Start, then block until timeout elapses or a stream fails.

        An elapsed timeout triggers a graceful stop and returns normally; a
        stream failure stops the subscriber and propagates.
        """
        self.start()
        if self._pull is None:
            raise RuntimeError("subscriber started without a streaming pull")
        try:
            self._pull.result(timeout=timeout)
        except TimeoutError:
            _log("subscriber_timeout", subscription=self._subscription, timeout=timeout)
        except Exception as e:
            logger.exception("subscriber failed: {}", e)
            self.stop()
            raise
        self.stop()

    def stop(self) -> None:
        with self._lock:
            if self._state in (SubscriberState.STOPPING, SubscriberState.STOPPED):
                return
            never_started = self._state == SubscriberState.CREATED
            self._state = SubscriberState.STOPPED if never_started else SubscriberState.STOPPING
        if never_started:
            self._close_subscriber()
            return
        _log("subscriber_stopping", subscription=self._subscription)
        try:
            if self._pull is not None:
                self._pull.cancel()
                try:
                    self._pull.result(timeout=self._shutdown_timeout)
                except TimeoutError:
                    logger.warning("in-flight callbacks did not finish within {}s", self._shutdown_timeout)
                except PubSubSnippetError as e:
                    logger.warning("stream ended with error during shutdown: {}", e)
        finally:
            self._close_subscriber()
            self._state = SubscriberState.STOPPED
            _log(
                "subscriber_stopped",
                subscription=self._subscription,
                delivered=self.delivered_count,
                acked=self.acked_count,
                nacked=self.nacked_count,
            )

    def _close_subscriber(self) -> None:
        try:
            self._subscriber.close()
        except Exception as e:
            logger.warning("subscriber close failed: {}", e)

    def _on_message(self, message: ReceivedMessage) -> None:
        self._record("delivered")
        tracked = _TrackedMessage(message, self)
        try:
            self._callback(tracked)
        except Exception as e:
            self._record("callback_error")
            logger.exception("receive callback failed for message {}: {}", message.message_id, e)
            tracked.nack()
