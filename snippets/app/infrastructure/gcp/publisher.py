"""
Pub/Sub publisher bound to one topic.

Lifecycle:
  READY -> SHUTTING_DOWN (stop accepting, flush batches, bounded wait) -> TERMINATED.

Each publish() hands the message to the client's batcher and returns a plain
concurrent.futures.Future that resolves to the message id, or fails with a
translated ServiceError for that message only.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Future, wait
from typing import Any

from google.api_core import exceptions as api_exceptions
from google.cloud import pubsub_v1
from loguru import logger

from snippets.app.constants import PublisherState
from snippets.app.core import SERVICE_NAME
from snippets.app.domain.errors import ServiceError
from snippets.app.domain.models import OutgoingMessage
from snippets.app.infrastructure.gcp.errors import translate_api_error


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class GcpMessagePublisher:
    """Implements ports.message_publisher.MessagePublisher."""

    def __init__(self, topic_path: str, client: pubsub_v1.PublisherClient | None = None) -> None:
        self._topic = topic_path
        self._client = client or pubsub_v1.PublisherClient()
        self._state = PublisherState.READY
        self._lock = threading.Lock()
        self._in_flight: set[Future] = set()

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def state(self) -> PublisherState:
        return self._state

    def publish(self, message: OutgoingMessage) -> "Future[str]":
        with self._lock:
            if self._state != PublisherState.READY:
                _log("publish_rejected", topic=self._topic, reason="publisher_not_ready")
                raise RuntimeError("publisher_not_ready")
            try:
                source = self._client.publish(self._topic, message.data, **message.attributes)
            except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as exc:
                raise translate_api_error(exc, self._topic) from exc
            result: Future[str] = Future()
            result.set_running_or_notify_cancel()
            self._in_flight.add(result)
        source.add_done_callback(lambda done: self._resolve(done, result))
        return result

    def _resolve(self, source: Any, result: "Future[str]") -> None:
        try:
            message_id = source.result()
        except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as exc:
            result.set_exception(translate_api_error(exc, self._topic))
        except Exception as exc:
            result.set_exception(ServiceError(f"{self._topic}: publish failed: {exc}"))
        else:
            result.set_result(message_id)
        finally:
            with self._lock:
                self._in_flight.discard(result)

    def shutdown(self, timeout: float) -> bool:
        with self._lock:
            if self._state != PublisherState.READY:
                return self._state == PublisherState.TERMINATED
            self._state = PublisherState.SHUTTING_DOWN
            in_flight = list(self._in_flight)
        _log("publisher_shutdown", topic=self._topic, in_flight=len(in_flight))

        deadline = time.monotonic() + timeout
        stopper = threading.Thread(target=self._stop_client, name="publisher-shutdown", daemon=True)
        stopper.start()
        stopper.join(timeout)
        _, not_done = wait(in_flight, timeout=max(0.0, deadline - time.monotonic()))
        with self._lock:
            self._state = PublisherState.TERMINATED

        if stopper.is_alive() or not_done:
            _log("publisher_shutdown_timeout", topic=self._topic, pending=len(not_done))
            return False
        _log("publisher_terminated", topic=self._topic)
        return True

    def _stop_client(self) -> None:
        try:
            self._client.stop()
        except Exception as e:
            logger.warning("publisher client stop failed: {}", e)
