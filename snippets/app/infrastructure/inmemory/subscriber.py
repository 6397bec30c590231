"""
In-memory streaming pull.

Each stream is a pull thread feeding its own ThreadPoolExecutor. A stream
only takes a delivery off the subscription queue when one of its workers is
free, so an idle stream picks up what a busy one cannot. A delivery is handed
to exactly one callback; a nack makes it available again.
"""
from __future__ import annotations

import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Mapping

from loguru import logger

from snippets.app.core import SERVICE_NAME
from snippets.app.infrastructure.acknowledgement import SettleOnceMessage
from snippets.app.infrastructure.inmemory.in_memory_service import Delivery, InMemoryPubSub
from snippets.app.infrastructure.streaming import CompositeStreamingPull
from snippets.app.ports.message_subscriber import MessageCallback

POLL_INTERVAL_SECONDS = 0.05


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class InMemoryReceivedMessage(SettleOnceMessage):
    def __init__(self, service: InMemoryPubSub, subscription_path: str, delivery: Delivery) -> None:
        super().__init__()
        self._service = service
        self._subscription = subscription_path
        self._delivery = delivery

    @property
    def message_id(self) -> str:
        return self._delivery.message_id

    @property
    def data(self) -> bytes:
        return self._delivery.message.data

    @property
    def attributes(self) -> Mapping[str, str]:
        return dict(self._delivery.message.attributes)

    @property
    def delivery_attempt(self) -> int | None:
        return self._delivery.attempt

    def _ack(self) -> None:
        self._service.record_ack(self._subscription, self._delivery)

    def _nack(self) -> None:
        self._service.record_nack(self._subscription, self._delivery)


class _PullStream(Future):
    """Future for one stream: resolves once the stream has drained its workers.

    cancel() requests shutdown instead of cancelling the future, matching the
    streaming-pull future of the real client.
    """

    def __init__(
        self,
        service: InMemoryPubSub,
        subscription_path: str,
        callback: MessageCallback,
        executor_thread_count: int,
        name: str,
    ) -> None:
        super().__init__()
        self.set_running_or_notify_cancel()
        self._service = service
        self._subscription = subscription_path
        self._callback = callback
        self._stop = threading.Event()
        self._slots = threading.Semaphore(executor_thread_count)
        self._executor = ThreadPoolExecutor(max_workers=executor_thread_count, thread_name_prefix=name)
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> bool:
        self._stop.set()
        return True

    def _run(self) -> None:
        try:
            pending = self._service.subscription_queue(self._subscription)
            while not self._stop.is_set():
                if not self._slots.acquire(timeout=POLL_INTERVAL_SECONDS):
                    continue
                try:
                    delivery = pending.get(timeout=POLL_INTERVAL_SECONDS)
                except queue.Empty:
                    self._slots.release()
                    continue
                self._executor.submit(self._dispatch, delivery)
        except Exception as exc:
            self._executor.shutdown(wait=True)
            self.set_exception(exc)
            return
        self._executor.shutdown(wait=True)
        self.set_result(True)

    def _dispatch(self, delivery: Delivery) -> None:
        try:
            self._service.record_delivery(self._subscription, delivery)
            self._callback(InMemoryReceivedMessage(self._service, self._subscription, delivery))
        except Exception as e:
            logger.exception("callback failed for message {}: {}", delivery.message_id, e)
        finally:
            self._slots.release()


class InMemoryMessageSubscriber:
    """Implements ports.message_subscriber.MessageSubscriber over InMemoryPubSub."""

    def __init__(self, service: InMemoryPubSub) -> None:
        self._service = service
        self._streams: list[_PullStream] = []
        self.closed = False

    def subscribe(
        self,
        subscription_path: str,
        callback: MessageCallback,
        *,
        parallel_pull_count: int = 1,
        executor_thread_count: int = 5,
    ) -> CompositeStreamingPull:
        if parallel_pull_count < 1 or executor_thread_count < 1:
            raise ValueError("parallel_pull_count and executor_thread_count must be >= 1")
        streams = [
            _PullStream(
                self._service,
                subscription_path,
                callback,
                executor_thread_count,
                name=f"pull-stream-{index}",
            )
            for index in range(parallel_pull_count)
        ]
        for stream in streams:
            stream.start()
        self._streams.extend(streams)
        _log(
            "streams_opened",
            subscription=subscription_path,
            streams=parallel_pull_count,
            threads_per_stream=executor_thread_count,
        )
        return CompositeStreamingPull(streams)

    def close(self) -> None:
        for stream in self._streams:
            stream.cancel()
        self._streams.clear()
        self.closed = True
