"""
Streaming-pull subscriber with concurrency control.

The Python client opens one StreamingPull stream per subscribe() call, so
parallel_pull_count streams are opened on one SubscriberClient. Each stream
gets its own ThreadScheduler over a ThreadPoolExecutor of
executor_thread_count workers; callbacks run on those workers, so at most
parallel_pull_count * executor_thread_count run at once. Streams are opened
with await_callbacks_on_shutdown so cancelling waits for in-flight callbacks.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

from google.api_core import exceptions as api_exceptions
from google.cloud import pubsub_v1
from google.cloud.pubsub_v1.subscriber.message import Message
from google.cloud.pubsub_v1.subscriber.scheduler import ThreadScheduler
from loguru import logger

from snippets.app.core import SERVICE_NAME
from snippets.app.infrastructure.gcp.errors import translate_api_error
from snippets.app.infrastructure.gcp.message_adapter import GcpReceivedMessage
from snippets.app.infrastructure.streaming import CompositeStreamingPull
from snippets.app.ports.message_subscriber import MessageCallback


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class GcpMessageSubscriber:
    """Implements ports.message_subscriber.MessageSubscriber."""

    def __init__(self, client: pubsub_v1.SubscriberClient | None = None) -> None:
        self._client = client or pubsub_v1.SubscriberClient()

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

        def on_message(message: Message) -> None:
            callback(GcpReceivedMessage(message))

        futures = []
        for stream in range(parallel_pull_count):
            executor = ThreadPoolExecutor(
                max_workers=executor_thread_count,
                thread_name_prefix=f"pull-stream-{stream}",
            )
            try:
                future = self._client.subscribe(
                    subscription_path,
                    callback=on_message,
                    scheduler=ThreadScheduler(executor=executor),
                    await_callbacks_on_shutdown=True,
                )
            except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as exc:
                executor.shutdown(wait=False)
                for opened in futures:
                    opened.cancel()
                raise translate_api_error(exc, subscription_path) from exc
            futures.append(future)

        _log(
            "streams_opened",
            subscription=subscription_path,
            streams=parallel_pull_count,
            threads_per_stream=executor_thread_count,
        )
        return CompositeStreamingPull(
            futures,
            translate_error=lambda exc: translate_api_error(exc, subscription_path),
        )

    def close(self) -> None:
        self._client.close()
