"""Adapter: wrap a streaming-pull Message to implement ports.ReceivedMessage."""
from __future__ import annotations

from typing import Mapping

from google.cloud.pubsub_v1.subscriber.message import Message

from snippets.app.infrastructure.acknowledgement import SettleOnceMessage


class GcpReceivedMessage(SettleOnceMessage):
    def __init__(self, message: Message) -> None:
        super().__init__()
        self._message = message

    @property
    def message_id(self) -> str:
        return self._message.message_id

    @property
    def data(self) -> bytes:
        return self._message.data

    @property
    def attributes(self) -> Mapping[str, str]:
        return dict(self._message.attributes)

    @property
    def delivery_attempt(self) -> int | None:
        return self._message.delivery_attempt

    def _ack(self) -> None:
        self._message.ack()

    def _nack(self) -> None:
        self._message.nack()
