"""Port: abstraction for a delivered message. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Mapping, Protocol


class ReceivedMessage(Protocol):
    """Transport-agnostic delivered message paired with its acknowledgment handle."""

    @property
    def message_id(self) -> str: ...

    @property
    def data(self) -> bytes: ...

    @property
    def attributes(self) -> Mapping[str, str]: ...

    @property
    def delivery_attempt(self) -> int | None: ...

    def ack(self) -> None: ...

    def nack(self) -> None: ...
