"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass, field

from snippets.app.constants import Encoding, SchemaType


@dataclass(frozen=True)
class SchemaInfo:
    """A registered schema as returned by the schema service."""

    name: str
    type: SchemaType
    definition: str


@dataclass(frozen=True)
class TopicInfo:
    """Read-only view of a topic's schema settings."""

    name: str
    encoding: Encoding = Encoding.ENCODING_UNSPECIFIED
    schema_name: str | None = None


@dataclass(frozen=True)
class OutgoingMessage:
    """Opaque payload plus optional attributes, submitted to a topic."""

    data: bytes
    attributes: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytes):
            raise TypeError("message.data must be bytes")
        for key, value in self.attributes.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise TypeError("message.attributes must map str to str")


@dataclass(frozen=True)
class PublishOutcome:
    """Result for one source record. Exactly one of message_id / error is set."""

    index: int
    message_id: str | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.message_id is not None


@dataclass(frozen=True)
class PublishReport:
    """Per-record outcomes of one publish run, in file order."""

    topic: str
    encoding: Encoding
    outcomes: tuple[PublishOutcome, ...] = ()

    @property
    def published_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.published_count

    @property
    def message_ids(self) -> list[str]:
        return [o.message_id for o in self.outcomes if o.message_id is not None]
