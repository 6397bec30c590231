"""Error taxonomy surfaced to entry points. Adapters translate vendor errors into these."""
from __future__ import annotations


class PubSubSnippetError(Exception):
    """Base for all errors raised by the snippet programs."""


class SchemaParseError(PubSubSnippetError):
    """Schema document is not valid JSON or not a valid Avro schema."""


class NotFoundError(PubSubSnippetError):
    """Referenced schema, topic or subscription does not exist."""


class ServiceError(PubSubSnippetError):
    """Remote call rejected or failed in transport."""


class AlreadyExistsError(ServiceError):
    """Resource id is already taken."""


class DecodeError(PubSubSnippetError):
    """Avro container is corrupt or its records do not match the registered schema."""


class EncodeError(PubSubSnippetError):
    """A record could not be serialized into the topic encoding."""


class UnsupportedEncodingError(PubSubSnippetError):
    """Topic carries no schema encoding this project can publish."""
