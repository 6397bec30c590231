"""Enumerations shared across ports, adapters and application services."""
from __future__ import annotations

from enum import Enum


class SchemaType(str, Enum):
    TYPE_UNSPECIFIED = "TYPE_UNSPECIFIED"
    PROTOCOL_BUFFER = "PROTOCOL_BUFFER"
    AVRO = "AVRO"


class Encoding(str, Enum):
    """Wire encoding a topic expects for schema-validated messages."""

    ENCODING_UNSPECIFIED = "ENCODING_UNSPECIFIED"
    JSON = "JSON"
    BINARY = "BINARY"


class PublisherState(str, Enum):
    READY = "READY"
    SHUTTING_DOWN = "SHUTTING_DOWN"
    TERMINATED = "TERMINATED"


class SubscriberState(str, Enum):
    CREATED = "CREATED"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
