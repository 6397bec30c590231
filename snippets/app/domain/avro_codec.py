"""Avro helpers built on fastavro.

Schema documents are validated with ``fastavro.parse_schema`` and kept in two
forms: the normalized JSON text that is sent to the schema service, and the
Parsing Canonical Form used to compare two definitions for equivalence.
Container files are read with ``fastavro.reader`` resolved against the
registered schema, so a file written with an incompatible schema fails on read
instead of producing payloads the topic would reject. JSON payloads use
Avro JSON encoding via ``fastavro.json_writer`` and ``fastavro.json_reader``.
"""
from __future__ import annotations

import io
import json
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence

import fastavro
from fastavro.io.json_decoder import AvroJSONDecoder
from fastavro.io.symbols import Union as UnionSymbol
from fastavro.schema import to_parsing_canonical_form
from fastavro.validation import ValidationError, validate

from snippets.app.constants import Encoding
from snippets.app.domain.errors import (
    DecodeError,
    EncodeError,
    SchemaParseError,
    UnsupportedEncodingError,
)

RecordEncoder = Callable[[dict[str, Any]], bytes]


@dataclass(frozen=True)
class ParsedSchema:
    """A validated Avro schema."""

    parsed: Any
    definition: str
    canonical_form: str

    @property
    def name(self) -> str | None:
        if isinstance(self.parsed, dict):
            return self.parsed.get("name")
        return None

    def equivalent_to(self, other: "ParsedSchema") -> bool:
        return self.canonical_form == other.canonical_form


def parse_schema_definition(text: str) -> ParsedSchema:
    """Parse an Avro schema written in JSON; raise SchemaParseError when invalid."""
    try:
        document = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise SchemaParseError(f"schema is not valid JSON: {exc}") from exc
    try:
        parsed = fastavro.parse_schema(document)
        canonical = to_parsing_canonical_form(parsed)
    except Exception as exc:
        raise SchemaParseError(f"invalid Avro schema: {exc}") from exc
    return ParsedSchema(
        parsed=parsed,
        definition=json.dumps(document, separators=(",", ":")),
        canonical_form=canonical,
    )


def load_schema_file(path: str | Path) -> ParsedSchema:
    """Read and parse an ``.avsc`` file. Missing files raise OSError."""
    text = Path(path).read_text(encoding="utf-8")
    return parse_schema_definition(text)


@contextmanager
def open_records(path: str | Path, reader_schema: ParsedSchema | None = None) -> Iterator[Iterator[dict[str, Any]]]:
    """Open an Avro object-container file for sequential record reads.

    Records are resolved against ``reader_schema`` when given. The file handle
    is closed when the context exits, including on error.
    """
    with open(path, "rb") as fo:
        try:
            avro_reader = fastavro.reader(
                fo,
                reader_schema=reader_schema.parsed if reader_schema is not None else None,
            )
        except Exception as exc:
            raise DecodeError(f"cannot read Avro container {path}: {exc}") from exc
        yield _iter_records(avro_reader, path)


def _iter_records(avro_reader: Any, path: str | Path) -> Iterator[dict[str, Any]]:
    try:
        for record in avro_reader:
            yield record
    except Exception as exc:
        raise DecodeError(f"cannot decode record from {path}: {exc}") from exc


def encode_binary(record: dict[str, Any], schema: ParsedSchema) -> bytes:
    """Serialize ``record`` as schemaless Avro binary using ``schema``."""
    try:
        validate(record, schema.parsed, raise_errors=True)
        buffer = io.BytesIO()
        fastavro.schemaless_writer(buffer, schema.parsed, record)
    except (ValidationError, TypeError, ValueError, KeyError) as exc:
        raise EncodeError(f"record does not match schema {schema.name}: {exc}") from exc
    return buffer.getvalue()


def decode_binary(data: bytes, schema: ParsedSchema) -> dict[str, Any]:
    try:
        return fastavro.schemaless_reader(io.BytesIO(data), schema.parsed)
    except Exception as exc:
        raise DecodeError(f"cannot decode binary payload: {exc}") from exc


_UNNAMED_LABELS = {"null", "boolean", "int", "long", "float", "double", "bytes", "string", "array", "map"}


def _union_branch(labels: Sequence[str], value: Any) -> int:
    if value is None:
        wanted: tuple[str, ...] = ("null",)
    elif isinstance(value, bool):
        wanted = ("boolean",)
    elif isinstance(value, int):
        wanted = ("int", "long", "float", "double")
    elif isinstance(value, float):
        wanted = ("double", "float")
    elif isinstance(value, str):
        wanted = ("string", "bytes")
    elif isinstance(value, list):
        wanted = ("array",)
    else:
        wanted = ()
    for label in wanted:
        if label in labels:
            return labels.index(label)
    if isinstance(value, (str, dict)):
        # enum and fixed take strings, records take objects
        for index, label in enumerate(labels):
            if label not in _UNNAMED_LABELS:
                return index
        if isinstance(value, dict) and "map" in labels:
            return labels.index("map")
    raise ValueError(f"no branch of union {list(labels)} accepts {type(value).__name__}")


class _PlainUnionJSONDecoder(AvroJSONDecoder):
    """Avro JSON decoder for union values written without their branch name.

    ``json_writer(..., write_union_type=False)`` writes ``{"note": "hi"}``
    rather than ``{"note": {"string": "hi"}}``; the branch is picked from the
    JSON value instead.
    """

    def read_index(self):
        if self._key is not None and self._key not in self._current:
            return super().read_index()
        value = self._current if self._key is None else self._current[self._key]
        self._parser.advance(UnionSymbol())
        alternatives = self._parser.pop_symbol()
        index = _union_branch(alternatives.labels, value)
        self._parser.push_symbol(alternatives.get_symbol(index))
        return index


def encode_json(record: dict[str, Any], schema: ParsedSchema) -> bytes:
    """Render ``record`` in Avro JSON encoding as UTF-8 text.

    Bytes and fixed values become ISO-8859-1 strings and logical types are
    written as their underlying type, so a timestamp-millis field is a long.
    Union values are not wrapped in their branch name.
    """
    try:
        validate(record, schema.parsed, raise_errors=True)
        buffer = io.StringIO()
        fastavro.json_writer(buffer, schema.parsed, [record], write_union_type=False)
    except (ValidationError, TypeError, ValueError, KeyError) as exc:
        raise EncodeError(f"record does not match schema {schema.name}: {exc}") from exc
    return buffer.getvalue().encode("utf-8")


def decode_json(data: bytes, schema: ParsedSchema) -> dict[str, Any]:
    """Read one ``encode_json`` payload back and check it against ``schema``."""
    try:
        text = data.decode("utf-8")
        records = list(fastavro.json_reader(io.StringIO(text), schema.parsed, decoder=_PlainUnionJSONDecoder))
        if len(records) != 1:
            raise ValueError(f"expected one JSON record, found {len(records)}")
        validate(records[0], schema.parsed, raise_errors=True)
    except Exception as exc:
        raise DecodeError(f"cannot decode JSON payload: {exc}") from exc
    return records[0]


def record_encoder(encoding: Encoding, schema: ParsedSchema) -> RecordEncoder:
    """Return the per-record encoder matching a topic encoding."""
    if encoding == Encoding.BINARY:
        return lambda record: encode_binary(record, schema)
    if encoding == Encoding.JSON:
        return lambda record: encode_json(record, schema)
    raise UnsupportedEncodingError(f"unsupported topic encoding: {encoding.value}")
