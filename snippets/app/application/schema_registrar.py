"""Registers an Avro schema read from a local ``.avsc`` file."""
from __future__ import annotations

from contextlib import closing
from pathlib import Path
from typing import Any

from loguru import logger

from snippets.app.constants import SchemaType
from snippets.app.core import SERVICE_NAME
from snippets.app.domain.avro_codec import load_schema_file
from snippets.app.domain.models import SchemaInfo
from snippets.app.domain.resource_names import project_path, schema_path
from snippets.app.ports.client_factory import PubSubClientFactory


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class SchemaRegistrar:
    def __init__(self, clients: PubSubClientFactory) -> None:
        self._clients = clients

    def create_avro_schema(self, project_id: str, schema_id: str, avsc_file: str | Path) -> SchemaInfo:
        """
        Parse avsc_file locally, then create it as an AVRO schema named schema_id.

        SchemaParseError is raised before any remote call. A taken schema_id
        raises AlreadyExistsError whatever the definition.
        """
        parent = project_path(project_id)
        name = schema_path(project_id, schema_id)
        parsed = load_schema_file(avsc_file)
        _log("schema_parsed", schema=name, avro_name=parsed.name)

        with closing(self._clients.schema_service()) as schema_client:
            schema = schema_client.create_schema(parent, schema_id, SchemaType.AVRO, parsed.definition)

        _log("schema_created", schema=schema.name)
        return schema
