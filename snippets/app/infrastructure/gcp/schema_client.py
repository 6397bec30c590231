"""SchemaServiceClient port backed by google.cloud.pubsub.SchemaServiceClient."""
from __future__ import annotations

from typing import Any

from google.api_core import exceptions as api_exceptions
from google.cloud.pubsub import SchemaServiceClient as GapicSchemaServiceClient
from google.pubsub_v1.types import Schema

from snippets.app.constants import SchemaType
from snippets.app.domain.models import SchemaInfo
from snippets.app.infrastructure.gcp.errors import translate_api_error


def _to_schema_info(schema: Any) -> SchemaInfo:
    return SchemaInfo(
        name=schema.name,
        type=SchemaType(schema.type_.name),
        definition=schema.definition,
    )


class GcpSchemaServiceClient:
    """Implements ports.schema_service.SchemaServiceClient."""

    def __init__(self, client: GapicSchemaServiceClient | None = None) -> None:
        self._client = client or GapicSchemaServiceClient()

    def create_schema(
        self,
        project_path: str,
        schema_id: str,
        schema_type: SchemaType,
        definition: str,
    ) -> SchemaInfo:
        schema_name = f"{project_path}/schemas/{schema_id}"
        schema = Schema(
            name=schema_name,
            type_=Schema.Type[schema_type.value],
            definition=definition,
        )
        try:
            result = self._client.create_schema(
                request={"parent": project_path, "schema": schema, "schema_id": schema_id}
            )
        except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as exc:
            raise translate_api_error(exc, schema_name) from exc
        return _to_schema_info(result)

    def get_schema(self, schema_path: str) -> SchemaInfo:
        try:
            result = self._client.get_schema(request={"name": schema_path})
        except (api_exceptions.GoogleAPICallError, api_exceptions.RetryError) as exc:
            raise translate_api_error(exc, schema_path) from exc
        return _to_schema_info(result)

    def close(self) -> None:
        self._client.transport.close()
