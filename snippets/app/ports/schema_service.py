"""Port: schema-management operations. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol

from snippets.app.constants import SchemaType
from snippets.app.domain.models import SchemaInfo


class SchemaServiceClient(Protocol):
    """Create and look up schemas. Short-lived: callers close it right after use."""

    def create_schema(
        self,
        project_path: str,
        schema_id: str,
        schema_type: SchemaType,
        definition: str,
    ) -> SchemaInfo:
        """Raise AlreadyExistsError for a taken id, ServiceError on other failures."""
        ...

    def get_schema(self, schema_path: str) -> SchemaInfo:
        """Raise NotFoundError when the schema does not exist."""
        ...

    def close(self) -> None: ...
