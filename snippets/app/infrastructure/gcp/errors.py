"""Translate google-api-core errors into the project's error taxonomy."""
from __future__ import annotations

from google.api_core import exceptions as api_exceptions

from snippets.app.domain.errors import (
    AlreadyExistsError,
    NotFoundError,
    PubSubSnippetError,
    ServiceError,
)


def translate_api_error(exc: BaseException, resource: str) -> PubSubSnippetError:
    if isinstance(exc, PubSubSnippetError):
        return exc
    if isinstance(exc, api_exceptions.NotFound):
        return NotFoundError(f"{resource} not found: {exc.message}")
    if isinstance(exc, api_exceptions.AlreadyExists):
        return AlreadyExistsError(f"{resource} already exists: {exc.message}")
    return ServiceError(f"{resource}: {exc}")
