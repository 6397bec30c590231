"""Client factory: selects the service backend from config."""
from __future__ import annotations

from snippets.app.config.settings import Settings
from snippets.app.infrastructure.inmemory.factory import InMemoryClientFactory
from snippets.app.infrastructure.inmemory.in_memory_service import InMemoryPubSub
from snippets.app.ports.client_factory import PubSubClientFactory


def create_client_factory(settings: Settings, *, service: InMemoryPubSub | None = None) -> PubSubClientFactory:
    backend = settings.pubsub_backend.strip().lower()

    if backend == "gcp":
        from snippets.app.infrastructure.gcp.factory import GcpClientFactory

        return GcpClientFactory()

    if backend == "inmemory":
        return InMemoryClientFactory(service or InMemoryPubSub())

    raise ValueError(f"Unsupported pubsub backend: {backend}")
