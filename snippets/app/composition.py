"""
Composition root: single place where concrete implementations are wired.

Builds the client factory for the configured backend and the three services
from settings. Service client handles are not created here: each service
opens and closes its own handles around the calls that need them.
"""
from __future__ import annotations

from snippets.app.application.avro_publisher import AvroRecordPublisher
from snippets.app.application.concurrency_subscriber import ConcurrencyControlledSubscriber
from snippets.app.application.schema_registrar import SchemaRegistrar
from snippets.app.config.settings import Settings
from snippets.app.domain.resource_names import subscription_path
from snippets.app.infrastructure.factory import create_client_factory
from snippets.app.ports.client_factory import PubSubClientFactory
from snippets.app.ports.message_subscriber import MessageCallback


class SnippetDependencies:
    """Holds the wired client factory and builds services from settings."""

    def __init__(self, *, settings: Settings, clients: PubSubClientFactory) -> None:
        self._settings = settings
        self._clients = clients

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def clients(self) -> PubSubClientFactory:
        return self._clients

    def schema_registrar(self) -> SchemaRegistrar:
        return SchemaRegistrar(self._clients)

    def avro_publisher(self) -> AvroRecordPublisher:
        return AvroRecordPublisher(
            self._clients,
            publish_timeout_seconds=self._settings.publish_timeout_seconds,
            shutdown_timeout_seconds=self._settings.publisher_shutdown_timeout_seconds,
            stop_on_publish_error=self._settings.stop_on_publish_error,
        )

    def concurrency_subscriber(
        self,
        project_id: str,
        subscription_id: str,
        callback: MessageCallback | None = None,
    ) -> ConcurrencyControlledSubscriber:
        return ConcurrencyControlledSubscriber(
            self._clients.subscriber(),
            subscription_path(project_id, subscription_id),
            callback,
            parallel_pull_count=self._settings.parallel_pull_count,
            executor_thread_count=self._settings.executor_thread_count,
            shutdown_timeout_seconds=self._settings.subscriber_shutdown_timeout_seconds,
        )


def create_dependencies(
    settings: Settings | None = None,
    *,
    clients: PubSubClientFactory | None = None,
) -> SnippetDependencies:
    _settings = settings or Settings()
    return SnippetDependencies(
        settings=_settings,
        clients=clients or create_client_factory(_settings),
    )
