"""Settings for the snippet programs."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    project_id: str = Field("", validation_alias=AliasChoices("PROJECT_ID", "GOOGLE_CLOUD_PROJECT"))
    schema_id: str = Field("", validation_alias="SCHEMA_ID")
    topic_id: str = Field("", validation_alias="TOPIC_ID")
    subscription_id: str = Field("", validation_alias="SUBSCRIPTION_ID")

    # Avro schema document in JSON (.avsc) and Avro object-container file.
    avsc_file: str = Field("", validation_alias="AVSC_FILE")
    avro_file: str = Field("", validation_alias="AVRO_FILE")

    pubsub_backend: str = Field("gcp", validation_alias="PUBSUB_BACKEND")

    publish_timeout_seconds: float = Field(30.0, gt=0, validation_alias="PUBLISH_TIMEOUT_SECONDS")
    publisher_shutdown_timeout_seconds: float = Field(
        60.0,
        gt=0,
        validation_alias="PUBLISHER_SHUTDOWN_TIMEOUT_SECONDS",
    )
    stop_on_publish_error: bool = Field(False, validation_alias="STOP_ON_PUBLISH_ERROR")

    parallel_pull_count: int = Field(1, ge=1, validation_alias="PARALLEL_PULL_COUNT")
    executor_thread_count: int = Field(5, ge=1, validation_alias="EXECUTOR_THREAD_COUNT")
    subscribe_timeout_seconds: float = Field(30.0, gt=0, validation_alias="SUBSCRIBE_TIMEOUT_SECONDS")
    # None waits for in-flight callbacks without a bound.
    subscriber_shutdown_timeout_seconds: float | None = Field(
        None,
        gt=0,
        validation_alias="SUBSCRIBER_SHUTDOWN_TIMEOUT_SECONDS",
    )

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(True, validation_alias="LOG_JSON")
