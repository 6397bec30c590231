"""Entry points for the three snippet programs.

Ids and file paths come from the environment (see Settings) and can be
overridden per run with flags.
"""
from __future__ import annotations

import argparse
import sys
from typing import Any, Callable, Sequence

from loguru import logger

from snippets.app.composition import SnippetDependencies, create_dependencies
from snippets.app.config.settings import Settings
from snippets.app.core import SERVICE_NAME
from snippets.app.domain.errors import PubSubSnippetError


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper(), serialize=settings.log_json)


def _required(args: argparse.Namespace, settings: Settings, name: str) -> str:
    value = getattr(args, name, None) or getattr(settings, name)
    if not value:
        raise ValueError(f"{name} is required: pass --{name.replace('_', '-')} or set {name.upper()}")
    return value


def create_avro_schema(deps: SnippetDependencies, args: argparse.Namespace) -> None:
    settings = deps.settings
    deps.schema_registrar().create_avro_schema(
        _required(args, settings, "project_id"),
        _required(args, settings, "schema_id"),
        _required(args, settings, "avsc_file"),
    )


def publish_avro_records(deps: SnippetDependencies, args: argparse.Namespace) -> None:
    settings = deps.settings
    report = deps.avro_publisher().publish_file(
        _required(args, settings, "project_id"),
        _required(args, settings, "topic_id"),
        _required(args, settings, "schema_id"),
        _required(args, settings, "avro_file"),
    )
    if report.failed_count:
        raise PubSubSnippetError(f"{report.failed_count} of {len(report.outcomes)} records failed to publish")


def subscribe_with_concurrency_control(deps: SnippetDependencies, args: argparse.Namespace) -> None:
    settings = deps.settings
    subscriber = deps.concurrency_subscriber(
        _required(args, settings, "project_id"),
        _required(args, settings, "subscription_id"),
    )
    subscriber.run(timeout=args.timeout or settings.subscribe_timeout_seconds)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pubsub-snippets")
    commands = parser.add_subparsers(dest="command", required=True)

    schema = commands.add_parser("create-avro-schema", help="register an Avro schema from an .avsc file")
    schema.add_argument("--project-id")
    schema.add_argument("--schema-id")
    schema.add_argument("--avsc-file")
    schema.set_defaults(handler=create_avro_schema)

    publish = commands.add_parser("publish-avro-records", help="publish the records of an Avro file")
    publish.add_argument("--project-id")
    publish.add_argument("--topic-id")
    publish.add_argument("--schema-id")
    publish.add_argument("--avro-file")
    publish.set_defaults(handler=publish_avro_records)

    subscribe = commands.add_parser(
        "subscribe-with-concurrency-control",
        help="pull with several streams and worker threads for a bounded time",
    )
    subscribe.add_argument("--project-id")
    subscribe.add_argument("--subscription-id")
    subscribe.add_argument("--parallel-pull-count", type=int)
    subscribe.add_argument("--executor-thread-count", type=int)
    subscribe.add_argument("--timeout", type=float, help="seconds to listen before stopping")
    subscribe.set_defaults(handler=subscribe_with_concurrency_control)
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    updates = {
        name: getattr(args, name)
        for name in ("parallel_pull_count", "executor_thread_count")
        if getattr(args, name, None) is not None
    }
    for name, value in updates.items():
        if value < 1:
            raise ValueError(f"{name} must be >= 1")
    return settings.model_copy(update=updates) if updates else settings


def main(
    argv: Sequence[str] | None = None,
    *,
    settings: Settings | None = None,
    dependencies: Callable[[Settings], SnippetDependencies] = create_dependencies,
) -> int:
    args = build_parser().parse_args(argv)
    _settings = settings or Settings()
    configure_logging(_settings)
    _log("command_started", command=args.command)
    try:
        deps = dependencies(_apply_overrides(_settings, args))
        args.handler(deps, args)
    except KeyboardInterrupt:
        _log("command_interrupted", command=args.command)
        return 130
    except (PubSubSnippetError, OSError, ValueError) as e:
        logger.exception("{} failed: {}", args.command, e)
        return 1
    _log("command_finished", command=args.command)
    return 0


def _run_command(command: str) -> None:
    sys.exit(main([command, *sys.argv[1:]]))


def run() -> None:
    sys.exit(main())


def create_avro_schema_main() -> None:
    _run_command("create-avro-schema")


def publish_avro_records_main() -> None:
    _run_command("publish-avro-records")


def subscribe_with_concurrency_control_main() -> None:
    _run_command("subscribe-with-concurrency-control")


if __name__ == "__main__":
    run()
