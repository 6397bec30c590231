"""Shared identifiers for the snippet programs."""

SERVICE_NAME = "pubsub-snippets"
