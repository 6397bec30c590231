"""Fully-qualified resource names for schemas, topics and subscriptions.

Ids are passed through as given; the service rejects names that break its
naming rules. Only empty ids are refused here.
"""
from __future__ import annotations


def _require(kind: str, resource_id: str) -> str:
    if not resource_id or not resource_id.strip():
        raise ValueError(f"{kind} id must be non-empty")
    return resource_id.strip()


def project_path(project_id: str) -> str:
    return f"projects/{_require('project', project_id)}"


def schema_path(project_id: str, schema_id: str) -> str:
    return f"{project_path(project_id)}/schemas/{_require('schema', schema_id)}"


def topic_path(project_id: str, topic_id: str) -> str:
    return f"{project_path(project_id)}/topics/{_require('topic', topic_id)}"


def subscription_path(project_id: str, subscription_id: str) -> str:
    return f"{project_path(project_id)}/subscriptions/{_require('subscription', subscription_id)}"
