"""Port: topic lookup. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol

from snippets.app.domain.models import TopicInfo


class TopicAdminClient(Protocol):
    def get_topic(self, topic_path: str) -> TopicInfo:
        """Raise NotFoundError when the topic does not exist."""
        ...

    def close(self) -> None: ...
