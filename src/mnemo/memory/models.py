"""Persisted memory records and their JSON shape."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are read as UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float))]


@dataclass
class MemoryMetadata:
    """Structured annotation derived once at write time, used only for ranking."""

    category: str = "general"
    topics: list[str] = field(default_factory=list)
    entities: list[str] = field(default_factory=list)
    key_actions: list[str] = field(default_factory=list)
    domain: str = "general"

    @classmethod
    def from_dict(cls, data: Any) -> MemoryMetadata | None:
        if not isinstance(data, dict):
            return None
        category = data.get("category")
        domain = data.get("domain")
        return cls(
            category=normalize_category(category) if isinstance(category, str) and category else "general",
            topics=_str_list(data.get("topics")),
            entities=_str_list(data.get("entities")),
            key_actions=_str_list(data.get("keyActions", data.get("key_actions"))),
            domain=domain.lower() if isinstance(domain, str) and domain else "general",
        )

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "topics": list(self.topics),
            "entities": list(self.entities),
            "keyActions": list(self.key_actions),
            "domain": self.domain,
        }


def normalize_category(category: str) -> str:
    """``Problem-Solving`` and ``problem_solving`` name the same category."""
    return category.strip().lower().replace("-", "_").replace(" ", "_")


@dataclass
class Memory:
    """A stored narrative unit describing session activity."""

    id: str
    content: str
    created: datetime
    session_id: str
    embedding: list[float] | None = None
    embedding_model: str | None = None
    metadata: MemoryMetadata | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Memory | None:
        """Build a Memory from a persisted record, or None if it lacks required fields."""
        if not isinstance(data, dict):
            return None
        memory_id = data.get("id")
        content = data.get("content")
        created = parse_timestamp(data.get("created"))
        if not isinstance(memory_id, str) or not isinstance(content, str) or created is None:
            logger.warning("Skipping malformed memory record: %r", data.get("id"))
            return None

        embedding = data.get("embedding")
        if not (isinstance(embedding, list) and embedding):
            embedding = None
        else:
            try:
                embedding = [float(x) for x in embedding]
            except (TypeError, ValueError):
                logger.warning("Dropping malformed embedding on memory %s", memory_id)
                embedding = None

        return cls(
            id=memory_id,
            content=content,
            created=created,
            session_id=str(data.get("session_id") or memory_id),
            embedding=embedding,
            embedding_model=data.get("embedding_model") if embedding else None,
            metadata=MemoryMetadata.from_dict(data.get("metadata")),
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "created": self.created.isoformat(),
            "session_id": self.session_id,
        }
        if self.embedding is not None:
            data["embedding"] = list(self.embedding)
            data["embedding_model"] = self.embedding_model
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data
