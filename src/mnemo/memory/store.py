"""Session memory store: one JSON document, newest-first, capped.

The file is the source of truth; nothing is cached between calls. Writers
serialize through ``MemoryStore.lock`` so a load-modify-save cycle cannot
interleave with another one in the same process, and each save replaces the
file atomically.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta
from pathlib import Path

from mnemo.memory.models import Memory

logger = logging.getLogger(__name__)

MEMORIES_FILENAME = "session_memories.json"
PERSISTED_CAP = 50
SESSION_WINDOW = timedelta(minutes=30)


def newest_first(memories: Iterable[Memory]) -> list[Memory]:
    """Sort by ``created`` descending; ties keep their incoming order."""
    return sorted(memories, key=lambda m: m.created, reverse=True)


def next_session_id(
    existing: list[Memory],
    now: datetime,
    window: timedelta = SESSION_WINDOW,
) -> str:
    """Continue the newest memory's session inside the window, else mint a new one."""
    if existing:
        latest = max(existing, key=lambda m: m.created)
        if now - latest.created < window:
            return latest.session_id
    return str(uuid.uuid4())


class MemoryStore:
    """Durable, ordered access to the session memory collection."""

    def __init__(self, root: Path, persisted_cap: int = PERSISTED_CAP) -> None:
        self.root = root
        self.persisted_cap = persisted_cap
        self.lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self.root / MEMORIES_FILENAME

    # ── Read ──────────────────────────────────────────────────

    def _read(self) -> list[Memory]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Cannot read %s: %s", self.path, e)
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt memory file %s (%s), starting empty", self.path, e)
            return []
        if not isinstance(records, list):
            logger.warning("Memory file %s is not a list, starting empty", self.path)
            return []

        memories = [m for m in (Memory.from_dict(r) for r in records) if m is not None]
        return newest_first(memories)

    async def load(self) -> list[Memory]:
        """Return all memories newest-first; empty when storage is absent or unreadable."""
        return await asyncio.to_thread(self._read)

    # ── Write ─────────────────────────────────────────────────

    def _write(self, memories: list[Memory]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([m.to_dict() for m in memories], indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".memories-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def save(self, memories: list[Memory]) -> list[Memory]:
        """Persist the newest ``persisted_cap`` memories; older ones are dropped."""
        kept = newest_first(memories)[: self.persisted_cap]
        dropped = len(memories) - len(kept)
        if dropped > 0:
            logger.info("Retention cap %d reached, dropped %d oldest memories", self.persisted_cap, dropped)
        await asyncio.to_thread(self._write, kept)
        return kept
