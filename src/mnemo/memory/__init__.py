"""Session memory: write path and storage.

Layout:
    ~/.mnemo/memory/
    └── session_memories.json      # newest-first, at most 50 records

Each record is a short narrative of a work session. Records written within
30 minutes of each other share a session id; near-duplicates written within
that window are merged into the earlier record instead of stored twice.
"""

from mnemo.memory.models import Memory, MemoryMetadata
from mnemo.memory.store import MemoryStore

__all__ = ["Memory", "MemoryMetadata", "MemoryStore"]
