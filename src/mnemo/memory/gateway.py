"""Embedding gateway: everything between memory text and the inference backend.

Handles metadata-enriched preprocessing, chunking of long text, averaging of
multi-chunk embeddings, metadata extraction and RAG answers. Nothing here
raises on backend failure: callers get None (or a locally derived fallback)
and carry on with less signal.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from mnemo.backend.base import InferenceBackend
from mnemo.config import BackendConfig
from mnemo.memory.analysis import classify
from mnemo.memory.models import Memory, MemoryMetadata
from mnemo.similarity import mean_vector

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4

METADATA_PROMPT = """\
Analyze this content and extract structured metadata. Return ONLY a JSON object with these fields:

{{
  "category": "one of: learning, decision, implementation, problem-solving, planning, meeting, research, creative, administrative, personal",
  "topics": ["array", "of", "main", "topics"],
  "entities": ["important", "people", "places", "organizations", "tools"],
  "keyActions": ["main", "actions", "or", "verbs"],
  "domain": "general field like: business, technology, education, health, creative, personal, etc."
}}

Content to analyze:
{content}"""

ANSWER_SYSTEM_PROMPT = """\
You are an intelligent memory assistant with access to the user's personal memory archive. \
Answer questions based ONLY on the provided memory context. Be specific, helpful, and \
reference relevant details from the memories.

If the memories don't contain enough information to fully answer the question, acknowledge \
this and work with what's available.

Formatting: plain text only. No markdown, no asterisks or underscores, no bold or italics. \
Use simple numbered lists (1. item, 2. item) when listing.

Guidelines:
- Be concise but comprehensive
- Reference specific details, decisions, actions, or outcomes mentioned in memories
- If multiple memories are relevant, synthesize information across them
- If no memories are truly relevant, say so clearly
- Focus on what was actually done, learned, decided, or accomplished"""

NO_MEMORIES_ANSWER = (
    "I don't have any relevant memories to answer this question. "
    "Try saving some session summaries first."
)

ACTION_WORDS = (
    "implemented", "built", "created", "developed", "designed", "planned", "analyzed", "researched",
    "learned", "studied", "discovered", "found", "solved", "fixed", "improved", "optimized",
    "decided", "chose", "selected", "completed", "finished", "started", "began", "organized",
    "managed", "coordinated", "collaborated", "discussed", "presented", "wrote", "documented",
)

_TOPIC_STOP_WORDS = {
    "that", "this", "with", "from", "they", "were", "been", "have",
    "will", "would", "could", "should",
}

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


# ── Text preparation ──────────────────────────────────────


def preprocess_for_embedding(content: str, metadata: MemoryMetadata | None = None) -> str:
    """Normalize whitespace and prepend a structured context line from metadata."""
    processed = " ".join(content.split())
    if metadata is None:
        return processed

    parts = []
    if metadata.domain != "general":
        parts.append(f"Domain: {metadata.domain}")
    parts.append(f"Activity: {metadata.category}")
    if metadata.topics:
        parts.append(f"Topics: {', '.join(metadata.topics)}")
    if metadata.key_actions:
        parts.append(f"Actions: {', '.join(metadata.key_actions)}")
    if metadata.entities:
        parts.append(f"Entities: {', '.join(metadata.entities)}")
    return f"{'. '.join(parts)}. Content: {processed}"


def chunk_text(text: str, max_tokens: int) -> list[str]:
    """Split text into chunks of at most ``max_tokens * 4`` characters.

    Sentences are packed greedily; a sentence that alone exceeds the budget
    is split on word boundaries.
    """
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return [text]

    chunks: list[str] = []
    current = ""
    for raw in _SENTENCE_SPLIT.split(text):
        sentence = raw.strip()
        if not sentence:
            continue
        candidate = f"{current} {sentence}." if current else f"{sentence}."
        if len(candidate) <= max_chars:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = ""
        if len(sentence) + 1 <= max_chars:
            current = f"{sentence}."
            continue
        # Single sentence over budget; pieces leave room for the period
        width = max_chars - 1
        piece = ""
        for word in sentence.split():
            if len(f"{piece} {word}") < max_chars:
                piece = f"{piece} {word}" if piece else word
                continue
            if piece:
                chunks.append(f"{piece}.")
            slices = [word[i : i + width] for i in range(0, len(word), width)]
            chunks.extend(f"{s}." for s in slices[:-1])
            piece = slices[-1]
        if piece:
            current = f"{piece}."
    if current:
        chunks.append(current)

    return chunks or [text[:max_chars]]


def strip_markdown(text: str) -> str:
    """Remove markdown emphasis, code, headers, links and bullets."""
    cleaned = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    cleaned = re.sub(r"__(.*?)__", r"\1", cleaned)
    cleaned = re.sub(r"\*(.*?)\*", r"\1", cleaned)
    cleaned = re.sub(r"(?<!\w)_(.*?)_(?!\w)", r"\1", cleaned)
    cleaned = re.sub(r"`(.*?)`", r"\1", cleaned)
    cleaned = re.sub(r"^#{1,6}\s+", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r"~~(.*?)~~", r"\1", cleaned)
    cleaned = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", cleaned)
    cleaned = re.sub(r"\[([^\]]+)\]\[[^\]]*\]", r"\1", cleaned)
    cleaned = re.sub(r"^\s*[*\-+]\s+", "", cleaned, flags=re.MULTILINE)
    return cleaned.strip()


def time_ago(created: datetime, now: datetime) -> str:
    seconds = int((now - created).total_seconds())
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "just now"


# ── Local metadata fallback ───────────────────────────────


def basic_topics(content: str) -> list[str]:
    words = [
        word
        for word in content.lower().split()
        if len(word) > 4 and word not in _TOPIC_STOP_WORDS
    ]
    return [word for word, _ in Counter(words).most_common(5)]


def basic_actions(content: str) -> list[str]:
    lowered = content.lower()
    return [action for action in ACTION_WORDS if action in lowered][:3]


def fallback_metadata(content: str, themes: Sequence[str] = ()) -> MemoryMetadata:
    """Metadata from local analysis alone; known themes lead the topic list."""
    topics = list(dict.fromkeys([*themes, *basic_topics(content)]))[:5]
    return MemoryMetadata(
        category=classify(content).value,
        topics=topics,
        entities=[],
        key_actions=basic_actions(content),
        domain="general",
    )


def parse_metadata(raw: str) -> MemoryMetadata | None:
    """Parse the model's JSON answer, tolerating code fences and surrounding prose."""
    match = _JSON_OBJECT.search(raw)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return MemoryMetadata.from_dict(data)


# ── Gateway ───────────────────────────────────────────────


class EmbeddingGateway:
    """Wraps an InferenceBackend with chunking, averaging and fail-soft semantics."""

    def __init__(self, backend: InferenceBackend, config: BackendConfig) -> None:
        self.backend = backend
        self.config = config

    @property
    def embedding_model(self) -> str:
        return self.config.embedding_model

    async def _embed_chunks(self, text: str) -> list[float] | None:
        chunks = chunk_text(text, self.config.max_tokens)
        vectors: list[list[float]] = []
        for chunk in chunks:
            try:
                vector = await self.backend.embed(chunk)
            except Exception as e:
                logger.error("Embedding backend raised: %s", e)
                vector = None
            if vector:
                vectors.append(vector)

        if not vectors:
            return None
        if len(vectors) == 1:
            return vectors[0]

        dims = {len(v) for v in vectors}
        if len(dims) != 1:
            logger.warning("Chunk embeddings have mismatched dimensions %s", sorted(dims))
            return None
        logger.debug("Averaged %d chunk embeddings", len(vectors))
        return mean_vector(vectors)

    async def embed(self, text: str, metadata: MemoryMetadata | None = None) -> list[float] | None:
        """Embed memory content, enriched with its metadata when given."""
        return await self._embed_chunks(preprocess_for_embedding(text, metadata))

    async def embed_query(self, query: str) -> list[float] | None:
        return await self._embed_chunks(" ".join(query.split()))

    async def extract_metadata(self, content: str, themes: Sequence[str] = ()) -> MemoryMetadata:
        try:
            raw = await self.backend.complete(
                None,
                METADATA_PROMPT.format(content=content),
                max_tokens=300,
                temperature=0.1,
            )
        except Exception as e:
            logger.error("Metadata backend raised: %s", e)
            raw = None

        if raw:
            metadata = parse_metadata(raw)
            if metadata is not None:
                return metadata
            logger.warning("Could not parse metadata response, using local analysis")
        return fallback_metadata(content, themes)

    async def answer(
        self, query: str, memories: Sequence[Memory], now: datetime
    ) -> str | None:
        """Answer ``query`` from ``memories`` with the chat model; None if it is unavailable."""
        if not memories:
            return NO_MEMORIES_ANSWER

        context = "\n\n---\n\n".join(
            f"Memory {i} ({time_ago(memory.created, now)}):\n{memory.content}"
            for i, memory in enumerate(memories, start=1)
        )
        user_prompt = (
            f'Based on my memories below, please answer this question: "{query}"\n\n'
            f"MEMORIES:\n{context}\n\n"
            "Please provide a helpful answer based on these memories."
        )
        try:
            raw = await self.backend.complete(ANSWER_SYSTEM_PROMPT, user_prompt)
        except Exception as e:
            logger.error("Answer backend raised: %s", e)
            return None
        return strip_markdown(raw) if raw else None
