"""Lexical and vector similarity primitives.

Pure functions, no I/O. TF-IDF and cosine run on numpy arrays; the string
measures (edit distance, word overlap) work on plain Python strings.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence

import numpy as np

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, split on whitespace, drop tokens of 2 chars or less."""
    return [word for word in _NON_WORD.sub(" ", text.lower()).split() if len(word) > 2]


def tfidf(documents: Sequence[str]) -> list[np.ndarray]:
    """Return one TF-IDF vector per document over a shared vocabulary.

    tf is ``count / document length`` and idf is ``ln(N / docs containing)``.
    When no document contributes a token every vector is empty.
    """
    if not documents:
        return []

    tokenized = [tokenize(doc) for doc in documents]
    vocabulary: dict[str, int] = {}
    for tokens in tokenized:
        for token in tokens:
            vocabulary.setdefault(token, len(vocabulary))

    if not vocabulary:
        return [np.zeros(0) for _ in documents]

    n_docs = len(documents)
    tf = np.zeros((n_docs, len(vocabulary)))
    for row, tokens in enumerate(tokenized):
        if not tokens:
            continue
        for token, count in Counter(tokens).items():
            tf[row, vocabulary[token]] = count / len(tokens)

    doc_freq = np.count_nonzero(tf, axis=0)
    idf = np.log(n_docs / doc_freq)
    return list(tf * idf)


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for mismatched lengths, empty or zero vectors."""
    if len(vec1) != len(vec2) or len(vec1) == 0:
        return 0.0

    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """``(len(longer) - distance) / len(longer)``; identical empty strings score 1.0."""
    longer = a if len(a) > len(b) else b
    if not longer:
        return 1.0
    return (len(longer) - edit_distance(a, b)) / len(longer)


def significant_words(text: str, min_length: int = 4) -> set[str]:
    """Lowercased whitespace-split words at least ``min_length`` chars long."""
    return {word for word in text.lower().split() if len(word) >= min_length}


def set_overlap(a: set[str], b: set[str]) -> float:
    """``|a & b| / max(|a|, |b|)``, 0.0 when both are empty."""
    largest = max(len(a), len(b))
    if largest == 0:
        return 0.0
    return len(a & b) / largest


def word_overlap(text_a: str, text_b: str) -> float:
    """Fast near-duplicate measure over words longer than 3 characters."""
    return set_overlap(significant_words(text_a), significant_words(text_b))


def mean_vector(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Element-wise mean of equally sized vectors."""
    return [float(x) for x in np.mean(np.asarray(vectors, dtype=float), axis=0)]
