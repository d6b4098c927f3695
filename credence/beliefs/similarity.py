"""
Similarity — the pluggable capability clustering and relation discovery rely on.

Any callable ``(text_a, text_b) -> float`` with results in [0, 1] can be used,
for example a cosine over sentence embeddings from a vector store. The default
is token-set Jaccard similarity, which needs no model and is fully
deterministic.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable

from credence._utils import clamp01

SimilarityFn = Callable[[str, str], float]

_TOKEN_RE = re.compile(r"[a-z0-9_']+")


@lru_cache(maxsize=4096)
def tokenize(text: str) -> frozenset[str]:
    """Lowercased word tokens of a text."""
    if not text:
        return frozenset()
    return frozenset(_TOKEN_RE.findall(text.lower()))


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Token-set overlap: |A ∩ B| / |A ∪ B|, 1.0 for identical texts."""
    if text_a == text_b:
        return 1.0
    tokens_a = tokenize(text_a)
    tokens_b = tokenize(text_b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def bounded(similarity: SimilarityFn) -> SimilarityFn:
    """Wrap a plugged similarity so out-of-range or garbage scores clamp into [0, 1]."""

    def _similarity(text_a: str, text_b: str) -> float:
        return clamp01(similarity(text_a, text_b), default=0.0)

    return _similarity
