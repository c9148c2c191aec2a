"""
Text segmentation: raw extracted text -> chunk candidates.

One entry point, `segment`, with the strategy passed explicitly so every
ingestion path produces the same kind of output for the retrieval side.
"""
import re
from enum import Enum
from typing import List, Optional

from .embedding import EmbeddingProvider, cosine_similarity

DEFAULT_WINDOW_SIZE = 100
DEFAULT_MERGE_THRESHOLD = 0.7

# A blank line, allowing stray spaces/tabs on the separator line
_BLANK_LINE = re.compile(r"\n[ \t\r\f\v]*\n")


class SegmentStrategy(str, Enum):
    PARAGRAPH = "paragraph"
    WINDOW = "window"
    NEIGHBOR_MERGE = "neighbor_merge"


def split_paragraphs(text: str) -> List[str]:
    """Split on blank lines; returns stripped, non-empty paragraphs."""
    parts = _BLANK_LINE.split(text.replace("\r\n", "\n"))
    return [p.strip() for p in parts if p.strip()]


def window_chunks(text: str, window_size: int = DEFAULT_WINDOW_SIZE) -> List[str]:
    """
    Group whitespace-separated words into windows of `window_size` words.
    The trailing partial window is kept.
    """
    if window_size < 1:
        raise ValueError("window_size must be >= 1")
    words = text.split()
    return [
        " ".join(words[i:i + window_size])
        for i in range(0, len(words), window_size)
    ]


def neighbor_merge(
    paragraphs: List[str],
    embedder: EmbeddingProvider,
    threshold: float = DEFAULT_MERGE_THRESHOLD,
) -> List[str]:
    """
    Append to each paragraph every *later* paragraph whose embedding has
    cosine similarity strictly above `threshold`.

    Merging is additive: a paragraph that was appended to an earlier one still
    yields its own candidate, so candidates overlap. Comparisons are O(n^2);
    each paragraph is embedded once up front (n model calls, not n^2).
    """
    if not paragraphs:
        return []
    embeddings = embedder.embed_many(paragraphs)

    candidates = []
    for i, paragraph in enumerate(paragraphs):
        merged = [paragraph]
        for j in range(i + 1, len(paragraphs)):
            if cosine_similarity(embeddings[i], embeddings[j]) > threshold:
                merged.append(paragraphs[j])
        candidates.append("\n".join(merged))
    return candidates


def segment(
    raw_text: str,
    strategy: SegmentStrategy = SegmentStrategy.PARAGRAPH,
    embedder: Optional[EmbeddingProvider] = None,
    window_size: int = DEFAULT_WINDOW_SIZE,
    threshold: float = DEFAULT_MERGE_THRESHOLD,
) -> List[str]:
    """
    Convert raw text into chunk candidates using `strategy`.

    Empty candidates never leave this function.

    Raises:
        ValueError: unknown strategy, or NEIGHBOR_MERGE without an embedder
        EmbeddingError: a paragraph could not be embedded during merging
    """
    strategy = SegmentStrategy(strategy)

    if strategy is SegmentStrategy.PARAGRAPH:
        candidates = split_paragraphs(raw_text)
    elif strategy is SegmentStrategy.WINDOW:
        candidates = window_chunks(raw_text, window_size)
    else:
        if embedder is None:
            raise ValueError("neighbor_merge segmentation needs an embedder")
        candidates = neighbor_merge(split_paragraphs(raw_text), embedder, threshold)

    return [c for c in candidates if c.strip()]
