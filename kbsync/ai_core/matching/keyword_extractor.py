"""
Keyword Extraction

Algorithmic keyword extraction for knowledge unit matching.
Frequency plus a position bonus picks the important terms of a text, so
matching can run without any LLM call.
"""

import re
from typing import Dict, Iterable, List, Optional

# Common English words
_ENGLISH_STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "are", "be", "been",
    "have", "has", "had", "do", "does", "did", "will", "would", "should",
    "could", "can", "may", "might", "must",
    "this", "that", "these", "those", "i", "you", "he", "she", "it", "we", "they",
    "what", "which", "who", "whom", "where", "when", "why", "how",
    "all", "each", "every", "both", "any", "some", "no", "none", "not",
    "also", "just", "only", "so", "such", "than", "too", "very",
    "if", "up", "us", "vs",
}

# Filler words common in documentation
_FILLER_STOP_WORDS = {
    "skill", "content", "document", "section", "information", "data", "item",
    "element", "please", "note", "see", "refer", "etc", "example", "including",
}

STOP_WORDS = frozenset(_ENGLISH_STOP_WORDS | _FILLER_STOP_WORDS)

_NON_KEYWORD_CHARS = re.compile(r"[^a-z0-9\s-]")


def tokenize(text: str) -> List[str]:
    """
    Normalize text into keyword candidates.

    Lowercases, keeps letters/digits/whitespace/hyphens, splits on whitespace,
    and drops tokens of length <= 2 and stop words.
    """
    cleaned = _NON_KEYWORD_CHARS.sub("", text.lower())
    return [
        token
        for token in cleaned.split()
        if len(token) > 2 and token not in STOP_WORDS
    ]


def extract_keywords(text: Optional[str], limit: int = 5) -> List[str]:
    """
    Extract keywords from text using frequency analysis.

    Each occurrence of a token adds 1 plus a position bonus of
    1 - (index / token_count) * 0.5, so earlier terms outrank later ones of
    equal frequency. Ties keep first-occurrence order.

    Args:
        text: Text to extract keywords from
        limit: Maximum number of keywords to return

    Returns:
        Keywords sorted by importance
    """
    if not text or not text.strip():
        return []

    tokens = tokenize(text)
    if not tokens:
        return []

    total = len(tokens)
    scores: Dict[str, float] = {}
    for index, token in enumerate(tokens):
        position_bonus = max(0.0, 1 - (index / total) * 0.5)
        scores[token] = scores.get(token, 0.0) + 1 + position_bonus

    # sorted() is stable and dicts keep insertion order
    ranked = sorted(scores.items(), key=lambda entry: entry[1], reverse=True)
    return [term for term, _ in ranked[:limit]]


def score_keyword_match(source_keywords: Iterable[str], unit_keywords: Iterable[str]) -> float:
    """
    Overlap between two keyword sets: |A ∩ B| / min(|A|, |B|).

    Dividing by the smaller set keeps a short keyword list from being
    penalized for its length.

    Returns:
        Score from 0 to 1, or 0 if either set is empty
    """
    source_set = set(source_keywords)
    unit_set = set(unit_keywords)
    if not source_set or not unit_set:
        return 0.0
    return len(source_set & unit_set) / min(len(source_set), len(unit_set))

