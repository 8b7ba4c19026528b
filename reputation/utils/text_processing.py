"""Text processing utilities for page content and review analysis."""

import re

from reputation.utils.helpers import round_half_up

_WORD_RE = re.compile(r"[a-z0-9']+")


def count_words(text: str) -> int:
    """Count whitespace-separated words in text.

    Args:
        text: Input text.

    Returns:
        Word count.
    """
    return len(text.split())


def tokenize(text: str) -> list[str]:
    """Lowercase *text* and return its word tokens (apostrophes kept)."""
    return _WORD_RE.findall((text or "").lower())


def split_sentences(text: str) -> list[str]:
    """Split on runs of sentence terminators, dropping empty fragments."""
    return [s for s in re.split(r"[.!?]+", text) if s.strip()]


def calculate_mention_density(text: str, phrase: str) -> dict[str, float | int]:
    """Measure how often *phrase* appears in *text*, per hundred words.

    Occurrences are counted case-insensitively as substrings, so a
    multi-word company name counts once per mention.

    Returns:
        Dict with density_pct, count, and total_words.
    """
    total_words = count_words(text)
    phrase = (phrase or "").lower().strip()
    if total_words == 0 or not phrase:
        return {"density_pct": 0.0, "count": 0, "total_words": total_words}

    count = len(re.findall(re.escape(phrase), text.lower()))
    density = round_half_up(count / total_words * 100, 2)
    return {"density_pct": density, "count": count, "total_words": total_words}


def classify_readability(text: str) -> dict[str, float | int | str]:
    """Grade readability from the average sentence length.

    ``Good`` up to 15 words per sentence, ``Fair`` up to 20, ``Difficult``
    beyond that.
    """
    sentences = split_sentences(text)
    words = count_words(text)
    avg = words / len(sentences) if sentences else 0.0
    if avg > 20:
        label = "Difficult"
    elif avg > 15:
        label = "Fair"
    else:
        label = "Good"
    return {
        "label": label,
        "sentence_count": len(sentences),
        "avg_words_per_sentence": round_half_up(avg, 1),
    }
