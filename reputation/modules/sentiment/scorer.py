"""Lexicon sentiment scorer.

Scores a text by summing the valence of each token, flipping a token's
valence when the word before it is a negator ("not good" counts as
negative).  The default lexicon is VADER's word list; tests and callers
with domain vocabularies can inject their own mapping.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterable, Mapping, Optional

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from reputation.modules.types import SentimentLabel
from reputation.utils.helpers import round_half_up
from reputation.utils.text_processing import tokenize

logger = logging.getLogger(__name__)

POSITIVE_THRESHOLD = 2.0
NEGATIVE_THRESHOLD = -2.0

NEGATORS = frozenset({
    "not", "no", "never", "none", "nothing", "neither", "nor", "nobody",
    "without", "isnt", "isn't", "wasnt", "wasn't", "dont", "don't",
    "doesnt", "doesn't", "didnt", "didn't", "cant", "can't", "cannot",
    "wont", "won't", "wouldnt", "wouldn't", "shouldnt", "shouldn't",
    "arent", "aren't", "aint", "ain't", "hardly",
})


@lru_cache(maxsize=1)
def _vader_lexicon() -> dict[str, float]:
    # Parsing the lexicon file is the expensive part; do it once.
    return dict(SentimentIntensityAnalyzer().lexicon)


@dataclass
class SentimentResult:
    """Outcome of classifying one text."""

    label: SentimentLabel
    score: float
    comparative: float = 0.0
    positive: list[str] = field(default_factory=list)
    negative: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label.value,
            "score": self.score,
            "comparative": self.comparative,
            "positive": list(self.positive),
            "negative": list(self.negative),
        }


def label_for_score(score: float) -> SentimentLabel:
    """Map a summed valence onto a label (strict thresholds at +/-2)."""
    if score > POSITIVE_THRESHOLD:
        return SentimentLabel.POSITIVE
    if score < NEGATIVE_THRESHOLD:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


class SentimentScorer:
    """Deterministic, offline sentiment classifier.

    Args:
        lexicon: Word -> valence mapping.  Defaults to the VADER lexicon.
        negators: Words that flip the valence of the following token.
    """

    def __init__(
        self,
        lexicon: Optional[Mapping[str, float]] = None,
        negators: Optional[Iterable[str]] = None,
    ):
        self._lexicon = dict(lexicon) if lexicon is not None else _vader_lexicon()
        self._negators = frozenset(negators) if negators is not None else NEGATORS

    def classify(self, text: str) -> SentimentResult:
        """Classify a single text.  Empty or unknown text is neutral with score 0."""
        tokens = tokenize(text)
        total = 0.0
        positive: list[str] = []
        negative: list[str] = []
        previous = ""
        for token in tokens:
            valence = self._lexicon.get(token)
            if valence:
                if previous in self._negators:
                    valence = -valence
                total += valence
                (positive if valence > 0 else negative).append(token)
            previous = token

        score = round_half_up(total, 4)
        comparative = round_half_up(total / len(tokens), 4) if tokens else 0.0
        return SentimentResult(
            label=label_for_score(score),
            score=score,
            comparative=comparative,
            positive=positive,
            negative=negative,
        )

    def classify_batch(self, texts: Iterable[str]) -> dict[str, Any]:
        """Classify many texts and summarize the label counts.

        Returns:
            Dict with ``results`` (one :class:`SentimentResult` per text) and
            ``summary`` (total, positive, negative, neutral, average_score).
        """
        results = [self.classify(text) for text in texts]
        counts = {label.value: 0 for label in SentimentLabel}
        for result in results:
            counts[result.label.value] += 1
        average = (
            round_half_up(sum(r.score for r in results) / len(results), 4)
            if results else 0.0
        )
        logger.debug("Classified %d texts: %s", len(results), counts)
        return {
            "results": results,
            "summary": {"total": len(results), **counts, "average_score": average},
        }
