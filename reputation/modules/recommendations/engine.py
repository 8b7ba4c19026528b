"""AI-backed recommendations and review insights with a static fallback.

The engine never raises: when no provider is configured, when every provider
fails, or when the response yields nothing usable, it answers with the fixed
static recommendations.  Responses are parsed permissively into one of two
:data:`ParsedInsight` variants that share the same read interface.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from reputation.exceptions import ProviderError
from reputation.integrations.llm_client import LLMClient, LLMConfig
from reputation.modules.types import ReviewRecord

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
STATIC_RECOMMENDATIONS: tuple[str, ...] = (
    "Respond to all reviews promptly",
    "Address negative feedback constructively",
    "Highlight positive aspects mentioned by customers",
    "Improve areas frequently mentioned in negative reviews",
)
DEFAULT_INSIGHTS = (
    "Review analysis completed. Consider improving customer service and "
    "product quality based on feedback."
)
DEFAULT_THEMES: tuple[str, ...] = ("service", "quality")
THEME_VOCABULARY: tuple[str, ...] = (
    "service", "quality", "price", "staff", "location", "atmosphere",
)
RECOMMENDATION_KEYWORDS: tuple[str, ...] = ("recommend", "should", "suggest")

MAX_RECOMMENDATIONS = 10
MAX_EXTRACTED_LINES = 5
INSIGHT_TEXT_LIMIT = 500
MAX_CORPUS_REVIEWS = 100

SYSTEM_PROMPT = (
    "You are an expert in business reputation analysis and sentiment analysis."
)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


# ---------------------------------------------------------------------------
# Parsed responses
# ---------------------------------------------------------------------------

def _as_text_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [line.strip() for line in value.splitlines() if line.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class _InsightPayload:

    def to_payload(self) -> dict[str, Any]:
        return {
            "insights": self.insights,
            "recommendations": self.recommendations,
            "themes": self.themes,
        }


@dataclass
class StructuredInsight(_InsightPayload):
    """A JSON object extracted from the model's answer."""

    data: dict[str, Any]

    @property
    def insights(self) -> Any:
        return self.data.get("insights", "")

    @property
    def recommendations(self) -> list[str]:
        recs = _as_text_list(self.data.get("recommendations"))
        if not recs and isinstance(self.insights, str):
            recs = _as_text_list(self.insights)
        return recs

    @property
    def themes(self) -> list[str]:
        return _as_text_list(self.data.get("themes"))


@dataclass
class HeuristicInsight(_InsightPayload):
    """Free text, with recommendation lines and themes scanned out of it."""

    text: str
    extracted_lines: list[str] = field(default_factory=list)

    @property
    def insights(self) -> str:
        return self.text[:INSIGHT_TEXT_LIMIT]

    @property
    def recommendations(self) -> list[str]:
        return list(self.extracted_lines)

    @property
    def themes(self) -> list[str]:
        lowered = self.text.lower()
        return [theme for theme in THEME_VOCABULARY if theme in lowered]


ParsedInsight = Union[StructuredInsight, HeuristicInsight]


def extract_recommendation_lines(text: str) -> list[str]:
    lines = [
        line.strip()
        for line in text.splitlines()
        if any(keyword in line.lower() for keyword in RECOMMENDATION_KEYWORDS)
    ]
    return lines[:MAX_EXTRACTED_LINES]


def parse_response(text: str) -> ParsedInsight:
    """Prefer an embedded JSON object; otherwise scan the text heuristically."""
    match = _JSON_OBJECT_RE.search(text or "")
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            logger.debug("AI response contained malformed JSON; using text parsing")
        else:
            if isinstance(data, dict):
                return StructuredInsight(data)
    return HeuristicInsight(text or "", extract_recommendation_lines(text or ""))


def default_insight() -> StructuredInsight:
    return StructuredInsight({
        "insights": DEFAULT_INSIGHTS,
        "recommendations": list(STATIC_RECOMMENDATIONS),
        "themes": list(DEFAULT_THEMES),
    })


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class RecommendationEngine:
    """Produce reputation recommendations and corpus-level review insights.

    Usage::

        engine = RecommendationEngine(LLMConfig.from_settings(settings["llm"]))
        recs = await engine.recommend({"seo_score": 62, ...})
    """

    def __init__(self, config: Optional[LLMConfig] = None, client: Optional[LLMClient] = None):
        self.client = client or LLMClient(config)

    async def _ask(self, prompt: str) -> Optional[ParsedInsight]:
        if not self.client.is_available:
            return None
        try:
            text = await self.client.generate_text(prompt, system_prompt=SYSTEM_PROMPT)
        except ProviderError as exc:
            logger.warning("AI generation unavailable, using static fallback: %s", exc)
            return None
        except Exception as exc:
            logger.exception("AI generation failed unexpectedly, using static fallback: %s", exc)
            return None
        return parse_response(text)

    async def recommend(self, metrics: dict[str, Any]) -> list[str]:
        """Ordered recommendations (at most 10) for the given metrics.

        Args:
            metrics: Mapping with ``seo_score``, ``sentiment`` (distribution
                dict), ``review_count`` and ``average_rating``.
        """
        parsed = await self._ask(build_recommendation_prompt(metrics))
        if parsed is None:
            return list(STATIC_RECOMMENDATIONS)
        recs = parsed.recommendations[:MAX_RECOMMENDATIONS]
        if not recs:
            logger.info("AI response had no usable recommendations; using static list")
            return list(STATIC_RECOMMENDATIONS)
        return recs

    async def analyze_reviews(self, reviews: Iterable[ReviewRecord]) -> ParsedInsight:
        """Holistic narrative over the review corpus.  Never raises."""
        texts = [r.text for r in reviews if r.text][:MAX_CORPUS_REVIEWS]
        if not texts:
            return default_insight()
        parsed = await self._ask(build_review_prompt(texts))
        return parsed if parsed is not None else default_insight()


def build_recommendation_prompt(metrics: dict[str, Any]) -> str:
    seo_score = metrics.get("seo_score")
    average = metrics.get("average_rating")
    return (
        "Based on the following business analysis data, provide specific, "
        "actionable recommendations:\n\n"
        f"SEO Score: {seo_score if seo_score is not None else 'N/A'}\n"
        f"Sentiment Analysis: {json.dumps(metrics.get('sentiment') or {}, sort_keys=True)}\n"
        f"Review Count: {metrics.get('review_count') or 0}\n"
        f"Average Rating: {average if average is not None else 'N/A'}\n\n"
        "Provide 5-10 specific recommendations to improve online reputation and SEO. "
        'Respond in JSON as {"recommendations": ["..."]}.'
    )


def build_review_prompt(texts: list[str]) -> str:
    corpus = "\n\n".join(texts)
    return (
        "Analyze the following business reviews and provide:\n"
        "1. Overall sentiment analysis\n"
        "2. Key themes and topics mentioned\n"
        "3. Specific areas of praise or concern\n"
        "4. Actionable recommendations for the business\n\n"
        f"Reviews:\n{corpus}\n\n"
        "Provide a comprehensive analysis in JSON format with insights, "
        "themes and recommendations."
    )
