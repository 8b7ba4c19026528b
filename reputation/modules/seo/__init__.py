"""SEO scoring: page signal extraction, weighted composite and advice rules."""

from reputation.modules.seo.scorer import SEOScorer, default_result
from reputation.modules.seo.signals import default_breakdown, extract_breakdown

__all__ = [
    "SEOScorer",
    "default_result",
    "default_breakdown",
    "extract_breakdown",
]
