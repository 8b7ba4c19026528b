"""Comprehensive reputation analysis: company identity, charts and orchestration."""

from reputation.modules.analysis.company import CompanyResolver
from reputation.modules.analysis.orchestrator import (
    ComprehensiveAnalysisOrchestrator,
    composite_score,
)

__all__ = [
    "CompanyResolver",
    "ComprehensiveAnalysisOrchestrator",
    "composite_score",
]
