"""AI Agents package."""

from ledger.agents.analysis import (
    AnalysisClient,
    AnalysisError,
    GeminiAnalysisClient,
    UnavailableAnalysisClient,
    build_prompt,
    create_analysis_client,
)

__all__ = [
    "AnalysisClient",
    "AnalysisError",
    "GeminiAnalysisClient",
    "UnavailableAnalysisClient",
    "build_prompt",
    "create_analysis_client",
]
