"""
Spending Analysis Agent

DESIGN DECISION: The LLM is a WRITER, not a CALCULATOR.

CRITICAL BOUNDARIES:
- CAN: Turn a monthly SpendingSummary into 3-4 sentences of commentary
- CAN: Suggest saving tips based on the top expense categories
- CANNOT: See individual transactions
- CANNOT: Compute or correct totals - every number comes from
  ledger.queries.aggregation

The analysis capability is optional. When no Gemini key is configured the
composition root wires in UnavailableAnalysisClient, which fails every
request with a clear AnalysisError instead of probing for the key at
call time.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

import google.generativeai as genai
import structlog

from ledger.config import get_settings
from ledger.config.settings import GeminiSettings
from ledger.models.transaction import SpendingSummary

logger = structlog.get_logger(__name__)


class AnalysisError(Exception):
    """The spending analysis could not be produced."""
    pass


class AnalysisClient(ABC):
    """Turns a monthly spending summary into natural-language commentary."""

    @abstractmethod
    async def analyze(self, summary: SpendingSummary) -> str:
        """
        Generate the commentary.

        Raises:
            AnalysisError: If the service is unconfigured or the call fails
        """
        pass


def _won(amount: Decimal) -> str:
    return f"{amount:,.0f} KRW"


def build_prompt(summary: SpendingSummary, language: str = "Korean") -> str:
    """The prompt sent to the model. Only aggregate numbers are included."""
    if summary.top_categories:
        categories = "\n".join(
            f"  - {c.category}: {_won(c.amount)}" for c in summary.top_categories
        )
    else:
        categories = "  - (no expenses recorded)"

    return f"""You are a personal finance coach. Here is the user's spending summary for {summary.month_label}.

- Total income: {_won(summary.income)}
- Total expense: {_won(summary.expense)}
- Balance: {_won(summary.balance)}
- Top expense categories:
{categories}

Based ONLY on these numbers, write 3-4 concise sentences in {language} with a
short analysis of the spending and practical saving tips.
Use a friendly, encouraging tone. Do not invent numbers that are not listed above."""


class GeminiAnalysisClient(AnalysisClient):
    """Analysis backed by Google Gemini."""

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        if not self._settings.is_configured:
            raise AnalysisError("GEMINI_API_KEY is not set")
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def analyze(self, summary: SpendingSummary) -> str:
        prompt = build_prompt(summary, self._settings.response_language)

        try:
            response = await self._model.generate_content_async(prompt)
            text = (response.text or "").strip()
        except Exception as e:
            logger.error("gemini_request_failed", error=str(e), month=summary.month_label)
            raise AnalysisError("The AI analysis failed. Please try again later.") from e

        if not text:
            raise AnalysisError("The AI analysis returned an empty answer.")
        return text


class UnavailableAnalysisClient(AnalysisClient):
    """Placeholder used when the analysis capability is not configured."""

    def __init__(self, reason: str = "AI analysis is not configured (GEMINI_API_KEY is not set)."):
        self._reason = reason

    async def analyze(self, summary: SpendingSummary) -> str:
        raise AnalysisError(self._reason)


def create_analysis_client(settings: Optional[GeminiSettings] = None) -> AnalysisClient:
    """Pick the analysis implementation once, at composition time."""
    settings = settings or get_settings().gemini
    if not settings.is_configured:
        return UnavailableAnalysisClient()
    return GeminiAnalysisClient(settings)
