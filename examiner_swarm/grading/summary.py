"""
Second-stage synthesis of a short summary and improvement list.
"""

import asyncio
from typing import NamedTuple, Sequence

from examiner_swarm.config import Settings, get_settings
from examiner_swarm.grading.llm_client import CompletionBackend
from examiner_swarm.grading.prompt_builder import PromptBuilder
from examiner_swarm.grading.scorer import ResponseParser, ScoringError
from examiner_swarm.logging import get_logger
from examiner_swarm.models import ExaminerResult

logger = get_logger(__name__)


class Summary(NamedTuple):
    summary: str
    improvements: tuple[str, ...]


EMPTY_SUMMARY = Summary(summary="", improvements=())


class SummaryGenerator:
    """
    Makes one extra completion call from the per-examiner score breakdown.

    Text without a JSON object becomes the summary as-is, truncated. A call
    that fails outright yields an empty summary; neither is an error for the
    grading request.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        settings: Settings | None = None,
        parser: ResponseParser | None = None,
    ):
        self._backend = backend
        self._settings = settings or get_settings()
        self._parser = parser or ResponseParser(self._settings.fallback_feedback_chars)

    async def summarize(
        self, results: Sequence[ExaminerResult], question_excerpt: str
    ) -> Summary:
        """
        Summarize examiner results.

        Args:
            results: Examiner results in configuration order.
            question_excerpt: Leading part of the question text.

        Returns:
            Summary text and up to three improvements, or empty fields if the
            call itself fails.
        """
        system_prompt = PromptBuilder.build_summary_prompt(results)
        user_prompt = f"Question: {question_excerpt}"

        try:
            raw = await asyncio.wait_for(
                self._backend.complete(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    temperature=self._settings.summary_temperature,
                    max_tokens=self._settings.summary_max_tokens,
                ),
                timeout=self._settings.summary_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("summary_failed", reason="timeout")
            return EMPTY_SUMMARY
        except Exception as e:
            logger.warning("summary_failed", reason=repr(e))
            return EMPTY_SUMMARY

        try:
            summary, improvements = self._parser.parse_summary(raw)
        except ScoringError as e:
            logger.info("summary_unstructured", reason=str(e))
            return Summary(summary=self._parser.truncate(raw), improvements=())

        return Summary(summary=summary, improvements=improvements)
