"""
Single-examiner execution.

One runner call makes one completion request and always returns an
ExaminerResult; timeouts, transport errors and unreadable output degrade to
a placeholder result instead of raising.
"""

import asyncio
import math

from examiner_swarm.config import Settings, get_settings
from examiner_swarm.grading.llm_client import CompletionBackend, LLMError
from examiner_swarm.grading.prompt_builder import PromptBuilder
from examiner_swarm.grading.scorer import FallbackOutput, ParsedExaminerOutput, ResponseParser
from examiner_swarm.logging import get_logger
from examiner_swarm.markscheme import band_for_examiner
from examiner_swarm.models import ExaminerConfig, ExaminerResult

logger = get_logger(__name__)

FAILURE_FEEDBACK = "Unable to complete analysis - please try again"
FALLBACK_STRENGTH = "Response attempted"
NO_FEEDBACK = "No feedback provided"


class ExaminerRunner:
    """Runs one examiner against the language model."""

    def __init__(
        self,
        backend: CompletionBackend,
        settings: Settings | None = None,
        parser: ResponseParser | None = None,
    ):
        self._backend = backend
        self._settings = settings or get_settings()
        self._parser = parser or ResponseParser(self._settings.fallback_feedback_chars)

    def default_score(self, examiner: ExaminerConfig) -> int:
        """Placeholder score for a failed examiner (floored, never negative)."""
        return max(0, int(examiner.max_score * self._settings.failure_score_ratio))

    async def run(
        self,
        examiner: ExaminerConfig,
        system_prompt: str,
        question: str,
        essay: str,
        has_diagram: bool,
        context_data: str | None = None,
        extract_info: str | None = None,
    ) -> ExaminerResult:
        """
        Grade the essay from one examiner's perspective.

        Args:
            examiner: Examiner definition.
            system_prompt: Prompt produced by PromptBuilder.build.
            question: The question text.
            essay: The student's response.
            has_diagram: Whether a diagram was supplied.
            context_data: Optional case-study data shown to the examiner.
            extract_info: Optional extract text shown to the examiner.

        Returns:
            The examiner's result; `succeeded` is False on any failure.
        """
        user_prompt = PromptBuilder.build_user_prompt(
            question, essay, has_diagram, context_data, extract_info
        )

        try:
            raw = await asyncio.wait_for(
                self._backend.complete(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    temperature=self._settings.examiner_temperature,
                    max_tokens=self._settings.examiner_max_tokens,
                ),
                timeout=self._settings.examiner_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return self._failed(
                examiner, f"Timed out after {self._settings.examiner_timeout_seconds:g}s"
            )
        except LLMError as e:
            return self._failed(examiner, f"LLM error: {e}")
        except Exception as e:
            # Any backend may be plugged in; none of its failures may escape.
            return self._failed(examiner, f"Unexpected error: {e!r}")

        return self.build_result(examiner, self._parser.parse_examiner(raw))

    def build_result(self, examiner: ExaminerConfig, parsed: ParsedExaminerOutput) -> ExaminerResult:
        """Turn either parse outcome into an ExaminerResult."""
        if isinstance(parsed, FallbackOutput):
            logger.warning(
                "examiner_unparseable",
                examiner_id=examiner.id,
                reason=parsed.reason,
            )
            score = self.default_score(examiner)
            return ExaminerResult(
                **self._identity(examiner),
                score=score,
                band=band_for_examiner(score, examiner.max_score),
                feedback=parsed.raw_text_prefix or FAILURE_FEEDBACK,
                strengths=(FALLBACK_STRENGTH,),
                succeeded=False,
                failure_reason=parsed.reason,
            )

        score = min(max(math.floor(parsed.score + 0.5), 0), examiner.max_score)
        return ExaminerResult(
            **self._identity(examiner),
            score=score,
            band=parsed.band or band_for_examiner(score, examiner.max_score),
            feedback=parsed.feedback or NO_FEEDBACK,
            strengths=parsed.strengths,
            improvements=parsed.improvements,
            succeeded=True,
        )

    def _failed(self, examiner: ExaminerConfig, reason: str) -> ExaminerResult:
        logger.warning("examiner_failed", examiner_id=examiner.id, reason=reason)
        score = self.default_score(examiner)
        return ExaminerResult(
            **self._identity(examiner),
            score=score,
            band=band_for_examiner(score, examiner.max_score),
            feedback=FAILURE_FEEDBACK,
            succeeded=False,
            failure_reason=reason,
        )

    @staticmethod
    def _identity(examiner: ExaminerConfig) -> dict:
        return {
            "examiner_id": examiner.id,
            "examiner_name": examiner.name,
            "assessment_objective": examiner.assessment_objective,
            "max_score": examiner.max_score,
            "color": examiner.display_color,
        }
