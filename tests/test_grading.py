"""
Unit tests for the grading components.

Tests prompt builder, response parser, examiner runner, aggregator, summary
generator and LLM client with scripted backends.
"""

import asyncio
import itertools
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from examiner_swarm.config import Settings
from examiner_swarm.errors import ConfigurationError
from examiner_swarm.grading import (
    ExaminerRunner,
    FallbackOutput,
    LLMClient,
    LLMError,
    PromptBuilder,
    ResponseParser,
    ResultAggregator,
    ScoringError,
    StructuredOutput,
    SummaryGenerator,
)
from examiner_swarm.markscheme.examiners import ANALYSIS_EXAMINER, KNOWLEDGE_EXAMINER
from examiner_swarm.models import (
    AssessmentObjective,
    ExaminerConfig,
    ExaminerResult,
    QuestionType,
    UnitCode,
)
from tests.conftest import SUMMARY_JSON, FakeBackend, examiner_json


def _result(examiner_id: str, score: int, max_score: int, **kwargs) -> ExaminerResult:
    return ExaminerResult(examiner_id=examiner_id, score=score, max_score=max_score, **kwargs)


class TestPromptBuilder:
    """Tests for PromptBuilder."""

    def test_build_appends_question_context(self) -> None:
        """Test the context block follows the examiner template."""
        prompt = PromptBuilder.build(
            ANALYSIS_EXAMINER, UnitCode.WEC12, QuestionType.FOURTEEN_MARK, has_diagram=False
        )

        assert prompt.startswith(ANALYSIS_EXAMINER.prompt_template)
        assert "QUESTION CONTEXT:" in prompt
        assert "- Unit: WEC12" in prompt
        assert "- Question Type: 14-mark (14 marks total)" in prompt
        assert "- Your AO Focus: AO3 (Maximum 4 marks for this question type)" in prompt
        assert "- Diagram Required: Yes" in prompt
        assert "- Diagram Provided: No" in prompt
        assert prompt.endswith(PromptBuilder.CLOSING_INSTRUCTION)

    def test_build_uses_ao_weighting_of_question_type(self) -> None:
        """Test AO max marks come from the question type's distribution."""
        prompt = PromptBuilder.build(
            KNOWLEDGE_EXAMINER, UnitCode.WEC11, QuestionType.FOUR_MARK, has_diagram=True
        )

        assert "(4 marks total)" in prompt
        assert "AO1 (Maximum 2 marks for this question type)" in prompt
        assert "- Diagram Provided: Yes" in prompt

    def test_build_is_pure(self) -> None:
        """Test identical inputs give identical prompts."""
        args = (KNOWLEDGE_EXAMINER, UnitCode.WEC13, QuestionType.TWENTY_MARK, True)
        assert PromptBuilder.build(*args) == PromptBuilder.build(*args)

    def test_build_user_prompt_optional_sections(self) -> None:
        """Test context data and extract info appear only when given."""
        plain = PromptBuilder.build_user_prompt("Q?", "My essay", has_diagram=False)
        assert "QUESTION: Q?" in plain
        assert "STUDENT RESPONSE:\nMy essay" in plain
        assert "DIAGRAM: No diagram provided" in plain
        assert "CONTEXT/DATA" not in plain
        assert "EXTRACT" not in plain

        full = PromptBuilder.build_user_prompt(
            "Q?", "My essay", True, context_data="GDP fell 2%", extract_info="Extract A"
        )
        assert "CONTEXT/DATA PROVIDED:\nGDP fell 2%" in full
        assert "EXTRACT INFORMATION:\nExtract A" in full
        assert "Student has provided a diagram" in full

    def test_build_summary_prompt_lists_scores(self) -> None:
        """Test the summary prompt carries only the score breakdown."""
        results = [
            _result("knowledge", 3, 4, assessment_objective=AssessmentObjective.AO1),
            _result("custom", 5, 6),
        ]
        prompt = PromptBuilder.build_summary_prompt(results)

        assert "AO1: 3/4" in prompt
        assert "custom: 5/6" in prompt
        assert '"improvements"' in prompt

    def test_question_excerpt(self) -> None:
        """Test long questions are cut at 200 characters."""
        assert PromptBuilder.question_excerpt("short") == "short"

        excerpt = PromptBuilder.question_excerpt("x" * 250)
        assert excerpt == "x" * 200 + "..."


class TestResponseParser:
    """Tests for ResponseParser."""

    def test_parse_plain_json(self) -> None:
        """Test parsing a bare JSON object."""
        parsed = ResponseParser().parse_examiner(examiner_json(3, band="L3"))

        assert isinstance(parsed, StructuredOutput)
        assert parsed.score == 3
        assert parsed.band == "L3"
        assert parsed.strengths == ("Clear definitions",)
        assert parsed.improvements == ("Add a real-world example",)

    def test_parse_json_embedded_in_prose(self) -> None:
        """Test the object is found inside surrounding text."""
        response = (
            "Here is my assessment of the essay.\n"
            '{"score": 7, "feedback": "Good use of theory.", "strengths": ["a", "b"]}\n'
            "Let me know if you need more detail."
        )
        parsed = ResponseParser().parse_examiner(response)

        assert isinstance(parsed, StructuredOutput)
        assert parsed.score == 7
        assert parsed.feedback == "Good use of theory."
        assert parsed.strengths == ("a", "b")
        assert parsed.improvements == ()

    def test_parse_response_in_markdown_block(self) -> None:
        """Test parsing response wrapped in markdown code block."""
        response = f"```json\n{examiner_json(2)}\n```"
        parsed = ResponseParser().parse_examiner(response)

        assert isinstance(parsed, StructuredOutput)
        assert parsed.score == 2

    def test_braces_inside_strings(self) -> None:
        """Test braces within string values don't break extraction."""
        response = 'Result: {"score": 1, "feedback": "Use {curly} terms correctly"} done'
        parsed = ResponseParser().parse_examiner(response)

        assert isinstance(parsed, StructuredOutput)
        assert parsed.feedback == "Use {curly} terms correctly"

    def test_skips_invalid_candidate(self) -> None:
        """Test a broken object before a valid one is skipped."""
        response = '{not json} then {"score": 4}'
        parsed = ResponseParser().parse_examiner(response)

        assert isinstance(parsed, StructuredOutput)
        assert parsed.score == 4

    def test_unclosed_brace_before_object(self) -> None:
        """Test a stray opening brace in prose does not hide a later object."""
        response = 'I think { this is close. {"score": 3, "feedback": "ok", "strengths": ["a"]}'
        parsed = ResponseParser().parse_examiner(response)

        assert isinstance(parsed, StructuredOutput)
        assert parsed.score == 3
        assert parsed.feedback == "ok"
        assert parsed.strengths == ("a",)

    def test_numeric_string_score(self) -> None:
        """Test a score given as a numeric string is accepted."""
        parsed = ResponseParser().parse_examiner('{"score": " 2.5 "}')

        assert isinstance(parsed, StructuredOutput)
        assert parsed.score == 2.5

    @pytest.mark.parametrize(
        "response",
        [
            "The essay is quite good overall.",
            "",
            '{"feedback": "no score here"}',
            '{"score": "high"}',
            '{"score": true}',
            '{"score": null}',
            "[1, 2, 3]",
        ],
    )
    def test_fallback_cases(self, response: str) -> None:
        """Test unreadable responses become FallbackOutput."""
        parsed = ResponseParser().parse_examiner(response)

        assert isinstance(parsed, FallbackOutput)
        assert parsed.reason

    def test_fallback_prefix_truncated(self) -> None:
        """Test the fallback keeps only a prefix of the raw text."""
        parsed = ResponseParser(fallback_chars=10).parse_examiner("  abcdefghijklmnop  ")

        assert isinstance(parsed, FallbackOutput)
        assert parsed.raw_text_prefix == "abcdefghij"

    def test_parse_summary_caps_improvements(self) -> None:
        """Test summary improvements are truncated to three strings."""
        summary, improvements = ResponseParser().parse_summary(SUMMARY_JSON)

        assert summary.startswith("A solid answer")
        assert improvements == ("Use data", "Weigh both sides", "Reach a judgement")

    def test_parse_summary_stringifies(self) -> None:
        """Test non-string improvements are stringified."""
        _, improvements = ResponseParser().parse_summary(
            '{"summary": "ok", "improvements": [1, null, "x"]}'
        )
        assert improvements == ("1", "x")

    def test_parse_summary_without_json(self) -> None:
        """Test missing JSON raises ScoringError."""
        with pytest.raises(ScoringError):
            ResponseParser().parse_summary("no json at all")


class TestExaminerRunner:
    """Tests for ExaminerRunner."""

    async def _run(
        self, backend: FakeBackend, examiner: ExaminerConfig, settings: Settings
    ) -> ExaminerResult:
        runner = ExaminerRunner(backend, settings)
        prompt = PromptBuilder.build(
            examiner, UnitCode.WEC11, QuestionType.FOURTEEN_MARK, has_diagram=False
        )
        return await runner.run(examiner, prompt, "Question?", "Essay text", False)

    @pytest.mark.asyncio
    async def test_structured_result(self, test_settings: Settings) -> None:
        """Test a well-formed response becomes a successful result."""
        backend = FakeBackend(responses={"AO1": examiner_json(3, band="L2")})
        result = await self._run(backend, KNOWLEDGE_EXAMINER, test_settings)

        assert result.succeeded
        assert result.failure_reason is None
        assert result.score == 3
        assert result.max_score == 4
        assert result.examiner_name == "Knowledge Examiner"
        assert result.assessment_objective == AssessmentObjective.AO1
        assert result.color == KNOWLEDGE_EXAMINER.display_color
        assert result.band == "L2"

    @pytest.mark.asyncio
    async def test_call_parameters(self, test_settings: Settings) -> None:
        """Test examiner calls use the examiner temperature and token budget."""
        backend = FakeBackend(responses={"AO1": examiner_json(1)})
        await self._run(backend, KNOWLEDGE_EXAMINER, test_settings)

        call = backend.calls[0]
        assert call.temperature == 0.2
        assert call.max_tokens == 1500
        assert "STUDENT RESPONSE:\nEssay text" in call.user_prompt

    @pytest.mark.asyncio
    async def test_json_round_trip(self, test_settings: Settings, wide_examiner) -> None:
        """Test embedded JSON values carry through to the result exactly."""
        backend = FakeBackend(
            responses={
                "AO1": 'Assessment follows. {"score": 7, "feedback": "Sound analysis.", '
                '"strengths": ["a", "b"]} End.'
            }
        )
        result = await self._run(backend, wide_examiner, test_settings)

        assert result.succeeded
        assert result.score == 7
        assert result.feedback == "Sound analysis."
        assert result.strengths == ("a", "b")
        assert result.improvements == ()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw_score,expected",
        [(9, 4), (4.4, 4), (-3, 0), (2.5, 3), (1.49, 1), ("3", 3), (1e9, 4)],
    )
    async def test_score_clamped(
        self, test_settings: Settings, raw_score, expected: int
    ) -> None:
        """Test scores are rounded then clamped into [0, max_score]."""
        backend = FakeBackend(responses={"AO1": json.dumps({"score": raw_score})})
        result = await self._run(backend, KNOWLEDGE_EXAMINER, test_settings)

        assert result.succeeded
        assert result.score == expected
        assert 0 <= result.score <= result.max_score

    @pytest.mark.asyncio
    async def test_missing_feedback_placeholder(self, test_settings: Settings) -> None:
        """Test missing feedback and strengths get defaults."""
        backend = FakeBackend(responses={"AO1": '{"score": 2}'})
        result = await self._run(backend, KNOWLEDGE_EXAMINER, test_settings)

        assert result.feedback == "No feedback provided"
        assert result.strengths == ()
        assert result.band == "L2"

    @pytest.mark.asyncio
    async def test_non_json_falls_back(self, test_settings: Settings) -> None:
        """Test non-JSON text degrades to the default score."""
        raw = "The student shows good knowledge. " * 30
        backend = FakeBackend(responses={"AO1": raw})
        result = await self._run(backend, KNOWLEDGE_EXAMINER, test_settings)

        assert not result.succeeded
        assert result.failure_reason
        assert result.score == 2
        assert result.feedback == raw.strip()[:500]
        assert len(result.feedback) == 500
        assert result.strengths == ("Response attempted",)

    @pytest.mark.asyncio
    async def test_json_without_score_falls_back(self, test_settings: Settings) -> None:
        """Test an object lacking a numeric score is a fallback."""
        backend = FakeBackend(responses={"AO3": '{"feedback": "Looks fine"}'})
        result = await self._run(backend, ANALYSIS_EXAMINER, test_settings)

        assert not result.succeeded
        assert result.score == 3

    @pytest.mark.asyncio
    async def test_timeout(self, test_settings: Settings) -> None:
        """Test a slow examiner degrades instead of raising."""
        backend = FakeBackend(responses={"AO1": examiner_json(4)}, delays={"AO1": 5.0})
        result = await self._run(backend, KNOWLEDGE_EXAMINER, test_settings)

        assert not result.succeeded
        assert "Timed out" in result.failure_reason
        assert result.score == 2
        assert result.feedback == "Unable to complete analysis - please try again"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [LLMError("upstream 500", retryable=True), RuntimeError("boom")]
    )
    async def test_backend_errors(self, test_settings: Settings, error: Exception) -> None:
        """Test transport and unexpected errors degrade instead of raising."""
        backend = FakeBackend(responses={"AO1": error})
        result = await self._run(backend, KNOWLEDGE_EXAMINER, test_settings)

        assert not result.succeeded
        assert result.score == 2
        assert result.strengths == ()

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, test_settings: Settings) -> None:
        """Test cancellation is not converted into a failure result."""
        backend = FakeBackend(delays={"AO1": 0.3})
        task = asyncio.create_task(self._run(backend, KNOWLEDGE_EXAMINER, test_settings))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    def test_default_score_ratio(self, test_settings: Settings) -> None:
        """Test the placeholder score follows the configured ratio, floored."""
        runner = ExaminerRunner(FakeBackend(), test_settings)
        assert runner.default_score(KNOWLEDGE_EXAMINER) == 2
        assert runner.default_score(ANALYSIS_EXAMINER) == 3

        low = test_settings.model_copy(update={"failure_score_ratio": 0.3})
        assert ExaminerRunner(FakeBackend(), low).default_score(ANALYSIS_EXAMINER) == 1


class TestResultAggregator:
    """Tests for ResultAggregator."""

    def test_aggregate(self) -> None:
        """Test overall score, percentage and grade."""
        results = [_result("a", 3, 4), _result("b", 4, 4), _result("c", 2, 4), _result("d", 3, 4)]
        aggregate = ResultAggregator().aggregate(results)

        assert aggregate.overall_score == 7.5
        assert aggregate.percentage == 75.0
        assert aggregate.grade == "B"
        assert aggregate.total_score == 12
        assert aggregate.total_max_score == 16

    def test_failed_results_included(self) -> None:
        """Test placeholder scores stay in numerator and denominator."""
        results = [
            _result("a", 4, 4),
            _result("b", 2, 4, succeeded=False, failure_reason="timeout"),
        ]
        aggregate = ResultAggregator().aggregate(results)

        assert aggregate.total_score == 6
        assert aggregate.total_max_score == 8
        assert aggregate.overall_score == 7.5

    def test_empty(self) -> None:
        """Test empty input yields zero and the lowest grade."""
        aggregate = ResultAggregator().aggregate([])

        assert aggregate.overall_score == 0.0
        assert aggregate.grade == "U"
        assert aggregate.percentage == 0.0

    @pytest.mark.parametrize(
        "percentage,grade",
        [
            (100, "A*"),
            (90, "A*"),
            (89.9, "A"),
            (80, "A"),
            (70, "B"),
            (60, "C"),
            (50, "D"),
            (40, "E"),
            (39.9, "U"),
            (0, "U"),
        ],
    )
    def test_grade_thresholds(self, percentage: float, grade: str) -> None:
        """Test grade boundaries are inclusive lower bounds."""
        assert ResultAggregator().grade_for(percentage) == grade

    def test_monotonic_in_total(self) -> None:
        """Test overall score never decreases as the score sum grows."""
        aggregator = ResultAggregator()
        max_scores = (4, 4, 6, 6)
        by_total: dict[int, float] = {}

        for scores in itertools.product(*(range(m + 1) for m in max_scores)):
            results = [_result(str(i), s, m) for i, (s, m) in enumerate(zip(scores, max_scores))]
            by_total[sum(scores)] = aggregator.aggregate(results).overall_score

        totals = sorted(by_total)
        for lower, higher in zip(totals, totals[1:]):
            assert by_total[lower] <= by_total[higher]

    def test_confidence_agreeing_panel(self) -> None:
        """Test identical score ratios keep the base confidence."""
        results = [_result("a", 2, 4), _result("b", 3, 6), _result("c", 1, 2)]

        assert ResultAggregator().aggregate(results).confidence == 0.9

    def test_confidence_penalises_spread(self) -> None:
        """Test disagreement lowers confidence by a tenth of the ratio spread."""
        results = [_result("a", 3, 4), _result("b", 4, 4), _result("c", 2, 4), _result("d", 3, 4)]
        aggregator = ResultAggregator()

        assert aggregator.score_spread(results) == pytest.approx(0.1768, abs=1e-4)
        assert aggregator.aggregate(results).confidence == 0.88

    def test_confidence_penalises_failures(self) -> None:
        """Test each failed examiner costs 0.15 and is left out of the spread."""
        results = [
            _result("a", 4, 4),
            _result("b", 4, 4),
            _result("c", 0, 4, succeeded=False, failure_reason="timeout"),
        ]

        assert ResultAggregator().aggregate(results).confidence == 0.75

    def test_confidence_bounds(self) -> None:
        """Test confidence floors at 0.3 and is zero with no successful examiner."""
        failed = [_result(str(i), 1, 4, succeeded=False, failure_reason="x") for i in range(5)]
        aggregator = ResultAggregator()

        assert aggregator.confidence(failed + [_result("ok", 2, 4)]) == 0.3
        assert aggregator.confidence(failed) == 0.0
        assert aggregator.aggregate([]).confidence == 0.0

    def test_key_strengths(self) -> None:
        """Test strengths are de-duplicated, capped at three and skip failures."""
        results = [
            _result("a", 3, 4, strengths=("Definitions", "Diagram")),
            _result("b", 2, 4, strengths=("Ignored",), succeeded=False, failure_reason="x"),
            _result("c", 3, 4, strengths=("Diagram", "Context", "Evaluation")),
        ]

        assert ResultAggregator().aggregate(results).key_strengths == (
            "Definitions",
            "Diagram",
            "Context",
        )

    def test_custom_thresholds(self) -> None:
        """Test the threshold table is configuration data."""
        aggregator = ResultAggregator(thresholds=((50.0, "Pass"),), lowest_grade="Fail")

        assert aggregator.grade_for(50) == "Pass"
        assert aggregator.grade_for(49) == "Fail"


class TestSummaryGenerator:
    """Tests for SummaryGenerator."""

    RESULTS = [
        ExaminerResult(
            examiner_id="knowledge",
            assessment_objective=AssessmentObjective.AO1,
            score=3,
            max_score=4,
        )
    ]

    @pytest.mark.asyncio
    async def test_summarize(self, test_settings: Settings) -> None:
        """Test a successful summary call."""
        backend = FakeBackend(responses={"summary": SUMMARY_JSON})
        summary = await SummaryGenerator(backend, test_settings).summarize(
            self.RESULTS, "Why?"
        )

        assert summary.summary.startswith("A solid answer")
        assert len(summary.improvements) == 3

        call = backend.calls[0]
        assert call.temperature == 0.4
        assert call.max_tokens == 400
        assert "AO1: 3/4" in call.system_prompt
        assert call.user_prompt == "Question: Why?"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response,delay",
        [
            (LLMError("down"), 0.0),
            (ValueError("weird"), 0.0),
            (SUMMARY_JSON, 5.0),
        ],
    )
    async def test_soft_failure(self, test_settings: Settings, response, delay: float) -> None:
        """Test a failed or timed-out call yields empty fields."""
        backend = FakeBackend(responses={"summary": response}, delays={"summary": delay})
        summary = await SummaryGenerator(backend, test_settings).summarize(self.RESULTS, "Q")

        assert summary.summary == ""
        assert summary.improvements == ()

    @pytest.mark.asyncio
    async def test_plain_text_becomes_summary(self, test_settings: Settings) -> None:
        """Test a readable reply without JSON is kept as the summary."""
        backend = FakeBackend(
            responses={"summary": "  Solid answer; deepen the evaluation.  "}
        )
        summary = await SummaryGenerator(backend, test_settings).summarize(self.RESULTS, "Q")

        assert summary.summary == "Solid answer; deepen the evaluation."
        assert summary.improvements == ()

    @pytest.mark.asyncio
    async def test_plain_text_summary_truncated(self, test_settings: Settings) -> None:
        """Test the plain-text summary is cut to the fallback length."""
        backend = FakeBackend(responses={"summary": "Needs more evaluation. " * 40})
        summary = await SummaryGenerator(backend, test_settings).summarize(self.RESULTS, "Q")

        assert len(summary.summary) == test_settings.fallback_feedback_chars


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def _sdk_client(side_effect) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=side_effect)
    return client


_REQUEST = httpx.Request("POST", "https://test.api.local/v1/chat/completions")


class TestLLMClient:
    """Tests for LLMClient."""

    def test_requires_api_key(self) -> None:
        """Test an unconfigured client cannot be built."""
        settings = Settings(llm_api_key="   ")

        assert not settings.llm_configured
        with pytest.raises(ConfigurationError):
            LLMClient(settings)

    def test_base_url_trailing_slash_stripped(self, test_settings: Settings) -> None:
        """Test settings normalise the base URL."""
        assert test_settings.llm_base_url == "https://test.api.local/v1"

    @pytest.mark.asyncio
    async def test_complete(self, test_settings: Settings) -> None:
        """Test a successful completion returns the message text."""
        sdk = _sdk_client([_completion("hello")])
        client = LLMClient(test_settings, client=sdk)

        assert await client.complete("sys", "user", 0.2, 100) == "hello"

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 100
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}

    @pytest.mark.asyncio
    async def test_empty_response(self, test_settings: Settings) -> None:
        """Test an empty completion raises LLMError."""
        client = LLMClient(test_settings, client=_sdk_client([_completion(None)]))

        with pytest.raises(LLMError):
            await client.complete("sys", "user", 0.2, 100)

    @pytest.mark.asyncio
    async def test_retries_connection_errors(self, test_settings: Settings) -> None:
        """Test retryable errors are retried with backoff."""
        settings = test_settings.model_copy(update={"llm_max_retries": 2})
        sdk = _sdk_client([APIConnectionError(request=_REQUEST), _completion("ok")])
        client = LLMClient(settings, client=sdk)

        with patch("examiner_swarm.grading.llm_client.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await client.complete("sys", "user", 0.2, 100) == "ok"

        assert sdk.chat.completions.create.await_count == 2
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, test_settings: Settings) -> None:
        """Test the last retryable error surfaces as a retryable LLMError."""
        sdk = _sdk_client(APIConnectionError(request=_REQUEST))
        client = LLMClient(test_settings, client=sdk)

        with pytest.raises(LLMError) as exc_info:
            await client.complete("sys", "user", 0.2, 100)

        assert exc_info.value.retryable
        assert sdk.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, test_settings: Settings) -> None:
        """Test 4xx errors other than 429 fail immediately."""
        settings = test_settings.model_copy(update={"llm_max_retries": 2})
        error = APIStatusError(
            "bad request", response=httpx.Response(400, request=_REQUEST), body=None
        )
        sdk = _sdk_client(error)
        client = LLMClient(settings, client=sdk)

        with pytest.raises(LLMError) as exc_info:
            await client.complete("sys", "user", 0.2, 100)

        assert not exc_info.value.retryable
        assert sdk.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_health_check(self, test_settings: Settings) -> None:
        """Test health check reports reachability without raising."""
        healthy = LLMClient(test_settings, client=_sdk_client([_completion("pong")]))
        broken = LLMClient(test_settings, client=_sdk_client(RuntimeError("down")))

        assert await healthy.health_check() is True
        assert await broken.health_check() is False
