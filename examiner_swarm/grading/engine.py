"""
Grading orchestrator - the core of the swarm.

Fans one grading request out to every examiner concurrently, gathers the
results back into configuration order, aggregates them and asks for a
short summary. Progress is published as each examiner finishes.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence
from uuid import uuid4

from examiner_swarm.config import Settings, get_settings
from examiner_swarm.errors import AdmissionError, ConfigurationError
from examiner_swarm.grading.aggregator import ResultAggregator
from examiner_swarm.grading.llm_client import CompletionBackend
from examiner_swarm.grading.prompt_builder import PromptBuilder
from examiner_swarm.grading.runner import ExaminerRunner
from examiner_swarm.grading.summary import SummaryGenerator
from examiner_swarm.logging import bind_request_context, clear_request_context, get_logger
from examiner_swarm.markscheme import diagram_feedback, get_examiners, time_estimate
from examiner_swarm.models import (
    ExaminerConfig,
    ExaminerResult,
    GradeRequest,
    GradingResult,
    ProgressEvent,
    QuestionType,
    RateLimitDecision,
    RateTier,
    UnitCode,
)
from examiner_swarm.progress import ProgressBroadcaster, SafeBroadcaster
from examiner_swarm.ratelimit import RateLimiter

logger = get_logger(__name__)

ResultCallback = Callable[[ExaminerResult], None]


class GradingOrchestrator:
    """
    Runs the examiner swarm for one request at a time.

    The orchestrator itself holds no per-request state; the rate limiter is
    the only thing shared between concurrent requests.
    """

    def __init__(
        self,
        backend: CompletionBackend | None,
        rate_limiter: RateLimiter | None = None,
        broadcaster: ProgressBroadcaster | None = None,
        settings: Settings | None = None,
        runner: ExaminerRunner | None = None,
        aggregator: ResultAggregator | None = None,
        summary_generator: SummaryGenerator | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            backend: Language-model capability; None means not configured.
            rate_limiter: Shared limiter. A private one is created if omitted.
            broadcaster: Progress sink; wrapped so it can never fail a request.
            settings: Configuration settings. Uses global settings if not provided.
            runner: Examiner runner override (tests).
            aggregator: Aggregator override.
            summary_generator: Summary generator override.
        """
        self._settings = settings or get_settings()
        self._backend = backend
        self._rate_limiter = rate_limiter or RateLimiter()
        self._broadcaster = SafeBroadcaster(broadcaster)
        self._aggregator = aggregator or ResultAggregator(
            self._settings.grade_thresholds, self._settings.lowest_grade
        )
        if backend is not None:
            self._runner = runner or ExaminerRunner(backend, self._settings)
            self._summary = summary_generator or SummaryGenerator(backend, self._settings)
        else:
            self._runner = runner
            self._summary = summary_generator

    @property
    def configured(self) -> bool:
        return self._backend is not None

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def admit(self, identity: str, tier: RateTier = RateTier.FREE) -> RateLimitDecision:
        """
        Check preconditions for a grading request.

        Configuration is checked before the rate limit, so an unconfigured
        service never consumes a caller's quota.

        Raises:
            ConfigurationError: If no language-model backend is configured.
            AdmissionError: If the caller's rate limit is exhausted.
        """
        if not self.configured:
            raise ConfigurationError("AI grading service not configured")

        decision = self._rate_limiter.check(identity, tier)
        if not decision.allowed:
            raise AdmissionError(
                "Rate limit exceeded. Please try again later.",
                reset_at=decision.reset_at,
                remaining=decision.remaining,
            )
        return decision

    async def grade(
        self,
        request: GradeRequest,
        examiner_configs: Sequence[ExaminerConfig] | None = None,
        identity: str = "anonymous",
        tier: RateTier = RateTier.FREE,
    ) -> GradingResult:
        """
        Grade an essay with the full examiner panel.

        Args:
            request: The validated grade request.
            examiner_configs: Examiner panel; defaults to the subject's panel.
            identity: Caller identity for rate limiting.
            tier: Caller's rate-limit tier.

        Returns:
            The aggregate result, one examiner entry per configured examiner.

        Raises:
            ConfigurationError: If no language-model backend is configured.
            AdmissionError: If the caller's rate limit is exhausted.
        """
        self.admit(identity, tier)
        return await self.execute(request, examiner_configs)

    def stream(
        self,
        request: GradeRequest,
        examiner_configs: Sequence[ExaminerConfig] | None = None,
        identity: str = "anonymous",
        tier: RateTier = RateTier.FREE,
    ) -> "GradingStream":
        """
        Grade an essay, yielding examiner results as they complete.

        Iterating the returned stream yields `(examiner_id, ExaminerResult)`
        pairs in completion order; once exhausted, `stream.result` holds the
        aggregate GradingResult.
        """
        return GradingStream(
            lambda on_result: self._admit_and_execute(
                request, examiner_configs, identity, tier, on_result
            )
        )

    async def _admit_and_execute(
        self,
        request: GradeRequest,
        examiner_configs: Sequence[ExaminerConfig] | None,
        identity: str,
        tier: RateTier,
        on_result: ResultCallback,
    ) -> GradingResult:
        self.admit(identity, tier)
        return await self.execute(request, examiner_configs, on_result)

    async def execute(
        self,
        request: GradeRequest,
        examiner_configs: Sequence[ExaminerConfig] | None = None,
        on_result: ResultCallback | None = None,
    ) -> GradingResult:
        """
        Run an already admitted request.

        Args:
            request: The validated grade request.
            examiner_configs: Examiner panel; defaults to the subject's panel.
            on_result: Called with each examiner result in completion order.

        Returns:
            The aggregate GradingResult.
        """
        if not self.configured:
            raise ConfigurationError("AI grading service not configured")

        examiners = (
            tuple(examiner_configs)
            if examiner_configs is not None
            else get_examiners(request.subject)
        )
        unit = request.unit or self._settings.default_unit
        question_type = request.question_type or self._settings.default_question_type
        request_id = uuid4().hex

        bind_request_context(request_id=request_id)
        try:
            return await self._execute(
                request, examiners, unit, question_type, request_id, on_result
            )
        finally:
            clear_request_context("request_id")

    async def _execute(
        self,
        request: GradeRequest,
        examiners: tuple[ExaminerConfig, ...],
        unit: UnitCode,
        question_type: QuestionType,
        request_id: str,
        on_result: ResultCallback | None,
    ) -> GradingResult:
        total = len(examiners)
        started = time.perf_counter()

        logger.info(
            "grading_started",
            subject=request.subject.value,
            question_type=question_type.value,
            examiners=total,
        )
        await self._publish(ProgressEvent(kind="started", request_id=request_id, total=total))

        try:
            prompts = [
                PromptBuilder.build(examiner, unit, question_type, request.has_diagram)
                for examiner in examiners
            ]

            results = await self._fan_out(request, examiners, prompts, request_id, on_result)

            aggregate = self._aggregator.aggregate(results)
            summary = await self._summary.summarize(
                results, PromptBuilder.question_excerpt(request.question)
            )

            result = GradingResult(
                request_id=request_id,
                overall_score=aggregate.overall_score,
                grade=aggregate.grade,
                percentage=aggregate.percentage,
                examiner_results=tuple(results),
                summary=summary.summary,
                improvements=summary.improvements,
                key_strengths=aggregate.key_strengths,
                confidence=aggregate.confidence,
                word_count=len(request.essay.split()),
                time_estimate=time_estimate(question_type),
                subject=request.subject,
                question_type=question_type,
                unit=unit,
                diagram_feedback=diagram_feedback(question_type, request.has_diagram),
                graded_at=datetime.now(timezone.utc),
            )
        except Exception as e:
            logger.error("grading_failed", error=repr(e))
            await self._publish(
                ProgressEvent(
                    kind="failed",
                    request_id=request_id,
                    total=total,
                    error=str(e) or type(e).__name__,
                )
            )
            raise

        logger.info(
            "grading_completed",
            overall_score=result.overall_score,
            grade=result.grade,
            failed_examiners=result.failed_examiners,
            duration_ms=round((time.perf_counter() - started) * 1000),
        )
        await self._publish(
            ProgressEvent(
                kind="completed",
                request_id=request_id,
                total=total,
                completed=total,
                percent=100,
                grading_result=result,
            )
        )
        return result

    async def _fan_out(
        self,
        request: GradeRequest,
        examiners: Sequence[ExaminerConfig],
        prompts: Sequence[str],
        request_id: str,
        on_result: ResultCallback | None,
    ) -> list[ExaminerResult]:
        """
        Run every examiner concurrently and wait for all of them.

        Results are stored by configuration index; progress follows
        completion order. Pending tasks are cancelled if this coroutine is.
        """
        total = len(examiners)
        results: list[ExaminerResult | None] = [None] * total
        tasks = {
            asyncio.create_task(
                self._runner.run(
                    examiner,
                    prompt,
                    request.question,
                    request.essay,
                    request.has_diagram,
                    request.context_data,
                    request.extract_info,
                ),
                name=f"examiner-{examiner.id}",
            ): index
            for index, (examiner, prompt) in enumerate(zip(examiners, prompts))
        }

        pending = set(tasks)
        completed = 0
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in sorted(done, key=tasks.__getitem__):
                    examiner_result = task.result()
                    results[tasks[task]] = examiner_result
                    completed += 1

                    if on_result is not None:
                        on_result(examiner_result)

                    await self._publish(
                        ProgressEvent(
                            kind="progress",
                            request_id=request_id,
                            total=total,
                            completed=completed,
                            percent=round(completed / total * 100),
                            examiner_id=examiner_result.examiner_id,
                            examiner_result=examiner_result,
                        )
                    )
        finally:
            for task in pending:
                task.cancel()
            # Settles cancelled tasks and retrieves any exception left unread.
            await asyncio.gather(*tasks, return_exceptions=True)

        return [r for r in results if r is not None]

    async def _publish(self, event: ProgressEvent) -> None:
        await self._broadcaster.publish(event)

    async def health_check(self) -> bool:
        """True if a backend is configured and answers a trivial request."""
        if self._backend is None:
            return False
        check = getattr(self._backend, "health_check", None)
        if check is None:
            return True
        return await check()


_DONE = object()


class GradingStream:
    """
    Async iterator over examiner results of one grading run.

    The run starts on first iteration. Errors raised by the run (admission,
    configuration) surface from the iteration itself.
    """

    def __init__(self, run: Callable[[ResultCallback], Awaitable[GradingResult]]):
        self._run = run
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._result: GradingResult | None = None

    @property
    def result(self) -> GradingResult:
        """The aggregate result; only available once the stream is exhausted."""
        if self._result is None:
            raise RuntimeError("Grading stream has not finished")
        return self._result

    def __aiter__(self) -> "GradingStream":
        return self

    async def __anext__(self) -> tuple[str, ExaminerResult]:
        if self._result is not None:
            raise StopAsyncIteration
        if self._task is None:
            self._task = asyncio.create_task(self._drive())

        item = await self._queue.get()
        if item is _DONE:
            self._result = await self._task
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        """Cancel the underlying run if it is still going."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _drive(self) -> GradingResult:
        try:
            return await self._run(
                lambda result: self._queue.put_nowait((result.examiner_id, result))
            )
        finally:
            self._queue.put_nowait(_DONE)
