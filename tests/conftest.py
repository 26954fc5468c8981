"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules. No test talks to a real
language model: FakeBackend stands in for the completion capability.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, Generator

import pytest

from examiner_swarm.config import Settings, get_settings
from examiner_swarm.models import (
    AssessmentObjective,
    ExaminerConfig,
    GradeContext,
    GradeRequest,
    QuestionType,
    RateTier,
    Subject,
    UnitCode,
)
from examiner_swarm.progress import RecordingBroadcaster
from examiner_swarm.ratelimit import RateLimiter


# ==============================================================================
# Fake Language Model
# ==============================================================================


_AO_FOCUS = re.compile(r"Your AO Focus: (AO\d)")


@dataclass
class FakeCall:
    """One recorded completion request."""

    key: str
    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: int


@dataclass
class FakeBackend:
    """
    Scripted completion backend.

    Requests are routed by the examiner's AO focus ("AO1".."AO4") or
    "summary". A scripted value that is an exception is raised instead of
    returned; delays are in seconds.
    """

    responses: dict[str, Any] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    default: Any = '{"score": 0, "feedback": "default"}'
    calls: list[FakeCall] = field(default_factory=list)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        key = self.route(system_prompt)
        self.calls.append(FakeCall(key, system_prompt, user_prompt, temperature, max_tokens))

        delay = self.delays.get(key, 0.0)
        if delay:
            await asyncio.sleep(delay)

        response = self.responses.get(key, self.default)
        if isinstance(response, BaseException):
            raise response
        return response

    @staticmethod
    def route(system_prompt: str) -> str:
        if system_prompt.startswith("You are a senior examiner"):
            return "summary"
        match = _AO_FOCUS.search(system_prompt)
        return match.group(1) if match else "unknown"

    def keys(self) -> list[str]:
        return [call.key for call in self.calls]


def examiner_json(score: Any, **extra: Any) -> str:
    """Well-formed examiner response body."""
    return json.dumps(
        {
            "score": score,
            "band": extra.pop("band", "L2"),
            "feedback": extra.pop("feedback", f"Scored {score}."),
            "strengths": extra.pop("strengths", ["Clear definitions"]),
            "improvements": extra.pop("improvements", ["Add a real-world example"]),
            **extra,
        }
    )


SUMMARY_JSON = json.dumps(
    {
        "summary": "A solid answer with room to deepen the evaluation.",
        "improvements": ["Use data", "Weigh both sides", "Reach a judgement", "Extra tip"],
    }
)


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with short timeouts and a dummy key."""
    return Settings(
        llm_api_key="test-api-key-for-testing",
        llm_base_url="https://test.api.local/v1/",
        llm_model="test-model",
        llm_max_retries=0,
        examiner_timeout_seconds=0.5,
        summary_timeout_seconds=0.5,
    )


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Keep cached settings from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ==============================================================================
# Examiner Fixtures
# ==============================================================================


def _examiner(examiner_id: str, ao: AssessmentObjective, max_score: int) -> ExaminerConfig:
    return ExaminerConfig(
        id=examiner_id,
        name=f"{examiner_id.title()} Examiner",
        assessment_objective=ao,
        max_score=max_score,
        prompt_template=f"You are the {examiner_id} examiner.",
        display_color="#FFFFFF",
    )


@pytest.fixture
def four_equal_examiners() -> tuple[ExaminerConfig, ...]:
    """Four examiners, max score 4 each."""
    return (
        _examiner("knowledge", AssessmentObjective.AO1, 4),
        _examiner("application", AssessmentObjective.AO2, 4),
        _examiner("analysis", AssessmentObjective.AO3, 4),
        _examiner("evaluation", AssessmentObjective.AO4, 4),
    )


@pytest.fixture
def wide_examiner() -> ExaminerConfig:
    """A single examiner with a ten-mark range."""
    return _examiner("knowledge", AssessmentObjective.AO1, 10)


# ==============================================================================
# Request Fixtures
# ==============================================================================


@pytest.fixture
def sample_request() -> GradeRequest:
    """A valid economics request."""
    return GradeRequest(
        question="Evaluate the likely impact of a minimum wage increase on youth unemployment.",
        essay=(
            "A minimum wage is a legally enforced price floor in the labour market. "
            "If it is set above equilibrium, the quantity of labour supplied exceeds "
            "the quantity demanded, creating unemployment. However, the effect depends "
            "on the elasticity of demand for young workers and on monopsony power."
        ),
        subject=Subject.ECONOMICS,
        unit=UnitCode.WEC11,
        question_type=QuestionType.FOURTEEN_MARK,
        has_diagram=True,
    )


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """A valid camelCase request body."""
    return {
        "question": "Discuss the causes of demand-pull inflation.",
        "essay": "Demand-pull inflation occurs when aggregate demand grows faster than aggregate supply.",
        "subject": "economics",
        "unit": "WEC12",
        "questionType": "12-mark",
        "hasDiagram": False,
    }


@pytest.fixture
def student_context() -> GradeContext:
    """A free-tier caller allowed economics only."""
    return GradeContext(
        user_id="user-123",
        allowed_subjects=(Subject.ECONOMICS,),
        tier=RateTier.FREE,
    )


# ==============================================================================
# Collaborator Fixtures
# ==============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(fake_clock: FakeClock) -> RateLimiter:
    """Limiter driven by the fake clock."""
    return RateLimiter(clock=fake_clock)


@pytest.fixture
def recorder() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def all_succeed_backend() -> FakeBackend:
    """Scores [3, 4, 2, 3] for AO1-AO4 plus a summary."""
    return FakeBackend(
        responses={
            "AO1": examiner_json(3),
            "AO2": examiner_json(4),
            "AO3": examiner_json(2),
            "AO4": examiner_json(3),
            "summary": SUMMARY_JSON,
        }
    )
