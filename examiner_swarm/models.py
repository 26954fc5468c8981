"""
Pydantic models for the Examiner Swarm grading engine.

These models define the schemas for:
- Examiner definitions and mark-scheme parameters
- Incoming grade requests and caller context
- Per-examiner and aggregate grading results
- Rate-limit decisions and progress events

All models are frozen: once built they are never mutated.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class Subject(str, Enum):
    """Subjects the engine can grade."""

    ECONOMICS = "economics"
    GEOGRAPHY = "geography"


class UnitCode(str, Enum):
    """Edexcel International A-Level unit codes."""

    WEC11 = "WEC11"
    WEC12 = "WEC12"
    WEC13 = "WEC13"
    WEC14 = "WEC14"


class QuestionType(str, Enum):
    """Question types, named by their total marks."""

    FOUR_MARK = "4-mark"
    SIX_MARK = "6-mark"
    EIGHT_MARK = "8-mark"
    TEN_MARK = "10-mark"
    TWELVE_MARK = "12-mark"
    FOURTEEN_MARK = "14-mark"
    SIXTEEN_MARK = "16-mark"
    TWENTY_MARK = "20-mark"


class AssessmentObjective(str, Enum):
    """Assessment objectives, one examiner each."""

    AO1 = "AO1"  # Knowledge and Understanding
    AO2 = "AO2"  # Application
    AO3 = "AO3"  # Analysis
    AO4 = "AO4"  # Evaluation


class RateTier(str, Enum):
    """Subscription tier used to pick a rate limit."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


_API_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ==============================================================================
# Mark Scheme Models
# ==============================================================================


class ExaminerConfig(BaseModel):
    """
    Static definition of one examiner.

    The prompt template holds the rubric text for the examiner's assessment
    objective; the PromptBuilder resolves it against the question context.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    assessment_objective: AssessmentObjective
    max_score: int = Field(..., gt=0)
    prompt_template: str = Field(..., min_length=1)
    display_color: str = Field(default="#CCCCCC")
    description: str = Field(default="")
    criteria: tuple[str, ...] = Field(default=())


class QuestionTypeConfig(BaseModel):
    """Mark-scheme parameters for one question type."""

    model_config = ConfigDict(frozen=True)

    question_type: QuestionType
    total_marks: int = Field(..., gt=0)
    ao_distribution: dict[AssessmentObjective, int]
    requires_diagram: bool
    recommended_length: str
    time_allocation: int = Field(..., description="Recommended minutes")
    description: str


class MarkBand(BaseModel):
    """A level band within a question type's mark range."""

    model_config = ConfigDict(frozen=True)

    min_score: int
    max_score: int
    level: str
    description: str
    characteristics: tuple[str, ...] = ()


# ==============================================================================
# Request Models
# ==============================================================================


class GradeRequest(BaseModel):
    """
    One grading attempt.

    Unit and question type are optional; the orchestrator fills them from
    configuration when absent.
    """

    model_config = _API_CONFIG

    question: str = Field(..., min_length=1, max_length=2000)
    essay: str = Field(..., min_length=1, max_length=10000)
    subject: Subject
    unit: UnitCode | None = None
    question_type: QuestionType | None = None
    has_diagram: bool = False
    context_data: str | None = Field(default=None, max_length=5000)
    extract_info: str | None = Field(default=None, max_length=5000)
    save_to_history: bool = True

    @field_validator("question", "essay")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Reject whitespace-only text."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class GradeContext(BaseModel):
    """Pre-validated caller identity supplied by the authentication layer."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    allowed_subjects: tuple[Subject, ...] = (Subject.ECONOMICS, Subject.GEOGRAPHY)
    tier: RateTier = RateTier.FREE


# ==============================================================================
# Grading Result Models
# ==============================================================================


class ExaminerResult(BaseModel):
    """
    Outcome of one examiner run.

    A failed run still carries a score (the configured placeholder) so that
    the aggregate reflects it rather than silently dropping the examiner.
    """

    model_config = _API_CONFIG

    examiner_id: str
    examiner_name: str = ""
    assessment_objective: AssessmentObjective | None = None
    score: int = Field(..., ge=0)
    max_score: int = Field(..., gt=0)
    band: str = "L1"
    feedback: str = ""
    strengths: tuple[str, ...] = ()
    improvements: tuple[str, ...] = ()
    color: str = ""
    succeeded: bool = True
    failure_reason: str | None = None

    @model_validator(mode="after")
    def validate_invariants(self) -> "ExaminerResult":
        """Score within range; failure reason present exactly when failed."""
        if self.score > self.max_score:
            raise ValueError(
                f"Score ({self.score}) cannot exceed max score ({self.max_score})"
            )
        if self.succeeded and self.failure_reason is not None:
            raise ValueError("failure_reason must be empty for a successful result")
        if not self.succeeded and not self.failure_reason:
            raise ValueError("failure_reason is required for a failed result")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> float:
        """Score as a percentage of this examiner's maximum."""
        return self.score / self.max_score * 100


class GradingResult(BaseModel):
    """
    Aggregate outcome of a grading request.

    Examiner results keep the configured examiner order, one entry per
    examiner whether or not it succeeded.
    """

    model_config = _API_CONFIG

    request_id: str = Field(default_factory=lambda: uuid4().hex)
    overall_score: float = Field(..., ge=0.0, le=10.0)
    grade: str
    percentage: float = Field(..., ge=0.0, le=100.0)
    examiner_results: tuple[ExaminerResult, ...]
    summary: str = ""
    improvements: tuple[str, ...] = Field(default=(), max_length=3)
    key_strengths: tuple[str, ...] = Field(default=(), max_length=3)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    word_count: int = Field(default=0, ge=0)
    time_estimate: str | None = None
    subject: Subject
    question_type: QuestionType
    unit: UnitCode
    diagram_feedback: str | None = None
    graded_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_score(self) -> int:
        """Sum of examiner scores, placeholders included."""
        return sum(r.score for r in self.examiner_results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_max_score(self) -> int:
        """Sum of examiner maximum scores."""
        return sum(r.max_score for r in self.examiner_results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_examiners(self) -> int:
        """Number of examiners that degraded to a placeholder."""
        return sum(1 for r in self.examiner_results if not r.succeeded)


# ==============================================================================
# Rate Limit and Progress Models
# ==============================================================================


class RateLimitDecision(BaseModel):
    """Result of a rate-limit check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    remaining: int = Field(..., ge=0)
    limit: int = Field(..., gt=0)
    reset_at: datetime


ProgressKind = Literal["started", "progress", "completed", "failed"]


class ProgressEvent(BaseModel):
    """A discrete progress notification published during grading."""

    model_config = _API_CONFIG

    kind: ProgressKind
    request_id: str
    total: int = Field(..., ge=0)
    completed: int = Field(default=0, ge=0)
    percent: int = Field(default=0, ge=0, le=100)
    examiner_id: str | None = None
    examiner_result: ExaminerResult | None = None
    grading_result: GradingResult | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict for event buses."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
