"""
Configuration management for the Examiner Swarm grading engine.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
The language-model API key is optional: when it is missing the engine reports the
service as unconfigured instead of failing at import time.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from examiner_swarm.models import QuestionType, RateTier, UnitCode


class LogFormat(str, Enum):
    """Log output format."""

    CONSOLE = "console"
    JSON = "json"


# Requests per window, window length in seconds
RATE_LIMITS: dict[RateTier, tuple[int, float]] = {
    RateTier.FREE: (5, 60.0),
    RateTier.BASIC: (15, 60.0),
    RateTier.PREMIUM: (50, 60.0),
}

DEFAULT_GRADE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (90.0, "A*"),
    (80.0, "A"),
    (70.0, "B"),
    (60.0, "C"),
    (50.0, "D"),
    (40.0, "E"),
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are validated at startup. Numeric bounds are enforced so a
    typo in the environment fails fast rather than producing odd grading.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Language Model API Configuration
    # ==========================================================================
    llm_api_key: str | None = Field(
        default=None,
        description="API key for the OpenAI-compatible endpoint (unset = unconfigured)",
    )

    llm_base_url: str = Field(
        default="https://api.moonshot.cn/v1",
        description="Base URL for the OpenAI-compatible API",
    )

    llm_model: str = Field(
        default="kimi-latest",
        description="Model to use for examiners and summaries",
    )

    llm_max_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retries for retryable transport errors within one call",
    )

    # ==========================================================================
    # Examiner Configuration
    # ==========================================================================
    examiner_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Temperature for examiner calls (low favours determinism)",
    )

    examiner_max_tokens: int = Field(default=1500, ge=64, le=8192)

    examiner_timeout_seconds: float = Field(
        default=25.0,
        gt=0.0,
        le=300.0,
        description="Per-examiner timeout; a slow examiner degrades to its placeholder",
    )

    failure_score_ratio: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Fraction of max score awarded when an examiner fails (floored)",
    )

    fallback_feedback_chars: int = Field(default=500, ge=1, le=5000)

    # ==========================================================================
    # Summary Configuration
    # ==========================================================================
    summary_temperature: float = Field(default=0.4, ge=0.0, le=1.0)

    summary_max_tokens: int = Field(default=400, ge=32, le=4096)

    summary_timeout_seconds: float = Field(default=15.0, gt=0.0, le=300.0)

    # ==========================================================================
    # Request Defaults
    # ==========================================================================
    default_unit: UnitCode = Field(default=UnitCode.WEC11)

    default_question_type: QuestionType = Field(default=QuestionType.FOURTEEN_MARK)

    grade_thresholds: tuple[tuple[float, str], ...] = Field(
        default=DEFAULT_GRADE_THRESHOLDS,
        description="Descending (minimum percentage, grade) pairs",
    )

    lowest_grade: str = Field(default="U")

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================
    log_level: str = Field(default="INFO")

    log_format: LogFormat = Field(default=LogFormat.CONSOLE)

    @field_validator("llm_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base URL doesn't have trailing slash."""
        return v.rstrip("/")

    @field_validator("llm_api_key")
    @classmethod
    def blank_key_is_unset(cls, v: str | None) -> str | None:
        """Treat an empty key as not configured."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("grade_thresholds")
    @classmethod
    def validate_thresholds(
        cls, v: tuple[tuple[float, str], ...]
    ) -> tuple[tuple[float, str], ...]:
        """Thresholds must be strictly descending."""
        cut_points = [cut for cut, _ in v]
        if cut_points != sorted(cut_points, reverse=True) or len(set(cut_points)) != len(cut_points):
            raise ValueError("grade_thresholds must be strictly descending")
        return v

    @property
    def llm_configured(self) -> bool:
        """Whether a language-model backend can be built from these settings."""
        return self.llm_api_key is not None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
