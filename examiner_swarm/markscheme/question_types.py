"""
Question-type parameters and mark bands (Edexcel-aligned).

Static data: loaded once, never mutated.
"""

from types import MappingProxyType
from typing import Mapping

from examiner_swarm.models import AssessmentObjective, MarkBand, QuestionType, QuestionTypeConfig

AO1, AO2, AO3, AO4 = (
    AssessmentObjective.AO1,
    AssessmentObjective.AO2,
    AssessmentObjective.AO3,
    AssessmentObjective.AO4,
)


def _qt(
    question_type: QuestionType,
    distribution: tuple[int, int, int, int],
    requires_diagram: bool,
    recommended_length: str,
    time_allocation: int,
    description: str,
) -> QuestionTypeConfig:
    return QuestionTypeConfig(
        question_type=question_type,
        total_marks=sum(distribution),
        ao_distribution=dict(zip((AO1, AO2, AO3, AO4), distribution)),
        requires_diagram=requires_diagram,
        recommended_length=recommended_length,
        time_allocation=time_allocation,
        description=description,
    )


QUESTION_TYPES: Mapping[QuestionType, QuestionTypeConfig] = MappingProxyType(
    {
        config.question_type: config
        for config in (
            _qt(QuestionType.FOUR_MARK, (2, 2, 0, 0), False, "100-150 words", 5,
                "Knowledge and application question - define and apply concepts"),
            _qt(QuestionType.SIX_MARK, (2, 2, 2, 0), False, "150-200 words", 8,
                "Knowledge, application and basic analysis"),
            _qt(QuestionType.EIGHT_MARK, (2, 2, 4, 0), True, "200-250 words", 10,
                "Analysis-focused with diagram requirement"),
            _qt(QuestionType.TEN_MARK, (2, 2, 4, 2), True, "250-300 words", 12,
                "Full analysis with introductory evaluation"),
            _qt(QuestionType.TWELVE_MARK, (2, 2, 4, 4), True, "300-400 words", 15,
                "Evaluation question with balanced judgment"),
            _qt(QuestionType.FOURTEEN_MARK, (2, 3, 4, 5), True, "400-500 words", 18,
                "Extended evaluation with context application"),
            _qt(QuestionType.SIXTEEN_MARK, (3, 3, 5, 5), True, "500-600 words", 20,
                "Full essay with comprehensive evaluation"),
            _qt(QuestionType.TWENTY_MARK, (4, 4, 6, 6), True, "600-800 words", 25,
                "Synoptic essay requiring multiple perspectives"),
        )
    }
)


def _bands(*rows: tuple[int, int, str, str, tuple[str, ...]]) -> tuple[MarkBand, ...]:
    return tuple(
        MarkBand(min_score=lo, max_score=hi, level=level, description=desc, characteristics=chars)
        for lo, hi, level, desc, chars in rows
    )


_GENERIC_L1 = ("Basic knowledge", "Weak application", "Limited analysis and evaluation")

MARK_BANDS: Mapping[QuestionType, tuple[MarkBand, ...]] = MappingProxyType(
    {
        QuestionType.FOUR_MARK: _bands(
            (0, 1, "L1", "Limited knowledge", ("Basic definitions", "Minimal context")),
            (2, 3, "L2", "Good knowledge and application", ("Clear definitions", "Relevant application")),
            (4, 4, "L3", "Excellent understanding", ("Precise definitions", "Full contextual application")),
        ),
        QuestionType.SIX_MARK: _bands(
            (0, 2, "L1", "Limited", ("Basic knowledge", "Weak application")),
            (3, 4, "L2", "Developing", ("Good knowledge", "Some application", "Basic analysis")),
            (5, 6, "L3", "Strong", ("Full knowledge", "Clear application", "Developed analysis")),
        ),
        QuestionType.EIGHT_MARK: _bands(
            (0, 2, "L1", "Limited", ("Basic knowledge", "Weak chains of reasoning")),
            (3, 5, "L2", "Developing", ("Good knowledge", "Some chains of reasoning", "Diagram present")),
            (6, 8, "L3", "Strong", ("Full knowledge", "Clear chains of reasoning", "Accurate diagram")),
        ),
        QuestionType.TEN_MARK: _bands(
            (0, 3, "L1", "Limited", ("Basic knowledge", "Weak analysis", "Little evaluation")),
            (4, 6, "L2", "Developing", ("Good knowledge", "Some analysis", "Basic evaluation")),
            (7, 10, "L3", "Strong", ("Full knowledge", "Clear analysis", "Developed evaluation")),
        ),
        QuestionType.TWELVE_MARK: _bands(
            (0, 4, "L1", "Limited", ("Basic knowledge", "Weak analysis", "Limited evaluation")),
            (5, 8, "L2", "Developing", ("Good knowledge", "Clear analysis", "Some evaluation with judgment")),
            (9, 12, "L3", "Strong", ("Full knowledge", "Developed analysis", "Balanced evaluation with supported judgment")),
        ),
        QuestionType.FOURTEEN_MARK: _bands(
            (0, 5, "L1", "Limited", _GENERIC_L1),
            (6, 9, "L2", "Developing", ("Good knowledge", "Clear application", "Some developed analysis and evaluation")),
            (10, 14, "L3", "Strong", ("Full knowledge", "Full contextual application", "Developed analysis and evaluation with supported judgment")),
        ),
        QuestionType.SIXTEEN_MARK: _bands(
            (0, 5, "L1", "Limited", _GENERIC_L1),
            (6, 10, "L2", "Developing", ("Good knowledge", "Clear application", "Some developed analysis and evaluation with judgment")),
            (11, 16, "L3", "Strong", ("Full knowledge", "Full contextual application", "Developed analysis and evaluation with well-supported judgment")),
        ),
        QuestionType.TWENTY_MARK: _bands(
            (0, 6, "L1", "Limited", _GENERIC_L1),
            (7, 13, "L2", "Developing", ("Good knowledge", "Clear application", "Some developed analysis and evaluation with judgment")),
            (14, 20, "L3", "Strong", ("Full knowledge", "Full contextual application", "Developed analysis and evaluation across multiple perspectives")),
        ),
    }
)

GRADE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "A*": "Exceptional performance with comprehensive understanding",
        "A": "Excellent performance with strong understanding",
        "B": "Good performance with sound understanding",
        "C": "Satisfactory performance with adequate understanding",
        "D": "Basic performance with limited understanding",
        "E": "Minimal performance with weak understanding",
        "U": "Unclassified - significant improvement needed",
    }
)


def get_question_type_config(question_type: QuestionType) -> QuestionTypeConfig:
    """Look up a question type; unknown values raise KeyError."""
    return QUESTION_TYPES[question_type]


def get_mark_band(question_type: QuestionType, score: float) -> MarkBand | None:
    """Find the level band a whole-question score falls in."""
    for band in MARK_BANDS[question_type]:
        if band.min_score <= score <= band.max_score:
            return band
    return None


def band_for_examiner(score: int, max_score: int) -> str:
    """Level band for a single examiner's score (L3 >= 75%, L2 >= 40%)."""
    percentage = score / max_score * 100 if max_score else 0.0
    if percentage >= 75:
        return "L3"
    if percentage >= 40:
        return "L2"
    return "L1"


def diagram_feedback(question_type: QuestionType, has_diagram: bool) -> str | None:
    """Advice about the diagram for question types that require one."""
    config = QUESTION_TYPES[question_type]
    if not config.requires_diagram:
        return None
    if not has_diagram:
        return (
            f"Diagram missing: {question_type.value} questions typically require a diagram. "
            "Include an appropriate diagram to support your analysis and maximise AO3 marks."
        )
    return (
        "Diagram present: ensure it is accurately labelled with correct axes, curves "
        "and equilibrium points."
    )


def grade_description(grade: str) -> str:
    """Human-readable meaning of a letter grade."""
    return GRADE_DESCRIPTIONS.get(grade, "Grade not recognized")


def time_estimate(question_type: QuestionType) -> str:
    """Recommended writing time for a question type."""
    return f"{QUESTION_TYPES[question_type].time_allocation} minutes recommended"
