"""
Mark Scheme Module.

Examiner panels, question-type parameters and level bands.
"""

from examiner_swarm.markscheme.examiners import get_examiners
from examiner_swarm.markscheme.question_types import (
    MARK_BANDS,
    QUESTION_TYPES,
    band_for_examiner,
    diagram_feedback,
    get_mark_band,
    get_question_type_config,
    grade_description,
    time_estimate,
)

__all__ = [
    "MARK_BANDS",
    "QUESTION_TYPES",
    "band_for_examiner",
    "diagram_feedback",
    "get_examiners",
    "get_mark_band",
    "get_question_type_config",
    "grade_description",
    "time_estimate",
]
