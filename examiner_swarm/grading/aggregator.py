"""
Composite scoring over examiner results.

Failed examiners count exactly like any other result: their placeholder
score stays in both numerator and denominator. Confidence and key
strengths, by contrast, are drawn from succeeded examiners only.
"""

import statistics
from typing import NamedTuple, Sequence

from examiner_swarm.config import DEFAULT_GRADE_THRESHOLDS
from examiner_swarm.models import ExaminerResult

BASE_CONFIDENCE = 0.9
FAILURE_PENALTY = 0.15
SPREAD_PENALTY = 0.1
CONFIDENCE_BOUNDS = (0.3, 0.98)
KEY_STRENGTHS = 3


class AggregateScore(NamedTuple):
    """Overall score on a 0-10 scale plus the letter grade."""

    overall_score: float
    grade: str
    percentage: float
    total_score: int
    total_max_score: int
    confidence: float = 0.0
    key_strengths: tuple[str, ...] = ()


class ResultAggregator:
    """Deterministic, pure aggregation of examiner scores."""

    def __init__(
        self,
        thresholds: Sequence[tuple[float, str]] = DEFAULT_GRADE_THRESHOLDS,
        lowest_grade: str = "U",
    ):
        """
        Args:
            thresholds: Descending (minimum percentage, grade) pairs.
            lowest_grade: Grade below the last threshold.
        """
        self._thresholds = tuple(thresholds)
        self._lowest_grade = lowest_grade

    def aggregate(self, results: Sequence[ExaminerResult]) -> AggregateScore:
        total = sum(r.score for r in results)
        total_max = sum(r.max_score for r in results)

        if total_max == 0:
            return AggregateScore(0.0, self._lowest_grade, 0.0, 0, 0)

        ratio = total / total_max
        percentage = ratio * 100
        return AggregateScore(
            overall_score=round(ratio * 10, 1),
            grade=self.grade_for(percentage),
            percentage=round(percentage, 1),
            total_score=total,
            total_max_score=total_max,
            confidence=self.confidence(results),
            key_strengths=self.key_strengths(results),
        )

    def grade_for(self, percentage: float) -> str:
        """Letter grade for a percentage via the threshold table."""
        for cut_point, grade in self._thresholds:
            if percentage >= cut_point:
                return grade
        return self._lowest_grade

    def confidence(self, results: Sequence[ExaminerResult]) -> float:
        """
        How far the panel can be trusted, between 0.3 and 0.98.

        Starts from a base value and is lowered for every failed examiner
        and for disagreement between the examiners that succeeded. Zero when
        no examiner succeeded.
        """
        succeeded = [r for r in results if r.succeeded]
        if not succeeded:
            return 0.0

        failed = len(results) - len(succeeded)
        value = (
            BASE_CONFIDENCE
            - failed * FAILURE_PENALTY
            - self.score_spread(succeeded) * SPREAD_PENALTY
        )
        low, high = CONFIDENCE_BOUNDS
        return round(max(low, min(high, value)), 2)

    @staticmethod
    def score_spread(results: Sequence[ExaminerResult]) -> float:
        """Population standard deviation of score ratios; 0 below two results."""
        if len(results) < 2:
            return 0.0
        return statistics.pstdev([r.score / r.max_score for r in results])

    @staticmethod
    def key_strengths(results: Sequence[ExaminerResult]) -> tuple[str, ...]:
        """First distinct strengths across succeeded examiners, in config order."""
        seen: list[str] = []
        for result in results:
            if not result.succeeded:
                continue
            for strength in result.strengths:
                if strength not in seen:
                    seen.append(strength)
                if len(seen) == KEY_STRENGTHS:
                    return tuple(seen)
        return tuple(seen)
