"""
Grading Module.

Examiner swarm orchestration: concurrent examiner runs, response parsing,
aggregation and summary generation.
"""

from examiner_swarm.grading.aggregator import AggregateScore, ResultAggregator
from examiner_swarm.grading.engine import GradingOrchestrator, GradingStream
from examiner_swarm.grading.llm_client import CompletionBackend, LLMClient, LLMError
from examiner_swarm.grading.prompt_builder import PromptBuilder
from examiner_swarm.grading.runner import ExaminerRunner
from examiner_swarm.grading.scorer import (
    FallbackOutput,
    ParsedExaminerOutput,
    ResponseParser,
    ScoringError,
    StructuredOutput,
)
from examiner_swarm.grading.summary import Summary, SummaryGenerator

__all__ = [
    "AggregateScore",
    "CompletionBackend",
    "ExaminerRunner",
    "FallbackOutput",
    "GradingOrchestrator",
    "GradingStream",
    "LLMClient",
    "LLMError",
    "ParsedExaminerOutput",
    "PromptBuilder",
    "ResponseParser",
    "ResultAggregator",
    "ScoringError",
    "StructuredOutput",
    "Summary",
    "SummaryGenerator",
]
