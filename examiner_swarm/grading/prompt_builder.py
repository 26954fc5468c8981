"""
Prompt builder for examiner and summary calls.

Resolves each examiner's rubric template against the mark-scheme parameters
of the question being graded. Every method is pure.
"""

from typing import Sequence

from examiner_swarm.markscheme import get_question_type_config
from examiner_swarm.models import ExaminerConfig, ExaminerResult, QuestionType, UnitCode


class PromptBuilder:
    """
    Builds system and user prompts.

    Question types are validated by the caller before they reach here; an
    unknown type raises KeyError from the mark-scheme lookup.
    """

    CLOSING_INSTRUCTION = (
        "Remember to be strict but fair in your assessment. Apply the mark scheme precisely."
    )

    QUESTION_EXCERPT_CHARS = 200

    @staticmethod
    def build(
        examiner: ExaminerConfig,
        unit: UnitCode,
        question_type: QuestionType,
        has_diagram: bool,
    ) -> str:
        """
        Build one examiner's system prompt.

        Args:
            examiner: The examiner definition.
            unit: Unit the question belongs to.
            question_type: Selects total marks and AO weighting.
            has_diagram: Whether the student supplied a diagram.

        Returns:
            The examiner template followed by a question context block.
        """
        config = get_question_type_config(question_type)
        ao_max_marks = config.ao_distribution.get(examiner.assessment_objective, 0)

        return f"""{examiner.prompt_template}

QUESTION CONTEXT:
- Unit: {unit.value}
- Question Type: {question_type.value} ({config.total_marks} marks total)
- Your AO Focus: {examiner.assessment_objective.value} (Maximum {ao_max_marks} marks for this question type)
- Diagram Required: {"Yes" if config.requires_diagram else "No"}
- Diagram Provided: {"Yes" if has_diagram else "No"}

{PromptBuilder.CLOSING_INSTRUCTION}"""

    @staticmethod
    def build_user_prompt(
        question: str,
        essay: str,
        has_diagram: bool,
        context_data: str | None = None,
        extract_info: str | None = None,
    ) -> str:
        """Build the user message shared by every examiner."""
        sections = [f"QUESTION: {question}"]

        if context_data:
            sections.append(f"CONTEXT/DATA PROVIDED:\n{context_data}")

        if extract_info:
            sections.append(f"EXTRACT INFORMATION:\n{extract_info}")

        sections.append(f"STUDENT RESPONSE:\n{essay}")
        sections.append(
            "DIAGRAM: "
            + ("Student has provided a diagram" if has_diagram else "No diagram provided")
        )
        sections.append("Please provide your assessment in the required JSON format.")

        return "\n\n".join(sections)

    @staticmethod
    def build_summary_prompt(results: Sequence[ExaminerResult]) -> str:
        """
        Build the summary system prompt from per-examiner scores.

        Only the score breakdown is included, never the essay, to bound token use.
        """
        lines = []
        for result in results:
            label = result.assessment_objective.value if result.assessment_objective else result.examiner_id
            lines.append(f"{label}: {result.score}/{result.max_score}")
        scores = "\n".join(lines)

        return f"""You are a senior examiner. Based on these scores:
{scores}

Provide brief summary and 3 specific improvements. JSON format:
{{
  "summary": "2-3 sentence overall assessment",
  "improvements": ["specific improvement 1", "specific improvement 2", "specific improvement 3"]
}}"""

    @staticmethod
    def question_excerpt(question: str) -> str:
        """First part of the question, for the summary call."""
        limit = PromptBuilder.QUESTION_EXCERPT_CHARS
        if len(question) <= limit:
            return question
        return question[:limit] + "..."
