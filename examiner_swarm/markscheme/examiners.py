"""
Examiner definitions, one per assessment objective.

Each subject uses the same four examiners; geography swaps in its own
criteria. Definitions are immutable and shared across requests.
"""

from examiner_swarm.models import AssessmentObjective, ExaminerConfig, Subject

_JSON_FOOTER = """
You MUST respond in this exact JSON format:
{{
  "score": <number 0-{max_score}>,
  "band": "<L1|L2|L3>",
  "feedback": "<2-3 sentences explaining the score>",
  "strengths": ["<specific strength 1>", "<specific strength 2>"],
  "improvements": ["<specific improvement 1>", "<specific improvement 2>"]
}}"""


KNOWLEDGE_EXAMINER = ExaminerConfig(
    id="knowledge",
    name="Knowledge Examiner",
    description="Assesses accurate definitions, concepts, and theoretical understanding",
    assessment_objective=AssessmentObjective.AO1,
    max_score=4,
    display_color="#E8D5C4",
    criteria=(
        "Accurate definitions of key terms",
        "Correct use of economic concepts",
        "Appropriate theoretical frameworks",
        "Relevant knowledge selection",
    ),
    prompt_template="""You are an expert examiner assessing AO1: Knowledge and Understanding.

Your task is to evaluate the student's demonstration of subject knowledge.

ASSESSMENT CRITERIA (AO1):
- Level 3 (4 marks): Comprehensive and accurate knowledge with precise terminology
- Level 2 (2-3 marks): Good knowledge with mostly accurate definitions
- Level 1 (1 mark): Basic knowledge with some accurate points
- Level 0 (0 marks): No relevant knowledge demonstrated

EVALUATION GUIDANCE:
1. Check accuracy of all key term definitions
2. Assess breadth of knowledge demonstrated
3. Evaluate precision of terminology
4. Consider relevance of knowledge to the question
""" + _JSON_FOOTER.format(max_score=4),
)

APPLICATION_EXAMINER = ExaminerConfig(
    id="application",
    name="Application Examiner",
    description="Evaluates how well knowledge is applied to the specific context",
    assessment_objective=AssessmentObjective.AO2,
    max_score=4,
    display_color="#A8C5D4",
    criteria=(
        "Contextual application of knowledge",
        "Use of relevant examples",
        "Reference to specific scenarios/data",
        "Appropriate case study selection",
    ),
    prompt_template="""You are an expert examiner assessing AO2: Application.

Your task is to evaluate how well the student applies knowledge to the given context.

ASSESSMENT CRITERIA (AO2):
- Level 3 (4 marks): Full and effective application to context with specific examples
- Level 2 (2-3 marks): Good application with some relevant examples
- Level 1 (1 mark): Limited application with generic examples
- Level 0 (0 marks): No application to context

EVALUATION GUIDANCE:
1. Assess how well the response addresses the specific question context
2. Evaluate relevance and specificity of examples used
3. Check for reference to any provided data or scenarios
""" + _JSON_FOOTER.format(max_score=4),
)

ANALYSIS_EXAMINER = ExaminerConfig(
    id="analysis",
    name="Analysis Examiner",
    description="Assesses chains of reasoning, cause-and-effect, and use of diagrams",
    assessment_objective=AssessmentObjective.AO3,
    max_score=6,
    display_color="#A8C5A8",
    criteria=(
        "Clear chains of reasoning",
        "Cause and effect relationships",
        "Appropriate use of diagrams",
        "Logical development of arguments",
    ),
    prompt_template="""You are an expert examiner assessing AO3: Analysis.

Your task is to evaluate the student's analytical skills and chains of reasoning.

ASSESSMENT CRITERIA (AO3):
- Level 3 (5-6 marks): Developed chains of reasoning with clear cause-effect, accurate diagram
- Level 2 (3-4 marks): Some chains of reasoning with basic cause-effect, diagram present
- Level 1 (1-2 marks): Limited chains of reasoning, weak cause-effect, no/poor diagram
- Level 0 (0 marks): No analytical content

EVALUATION GUIDANCE:
1. Identify clear chains of reasoning (minimum 2 steps)
2. Assess quality of cause-and-effect explanations
3. Evaluate diagram accuracy where one is provided
4. Check logical flow of arguments
""" + _JSON_FOOTER.format(max_score=6),
)

EVALUATION_EXAMINER = ExaminerConfig(
    id="evaluation",
    name="Evaluation Examiner",
    description="Assesses critical evaluation, balanced arguments, and supported judgments",
    assessment_objective=AssessmentObjective.AO4,
    max_score=6,
    display_color="#E5C9A8",
    criteria=(
        "Balanced arguments presented",
        "Critical assessment of points",
        "Prioritization of factors",
        "Supported judgments/conclusions",
    ),
    prompt_template="""You are an expert examiner assessing AO4: Evaluation.

Your task is to evaluate the student's critical evaluation and judgment skills.

ASSESSMENT CRITERIA (AO4):
- Level 3 (5-6 marks): Developed evaluation with balanced arguments and well-supported judgment
- Level 2 (3-4 marks): Some evaluation with partially balanced arguments and basic judgment
- Level 1 (1-2 marks): Limited evaluation with unbalanced arguments and unsupported judgment
- Level 0 (0 marks): No evaluative content

EVALUATION GUIDANCE:
1. Look for evaluative comments ("however", "although", "it depends upon")
2. Assess balance of arguments
3. Check for prioritization of factors
4. Assess whether the final judgment is supported by preceding analysis
""" + _JSON_FOOTER.format(max_score=6),
)


ECONOMICS_EXAMINERS: tuple[ExaminerConfig, ...] = (
    KNOWLEDGE_EXAMINER,
    APPLICATION_EXAMINER,
    ANALYSIS_EXAMINER,
    EVALUATION_EXAMINER,
)

GEOGRAPHY_EXAMINERS: tuple[ExaminerConfig, ...] = (
    KNOWLEDGE_EXAMINER.model_copy(
        update={
            "criteria": (
                "Accurate geographical knowledge",
                "Correct use of geographical terminology",
                "Appropriate case studies and examples",
                "Relevant place-specific knowledge",
            )
        }
    ),
    APPLICATION_EXAMINER.model_copy(
        update={
            "criteria": (
                "Application to specific places/contexts",
                "Use of relevant case studies",
                "Consideration of scale (local to global)",
                "Appropriate geographical examples",
            )
        }
    ),
    ANALYSIS_EXAMINER.model_copy(
        update={
            "criteria": (
                "Clear explanation of processes",
                "Understanding of interconnections",
                "Effective use of geographical evidence",
                "Logical development of geographical arguments",
            )
        }
    ),
    EVALUATION_EXAMINER.model_copy(
        update={
            "criteria": (
                "Balanced geographical perspectives",
                "Critical assessment of viewpoints",
                "Consideration of different scales",
                "Supported geographical conclusions",
            )
        }
    ),
)


def get_examiners(subject: Subject) -> tuple[ExaminerConfig, ...]:
    """Examiner panel for a subject, in the fixed reporting order."""
    if subject == Subject.GEOGRAPHY:
        return GEOGRAPHY_EXAMINERS
    return ECONOMICS_EXAMINERS
