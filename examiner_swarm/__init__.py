"""
Examiner Swarm - concurrent multi-examiner essay grading.

Dispatches one language-model examiner per assessment objective, tolerates
individual examiner failures, aggregates the scores into a composite grade
and synthesizes a short summary.
"""

__version__ = "1.0.0"
__author__ = "Examiner Swarm Team"
