"""
Grading primitives: deterministic choice scoring and score reconciliation.
"""

from grade_engine.grading.auto_grader import score_choice
from grade_engine.grading.reconciler import reconcile, compute_total

__all__ = [
    "score_choice",
    "reconcile",
    "compute_total",
]
