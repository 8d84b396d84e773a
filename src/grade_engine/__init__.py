"""
Assignment grading and scoring engine.

Reconciles auto-graded choice questions, batch AI grades of free-text
answers and teacher overrides into one bounded, publishable grade.
"""

__version__ = "1.0.0"
