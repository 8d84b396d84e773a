"""
Storage module for submissions and assignments.

Provides the store interface with in-memory and SQL implementations.
"""

from grade_engine.storage.submission_store import InMemorySubmissionStore, SubmissionStore
from grade_engine.storage.sql_store import SQLSubmissionStore

__all__ = [
    'SubmissionStore',
    'InMemorySubmissionStore',
    'SQLSubmissionStore',
]
