"""
Submission tracking module for GradeCore.

The grading lifecycle of assessment results and the recording of quiz attempts.
"""

from .tracker import ResultSummary, SubmissionTracker, is_late

__all__ = [
    'ResultSummary',
    'SubmissionTracker',
    'is_late',
]
