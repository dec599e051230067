"""
Assessment domain module for GradeCore.

Open-ended assessments, their per-student results and the repositories that
store them.
"""

from .model import (
    AssessmentDefinition,
    AssessmentResult,
    AssessmentStatus,
    AssessmentType,
    ResultStatus,
)
from .definition import apply_assessment_update, compute_status, create_assessment, ensure_scores_within
from .repository import AssessmentRepository, AssessmentResultRepository
from .memory_repository import MemoryAssessmentRepository, MemoryAssessmentResultRepository

__all__ = [
    'AssessmentDefinition',
    'AssessmentResult',
    'AssessmentStatus',
    'AssessmentType',
    'ResultStatus',
    'apply_assessment_update',
    'compute_status',
    'create_assessment',
    'ensure_scores_within',
    'AssessmentRepository',
    'AssessmentResultRepository',
    'MemoryAssessmentRepository',
    'MemoryAssessmentResultRepository',
]
