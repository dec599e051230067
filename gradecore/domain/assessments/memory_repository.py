"""
Memory Assessment Repository Module

In-memory implementations of the assessment and assessment result
repositories for development and testing purposes.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from gradecore.common.error_handling import ConcurrentModificationError, ValidationError

from .model import AssessmentDefinition, AssessmentResult
from .repository import AssessmentRepository, AssessmentResultRepository

logger = logging.getLogger(__name__)


class MemoryAssessmentRepository(AssessmentRepository):
    """In-memory implementation of the AssessmentRepository."""

    def __init__(self, initial_data: Optional[List[AssessmentDefinition]] = None):
        self._assessments: Dict[str, AssessmentDefinition] = {}

        for assessment in initial_data or []:
            self._assessments[assessment.id] = assessment

    async def get_by_id(self, assessment_id: str) -> Optional[AssessmentDefinition]:
        return self._assessments.get(assessment_id)

    async def save(self, assessment: AssessmentDefinition) -> AssessmentDefinition:
        self._assessments[assessment.id] = assessment
        return assessment

    async def delete(self, assessment_id: str) -> bool:
        return self._assessments.pop(assessment_id, None) is not None

    async def find_by_class(self, class_id: str) -> List[AssessmentDefinition]:
        result = [a for a in self._assessments.values() if a.class_id == class_id]
        return sorted(result, key=lambda a: (a.created_at, a.id))

    async def find_by_tenant(self, tenant_id: str) -> List[AssessmentDefinition]:
        found = [a for a in self._assessments.values() if a.tenant_id == tenant_id]
        return sorted(found, key=lambda a: (a.created_at, a.id))


class MemoryAssessmentResultRepository(AssessmentResultRepository):
    """
    In-memory implementation of the AssessmentResultRepository.

    A lock serialises the revision check and the write.
    """

    def __init__(self, initial_data: Optional[List[AssessmentResult]] = None):
        self._results: Dict[str, AssessmentResult] = {}
        self._lock = asyncio.Lock()

        for result in initial_data or []:
            self._results[result.id] = result

    async def get_by_id(self, result_id: str) -> Optional[AssessmentResult]:
        return self._results.get(result_id)

    async def get_for_student(self, assessment_id: str, student_id: str) -> Optional[AssessmentResult]:
        for result in self._results.values():
            if result.assessment_id == assessment_id and result.student_id == student_id:
                return result
        return None

    async def find_by_assessment(self, assessment_id: str) -> List[AssessmentResult]:
        result = [r for r in self._results.values() if r.assessment_id == assessment_id]
        return sorted(result, key=lambda r: (r.student_id, r.id))

    async def find_by_student(self, student_id: str) -> List[AssessmentResult]:
        found = [r for r in self._results.values() if r.student_id == student_id]
        return sorted(found, key=lambda r: (r.assessment_id, r.id))

    async def save(self, result: AssessmentResult, expected_revision: int) -> AssessmentResult:
        async with self._lock:
            current = self._results.get(result.id)
            actual = current.revision if current else 0

            if current is None and expected_revision == 0:
                duplicate = await self.get_for_student(result.assessment_id, result.student_id)
                if duplicate is not None:
                    raise ValidationError.for_field(
                        "student_id",
                        f"Student {result.student_id} already has a result on assessment {result.assessment_id}",
                        "duplicate",
                    )
            elif current is None or actual != expected_revision:
                logger.warning(
                    f"Revision conflict on result {result.id}: expected {expected_revision}, found {actual}"
                )
                raise ConcurrentModificationError(
                    "AssessmentResult", result.id, expected_revision, actual if current else None
                )

            stored = replace(result, revision=expected_revision + 1)
            self._results[stored.id] = stored
            return stored

    async def delete_by_assessment(self, assessment_id: str) -> int:
        doomed = [rid for rid, r in self._results.items() if r.assessment_id == assessment_id]
        for result_id in doomed:
            del self._results[result_id]
        logger.debug(f"Deleted {len(doomed)} result(s) of assessment {assessment_id}")
        return len(doomed)
