"""
Assessment Repository Module

This module defines the repository interfaces for assessments and their
per-student results.
"""

import abc
from typing import List, Optional

from .model import AssessmentDefinition, AssessmentResult


class AssessmentRepository(abc.ABC):
    """Abstract base class for assessment repositories."""

    @abc.abstractmethod
    async def get_by_id(self, assessment_id: str) -> Optional[AssessmentDefinition]:
        """
        Get an assessment by its ID.

        Args:
            assessment_id: The ID of the assessment to retrieve

        Returns:
            The AssessmentDefinition if found, None otherwise
        """
        pass

    @abc.abstractmethod
    async def save(self, assessment: AssessmentDefinition) -> AssessmentDefinition:
        """Create or update an assessment."""
        pass

    @abc.abstractmethod
    async def delete(self, assessment_id: str) -> bool:
        """
        Delete an assessment by its ID.

        Returns:
            True if the assessment was deleted, False otherwise
        """
        pass

    @abc.abstractmethod
    async def find_by_class(self, class_id: str) -> List[AssessmentDefinition]:
        """Assessments of a class, oldest first."""
        pass

    @abc.abstractmethod
    async def find_by_tenant(self, tenant_id: str) -> List[AssessmentDefinition]:
        """Assessments of a tenant, oldest first."""
        pass


class AssessmentResultRepository(abc.ABC):
    """
    Abstract base class for assessment result repositories.

    Writes are compare-and-swap on the result's revision so two graders
    cannot silently overwrite each other.
    """

    @abc.abstractmethod
    async def get_by_id(self, result_id: str) -> Optional[AssessmentResult]:
        pass

    @abc.abstractmethod
    async def get_for_student(self, assessment_id: str, student_id: str) -> Optional[AssessmentResult]:
        """The result of one student on one assessment, if any."""
        pass

    @abc.abstractmethod
    async def find_by_assessment(self, assessment_id: str) -> List[AssessmentResult]:
        """Results of an assessment, sorted by student id."""
        pass

    @abc.abstractmethod
    async def find_by_student(self, student_id: str) -> List[AssessmentResult]:
        """Results of one student across assessments, sorted by assessment id."""
        pass

    @abc.abstractmethod
    async def save(self, result: AssessmentResult, expected_revision: int) -> AssessmentResult:
        """
        Store a result if the stored revision still equals expected_revision.

        A new result is stored when expected_revision is 0 and nothing is
        stored under its id yet.

        Args:
            result: The result to store
            expected_revision: Revision the caller read

        Returns:
            The stored result, carrying revision expected_revision + 1

        Raises:
            ConcurrentModificationError: the stored revision differs
        """
        pass

    @abc.abstractmethod
    async def delete_by_assessment(self, assessment_id: str) -> int:
        """
        Delete every result of an assessment.

        Returns:
            Number of deleted results
        """
        pass
