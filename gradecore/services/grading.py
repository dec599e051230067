"""
Grading Service

Orchestrates assessments and their results over the repositories. Every
result write goes through the repository's revision check; grade_latest
re-reads and retries when another grader got there first.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from gradecore.common.auth import Actor
from gradecore.common.clock import Clock, SystemClock
from gradecore.common.error_handling import ConcurrentModificationError, NotFoundError, retry
from gradecore.common.logger import app_logger, log_execution_time, with_context
from gradecore.config import Settings, settings as default_settings
from gradecore.domain.assessments import (
    AssessmentDefinition,
    AssessmentRepository,
    AssessmentResult,
    AssessmentResultRepository,
    AssessmentStatus,
    apply_assessment_update,
    compute_status,
    create_assessment,
    ensure_scores_within,
)
from gradecore.domain.submissions import ResultSummary, SubmissionTracker

logger = app_logger.getChild("services.grading")


class GradingService:
    """Assessment management and the grading workflow."""

    def __init__(
        self,
        assessments: AssessmentRepository,
        results: AssessmentResultRepository,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
    ):
        self.assessments = assessments
        self.results = results
        self.clock = clock or SystemClock()
        self.config = config or default_settings
        self.tracker = SubmissionTracker(self.clock)

    # --- Assessments ---

    async def get_assessment(self, assessment_id: str) -> AssessmentDefinition:
        assessment = await self.assessments.get_by_id(assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment", assessment_id)
        return assessment

    @log_execution_time(logger)
    async def create_assessment(self, data: Mapping[str, Any], actor: Actor) -> AssessmentDefinition:
        assessment = create_assessment(data, actor, self.clock.now())
        await self.assessments.save(assessment)
        logger.info(f"Created {assessment.type.value} {assessment.id} for class {assessment.class_id} by {actor.user_id}")
        return assessment

    @log_execution_time(logger)
    async def update_assessment(self, assessment_id: str, changes: Mapping[str, Any]) -> AssessmentDefinition:
        assessment = await self.get_assessment(assessment_id)
        updated = apply_assessment_update(assessment, changes, self.clock.now())
        if updated.total_points < assessment.total_points:
            ensure_scores_within(updated, await self.results.find_by_assessment(assessment_id))
        await self.assessments.save(updated)
        logger.info(f"Updated assessment {assessment_id}")
        return updated

    @log_execution_time(logger)
    async def delete_assessment(self, assessment_id: str) -> bool:
        """Delete an assessment with all of its results."""
        await self.get_assessment(assessment_id)
        removed = await self.results.delete_by_assessment(assessment_id)
        deleted = await self.assessments.delete(assessment_id)
        logger.info(f"Deleted assessment {assessment_id} with {removed} result(s)")
        return deleted

    async def assessment_status(self, assessment_id: str, now: Optional[datetime] = None) -> AssessmentStatus:
        assessment = await self.get_assessment(assessment_id)
        return compute_status(assessment, now or self.clock.now())

    def _with_status(self, assessments: Iterable[AssessmentDefinition]) -> List[Dict[str, Any]]:
        now = self.clock.now()
        listing = []
        for assessment in assessments:
            item = assessment.to_dict()
            item["status"] = compute_status(assessment, now).value
            listing.append(item)
        return listing

    async def list_assessments(self, class_id: str) -> List[Dict[str, Any]]:
        """Assessments of a class with their current status."""
        return self._with_status(await self.assessments.find_by_class(class_id))

    async def list_tenant_assessments(self, tenant_id: str) -> List[Dict[str, Any]]:
        """Every assessment of a tenant with its current status."""
        return self._with_status(await self.assessments.find_by_tenant(tenant_id))

    # --- Results ---

    async def get_result(self, result_id: str) -> AssessmentResult:
        result = await self.results.get_by_id(result_id)
        if result is None:
            raise NotFoundError("AssessmentResult", result_id)
        return result

    async def enroll(self, assessment_id: str, student_ids: Iterable[str]) -> List[AssessmentResult]:
        """Open pending results for students who have none yet."""
        assessment = await self.get_assessment(assessment_id)
        existing = await self.results.find_by_assessment(assessment_id)
        opened = self.tracker.open_results(assessment, student_ids, existing)
        return [await self.results.save(result, 0) for result in opened]

    @log_execution_time(logger)
    async def submit(
        self,
        result_id: str,
        submitted_at: Optional[datetime] = None,
        attachment_url: Optional[str] = None,
    ) -> AssessmentResult:
        result = await self.get_result(result_id)
        submitted = self.tracker.submit(result, submitted_at, attachment_url)
        return await self.results.save(submitted, result.revision)

    @log_execution_time(logger)
    async def grade(
        self,
        result_id: str,
        grader_id: str,
        score: float,
        feedback: Optional[str] = None,
        expected_revision: Optional[int] = None,
    ) -> AssessmentResult:
        """
        Grade a result the caller has already authorized the grader for.

        Args:
            result_id: Result to grade
            grader_id: Identity of the grader
            score: Score within 0..total_points
            feedback: Optional feedback for the student
            expected_revision: Revision the caller read; a mismatch raises
                ConcurrentModificationError instead of overwriting

        Returns:
            The stored result
        """
        result = await self.get_result(result_id)
        assessment = await self.get_assessment(result.assessment_id)

        graded = self.tracker.grade(result, assessment, grader_id, score, feedback, expected_revision)
        if graded is result:
            with_context(result_id=result_id).debug("Re-grade with identical values; nothing stored")
            return result
        return await self.results.save(graded, result.revision)

    async def grade_latest(
        self,
        result_id: str,
        grader_id: str,
        score: float,
        feedback: Optional[str] = None,
    ) -> AssessmentResult:
        """Grade against the latest stored revision, retrying on a concurrent write."""

        @retry(
            max_retries=self.config.GRADE_RETRY_ATTEMPTS,
            retry_delay=self.config.GRADE_RETRY_DELAY_SECONDS,
            retry_exceptions=(ConcurrentModificationError,),
        )
        async def attempt() -> AssessmentResult:
            return await self.grade(result_id, grader_id, score, feedback)

        return await attempt()

    async def list_student_results(self, student_id: str) -> List[AssessmentResult]:
        """Every result of one student across assessments."""
        return await self.results.find_by_student(student_id)

    async def summarize_results(self, assessment_id: str) -> ResultSummary:
        assessment = await self.get_assessment(assessment_id)
        results = await self.results.find_by_assessment(assessment_id)
        return self.tracker.summarize_results(assessment, results)

    async def is_late(self, result_id: str) -> bool:
        result = await self.get_result(result_id)
        assessment = await self.get_assessment(result.assessment_id)
        return self.tracker.is_late(result, assessment)
