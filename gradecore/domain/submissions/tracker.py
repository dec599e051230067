"""
Submission Tracker

The grading state machine for assessment results (pending, submitted,
graded) and the bookkeeping of quiz attempts.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from gradecore.common.clock import Clock, SystemClock, ensure_utc
from gradecore.common.error_handling import (
    AttemptLimitReachedError,
    ConcurrentModificationError,
    InvalidTransitionError,
    ValidationError,
)
from gradecore.common.logger import LoggerAdapter, app_logger
from gradecore.domain.assessments.model import AssessmentDefinition, AssessmentResult, ResultStatus
from gradecore.domain.quizzes.definition import can_attempt
from gradecore.domain.quizzes.model import QuizAttempt, QuizDefinition
from gradecore.domain.scoring.engine import QuizScore, round_half_up, validate_assessment_score

logger = app_logger.getChild("domain.submissions")


def is_late(result: AssessmentResult, assessment: AssessmentDefinition) -> bool:
    """Submitted after the due date; False when either time is missing."""
    if result.submitted_at is None or assessment.due_date is None:
        return False
    return result.submitted_at > assessment.due_date


@dataclass(frozen=True)
class ResultSummary:
    """Aggregate view of the results of one assessment."""
    assessment_id: str
    total: int
    pending: int
    submitted: int
    graded: int
    late: int
    average_score: Optional[float]
    average_percent: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessment_id": self.assessment_id,
            "total": self.total,
            "pending": self.pending,
            "submitted": self.submitted,
            "graded": self.graded,
            "late": self.late,
            "average_score": self.average_score,
            "average_percent": self.average_percent,
        }


class SubmissionTracker:
    """
    Moves assessment results through their lifecycle.

    Transitions return new result values; persisting them (with the
    revision check) is up to the caller. Authorization of the grader is
    expected to have happened before grade() is called.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()

    def _log(self, result: AssessmentResult) -> LoggerAdapter:
        return LoggerAdapter(logger, {
            "result_id": result.id,
            "assessment_id": result.assessment_id,
            "student_id": result.student_id,
        })

    def submit(
        self,
        result: AssessmentResult,
        submitted_at: Optional[datetime] = None,
        attachment_url: Optional[str] = None,
    ) -> AssessmentResult:
        """
        Record a student's submission.

        Raises:
            InvalidTransitionError: the result is not pending
        """
        log = self._log(result)
        if result.status != ResultStatus.PENDING:
            log.warning(f"Rejected submit on {result.status.value} result {result.id}")
            raise InvalidTransitionError(
                f"Cannot submit a result that is already {result.status.value}",
                current_state=result.status.value,
                operation="submit",
                context={"result_id": result.id},
            )

        submitted = replace(
            result,
            status=ResultStatus.SUBMITTED,
            submitted_at=ensure_utc(submitted_at) or self.clock.now(),
            attachment_url=attachment_url if attachment_url is not None else result.attachment_url,
        )
        log.info(f"Result {result.id} submitted")
        return submitted

    def grade(
        self,
        result: AssessmentResult,
        assessment: AssessmentDefinition,
        grader_id: str,
        score: float,
        feedback: Optional[str] = None,
        expected_revision: Optional[int] = None,
    ) -> AssessmentResult:
        """
        Grade or re-grade a submitted result.

        Re-grading with the values already stored returns the result
        unchanged, so repeating a grade is a no-op.

        Raises:
            ConcurrentModificationError: the result is not at expected_revision
            InvalidTransitionError: the result is still pending
            ScoreOutOfRangeError: score is outside 0..total_points
            ValidationError: result and assessment do not belong together
        """
        log = self._log(result)
        if expected_revision is not None and expected_revision != result.revision:
            log.warning(f"Stale grade on result {result.id}: revision {expected_revision} != {result.revision}")
            raise ConcurrentModificationError(
                "AssessmentResult", result.id, expected_revision, result.revision
            )
        if result.status == ResultStatus.PENDING:
            log.warning(f"Rejected grade on pending result {result.id}")
            raise InvalidTransitionError(
                "Cannot grade a result that has not been submitted",
                current_state=result.status.value,
                operation="grade",
                context={"result_id": result.id},
            )
        if result.assessment_id != assessment.id:
            raise ValidationError.for_field(
                "assessment_id", f"Result {result.id} does not belong to assessment {assessment.id}"
            )
        if not grader_id:
            raise ValidationError.for_field("graded_by", "A grader is required", "missing")

        validate_assessment_score(assessment, score)

        if result.status == ResultStatus.GRADED and (
            result.score, result.feedback, result.graded_by
        ) == (score, feedback, grader_id):
            return result

        graded = replace(
            result,
            status=ResultStatus.GRADED,
            score=score,
            feedback=feedback,
            graded_by=grader_id,
            graded_at=self.clock.now(),
        )
        log.info(f"Result {result.id} graded {score}/{assessment.total_points} by {grader_id}")
        return graded

    def is_late(self, result: AssessmentResult, assessment: AssessmentDefinition) -> bool:
        return is_late(result, assessment)

    def open_results(
        self,
        assessment: AssessmentDefinition,
        student_ids: Iterable[str],
        existing: Sequence[AssessmentResult] = (),
    ) -> List[AssessmentResult]:
        """Pending results for students who have none on this assessment yet."""
        known = {result.student_id for result in existing if result.assessment_id == assessment.id}
        opened = []
        for student_id in dict.fromkeys(student_ids):
            if student_id and student_id not in known:
                opened.append(AssessmentResult.pending(assessment.id, student_id))
        if opened:
            logger.info(f"Opened {len(opened)} result(s) for assessment {assessment.id}")
        return opened

    def record_attempt(
        self,
        quiz: QuizDefinition,
        student_id: str,
        answers: Mapping[str, Iterable[int]],
        score: QuizScore,
        history: Sequence[QuizAttempt],
    ) -> QuizAttempt:
        """
        Build the attempt record for a scored quiz.

        Raises:
            AttemptLimitReachedError: the student may not attempt the quiz again
        """
        if not can_attempt(quiz, history):
            logger.warning(f"Student {student_id} has no attempts left on quiz {quiz.id}")
            raise AttemptLimitReachedError(quiz.id, student_id, len(history))

        attempt = QuizAttempt(
            id=QuizAttempt.new_id(),
            quiz_id=quiz.id,
            student_id=student_id,
            attempt_number=len(history) + 1,
            answers={qid: sorted(set(indices)) for qid, indices in answers.items()},
            raw_score=score.raw_score,
            total_points=score.total_points,
            percent=score.percent,
            passed=score.passed,
            completed_at=self.clock.now(),
        )
        logger.info(
            f"Student {student_id} completed attempt {attempt.attempt_number} of quiz {quiz.id} "
            f"with {score.percent}% ({'passed' if score.passed else 'failed'})"
        )
        return attempt

    def summarize_results(
        self,
        assessment: AssessmentDefinition,
        results: Sequence[AssessmentResult],
    ) -> ResultSummary:
        own = [result for result in results if result.assessment_id == assessment.id]
        counts = {status: 0 for status in ResultStatus}
        for result in own:
            counts[result.status] += 1

        scores = [result.score for result in own if result.status == ResultStatus.GRADED]
        average_score = None
        average_percent = None
        if scores:
            average_score = sum(scores) / len(scores)
            average_percent = round_half_up(
                Decimal(str(average_score)) * 100 / Decimal(str(assessment.total_points))
            )

        return ResultSummary(
            assessment_id=assessment.id,
            total=len(own),
            pending=counts[ResultStatus.PENDING],
            submitted=counts[ResultStatus.SUBMITTED],
            graded=counts[ResultStatus.GRADED],
            late=sum(1 for result in own if is_late(result, assessment)),
            average_score=average_score,
            average_percent=average_percent,
        )
