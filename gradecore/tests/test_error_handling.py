"""
Tests for the error types, the retry decorator, validation helpers,
settings and logging utilities.
"""

import json
import logging

import pytest

from gradecore.common.clock import FixedClock, ensure_utc
from gradecore.common.error_handling import (
    AttemptLimitReachedError,
    ConcurrentModificationError,
    DatabaseError,
    ErrorCode,
    GradeCoreError,
    NotFoundError,
    QuizLockedError,
    ValidationError,
    convert_exception,
    error_response,
    log_error,
    retry,
)
from gradecore.common.logger import (
    JsonFormatter,
    LoggerAdapter,
    app_logger,
    configure_logger,
    log_execution_time,
    with_context,
)
from gradecore.common.validation import BaseValidationModel, parse_model, validate_against_model
from gradecore.config import Settings

from conftest import START


class Sample(BaseValidationModel):
    name: str
    count: int = 1


class TestErrorTypes:
    @pytest.mark.parametrize("error, status", [
        (ValidationError.for_field("title", "too short"), 422),
        (NotFoundError("Quiz", "quiz-1"), 404),
        (QuizLockedError("quiz-1", 2, "add_question"), 409),
        (AttemptLimitReachedError("quiz-1", "student-1", 1), 409),
        (ConcurrentModificationError("AssessmentResult", "result-1", 2, 3), 409),
        (DatabaseError("quiz.save"), 500),
    ])
    def test_http_status(self, error, status):
        assert error.http_status == status

    def test_only_concurrent_modification_is_retryable(self):
        assert ConcurrentModificationError("AssessmentResult", "r", 1).retryable is True
        assert NotFoundError("Quiz", "q").retryable is False

    def test_lock_errors_are_transition_errors(self):
        error = QuizLockedError("quiz-1", 2, "add_question")

        assert error.code == ErrorCode.QUIZ_LOCKED
        assert error.details["attempt_count"] == 2

    def test_convert_plain_exception(self):
        converted = convert_exception(KeyError("boom"), context={"step": "load"})

        assert isinstance(converted, GradeCoreError)
        assert converted.code == ErrorCode.UNKNOWN_ERROR
        assert converted.context == {"step": "load"}

    def test_to_json(self):
        payload = json.loads(NotFoundError("Quiz", "quiz-1").to_json())

        assert payload["code"] == "not_found_error"
        assert payload["exception_type"] == "NotFoundError"


class TestErrorResponse:
    def test_validation_error_lists_fields(self):
        response = error_response(ValidationError.for_field("options", "needs a correct option"))

        assert response["status"] == "error"
        assert response["http_status"] == 422
        assert response["errors"] == [{"field": "options", "message": "needs a correct option", "type": "value_error"}]

    def test_conflict_is_marked_retryable(self):
        response = error_response(ConcurrentModificationError("AssessmentResult", "result-1", 2, 3))

        assert response["code"] == "concurrent_modification"
        assert response["retryable"] is True
        assert response["details"]["actual_revision"] == 3

    def test_plain_exception(self):
        response = error_response(RuntimeError("disk full"), include_details=False)

        assert response["http_status"] == 500
        assert "details" not in response


class TestRetry:
    def test_retries_listed_exceptions(self):
        calls = []

        @retry(max_retries=2, retry_delay=0)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConcurrentModificationError("AssessmentResult", "r", len(calls))
            return "done"

        assert flaky() == "done"
        assert len(calls) == 3

    def test_gives_up_after_max_retries(self):
        calls = []

        @retry(max_retries=1, retry_delay=0)
        def always_conflicting():
            calls.append(1)
            raise ConcurrentModificationError("AssessmentResult", "r", 1)

        with pytest.raises(ConcurrentModificationError):
            always_conflicting()
        assert len(calls) == 2

    def test_other_errors_are_not_retried(self):
        calls = []

        @retry(max_retries=3, retry_delay=0)
        def invalid():
            calls.append(1)
            raise ValidationError.for_field("score", "bad")

        with pytest.raises(ValidationError):
            invalid()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_async_retry_reports_attempts(self):
        seen = []

        @retry(max_retries=2, retry_delay=0, on_retry=lambda n, error, delay: seen.append(n))
        async def flaky():
            if len(seen) < 2:
                raise ConcurrentModificationError("AssessmentResult", "r", 1)
            return 42

        assert await flaky() == 42
        assert seen == [1, 2]


class TestLogging:
    def test_log_error_includes_context(self, caplog):
        with caplog.at_level(logging.ERROR, logger="gradecore"):
            log_error(NotFoundError("Quiz", "quiz-9"), context={"operation": "get_quiz"})

        assert "not_found_error" in caplog.text
        assert "operation=get_quiz" in caplog.text

    def test_adapter_context_reaches_json_output(self):
        adapter = with_context(result_id="result-1").with_context(student_id="student-1")
        msg, kwargs = adapter.process("graded", {})
        record = logging.LogRecord("gradecore", logging.INFO, __file__, 1, msg, None, None)
        record.data = kwargs["extra"]["data"]

        payload = json.loads(JsonFormatter().format(record))

        assert isinstance(adapter, LoggerAdapter)
        assert payload["message"] == "graded"
        assert payload["result_id"] == "result-1"
        assert payload["student_id"] == "student-1"

    def test_configure_logger_from_settings(self, tmp_path):
        log_file = tmp_path / "logs" / "gradecore.log"
        config = Settings(LOG_LEVEL="warning", LOG_JSON=True, LOG_FILE=str(log_file))

        logger = configure_logger(config, name="gradecore-test-config")

        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)
        assert len(logger.handlers) == 2
        assert log_file.parent.is_dir()

    @pytest.mark.asyncio
    async def test_execution_time_keeps_result_and_errors(self):
        @log_execution_time(app_logger)
        async def ok():
            return "value"

        @log_execution_time(app_logger)
        def broken():
            raise NotFoundError("Quiz", "q")

        assert await ok() == "value"
        with pytest.raises(NotFoundError):
            broken()


class TestValidationHelpers:
    def test_parse_model_strips_and_defaults(self):
        parsed = parse_model(Sample, {"name": "  Quiz  "})

        assert parsed.name == "Quiz"
        assert parsed.count == 1

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(Sample, {"name": "Quiz", "extra": 1})

        assert exc_info.value.fields == ["extra"]
        assert exc_info.value.details["data_type"] == "Sample"

    def test_validation_result(self):
        result = validate_against_model(Sample, {"count": "many"})

        assert not result
        assert sorted(e["field"] for e in result.errors) == ["count", "name"]
        assert result.to_dict()["validated_data"] == {}


class TestSettingsAndClock:
    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOCK_QUIZ_STRUCTURE_AFTER_ATTEMPTS", "false")
        monkeypatch.setenv("GRADE_RETRY_ATTEMPTS", "3")

        config = Settings()

        assert config.LOCK_QUIZ_STRUCTURE_AFTER_ATTEMPTS is False
        assert config.GRADE_RETRY_ATTEMPTS == 3

    def test_fixed_clock(self):
        clock = FixedClock(START.replace(tzinfo=None))

        assert clock.now() == START
        assert clock.advance(days=2) == ensure_utc(START.replace(day=3))
