"""
Error Handling System for GradeCore

This module provides the error handling framework for the assessment core:
1. Custom exception hierarchy for validation, lifecycle and storage errors
2. Retry mechanism with backoff for optimistic-concurrency conflicts
3. Structured error logging
4. Error response generation for the API layer
"""

import time
import logging
import traceback
import asyncio
import random
import functools
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar, Union, cast
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Type variables
T = TypeVar('T')
F = TypeVar('F', bound=Callable)

# Configure logging
logger = logging.getLogger(__name__)

class ErrorSeverity(Enum):
    """Severity levels for errors"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

class ErrorCode(Enum):
    """Standard error codes for GradeCore"""
    # General errors
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND_ERROR = "not_found_error"

    # Authoring errors
    NO_CORRECT_OPTION = "no_correct_option"
    INVALID_DATE_RANGE = "invalid_date_range"
    INDEX_OUT_OF_RANGE = "index_out_of_range"

    # Scoring errors
    SCORE_OUT_OF_RANGE = "score_out_of_range"
    INCOMPLETE_ANSWERS = "incomplete_answers"

    # Lifecycle errors
    INVALID_TRANSITION = "invalid_transition"
    QUIZ_LOCKED = "quiz_locked"
    ATTEMPT_LIMIT_REACHED = "attempt_limit_reached"
    CONCURRENT_MODIFICATION = "concurrent_modification"

    # Database errors
    DATABASE_ERROR = "database_error"

# HTTP-style status the API layer should answer with for each code
HTTP_STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.UNKNOWN_ERROR: 500,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.NOT_FOUND_ERROR: 404,
    ErrorCode.NO_CORRECT_OPTION: 422,
    ErrorCode.INVALID_DATE_RANGE: 422,
    ErrorCode.INDEX_OUT_OF_RANGE: 422,
    ErrorCode.SCORE_OUT_OF_RANGE: 422,
    ErrorCode.INCOMPLETE_ANSWERS: 422,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.QUIZ_LOCKED: 409,
    ErrorCode.ATTEMPT_LIMIT_REACHED: 409,
    ErrorCode.CONCURRENT_MODIFICATION: 409,
    ErrorCode.DATABASE_ERROR: 500,
}

class ErrorInfo(BaseModel):
    """Structured information about an error"""
    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    exception_type: Optional[str] = None
    exception_message: Optional[str] = None
    stack_trace: Optional[List[str]] = None
    context: Optional[Dict[str, Any]] = None

    @field_validator('stack_trace', mode='before')
    @classmethod
    def validate_stack_trace(cls, v):
        """Format stack trace if it's a string"""
        if isinstance(v, str):
            return v.splitlines()
        return v

class GradeCoreError(Exception):
    """Base exception class for all GradeCore errors"""

    retryable = False

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.severity = severity
        self.details = details or {}
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now()

    @property
    def http_status(self) -> int:
        """HTTP-style status code for this error"""
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def to_error_info(self, include_stack_trace: bool = False) -> ErrorInfo:
        """Convert the exception to an ErrorInfo object"""
        stack_trace = None
        if include_stack_trace:
            stack_trace = traceback.format_exc().splitlines()

        # Include cause information in details
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause)
            }

        return ErrorInfo(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            severity=self.severity,
            details=details,
            exception_type=type(self).__name__,
            exception_message=str(self),
            stack_trace=stack_trace,
            context=self.context
        )

    def to_dict(self, include_stack_trace: bool = False) -> Dict[str, Any]:
        """Convert the exception to a dictionary"""
        return self.to_error_info(include_stack_trace).model_dump()

    def to_json(self, include_stack_trace: bool = False) -> str:
        """Convert the exception to a JSON string"""
        return json.dumps(self.to_dict(include_stack_trace), default=str)

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.details:
            base_str += f" (details: {self.details})"
        if self.cause:
            base_str += f" caused by {type(self.cause).__name__}: {str(self.cause)}"
        return base_str

# Validation errors: malformed, user-correctable input

class ValidationError(GradeCoreError):
    """Error raised when input validation fails"""

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        self.errors = errors or []
        if self.errors:
            details["validation_errors"] = self.errors

        super().__init__(
            message=message,
            code=code,
            severity=ErrorSeverity.WARNING,
            details=details,
            cause=cause,
            context=context
        )

    @classmethod
    def for_field(cls, field: str, message: str, error_type: str = "value_error") -> 'ValidationError':
        """Build a validation error carrying a single field-level entry"""
        return cls(message, errors=[{"field": field, "message": message, "type": error_type}])

    @property
    def fields(self) -> List[str]:
        """Names of the fields that failed validation"""
        return [error["field"] for error in self.errors]

class NoCorrectOptionError(ValidationError):
    """Error raised when a question has no option marked as correct"""

    def __init__(self, details: Optional[Dict[str, Any]] = None, context: Optional[Dict[str, Any]] = None):
        message = "At least one option must be marked as correct"
        super().__init__(
            message=message,
            errors=[{"field": "options", "message": message, "type": "no_correct_option"}],
            code=ErrorCode.NO_CORRECT_OPTION,
            details=details,
            context=context
        )

class InvalidDateRangeError(ValidationError):
    """Error raised when an availability window ends before it starts"""

    def __init__(
        self,
        available_from: datetime,
        available_to: datetime,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["available_from"] = available_from.isoformat()
        details["available_to"] = available_to.isoformat()
        message = "available_from must not be later than available_to"

        super().__init__(
            message=message,
            errors=[{"field": "available_to", "message": message, "type": "invalid_date_range"}],
            code=ErrorCode.INVALID_DATE_RANGE,
            details=details,
            context=context
        )

class IndexOutOfRangeError(ValidationError):
    """Error raised when a position does not exist in an ordered collection"""

    def __init__(
        self,
        index: int,
        length: int,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["index"] = index
        details["length"] = length

        super().__init__(
            message=f"Index {index} is outside [0, {length})",
            code=ErrorCode.INDEX_OUT_OF_RANGE,
            details=details,
            context=context
        )

class ScoreOutOfRangeError(ValidationError):
    """Error raised when a score falls outside 0..total_points"""

    def __init__(
        self,
        score: float,
        total_points: float,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["score"] = score
        details["total_points"] = total_points
        message = f"Score {score} must be between 0 and {total_points}"

        super().__init__(
            message=message,
            errors=[{"field": "score", "message": message, "type": "score_out_of_range"}],
            code=ErrorCode.SCORE_OUT_OF_RANGE,
            details=details,
            context=context
        )

class IncompleteAnswersError(ValidationError):
    """Error raised when an answer set does not cover every quiz question"""

    def __init__(
        self,
        quiz_id: str,
        missing_question_ids: List[str],
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["quiz_id"] = quiz_id
        details["missing_question_ids"] = missing_question_ids

        super().__init__(
            message=f"Answers missing for {len(missing_question_ids)} question(s) of quiz {quiz_id}",
            code=ErrorCode.INCOMPLETE_ANSWERS,
            details=details,
            context=context
        )

# Lifecycle errors: state-machine violations

class InvalidTransitionError(GradeCoreError):
    """Error raised when an operation is not legal from the current state"""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.INVALID_TRANSITION,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if current_state is not None:
            details["current_state"] = current_state
        if operation is not None:
            details["operation"] = operation

        super().__init__(
            message=message,
            code=code,
            severity=ErrorSeverity.ERROR,
            details=details,
            cause=cause,
            context=context
        )

class QuizLockedError(InvalidTransitionError):
    """Error raised when a quiz's question set changes after attempts exist"""

    def __init__(self, quiz_id: str, attempt_count: int, operation: str):
        super().__init__(
            message=f"Quiz {quiz_id} already has {attempt_count} attempt(s); its questions cannot be changed",
            operation=operation,
            code=ErrorCode.QUIZ_LOCKED,
            details={"quiz_id": quiz_id, "attempt_count": attempt_count}
        )

class AttemptLimitReachedError(InvalidTransitionError):
    """Error raised when a student may not start or record another attempt"""

    def __init__(self, quiz_id: str, student_id: str, attempt_count: int):
        super().__init__(
            message=f"Student {student_id} cannot attempt quiz {quiz_id} again",
            operation="attempt",
            code=ErrorCode.ATTEMPT_LIMIT_REACHED,
            details={"quiz_id": quiz_id, "student_id": student_id, "attempt_count": attempt_count}
        )

class ConcurrentModificationError(GradeCoreError):
    """Error raised when a record changed since it was read"""

    retryable = True

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_revision: int,
        actual_revision: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "expected_revision": expected_revision,
        }
        if actual_revision is not None:
            details["actual_revision"] = actual_revision

        super().__init__(
            message=f"{entity_type} {entity_id} was modified concurrently; re-read and retry",
            code=ErrorCode.CONCURRENT_MODIFICATION,
            severity=ErrorSeverity.WARNING,
            details=details,
            context=context
        )

class NotFoundError(GradeCoreError):
    """Error raised when a requested record is not found"""

    def __init__(self, entity_type: str, entity_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"{entity_type} with ID {entity_id} not found",
            code=ErrorCode.NOT_FOUND_ERROR,
            severity=ErrorSeverity.WARNING,
            details={"entity_type": entity_type, "entity_id": entity_id},
            context=context
        )
        self.entity_type = entity_type
        self.entity_id = entity_id

class DatabaseError(GradeCoreError):
    """Error raised when the storage adapter fails"""

    def __init__(
        self,
        operation: str,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=f"Database operation {operation} failed",
            code=ErrorCode.DATABASE_ERROR,
            severity=ErrorSeverity.ERROR,
            details={"operation": operation},
            cause=cause,
            context=context
        )

def convert_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: Optional[Dict[str, Any]] = None
) -> GradeCoreError:
    """
    Convert a standard exception to a GradeCoreError.

    Args:
        exception: The exception to convert
        default_message: Default message if the exception has no message
        context: Optional additional context

    Returns:
        Converted GradeCoreError
    """
    if isinstance(exception, GradeCoreError):
        if context:
            exception.context.update(context)
        return exception

    return GradeCoreError(
        message=str(exception) or default_message,
        cause=exception,
        context=context
    )

# Retry decorator with exponential backoff
def retry(
    max_retries: int = 1,
    retry_delay: float = 0.05,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    retry_exceptions: Tuple[Type[Exception], ...] = (ConcurrentModificationError,),
    on_retry: Optional[Callable[[int, Exception, float], None]] = None
):
    """
    Decorator for retrying functions when exceptions occur.

    Only the given exception types are retried; everything else propagates
    on the first failure.

    Args:
        max_retries: Maximum number of retries
        retry_delay: Initial delay between retries in seconds
        backoff_factor: Factor to increase delay with each retry
        jitter: Random jitter factor to add to delay
        retry_exceptions: Tuple of exception types to retry on
        on_retry: Optional callback called before each retry

    Returns:
        Decorated function
    """
    def next_delay(retries: int, delay: float, func: Callable, error: Exception) -> float:
        actual_delay = delay * (1 + random.uniform(-jitter, jitter))
        if on_retry:
            on_retry(retries, error, actual_delay)
        logger.warning(
            f"Retry {retries}/{max_retries} for {func.__name__} "
            f"after {actual_delay:.2f}s due to {type(error).__name__}: {error}"
        )
        return actual_delay

    def decorator(func: F) -> F:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                retries = 0
                delay = retry_delay

                while True:
                    try:
                        return await func(*args, **kwargs)
                    except retry_exceptions as e:
                        retries += 1
                        if retries > max_retries:
                            raise
                        await asyncio.sleep(next_delay(retries, delay, func, e))
                        delay *= backoff_factor

            return cast(F, async_wrapper)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            retries = 0
            delay = retry_delay

            while True:
                try:
                    return func(*args, **kwargs)
                except retry_exceptions as e:
                    retries += 1
                    if retries > max_retries:
                        raise
                    time.sleep(next_delay(retries, delay, func, e))
                    delay *= backoff_factor

        return cast(F, sync_wrapper)

    return decorator

# API response generator
def error_response(
    error: Union[GradeCoreError, Exception],
    include_details: bool = True,
    include_stack_trace: bool = False
) -> Dict[str, Any]:
    """
    Generate a standardized API error response.

    Args:
        error: The error to generate a response for
        include_details: Whether to include error details
        include_stack_trace: Whether to include stack trace

    Returns:
        Standardized error response dictionary
    """
    if not isinstance(error, GradeCoreError):
        error = convert_exception(error)

    error_info = error.to_error_info(include_stack_trace=include_stack_trace)

    response = {
        "status": "error",
        "code": error_info.code,
        "message": error_info.message,
        "http_status": error.http_status,
        "retryable": error.retryable,
    }

    if include_details and error_info.details:
        response["details"] = error_info.details

    if isinstance(error, ValidationError) and error.errors:
        response["errors"] = error.errors

    return response

# Global error logging function
def log_error(
    error: Union[GradeCoreError, Exception],
    level: int = logging.ERROR,
    include_stack_trace: bool = False,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error with standardized format.

    Args:
        error: The error to log
        level: Logging level
        include_stack_trace: Whether to include stack trace
        context: Additional context to include
    """
    if not isinstance(error, GradeCoreError):
        error = convert_exception(error, context=context)
    elif context:
        error.context.update(context)

    message = f"ERROR [{error.code.value}]: {error.message}"

    if error.context:
        context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
        message += f" (context: {context_str})"

    if error.cause:
        message += f" caused by {type(error.cause).__name__}: {str(error.cause)}"

    if include_stack_trace:
        message += f"\n{traceback.format_exc()}"

    logger.log(level, message)
