"""
Data Validation Utilities for GradeCore

This module provides standardized data validation capabilities including:
1. A shared pydantic base model for authoring inputs
2. Conversion of pydantic errors into field-level error entries
3. A validation result that raises the GradeCore ValidationError
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from gradecore.common.error_handling import ValidationError

# Type variables
T = TypeVar('T', bound=BaseModel)

# Configure logging
logger = logging.getLogger(__name__)

class ValidationResult:
    """Result of a validation operation"""

    def __init__(
        self,
        is_valid: bool,
        errors: Optional[List[Dict[str, Any]]] = None,
        instance: Optional[BaseModel] = None
    ):
        """
        Initialize validation result.

        Args:
            is_valid: Whether the validation passed
            errors: List of validation errors
            instance: Validated model instance if validation passed
        """
        self.is_valid = is_valid
        self.errors = errors or []
        self.instance = instance

    def __bool__(self) -> bool:
        """Allow using the result in boolean context"""
        return self.is_valid

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation result to a dictionary"""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "validated_data": self.instance.model_dump() if self.instance else {}
        }

    def raise_if_invalid(self, data_type: str = "data") -> BaseModel:
        """
        Raise an exception if validation failed.

        Args:
            data_type: Type of data being validated

        Returns:
            Validated model instance if validation passed

        Raises:
            ValidationError: If validation failed
        """
        if not self.is_valid:
            raise ValidationError(
                f"Validation failed for data of type {data_type}",
                errors=self.errors,
                details={"data_type": data_type}
            )
        return self.instance

def convert_pydantic_errors(error: PydanticValidationError) -> List[Dict[str, Any]]:
    """Convert pydantic errors to field/message/type entries."""
    return [
        {
            "field": ".".join(str(loc) for loc in item["loc"]) or "__root__",
            "message": item["msg"],
            "type": item["type"]
        }
        for item in error.errors()
    ]

def validate_against_model(
    model: Type[T],
    data: Union[Mapping[str, Any], BaseModel]
) -> ValidationResult:
    """
    Validate data against a Pydantic model.

    Args:
        model: Pydantic model class to validate against
        data: Data to validate

    Returns:
        Validation result
    """
    if isinstance(data, model):
        return ValidationResult(is_valid=True, instance=data)
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)

    try:
        return ValidationResult(is_valid=True, instance=model.model_validate(dict(data)))
    except PydanticValidationError as e:
        errors = convert_pydantic_errors(e)
        logger.debug(f"{model.__name__} rejected with {len(errors)} error(s)")
        return ValidationResult(is_valid=False, errors=errors)
    except TypeError as e:
        return ValidationResult(
            is_valid=False,
            errors=[{"field": "__root__", "message": str(e), "type": "type_error"}]
        )

def parse_model(model: Type[T], data: Union[Mapping[str, Any], BaseModel], data_type: Optional[str] = None) -> T:
    """Validate data and return the model instance, raising ValidationError on failure."""
    return validate_against_model(model, data).raise_if_invalid(data_type or model.__name__)

# Base class for all validation models
class BaseValidationModel(BaseModel):
    """Base model for all validation models with common configuration"""

    model_config = ConfigDict(
        extra="forbid",  # Forbid extra fields by default
        validate_assignment=True,
        str_strip_whitespace=True,
    )
