# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation using Pydantic models.
Provides payload parsing and error formatting shared by routes and services.
"""

from flask import request
from typing import Type, TypeVar, Dict, Any, List, Optional
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from middleware.error_handler import ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors for API response.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field_path or "body",
            "message": error["msg"],
            "type": error["type"],
            "input": error.get("input")
        })

    return errors


def parse_model(model_class: Type[M], data: Any, subject: Optional[str] = None) -> M:
    """
    Validate raw input against a Pydantic model.

    Args:
        model_class: Pydantic model class for validation
        data: Decoded JSON object (or an already-built model instance)
        subject: Human readable name used in the error message

    Returns:
        Validated model instance

    Raises:
        ValidationException: If the input is not an object or fails validation
    """
    if isinstance(data, model_class):
        return data

    subject = subject or model_class.__name__

    with tracer.start_as_current_span("validation.parse_model") as span:
        span.set_attribute("validation.model", model_class.__name__)

        if not isinstance(data, dict):
            span.set_attribute("validation.result", "not_an_object")
            raise ValidationException(
                f"Invalid {subject}: expected a JSON object",
                [{
                    "field": "body",
                    "message": "Expected a JSON object",
                    "type": "json_error",
                    "input": None
                }]
            )

        try:
            validated = model_class.model_validate(data)
            span.set_attribute("validation.result", "success")
            return validated
        except ValidationError as e:
            span.set_attribute("validation.result", "validation_error")
            validation_errors = format_validation_errors(e)

            logger.info(
                "Payload validation failed",
                extra={
                    "model": model_class.__name__,
                    "errors": validation_errors
                }
            )

            raise ValidationException(f"Invalid {subject}", validation_errors)


def get_json_body() -> Optional[Dict[str, Any]]:
    """Decoded JSON body of the current request, or None when absent or malformed."""
    return request.get_json(silent=True)
