# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.

Defines the application exception hierarchy raised by the workflow, store and
route layers, and renders every failure (application exceptions, werkzeug
HTTP errors, unexpected exceptions) as an RFC 7807 problem body with HAL links.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, List, Optional, Tuple
from opentelemetry import trace
import logging

from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# Problem type and title for HTTP errors raised by Flask/werkzeug itself
HTTP_ERROR_TYPES: Dict[int, Tuple[str, str]] = {
    400: ("bad-request", "Bad Request"),
    401: ("authentication-required", "Authentication Required"),
    403: ("insufficient-permissions", "Insufficient Permissions"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    415: ("unsupported-media-type", "Unsupported Media Type"),
    500: ("internal-server-error", "Internal Server Error"),
    503: ("service-unavailable", "Service Unavailable"),
}


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Malformed or incomplete input; carries per-field errors."""

    def __init__(self, message: str, validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):
    """Missing, invalid, expired or revoked credentials."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """The actor's role or ownership does not allow the operation."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):
    def __init__(self, message: str):
        super().__init__(message, 409, "resource-conflict")


class InvariantViolationException(CustomException):
    """Well-formed input that breaks a business rule (illegal transition, mixed donation)."""

    def __init__(self, message: str):
        super().__init__(message, 422, "invariant-violation")


class ServiceUnavailableException(CustomException):
    """A downstream dependency (chain RPC) could not serve the request."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")


class ErrorHandlerMiddleware:
    """Renders HTTP errors and unexpected exceptions as HAL problem bodies."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error):
            return self.handle_http_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def _production(self) -> bool:
        return self.app.config.get('ENVIRONMENT') == 'production'

    def handle_http_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        """
        Handle an HTTP error raised by routing or abort().

        Args:
            error: HTTP exception

        Returns:
            Tuple of (error response dict, status code)
        """
        status = error.code or 500
        error_type, title = HTTP_ERROR_TYPES.get(status, ("http-error", error.name))
        detail = str(error.description) if error.description else title

        with tracer.start_as_current_span("error_handler.http_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": status,
                "http.method": request.method,
                "http.path": request.path
            })

            log_extra = {
                "error_type": error_type,
                "status_code": status,
                "detail": detail,
                "path": request.path,
                "method": request.method,
                "ip_address": request.remote_addr
            }
            if status >= 500:
                logger.error(f"Server error: {title}", extra=log_extra, exc_info=True)
                if self._production():
                    detail = "An internal server error occurred"
            else:
                logger.warning(f"Client error: {title}", extra=log_extra)

            error_response = self.hal_formatter.builder.build_error_response(
                error_type, title, status, detail, request.path
            )
            return error_response, status

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """Anything not raised as a CustomException or HTTPException becomes a 500."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if not self._production():
                detail = f"{error.__class__.__name__}: {str(error)}"

            return self.hal_formatter.format_server_error(detail, request.path), 500


def _format_custom_exception(hal_formatter: HalFormatter, error: CustomException) -> Dict[str, Any]:
    if isinstance(error, ValidationException):
        return hal_formatter.format_validation_error(error.message, request.path, error.validation_errors)

    formatters = {
        AuthenticationException: hal_formatter.format_authentication_error,
        AuthorizationException: hal_formatter.format_authorization_error,
        NotFoundException: hal_formatter.format_not_found_error,
        ConflictException: hal_formatter.format_conflict_error,
        InvariantViolationException: hal_formatter.format_invariant_violation_error,
        ServiceUnavailableException: hal_formatter.format_service_unavailable_error,
    }
    formatter = formatters.get(type(error), hal_formatter.format_server_error)
    return formatter(error.message, request.path)


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """
    Register the handler for application exceptions.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            return jsonify(_format_custom_exception(hal_formatter, error)), error.status_code
