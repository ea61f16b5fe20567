# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides Flask middleware for validating JWT tokens, checking
blocklists, and building user context for request processing.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from domain.authorization import permissions_for_role
from middleware.error_handler import AuthenticationException
from models.entities import UserContext
from services.auth import TokenValidationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation, blocklist checking, and user context
    building for protected endpoints.
    """

    def __init__(self, auth_service, redis_service=None):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
            redis_service: Redis service for token blocklist (optional)
        """
        self.auth_service = auth_service
        self.redis_service = redis_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()

        if not auth_header:
            return None

        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def is_token_blocked(self, token: str) -> bool:
        """
        Check if token is in the Redis blocklist.

        Args:
            token: JWT token to check

        Returns:
            True if token is blocked, False otherwise
        """
        if self.redis_service is None or not self.redis_service.is_available():
            return False

        try:
            token_id = self.auth_service.extract_token_id(token)
        except TokenValidationError:
            # Malformed tokens are rejected by validation
            return False

        return self.redis_service.is_token_blocked(token_id)

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        """
        Build user context from validated token payload and request information.

        Permissions are derived from the role in the token, never from
        claims supplied by the client.
        """
        role = token_payload.get("role")
        try:
            permissions = permissions_for_role(role)
        except ValueError:
            raise TokenValidationError(f"Unknown role in token: {role}")

        return UserContext(
            user_id=token_payload["sub"],
            role=role,
            name=token_payload.get("name"),
            username=token_payload.get("username"),
            permissions=permissions,
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """Extract request metadata for user context."""
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', ''),
            "request_id": request.headers.get('X-Request-ID')
        }

    def authenticate_request(self) -> UserContext:
        """
        Authenticate the current request.

        Returns:
            UserContext for the bearer of the token

        Raises:
            AuthenticationException: If the token is missing, revoked or invalid
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationException("Missing authorization token")

            if self.is_token_blocked(token):
                span.set_attribute("auth.result", "token_blocked")
                logger.warning("Authentication failed: token is blocked")
                raise AuthenticationException("Token has been revoked")

            try:
                token_payload = self.auth_service.validate_token(token, "access")
                user_context = self.build_user_context(token_payload, self.get_request_info())
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                raise AuthenticationException(str(e))

            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.user_id,
                "user.role": user_context.role
            })
            logger.debug(
                "Authentication successful",
                extra={
                    "user_id": user_context.user_id,
                    "role": user_context.role,
                    "ip_address": user_context.ip_address
                }
            )
            return user_context


def require_jwt(f: Callable) -> Callable:
    """
    Require a valid access token for a Flask route.

    The authenticated UserContext is stored on ``g.user_context``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user_context = current_app.auth_middleware.authenticate_request()
        return f(*args, **kwargs)

    return decorated_function


def current_user_context() -> UserContext:
    """UserContext of the authenticated request."""
    return g.user_context
