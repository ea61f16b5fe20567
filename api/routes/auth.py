# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints for registration, login, logout, and token refresh.
"""

from flask import jsonify, current_app, request
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from middleware.auth import require_jwt, current_user_context
from middleware.error_handler import AuthenticationException, NotFoundException
from middleware.validation import get_json_body, parse_model
from models.requests import RefreshTokenRequest
from models.responses import AuthTokenResponse, ErrorResponse, ValidationErrorResponse
from services.auth import TokenValidationError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

auth_tag = Tag(name="Authentication", description="Account registration and token management")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


def _token_response(user, tokens):
    return {
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
        "token_type": tokens["token_type"],
        "expires_in": tokens["expires_in"],
        "user": user.public_dict(),
        "_links": {
            "self": {"href": "/api/auth/me"},
            "refresh": {"href": "/api/auth/refresh", "method": "POST"},
            "logout": {"href": "/api/auth/logout", "method": "POST"}
        }
    }


@auth_bp.post('/register', responses={201: AuthTokenResponse, 400: ValidationErrorResponse, 409: ErrorResponse})
def register():
    """
    Register a new account.

    Residents are assigned to the fire station whose postal code range covers
    their postal code. Returns tokens for the new account.
    """
    with tracer.start_as_current_span("auth.register"):
        user = current_app.accounts.register(get_json_body())
        tokens = current_app.auth_service.generate_tokens(user)
        return jsonify(_token_response(user, tokens)), 201


@auth_bp.post('/login', responses={200: AuthTokenResponse, 400: ValidationErrorResponse, 401: ErrorResponse})
def login():
    """Authenticate with username and password and return JWT tokens."""
    with tracer.start_as_current_span("auth.login", attributes={"ip_address": request.remote_addr or ""}):
        user = current_app.accounts.authenticate(get_json_body())
        tokens = current_app.auth_service.generate_tokens(user)

        logger.info("User logged in", extra={"user_id": user.id, "role": user.role})
        return jsonify(_token_response(user, tokens)), 200


@auth_bp.post('/refresh')
def refresh():
    """Exchange a refresh token for a new access token."""
    with tracer.start_as_current_span("auth.refresh") as span:
        data = parse_model(RefreshTokenRequest, get_json_body(), "refresh request")
        auth_service = current_app.auth_service

        try:
            payload = auth_service.validate_token(data.refresh_token, "refresh")
        except TokenValidationError as e:
            span.set_attribute("auth.refresh_result", "invalid_token")
            raise AuthenticationException(str(e))

        if current_app.auth_middleware.is_token_blocked(data.refresh_token):
            raise AuthenticationException("Token has been revoked")

        user = current_app.store.get_user(payload["sub"])
        if user is None:
            raise AuthenticationException("Account no longer exists")

        result = auth_service.refresh_access_token(data.refresh_token, user)
        result["_links"] = {"self": {"href": "/api/auth/refresh", "method": "POST"}}
        return jsonify(result), 200


@auth_bp.post('/logout')
@require_jwt
def logout():
    """
    Revoke the current access token.

    When a refresh token is supplied in the body it is revoked as well.
    """
    user_context = current_user_context()
    auth_service = current_app.auth_service
    redis_service = current_app.redis_service
    token = current_app.auth_middleware.extract_token_from_request()

    blocked = False
    if redis_service is not None:
        blocked = redis_service.block_token(
            auth_service.extract_token_id(token),
            auth_service.remaining_lifetime(token)
        )

        body = get_json_body() or {}
        refresh_token = body.get("refresh_token") or body.get("refreshToken")
        if refresh_token:
            try:
                auth_service.validate_token(refresh_token, "refresh")
                redis_service.block_token(
                    auth_service.extract_token_id(refresh_token),
                    auth_service.remaining_lifetime(refresh_token)
                )
            except TokenValidationError:
                logger.info("Ignoring invalid refresh token on logout", extra={"user_id": user_context.user_id})

    logger.info("User logged out", extra={"user_id": user_context.user_id, "token_blocked": blocked})
    return jsonify({
        "message": "Logged out",
        "token_revoked": blocked,
        "_links": {"login": {"href": "/api/auth/login", "method": "POST"}}
    }), 200


@auth_bp.get('/me')
@require_jwt
def me():
    """Return the authenticated account."""
    user_context = current_user_context()
    user = current_app.store.get_user(user_context.user_id)
    if user is None:
        raise NotFoundException(f"User {user_context.user_id} not found")

    return jsonify(current_app.hal_formatter.format_entity("user", user.public_dict(), user_context)), 200
