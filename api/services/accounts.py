# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Account registration and credential checks.

Residents are assigned to the fire station covering their postal code at
registration time. The assignment is a snapshot: later changes to station
ranges do not move existing residents.
"""

import logging
from typing import Any

from pydantic import ValidationError
from opentelemetry import trace

from domain.assignment import resolve_fire_station
from middleware.error_handler import AuthenticationException, ConflictException, ValidationException
from middleware.validation import format_validation_errors, parse_model
from models.entities import FireStation, Ngo, Resident, UserAccount
from models.enums import UserRole
from models.requests import LoginRequest, RegisterUserRequest
from services.auth import AuthService
from services.mongodb import DuplicateDocumentError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AccountService:
    """Creates accounts and verifies credentials."""

    def __init__(self, store, auth_service: AuthService):
        self.store = store
        self.auth_service = auth_service

    def _build_account(self, data: RegisterUserRequest, password_hash: str) -> UserAccount:
        common = {
            "username": data.username,
            "name": data.name,
            "password_hash": password_hash,
        }

        if data.role == UserRole.RESIDENT.value:
            station = resolve_fire_station(data.postal_code, self.store.list_fire_stations())
            return Resident(
                **common,
                postal_code=data.postal_code,
                assigned_fire_station_id=station.id if station else None
            )

        if data.role == UserRole.FIRE_STATION.value:
            return FireStation(
                **common,
                postal_code_start=data.postal_code_start,
                postal_code_end=data.postal_code_end,
                registration_id=data.registration_id
            )

        return Ngo(
            **common,
            registration_id=data.registration_id,
            specialization=data.specialization,
            postal_code=data.postal_code
        )

    def register(self, payload: Any) -> UserAccount:
        """
        Register a new account.

        Args:
            payload: Registration body (RegisterUserRequest fields)

        Returns:
            The persisted account

        Raises:
            ValidationException: If the payload is invalid
            ConflictException: If the username is taken
        """
        with tracer.start_as_current_span("accounts.register") as span:
            data = parse_model(RegisterUserRequest, payload, "registration")
            span.set_attributes({"user.role": data.role, "user.username": data.username})

            if self.store.get_user_by_username(data.username) is not None:
                raise ConflictException(f"Username {data.username} is already taken")

            try:
                user = self._build_account(data, self.auth_service.hash_password(data.password))
            except ValidationError as e:
                raise ValidationException("Invalid registration", format_validation_errors(e))

            try:
                self.store.create_user(user)
            except DuplicateDocumentError:
                raise ConflictException(f"Username {data.username} is already taken")

            logger.info(
                "Account registered",
                extra={
                    "user_id": user.id,
                    "role": user.role,
                    "assigned_fire_station_id": getattr(user, "assigned_fire_station_id", None)
                }
            )
            return user

    def authenticate(self, payload: Any) -> UserAccount:
        """Check credentials and return the matching account."""
        with tracer.start_as_current_span("accounts.authenticate") as span:
            data = parse_model(LoginRequest, payload, "login")

            user = self.store.get_user_by_username(data.username.lower())
            if user is None or not self.auth_service.verify_password(data.password, user.password_hash):
                span.set_attribute("auth.result", "invalid_credentials")
                logger.warning("Login failed", extra={"username": data.username})
                raise AuthenticationException("Invalid username or password")

            span.set_attribute("auth.result", "success")
            return user
