# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.

Payload models accept both snake_case and camelCase keys.
"""

import re
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .enums import UserRole, Urgency, Severity


class RequestModel(BaseModel):
    """Base for inbound payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        str_strip_whitespace=True
    )


class RegisterUserRequest(RequestModel):
    """Request model for registering an account."""

    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole
    postal_code: Optional[str] = Field(None, max_length=20)
    postal_code_start: Optional[str] = Field(None, max_length=20)
    postal_code_end: Optional[str] = Field(None, max_length=20)
    registration_id: Optional[str] = Field(None, max_length=100)
    specialization: Optional[str] = Field(None, max_length=200)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        """Validate username format."""
        if not re.match(r'^[A-Za-z0-9_.-]+$', v):
            raise ValueError('Username may contain only letters, digits, dots, dashes and underscores')
        return v.lower()


class LoginRequest(RequestModel):
    """Request model for user login."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(RequestModel):
    """Request model for token refresh."""

    refresh_token: str = Field(..., min_length=1)


class CreateResourceRequestRequest(RequestModel):
    """Payload for a fire station requesting resources."""

    resource_type: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    urgency: Urgency
    description: Optional[str] = Field(None, max_length=2000)


class UpdateStatusRequest(RequestModel):
    """Payload for any status change; the value is checked against the entity's lifecycle."""

    status: str = Field(..., min_length=1, max_length=50)


class CreateDonationRequest(RequestModel):
    """
    Payload for a donation.

    Exactly one of the resource group (resource_type + resource_quantity) or the
    monetary group (amount + currency) must be supplied.
    """

    recipient_id: str = Field(..., min_length=1)
    resource_type: Optional[str] = Field(None, min_length=1, max_length=200)
    resource_quantity: Optional[int] = Field(None, gt=0)
    amount: Optional[float] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=1, max_length=10)
    transaction_signature: Optional[str] = Field(None, max_length=200)


class CreateVolunteerRequest(RequestModel):
    """Payload for a resident registering as a volunteer."""

    fire_station_id: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    availability: List[str] = Field(default_factory=list)
    emergency_contact: Optional[str] = Field(None, max_length=200)


class CreateEmergencyRequest(RequestModel):
    """Payload for a fire station reporting an emergency."""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    severity: Severity
    location: Optional[str] = Field(None, max_length=500)
    resources_needed: List[str] = Field(default_factory=list)


class CreateResourceRequest(RequestModel):
    """Payload for adding an inventory item."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    quantity: int = Field(..., ge=0)


class UpdateResourceQuantityRequest(RequestModel):
    """Payload for changing an inventory item's quantity."""

    quantity: int = Field(..., ge=0)


class SubmitChainTransactionRequest(RequestModel):
    """Already-signed transaction to relay to the chain RPC endpoint."""

    signed_transaction: str = Field(..., min_length=1, description="Base64-encoded signed transaction")
