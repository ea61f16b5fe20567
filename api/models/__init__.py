# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the ReliefGrid platform.
"""

# Base models
from .base import BaseEntity, CamelModel, generate_object_id, utc_now

# Enumerations
from .enums import (
    UserRole,
    Urgency,
    Severity,
    RequestStatus,
    DonationStatus,
    VolunteerStatus,
    EmergencyStatus,
    NotificationType,
    GiftKind
)

# Core entities
from .entities import (
    Resident,
    FireStation,
    Ngo,
    UserAccount,
    parse_user,
    user_from_document,
    Resource,
    ResourceRequest,
    ResourceGift,
    MonetaryGift,
    Donation,
    Volunteer,
    Emergency,
    Notification,
    UserContext
)

# Request models
from .requests import (
    RegisterUserRequest,
    LoginRequest,
    RefreshTokenRequest,
    CreateResourceRequestRequest,
    UpdateStatusRequest,
    CreateDonationRequest,
    CreateVolunteerRequest,
    CreateEmergencyRequest,
    CreateResourceRequest,
    UpdateResourceQuantityRequest,
    SubmitChainTransactionRequest
)

# Response models
from .responses import (
    HalLink,
    AuthTokenResponse,
    ErrorResponse,
    ValidationErrorResponse
)

__all__ = [
    # Base
    "BaseEntity",
    "CamelModel",
    "generate_object_id",
    "utc_now",

    # Enums
    "UserRole",
    "Urgency",
    "Severity",
    "RequestStatus",
    "DonationStatus",
    "VolunteerStatus",
    "EmergencyStatus",
    "NotificationType",
    "GiftKind",

    # Entities
    "Resident",
    "FireStation",
    "Ngo",
    "UserAccount",
    "parse_user",
    "user_from_document",
    "Resource",
    "ResourceRequest",
    "ResourceGift",
    "MonetaryGift",
    "Donation",
    "Volunteer",
    "Emergency",
    "Notification",
    "UserContext",

    # Requests
    "RegisterUserRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "CreateResourceRequestRequest",
    "UpdateStatusRequest",
    "CreateDonationRequest",
    "CreateVolunteerRequest",
    "CreateEmergencyRequest",
    "CreateResourceRequest",
    "UpdateResourceQuantityRequest",
    "SubmitChainTransactionRequest",

    # Responses
    "HalLink",
    "AuthTokenResponse",
    "ErrorResponse",
    "ValidationErrorResponse",
]
