# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the ReliefGrid platform.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account roles; each role carries its own profile fields."""
    RESIDENT = "resident"
    FIRE_STATION = "fire_station"
    NGO = "ngo"


class Urgency(str, Enum):
    """Urgency of a resource request."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Severity(str, Enum):
    """Severity of a reported emergency."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RequestStatus(str, Enum):
    """Resource request lifecycle status."""
    PENDING = "pending"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class DonationStatus(str, Enum):
    """Donation lifecycle status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class VolunteerStatus(str, Enum):
    """Volunteer availability status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_CALL = "on-call"


class EmergencyStatus(str, Enum):
    """Emergency lifecycle status."""
    ACTIVE = "active"
    RESOLVED = "resolved"


class NotificationType(str, Enum):
    """Kind of event a notification was fanned out from."""
    REQUEST = "request"
    DONATION = "donation"
    EMERGENCY = "emergency"
    VOLUNTEER = "volunteer"


class GiftKind(str, Enum):
    """Discriminator for the two donation shapes."""
    RESOURCE = "resource"
    MONETARY = "monetary"
