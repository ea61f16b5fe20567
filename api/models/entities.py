# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Domain entity models for the ReliefGrid platform.
"""

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union
from pydantic import BaseModel, Field, ConfigDict, TypeAdapter, model_validator

from .base import BaseEntity, CamelModel, document_to_data
from .enums import (
    UserRole, Urgency, Severity, RequestStatus, DonationStatus,
    VolunteerStatus, EmergencyStatus, NotificationType
)


class UserBase(BaseEntity):
    """Fields shared by every account role."""

    username: str = Field(..., min_length=3, max_length=64, description="Unique login name")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    password_hash: str = Field(..., description="Bcrypt password hash")
    wallet_balance: float = Field(default=0.0, description="Application-level wallet balance")

    def public_dict(self) -> Dict[str, Any]:
        """API representation without credentials."""
        return self.model_dump(by_alias=True, mode="json", exclude={"password_hash"})


class Resident(UserBase):
    """Local resident, optionally assigned to the fire station covering their postal code."""

    role: Literal["resident"] = "resident"
    postal_code: Optional[str] = Field(None, max_length=20, description="Home postal code")
    assigned_fire_station_id: Optional[str] = Field(None, description="Station assigned at registration")


class FireStation(UserBase):
    """Fire station covering an inclusive postal-code range."""

    role: Literal["fire_station"] = "fire_station"
    postal_code_start: Optional[str] = Field(None, max_length=20, description="First covered postal code")
    postal_code_end: Optional[str] = Field(None, max_length=20, description="Last covered postal code")
    registration_id: Optional[str] = Field(None, max_length=100, description="Official registration number")

    @model_validator(mode="after")
    def validate_range(self):
        """Reject inverted ranges; postal codes compare as strings."""
        if self.postal_code_start and self.postal_code_end:
            if self.postal_code_start > self.postal_code_end:
                raise ValueError("postal_code_start must not be greater than postal_code_end")
        return self

    @property
    def has_coverage(self) -> bool:
        return bool(self.postal_code_start) and bool(self.postal_code_end)


class Ngo(UserBase):
    """Non-governmental organization."""

    role: Literal["ngo"] = "ngo"
    registration_id: Optional[str] = Field(None, max_length=100, description="Official registration number")
    specialization: Optional[str] = Field(None, max_length=200, description="Area of work")
    postal_code: Optional[str] = Field(None, max_length=20)
    assigned_fire_station_id: Optional[str] = Field(None)


UserAccount = Annotated[Union[Resident, FireStation, Ngo], Field(discriminator="role")]

USER_ADAPTER: TypeAdapter = TypeAdapter(UserAccount)


def parse_user(data: Mapping[str, Any]) -> Union[Resident, FireStation, Ngo]:
    """Validate user data into the model matching its role."""
    return USER_ADAPTER.validate_python(dict(data))


def user_from_document(document: Mapping[str, Any]) -> Union[Resident, FireStation, Ngo]:
    """Build the role-specific user model from a MongoDB document."""
    return parse_user(document_to_data(document))


class Resource(BaseEntity):
    """Inventory item held by a fire station or NGO."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    quantity: int = Field(..., ge=0)
    owner_id: str = Field(..., description="Owning user ID")


class ResourceRequest(BaseEntity):
    """Resource request raised by a fire station."""

    requester_id: str = Field(..., description="Requesting fire station ID")
    resource_type: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    urgency: Urgency
    description: Optional[str] = Field(None, max_length=2000)
    status: RequestStatus = Field(default=RequestStatus.PENDING)


class ResourceGift(CamelModel):
    """In-kind donation of a quantity of some resource."""

    kind: Literal["resource"] = "resource"
    resource_type: str = Field(..., min_length=1, max_length=200)
    resource_quantity: int = Field(..., gt=0)


class MonetaryGift(CamelModel):
    """Monetary donation moved between wallet balances."""

    kind: Literal["monetary"] = "monetary"
    amount: float = Field(..., gt=0)
    currency: str = Field(default="USDC", min_length=1, max_length=10)


DonationGift = Annotated[Union[ResourceGift, MonetaryGift], Field(discriminator="kind")]


class Donation(BaseEntity):
    """Donation of resources or money from one user to another."""

    donor_id: str
    recipient_id: str
    gift: DonationGift
    status: DonationStatus = Field(default=DonationStatus.PENDING)
    transaction_signature: Optional[str] = Field(None, max_length=200, description="Chain signature reported by the client")

    @property
    def is_monetary(self) -> bool:
        return isinstance(self.gift, MonetaryGift)


class Volunteer(BaseEntity):
    """Resident registered as a volunteer with a fire station."""

    user_id: str
    fire_station_id: str
    skills: List[str] = Field(default_factory=list)
    availability: List[str] = Field(default_factory=list)
    emergency_contact: Optional[str] = Field(None, max_length=200)
    status: VolunteerStatus = Field(default=VolunteerStatus.ACTIVE)


class Emergency(BaseEntity):
    """Emergency reported by a fire station."""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    reporter_id: str
    severity: Severity
    location: Optional[str] = Field(None, max_length=500)
    resources_needed: List[str] = Field(default_factory=list)
    status: EmergencyStatus = Field(default=EmergencyStatus.ACTIVE)


class Notification(BaseEntity):
    """Per-recipient notification produced by fan-out."""

    user_id: str = Field(..., description="Recipient user ID")
    title: str
    content: str
    notification_type: NotificationType = Field(..., alias="type")
    read: bool = False


class UserContext(BaseModel):
    """Authenticated actor for request processing."""

    user_id: str = Field(..., description="Authenticated user ID")
    role: UserRole = Field(..., description="Account role")
    name: Optional[str] = Field(None, description="User display name")
    username: Optional[str] = Field(None, description="Login name")
    permissions: List[str] = Field(default_factory=list, description="Permissions derived from the role")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(
        use_enum_values=True
    )

    def has_permission(self, permission: str) -> bool:
        """Check if user has a specific permission."""
        return permission in self.permissions
