# SPDX-License-Identifier: Apache-2.0

"""
Notification domain logic for event fan-out.

This module contains pure functions that turn a workflow event into a
message and an audience description, and expand a resolved recipient list
into one notification per distinct recipient.
"""

from typing import List, Iterable, Optional, Union
from dataclasses import dataclass, field

from models.entities import (
    Notification, ResourceRequest, Donation, Volunteer, Emergency, MonetaryGift
)
from models.enums import NotificationType, UserRole


@dataclass
class Audience:
    """Who should hear about an event, before lookup."""
    roles: List[str] = field(default_factory=list)
    user_ids: List[str] = field(default_factory=list)
    residents_of_station: Optional[str] = None
    exclude: List[str] = field(default_factory=list)


@dataclass
class NotificationEvent:
    """A workflow event ready to be fanned out."""
    notification_type: NotificationType
    title: str
    content: str
    audience: Audience
    source_id: str


def format_amount(value: Union[int, float]) -> str:
    """Render a number without a trailing .0 for whole values."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resource_request_event(
    resource_request: ResourceRequest,
    requester_name: str,
    notify_station_residents: bool = True
) -> NotificationEvent:
    """NGOs, and residents assigned to the requesting station, hear about new requests."""
    return NotificationEvent(
        notification_type=NotificationType.REQUEST,
        title="Resource Request",
        content=f"{requester_name} is requesting {resource_request.quantity} {resource_request.resource_type}",
        audience=Audience(
            roles=[UserRole.NGO.value],
            residents_of_station=resource_request.requester_id if notify_station_residents else None
        ),
        source_id=resource_request.id
    )


def donation_event(donation: Donation, donor_name: str) -> NotificationEvent:
    """The recipient hears about a donation."""
    gift = donation.gift
    if isinstance(gift, MonetaryGift):
        content = f"{donor_name} donated {format_amount(gift.amount)} {gift.currency}"
    else:
        content = f"{donor_name} donated {gift.resource_quantity} {gift.resource_type}"

    return NotificationEvent(
        notification_type=NotificationType.DONATION,
        title="New Donation",
        content=content,
        audience=Audience(user_ids=[donation.recipient_id]),
        source_id=donation.id
    )


def volunteer_event(volunteer: Volunteer, volunteer_name: str) -> NotificationEvent:
    """The station hears about a new volunteer."""
    return NotificationEvent(
        notification_type=NotificationType.VOLUNTEER,
        title="New Volunteer",
        content=f"{volunteer_name} has registered as a volunteer",
        audience=Audience(user_ids=[volunteer.fire_station_id]),
        source_id=volunteer.id
    )


def emergency_event(emergency: Emergency, reporter_name: str) -> NotificationEvent:
    """Every other fire station hears about an emergency."""
    return NotificationEvent(
        notification_type=NotificationType.EMERGENCY,
        title="Emergency Alert",
        content=f"{reporter_name} reported: {emergency.title}",
        audience=Audience(
            roles=[UserRole.FIRE_STATION.value],
            exclude=[emergency.reporter_id]
        ),
        source_id=emergency.id
    )


def distinct_recipients(recipient_ids: Iterable[str], exclude: Iterable[str] = ()) -> List[str]:
    """Drop duplicates and excluded ids, keeping first-seen order."""
    excluded = set(exclude)
    seen = set()
    result = []
    for recipient_id in recipient_ids:
        if not recipient_id or recipient_id in excluded or recipient_id in seen:
            continue
        seen.add(recipient_id)
        result.append(recipient_id)
    return result


def build_notifications(event: NotificationEvent, recipient_ids: Iterable[str]) -> List[Notification]:
    """
    Expand an event into unread notifications.

    Args:
        event: Event to fan out
        recipient_ids: Resolved recipients, possibly with duplicates

    Returns:
        One Notification per distinct, non-excluded recipient
    """
    return [
        Notification(
            user_id=recipient_id,
            title=event.title,
            content=event.content,
            notification_type=event.notification_type,
            read=False
        )
        for recipient_id in distinct_recipients(recipient_ids, event.audience.exclude)
    ]
