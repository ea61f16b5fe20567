# SPDX-License-Identifier: Apache-2.0

"""
Status lifecycle rules for every stateful entity.

Each entity kind has a closed set of statuses and a transition table. Terminal
statuses map to an empty list. Re-applying the current status is accepted as
a no-op so that repeated client submissions stay harmless.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from models.enums import RequestStatus, DonationStatus, VolunteerStatus, EmergencyStatus


STATUS_TRANSITIONS: Dict[str, Dict[str, List[str]]] = {
    "resource_request": {
        RequestStatus.PENDING.value: [RequestStatus.FULFILLED.value, RequestStatus.CANCELLED.value],
        RequestStatus.FULFILLED.value: [],
        RequestStatus.CANCELLED.value: [],
    },
    "donation": {
        DonationStatus.PENDING.value: [DonationStatus.COMPLETED.value, DonationStatus.FAILED.value],
        DonationStatus.COMPLETED.value: [],
        DonationStatus.FAILED.value: [],
    },
    "volunteer": {
        VolunteerStatus.ACTIVE.value: [VolunteerStatus.INACTIVE.value, VolunteerStatus.ON_CALL.value],
        VolunteerStatus.INACTIVE.value: [VolunteerStatus.ACTIVE.value],
        VolunteerStatus.ON_CALL.value: [VolunteerStatus.ACTIVE.value],
    },
    "emergency": {
        EmergencyStatus.ACTIVE.value: [EmergencyStatus.RESOLVED.value],
        EmergencyStatus.RESOLVED.value: [],
    },
}


@dataclass
class TransitionResult:
    """Result of a status transition check."""
    allowed: bool
    reason: Optional[str] = None
    unknown_status: bool = False
    is_noop: bool = False


def _table(kind: str) -> Dict[str, List[str]]:
    try:
        return STATUS_TRANSITIONS[kind]
    except KeyError:
        raise ValueError(f"No lifecycle defined for {kind}")


def known_statuses(kind: str) -> List[str]:
    """All statuses an entity kind can hold."""
    return list(_table(kind).keys())


def allowed_targets(kind: str, current_status: str) -> List[str]:
    """Statuses reachable in one step from the current status."""
    return list(_table(kind).get(current_status, []))


def is_terminal(kind: str, status: str) -> bool:
    return status in _table(kind) and not _table(kind)[status]


def validate_status_transition(kind: str, current_status: str, new_status: str) -> TransitionResult:
    """
    Check whether an entity may move from one status to another.

    Args:
        kind: Entity kind (resource_request, donation, volunteer, emergency)
        current_status: Status currently stored
        new_status: Requested status

    Returns:
        TransitionResult; ``unknown_status`` is set when the requested value
        is not part of the kind's status set at all
    """
    table = _table(kind)

    if new_status not in table:
        return TransitionResult(
            allowed=False,
            reason=f"Invalid status '{new_status}'. Expected one of: {', '.join(table.keys())}",
            unknown_status=True
        )

    if new_status == current_status:
        return TransitionResult(allowed=True, is_noop=True)

    if new_status not in table.get(current_status, []):
        if is_terminal(kind, current_status):
            reason = f"Cannot change status of a {kind.replace('_', ' ')} that is already {current_status}"
        else:
            reason = f"Cannot change status from {current_status} to {new_status}"
        return TransitionResult(allowed=False, reason=reason)

    return TransitionResult(allowed=True)
