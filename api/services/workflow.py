# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Workflow coordinator for every state-changing operation.

Each operation checks the actor's role before looking at the payload,
validates the payload, persists through the entity store with default
status values, and finally fans out notifications. Notification failures
are logged and never fail the operation that triggered them.
"""

import os
import logging
from typing import Any, Callable, Optional

from opentelemetry import trace

from domain import lifecycle
from domain.authorization import AuthorizationResult, check_ownership, check_permission
from domain.donations import build_donation_gift
from domain.notifications import (
    NotificationEvent, donation_event, emergency_event, resource_request_event, volunteer_event
)
from middleware.error_handler import (
    AuthorizationException, InvariantViolationException, NotFoundException, ValidationException
)
from middleware.validation import parse_model
from models.entities import (
    Donation, Emergency, MonetaryGift, Notification, Resource, ResourceRequest, UserContext, Volunteer
)
from models.enums import UserRole
from models.requests import (
    CreateDonationRequest, CreateEmergencyRequest, CreateResourceRequest,
    CreateResourceRequestRequest, CreateVolunteerRequest, UpdateResourceQuantityRequest,
    UpdateStatusRequest
)
from services.fanout import FanoutResult, NotificationFanout
from services.ledger import WalletLedger

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class WorkflowCoordinator:
    """Single entry point for operations that change ReliefGrid state."""

    def __init__(self, store, fanout: Optional[NotificationFanout] = None,
                 ledger: Optional[WalletLedger] = None,
                 notify_station_residents: Optional[bool] = None):
        """
        Initialize the coordinator.

        Args:
            store: EntityStore (or compatible) for persistence
            fanout: Notification fan-out; defaults to one over the same store
            ledger: Wallet ledger; defaults to one over the same store
            notify_station_residents: Whether residents assigned to a station
                hear about its resource requests (NOTIFY_STATION_RESIDENTS)
        """
        self.store = store
        self.fanout = fanout or NotificationFanout(store)
        self.ledger = ledger or WalletLedger(store)
        if notify_station_residents is None:
            notify_station_residents = os.getenv('NOTIFY_STATION_RESIDENTS', 'true').lower() == 'true'
        self.notify_station_residents = notify_station_residents

    # Shared steps

    def _authorize(self, result: AuthorizationResult, user_context: UserContext, operation: str) -> None:
        if result.allowed:
            return

        logger.warning(
            "Operation denied",
            extra={
                "user_id": user_context.user_id,
                "role": user_context.role,
                "operation": operation,
                "reason": result.reason
            }
        )
        raise AuthorizationException(result.reason or "Operation not allowed")

    def _require_permission(self, user_context: UserContext, permission: str) -> None:
        self._authorize(check_permission(user_context, permission), user_context, permission)

    def _require_owner(self, user_context: UserContext, owner_id: str, subject: str, operation: str) -> None:
        self._authorize(check_ownership(user_context, owner_id, subject), user_context, operation)

    def _parse_status(self, kind: str, payload: Any) -> str:
        """Validate a status payload against the kind's known statuses."""
        status = parse_model(UpdateStatusRequest, payload, "status update").status
        if status not in lifecycle.known_statuses(kind):
            raise ValidationException(
                f"Invalid status '{status}'",
                [{
                    "field": "status",
                    "message": f"Expected one of: {', '.join(lifecycle.known_statuses(kind))}",
                    "type": "enum",
                    "input": status
                }]
            )
        return status

    def _check_transition(self, kind: str, current_status: str, new_status: str) -> bool:
        """Raise on an illegal transition; return True when nothing changes."""
        result = lifecycle.validate_status_transition(kind, current_status, new_status)
        if not result.allowed:
            raise InvariantViolationException(result.reason)
        return result.is_noop

    def _changed_concurrently(self, kind: str, entity_id: str) -> InvariantViolationException:
        logger.warning("Concurrent status change detected", extra={"kind": kind, "entity_id": entity_id})
        return InvariantViolationException(
            f"The {kind.replace('_', ' ')} was modified concurrently; reload and retry"
        )

    def _notify(self, build_event: Callable[[], NotificationEvent]) -> Optional[FanoutResult]:
        """Fan out an event; any failure is logged and swallowed."""
        try:
            return self.fanout.publish(build_event())
        except Exception as e:
            logger.error(f"Notification fan-out failed: {e}", exc_info=True)
            return None

    @staticmethod
    def _display_name(user_context: UserContext) -> str:
        return user_context.name or user_context.username or user_context.user_id

    # Resource requests

    def create_resource_request(self, user_context: UserContext, payload: Any) -> ResourceRequest:
        """Fire stations raise a pending resource request; NGOs are notified."""
        with tracer.start_as_current_span("workflow.create_resource_request") as span:
            span.set_attributes({"user.id": user_context.user_id, "user.role": user_context.role})

            self._require_permission(user_context, "resource_request:create")
            data = parse_model(CreateResourceRequestRequest, payload, "resource request")

            resource_request = ResourceRequest(
                requester_id=user_context.user_id,
                resource_type=data.resource_type,
                quantity=data.quantity,
                urgency=data.urgency,
                description=data.description
            )
            self.store.create_resource_request(resource_request)

            logger.info(
                "Resource request created",
                extra={"request_id": resource_request.id, "requester_id": user_context.user_id}
            )

            self._notify(lambda: resource_request_event(
                resource_request, self._display_name(user_context), self.notify_station_residents
            ))
            return resource_request

    def update_resource_request_status(self, user_context: UserContext, request_id: str,
                                       payload: Any) -> ResourceRequest:
        """Any authenticated actor may fulfil or cancel a pending request."""
        with tracer.start_as_current_span("workflow.update_resource_request_status") as span:
            span.set_attributes({"user.id": user_context.user_id, "request.id": request_id})

            self._require_permission(user_context, "resource_request:update")
            status = self._parse_status("resource_request", payload)

            resource_request = self.store.get_resource_request(request_id)
            if resource_request is None:
                raise NotFoundException(f"Resource request {request_id} not found")

            if self._check_transition("resource_request", resource_request.status, status):
                return resource_request

            updated = self.store.update_resource_request_status(
                request_id, status, expected_status=resource_request.status
            )
            if updated is None:
                raise self._changed_concurrently("resource_request", request_id)

            logger.info(
                "Resource request status changed",
                extra={"request_id": request_id, "from": resource_request.status, "to": status}
            )
            return updated

    # Donations

    def create_donation(self, user_context: UserContext, payload: Any) -> Donation:
        """
        Record a donation from the actor to a recipient.

        Monetary donations move wallet balances before the donation record is
        written; both happen inside one store transaction when available.
        """
        with tracer.start_as_current_span("workflow.create_donation") as span:
            span.set_attributes({"user.id": user_context.user_id})

            self._require_permission(user_context, "donation:create")
            data = parse_model(CreateDonationRequest, payload, "donation")

            gift_result = build_donation_gift(data)
            if not gift_result.is_valid:
                raise InvariantViolationException(gift_result.error)

            recipient = self.store.get_user(data.recipient_id)
            if recipient is None:
                raise NotFoundException(f"Recipient {data.recipient_id} not found")

            donation = Donation(
                donor_id=user_context.user_id,
                recipient_id=recipient.id,
                gift=gift_result.gift,
                transaction_signature=data.transaction_signature
            )
            span.set_attribute("donation.monetary", donation.is_monetary)

            if isinstance(donation.gift, MonetaryGift):
                with self.store.transaction() as session:
                    transfer = self.ledger.transfer(
                        user_context.user_id, recipient.id, donation.gift.amount, session=session
                    )
                    try:
                        self.store.create_donation(donation, session=session)
                    except Exception:
                        if session is None:
                            self.ledger.reverse(transfer)
                        raise
            else:
                self.store.create_donation(donation)

            logger.info(
                "Donation recorded",
                extra={
                    "donation_id": donation.id,
                    "donor_id": donation.donor_id,
                    "recipient_id": donation.recipient_id,
                    "monetary": donation.is_monetary
                }
            )

            self._notify(lambda: donation_event(donation, self._display_name(user_context)))
            return donation

    def update_donation_status(self, user_context: UserContext, donation_id: str, payload: Any) -> Donation:
        """The recipient reconciles a pending donation as completed or failed."""
        with tracer.start_as_current_span("workflow.update_donation_status") as span:
            span.set_attributes({"user.id": user_context.user_id, "donation.id": donation_id})

            self._require_permission(user_context, "donation:update")
            status = self._parse_status("donation", payload)

            donation = self.store.get_donation(donation_id)
            if donation is None:
                raise NotFoundException(f"Donation {donation_id} not found")

            self._require_owner(user_context, donation.recipient_id, "donation recipient", "donation:update")

            if self._check_transition("donation", donation.status, status):
                return donation

            updated = self.store.update_donation_status(donation_id, status, expected_status=donation.status)
            if updated is None:
                raise self._changed_concurrently("donation", donation_id)
            return updated

    # Volunteers

    def create_volunteer(self, user_context: UserContext, payload: Any) -> Volunteer:
        """Residents register as volunteers with a station, by default their assigned one."""
        with tracer.start_as_current_span("workflow.create_volunteer") as span:
            span.set_attributes({"user.id": user_context.user_id})

            self._require_permission(user_context, "volunteer:create")
            data = parse_model(CreateVolunteerRequest, payload, "volunteer registration")

            station_id = data.fire_station_id
            if not station_id:
                actor = self.store.get_user(user_context.user_id)
                station_id = getattr(actor, "assigned_fire_station_id", None)
            if not station_id:
                raise ValidationException(
                    "No fire station given and none is assigned to this account",
                    [{
                        "field": "fire_station_id",
                        "message": "Field required when no fire station is assigned",
                        "type": "missing",
                        "input": None
                    }]
                )

            station = self.store.get_user(station_id)
            if station is None or station.role != UserRole.FIRE_STATION.value:
                raise NotFoundException(f"Fire station {station_id} not found")

            volunteer = Volunteer(
                user_id=user_context.user_id,
                fire_station_id=station.id,
                skills=data.skills,
                availability=data.availability,
                emergency_contact=data.emergency_contact
            )
            self.store.create_volunteer(volunteer)

            logger.info(
                "Volunteer registered",
                extra={"volunteer_id": volunteer.id, "fire_station_id": station.id}
            )

            self._notify(lambda: volunteer_event(volunteer, self._display_name(user_context)))
            return volunteer

    def update_volunteer_status(self, user_context: UserContext, volunteer_id: str, payload: Any) -> Volunteer:
        """The station a volunteer registered with moves them between availability states."""
        with tracer.start_as_current_span("workflow.update_volunteer_status") as span:
            span.set_attributes({"user.id": user_context.user_id, "volunteer.id": volunteer_id})

            self._require_permission(user_context, "volunteer:update")
            status = self._parse_status("volunteer", payload)

            volunteer = self.store.get_volunteer(volunteer_id)
            if volunteer is None:
                raise NotFoundException(f"Volunteer {volunteer_id} not found")

            self._require_owner(user_context, volunteer.fire_station_id, "volunteer's fire station", "volunteer:update")

            if self._check_transition("volunteer", volunteer.status, status):
                return volunteer

            updated = self.store.update_volunteer_status(volunteer_id, status, expected_status=volunteer.status)
            if updated is None:
                raise self._changed_concurrently("volunteer", volunteer_id)
            return updated

    # Emergencies

    def create_emergency(self, user_context: UserContext, payload: Any) -> Emergency:
        """Fire stations report emergencies; every other station is alerted."""
        with tracer.start_as_current_span("workflow.create_emergency") as span:
            span.set_attributes({"user.id": user_context.user_id, "user.role": user_context.role})

            self._require_permission(user_context, "emergency:create")
            data = parse_model(CreateEmergencyRequest, payload, "emergency report")

            emergency = Emergency(
                title=data.title,
                description=data.description,
                reporter_id=user_context.user_id,
                severity=data.severity,
                location=data.location,
                resources_needed=data.resources_needed
            )
            self.store.create_emergency(emergency)

            logger.info(
                "Emergency reported",
                extra={"emergency_id": emergency.id, "severity": emergency.severity}
            )

            self._notify(lambda: emergency_event(emergency, self._display_name(user_context)))
            return emergency

    def update_emergency_status(self, user_context: UserContext, emergency_id: str, payload: Any) -> Emergency:
        """The reporting station resolves an active emergency."""
        with tracer.start_as_current_span("workflow.update_emergency_status") as span:
            span.set_attributes({"user.id": user_context.user_id, "emergency.id": emergency_id})

            self._require_permission(user_context, "emergency:update")
            status = self._parse_status("emergency", payload)

            emergency = self.store.get_emergency(emergency_id)
            if emergency is None:
                raise NotFoundException(f"Emergency {emergency_id} not found")

            self._require_owner(user_context, emergency.reporter_id, "reporting fire station", "emergency:update")

            if self._check_transition("emergency", emergency.status, status):
                return emergency

            updated = self.store.update_emergency_status(emergency_id, status, expected_status=emergency.status)
            if updated is None:
                raise self._changed_concurrently("emergency", emergency_id)
            return updated

    # Notifications

    def mark_notification_read(self, user_context: UserContext, notification_id: str) -> Notification:
        """Mark a notification read; repeating the call is harmless."""
        self._require_permission(user_context, "notification:update")

        notification = self.store.get_notification(notification_id)
        if notification is None:
            raise NotFoundException(f"Notification {notification_id} not found")

        if notification.read:
            return notification

        updated = self.store.mark_notification_read(notification_id)
        if updated is None:
            raise NotFoundException(f"Notification {notification_id} not found")
        return updated

    # Inventory

    def create_resource(self, user_context: UserContext, payload: Any) -> Resource:
        self._require_permission(user_context, "resource:manage")
        data = parse_model(CreateResourceRequest, payload, "resource")

        resource = Resource(
            name=data.name,
            description=data.description,
            quantity=data.quantity,
            owner_id=user_context.user_id
        )
        self.store.create_resource(resource)
        logger.info("Resource created", extra={"resource_id": resource.id, "owner_id": user_context.user_id})
        return resource

    def update_resource_quantity(self, user_context: UserContext, resource_id: str, payload: Any) -> Resource:
        self._require_permission(user_context, "resource:manage")
        data = parse_model(UpdateResourceQuantityRequest, payload, "resource quantity")

        resource = self.store.get_resource(resource_id)
        if resource is None:
            raise NotFoundException(f"Resource {resource_id} not found")

        self._require_owner(user_context, resource.owner_id, "resource owner", "resource:manage")

        updated = self.store.update_resource_quantity(resource_id, data.quantity)
        if updated is None:
            raise NotFoundException(f"Resource {resource_id} not found")
        return updated
