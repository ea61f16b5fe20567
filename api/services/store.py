# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Typed entity store over MongoDB.

Every method speaks domain models; documents never leak past this layer.
Identities are ObjectIds generated by the store side, timestamps are set
on write.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from pymongo import ASCENDING, DESCENDING
from pymongo.client_session import ClientSession
from opentelemetry import trace

from models.base import BaseEntity
from models.entities import (
    FireStation, Resident, UserAccount, user_from_document,
    Resource, ResourceRequest, Donation, Volunteer, Emergency, Notification
)
from models.enums import UserRole
from services.mongodb import MongoDBService, PaginationResult

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

E = TypeVar('E', bound=BaseEntity)

USERS = "users"
RESOURCES = "resources"
RESOURCE_REQUESTS = "resource_requests"
DONATIONS = "donations"
VOLUNTEERS = "volunteers"
EMERGENCIES = "emergencies"
NOTIFICATIONS = "notifications"

ALL_COLLECTIONS = (USERS, RESOURCES, RESOURCE_REQUESTS, DONATIONS, VOLUNTEERS, EMERGENCIES, NOTIFICATIONS)


def _filters(**criteria: Any) -> Dict[str, Any]:
    """Drop unset criteria."""
    return {key: value for key, value in criteria.items() if value is not None}


class EntityStore:
    """Typed CRUD operations for every ReliefGrid entity."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb = mongodb_service

    @contextmanager
    def transaction(self) -> Iterator[Optional[ClientSession]]:
        """Group writes into one transaction when the deployment supports it."""
        with self.mongodb.transaction() as session:
            yield session

    # Generic helpers

    def _insert(self, collection: str, entity: E, session: Optional[ClientSession] = None) -> E:
        with tracer.start_as_current_span("store.insert") as span:
            span.set_attributes({"db.collection": collection, "entity.id": entity.id})
            self.mongodb.insert(collection, entity.to_document(), session=session)
            return entity

    def _get(self, collection: str, model: Type[E], entity_id: str,
             session: Optional[ClientSession] = None) -> Optional[E]:
        document = self.mongodb.find_by_id(collection, entity_id, session=session)
        return model.from_document(document) if document else None

    def _update(self, collection: str, model: Type[E], entity_id: str, updates: Dict[str, Any],
                conditions: Optional[Dict[str, Any]] = None) -> Optional[E]:
        with tracer.start_as_current_span("store.update") as span:
            span.set_attributes({"db.collection": collection, "entity.id": entity_id})
            document = self.mongodb.update_by_id(collection, entity_id, updates, conditions=conditions)
            return model.from_document(document) if document else None

    def _page(self, collection: str, model: Type[E], filters: Dict[str, Any],
              page: int, page_size: int) -> PaginationResult:
        result = self.mongodb.paginate(
            collection, page=page, page_size=page_size, filters=filters,
            sort_by="createdAt", sort_order=DESCENDING
        )
        result.items = [model.from_document(document) for document in result.items]
        return result

    # Users

    def create_user(self, user: UserAccount) -> UserAccount:
        """Persist a new account; raises DuplicateDocumentError on a taken username."""
        return self._insert(USERS, user)

    def get_user(self, user_id: str, session: Optional[ClientSession] = None) -> Optional[UserAccount]:
        document = self.mongodb.find_by_id(USERS, user_id, session=session)
        return user_from_document(document) if document else None

    def get_user_by_username(self, username: str) -> Optional[UserAccount]:
        document = self.mongodb.find_one(USERS, {"username": username})
        return user_from_document(document) if document else None

    def list_users_by_role(self, role: UserRole) -> List[UserAccount]:
        """Users of one role in roster (registration) order."""
        documents = self.mongodb.find(
            USERS, {"role": UserRole(role).value}, sort=[("_id", ASCENDING)]
        )
        return [user_from_document(document) for document in documents]

    def list_fire_stations(self) -> List[FireStation]:
        return self.list_users_by_role(UserRole.FIRE_STATION)

    def list_residents_for_station(self, station_id: str) -> List[Resident]:
        """Residents whose registration snapshot assigned them to a station."""
        documents = self.mongodb.find(
            USERS,
            {"role": UserRole.RESIDENT.value, "assignedFireStationId": station_id},
            sort=[("_id", ASCENDING)]
        )
        return [user_from_document(document) for document in documents]

    def adjust_wallet_balance(self, user_id: str, delta: float, minimum: Optional[float] = None,
                              session: Optional[ClientSession] = None) -> Optional[UserAccount]:
        """
        Atomically add a signed delta to a user's wallet balance.

        Returns None when the user is missing or holds less than ``minimum``.
        """
        document = self.mongodb.increment(
            USERS, user_id, "walletBalance", delta, minimum=minimum, session=session
        )
        return user_from_document(document) if document else None

    # Resources

    def create_resource(self, resource: Resource) -> Resource:
        return self._insert(RESOURCES, resource)

    def get_resource(self, resource_id: str) -> Optional[Resource]:
        return self._get(RESOURCES, Resource, resource_id)

    def list_resources(self, owner_id: Optional[str] = None, page: int = 1, page_size: int = 20) -> PaginationResult:
        return self._page(RESOURCES, Resource, _filters(ownerId=owner_id), page, page_size)

    def update_resource_quantity(self, resource_id: str, quantity: int) -> Optional[Resource]:
        return self._update(RESOURCES, Resource, resource_id, {"quantity": quantity})

    # Resource requests

    def create_resource_request(self, resource_request: ResourceRequest) -> ResourceRequest:
        return self._insert(RESOURCE_REQUESTS, resource_request)

    def get_resource_request(self, request_id: str) -> Optional[ResourceRequest]:
        return self._get(RESOURCE_REQUESTS, ResourceRequest, request_id)

    def list_resource_requests(self, requester_id: Optional[str] = None, status: Optional[str] = None,
                               page: int = 1, page_size: int = 20) -> PaginationResult:
        filters = _filters(requesterId=requester_id, status=status)
        return self._page(RESOURCE_REQUESTS, ResourceRequest, filters, page, page_size)

    def update_resource_request_status(self, request_id: str, status: str,
                                       expected_status: Optional[str] = None) -> Optional[ResourceRequest]:
        """Set a new status; with ``expected_status`` the update only applies if unchanged."""
        return self._update(RESOURCE_REQUESTS, ResourceRequest, request_id, {"status": status},
                            _filters(status=expected_status))

    # Donations

    def create_donation(self, donation: Donation, session: Optional[ClientSession] = None) -> Donation:
        return self._insert(DONATIONS, donation, session=session)

    def get_donation(self, donation_id: str) -> Optional[Donation]:
        return self._get(DONATIONS, Donation, donation_id)

    def list_donations(self, donor_id: Optional[str] = None, recipient_id: Optional[str] = None,
                       participant_id: Optional[str] = None,
                       page: int = 1, page_size: int = 20) -> PaginationResult:
        """List donations; ``participant_id`` matches either side."""
        filters = _filters(donorId=donor_id, recipientId=recipient_id)
        if participant_id:
            filters["$or"] = [{"donorId": participant_id}, {"recipientId": participant_id}]
        return self._page(DONATIONS, Donation, filters, page, page_size)

    def update_donation_status(self, donation_id: str, status: str,
                               expected_status: Optional[str] = None) -> Optional[Donation]:
        """Set a new status; with ``expected_status`` the update only applies if unchanged."""
        return self._update(DONATIONS, Donation, donation_id, {"status": status},
                            _filters(status=expected_status))

    # Volunteers

    def create_volunteer(self, volunteer: Volunteer) -> Volunteer:
        return self._insert(VOLUNTEERS, volunteer)

    def get_volunteer(self, volunteer_id: str) -> Optional[Volunteer]:
        return self._get(VOLUNTEERS, Volunteer, volunteer_id)

    def list_volunteers(self, fire_station_id: Optional[str] = None, user_id: Optional[str] = None,
                        page: int = 1, page_size: int = 20) -> PaginationResult:
        filters = _filters(fireStationId=fire_station_id, userId=user_id)
        return self._page(VOLUNTEERS, Volunteer, filters, page, page_size)

    def update_volunteer_status(self, volunteer_id: str, status: str,
                                expected_status: Optional[str] = None) -> Optional[Volunteer]:
        """Set a new status; with ``expected_status`` the update only applies if unchanged."""
        return self._update(VOLUNTEERS, Volunteer, volunteer_id, {"status": status},
                            _filters(status=expected_status))

    # Emergencies

    def create_emergency(self, emergency: Emergency) -> Emergency:
        return self._insert(EMERGENCIES, emergency)

    def get_emergency(self, emergency_id: str) -> Optional[Emergency]:
        return self._get(EMERGENCIES, Emergency, emergency_id)

    def list_emergencies(self, status: Optional[str] = None, page: int = 1, page_size: int = 20) -> PaginationResult:
        return self._page(EMERGENCIES, Emergency, _filters(status=status), page, page_size)

    def update_emergency_status(self, emergency_id: str, status: str,
                                expected_status: Optional[str] = None) -> Optional[Emergency]:
        """Set a new status; with ``expected_status`` the update only applies if unchanged."""
        return self._update(EMERGENCIES, Emergency, emergency_id, {"status": status},
                            _filters(status=expected_status))

    # Notifications

    def create_notification(self, notification: Notification) -> Notification:
        return self._insert(NOTIFICATIONS, notification)

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self._get(NOTIFICATIONS, Notification, notification_id)

    def list_notifications_for_user(self, user_id: str, unread_only: bool = False,
                                    page: int = 1, page_size: int = 20) -> PaginationResult:
        """A user's notifications, newest first."""
        filters: Dict[str, Any] = {"userId": user_id}
        if unread_only:
            filters["read"] = False
        return self._page(NOTIFICATIONS, Notification, filters, page, page_size)

    def mark_notification_read(self, notification_id: str) -> Optional[Notification]:
        return self._update(NOTIFICATIONS, Notification, notification_id, {"read": True})
