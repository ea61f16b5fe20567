# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

Workflow and endpoint tests run against an in-memory store that mirrors
the EntityStore interface, so they need no MongoDB server.
"""

import os
import pytest
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['MONGODB_DATABASE'] = 'reliefgrid_test'
os.environ['OTEL_ENABLED'] = 'false'

from domain.authorization import permissions_for_role
from models.entities import (
    FireStation, Ngo, Resident, UserContext, Donation, Emergency, Notification,
    Resource, ResourceRequest, Volunteer
)
from models.enums import UserRole
from services.auth import AuthService, generate_key_pair
from services.mongodb import DuplicateDocumentError, PaginationResult
from services.workflow import WorkflowCoordinator


class InMemoryEntityStore:
    """Dictionary-backed stand-in for services.store.EntityStore."""

    def __init__(self):
        self.users: Dict[str, Any] = {}
        self.resources: Dict[str, Resource] = {}
        self.resource_requests: Dict[str, ResourceRequest] = {}
        self.donations: Dict[str, Donation] = {}
        self.volunteers: Dict[str, Volunteer] = {}
        self.emergencies: Dict[str, Emergency] = {}
        self.notifications: Dict[str, Notification] = {}
        # Recipients whose notification insert raises
        self.failing_notification_recipients: set = set()
        # Donation inserts raise while set
        self.fail_donation_insert = False

    @contextmanager
    def transaction(self):
        yield None

    @staticmethod
    def _copy(entity):
        return entity.model_copy(deep=True) if entity is not None else None

    @staticmethod
    def _page(items: List[Any], page: int, page_size: int) -> PaginationResult:
        newest_first = list(reversed(items))
        start = (page - 1) * page_size
        return PaginationResult(
            [item.model_copy(deep=True) for item in newest_first[start:start + page_size]],
            len(newest_first), page, page_size
        )

    def _set_status(self, table: Dict[str, Any], entity_id: str, status: str,
                    expected_status: Optional[str]):
        entity = table.get(entity_id)
        if entity is None or (expected_status is not None and entity.status != expected_status):
            return None
        entity.status = status
        entity.update_timestamp()
        return self._copy(entity)

    # Users

    def create_user(self, user):
        if any(existing.username == user.username for existing in self.users.values()):
            raise DuplicateDocumentError(f"Duplicate username: {user.username}")
        self.users[user.id] = self._copy(user)
        return user

    def get_user(self, user_id: str, session=None):
        return self._copy(self.users.get(user_id))

    def get_user_by_username(self, username: str):
        for user in self.users.values():
            if user.username == username:
                return self._copy(user)
        return None

    def list_users_by_role(self, role) -> List[Any]:
        role = UserRole(role).value
        return [self._copy(user) for user in self.users.values() if user.role == role]

    def list_fire_stations(self) -> List[FireStation]:
        return self.list_users_by_role(UserRole.FIRE_STATION)

    def list_residents_for_station(self, station_id: str) -> List[Resident]:
        return [
            self._copy(user) for user in self.users.values()
            if user.role == UserRole.RESIDENT.value and user.assigned_fire_station_id == station_id
        ]

    def adjust_wallet_balance(self, user_id: str, delta: float, minimum: Optional[float] = None, session=None):
        user = self.users.get(user_id)
        if user is None or (minimum is not None and user.wallet_balance < minimum):
            return None
        user.wallet_balance += delta
        return self._copy(user)

    # Resources

    def create_resource(self, resource):
        self.resources[resource.id] = self._copy(resource)
        return resource

    def get_resource(self, resource_id: str):
        return self._copy(self.resources.get(resource_id))

    def list_resources(self, owner_id: Optional[str] = None, page: int = 1, page_size: int = 20):
        items = [r for r in self.resources.values() if owner_id is None or r.owner_id == owner_id]
        return self._page(items, page, page_size)

    def update_resource_quantity(self, resource_id: str, quantity: int):
        resource = self.resources.get(resource_id)
        if resource is None:
            return None
        resource.quantity = quantity
        return self._copy(resource)

    # Resource requests

    def create_resource_request(self, resource_request):
        self.resource_requests[resource_request.id] = self._copy(resource_request)
        return resource_request

    def get_resource_request(self, request_id: str):
        return self._copy(self.resource_requests.get(request_id))

    def list_resource_requests(self, requester_id: Optional[str] = None, status: Optional[str] = None,
                               page: int = 1, page_size: int = 20):
        items = [
            r for r in self.resource_requests.values()
            if (requester_id is None or r.requester_id == requester_id)
            and (status is None or r.status == status)
        ]
        return self._page(items, page, page_size)

    def update_resource_request_status(self, request_id: str, status: str, expected_status: Optional[str] = None):
        return self._set_status(self.resource_requests, request_id, status, expected_status)

    # Donations

    def create_donation(self, donation, session=None):
        if self.fail_donation_insert:
            raise RuntimeError("donation insert failed")
        self.donations[donation.id] = self._copy(donation)
        return donation

    def get_donation(self, donation_id: str):
        return self._copy(self.donations.get(donation_id))

    def list_donations(self, donor_id: Optional[str] = None, recipient_id: Optional[str] = None,
                       participant_id: Optional[str] = None, page: int = 1, page_size: int = 20):
        items = [
            d for d in self.donations.values()
            if (donor_id is None or d.donor_id == donor_id)
            and (recipient_id is None or d.recipient_id == recipient_id)
            and (participant_id is None or participant_id in (d.donor_id, d.recipient_id))
        ]
        return self._page(items, page, page_size)

    def update_donation_status(self, donation_id: str, status: str, expected_status: Optional[str] = None):
        return self._set_status(self.donations, donation_id, status, expected_status)

    # Volunteers

    def create_volunteer(self, volunteer):
        self.volunteers[volunteer.id] = self._copy(volunteer)
        return volunteer

    def get_volunteer(self, volunteer_id: str):
        return self._copy(self.volunteers.get(volunteer_id))

    def list_volunteers(self, fire_station_id: Optional[str] = None, user_id: Optional[str] = None,
                        page: int = 1, page_size: int = 20):
        items = [
            v for v in self.volunteers.values()
            if (fire_station_id is None or v.fire_station_id == fire_station_id)
            and (user_id is None or v.user_id == user_id)
        ]
        return self._page(items, page, page_size)

    def update_volunteer_status(self, volunteer_id: str, status: str, expected_status: Optional[str] = None):
        return self._set_status(self.volunteers, volunteer_id, status, expected_status)

    # Emergencies

    def create_emergency(self, emergency):
        self.emergencies[emergency.id] = self._copy(emergency)
        return emergency

    def get_emergency(self, emergency_id: str):
        return self._copy(self.emergencies.get(emergency_id))

    def list_emergencies(self, status: Optional[str] = None, page: int = 1, page_size: int = 20):
        items = [e for e in self.emergencies.values() if status is None or e.status == status]
        return self._page(items, page, page_size)

    def update_emergency_status(self, emergency_id: str, status: str, expected_status: Optional[str] = None):
        return self._set_status(self.emergencies, emergency_id, status, expected_status)

    # Notifications

    def create_notification(self, notification):
        if notification.user_id in self.failing_notification_recipients:
            raise RuntimeError(f"notification insert failed for {notification.user_id}")
        self.notifications[notification.id] = self._copy(notification)
        return notification

    def get_notification(self, notification_id: str):
        return self._copy(self.notifications.get(notification_id))

    def list_notifications_for_user(self, user_id: str, unread_only: bool = False,
                                    page: int = 1, page_size: int = 20):
        items = [
            n for n in self.notifications.values()
            if n.user_id == user_id and (not unread_only or not n.read)
        ]
        return self._page(items, page, page_size)

    def mark_notification_read(self, notification_id: str):
        notification = self.notifications.get(notification_id)
        if notification is None:
            return None
        notification.read = True
        return self._copy(notification)

    # Test helpers

    def notifications_for(self, user_id: str) -> List[Notification]:
        return [n for n in self.notifications.values() if n.user_id == user_id]


def context_for(user) -> UserContext:
    """UserContext for a stored account."""
    return UserContext(
        user_id=user.id,
        role=user.role,
        name=user.name,
        username=user.username,
        permissions=permissions_for_role(user.role)
    )


@pytest.fixture(scope="session")
def test_mongodb_uri():
    """Test MongoDB connection URI."""
    return os.getenv('MONGODB_TEST_URI', 'mongodb://localhost:27017/reliefgrid_test')


@pytest.fixture(scope="session")
def test_database_name():
    return 'reliefgrid_test'


@pytest.fixture(scope="session")
def mongodb_available(test_mongodb_uri):
    """Whether a MongoDB server answers at the test URI."""
    client = MongoClient(test_mongodb_uri, serverSelectionTimeoutMS=500)
    try:
        client.admin.command('ping')
        return True
    except PyMongoError:
        return False
    finally:
        client.close()


@pytest.fixture(scope="session")
def jwt_keys():
    """One RSA key pair per test session."""
    return generate_key_pair()


@pytest.fixture
def auth_service(jwt_keys):
    private_key, public_key = jwt_keys
    return AuthService(private_key, public_key)


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def fire_station(store):
    """Station-9 covering postal codes 100-200."""
    station = FireStation(
        username="station9",
        name="Station-9",
        password_hash="unused",
        postal_code_start="100",
        postal_code_end="200",
        registration_id="FS-009"
    )
    return store.create_user(station)


@pytest.fixture
def other_fire_station(store):
    station = FireStation(
        username="station12",
        name="Station-12",
        password_hash="unused",
        postal_code_start="300",
        postal_code_end="400"
    )
    return store.create_user(station)


@pytest.fixture
def resident(store, fire_station):
    """Resident at postal code 150, assigned to Station-9."""
    return store.create_user(Resident(
        username="resident150",
        name="Alex Resident",
        password_hash="unused",
        postal_code="150",
        assigned_fire_station_id=fire_station.id
    ))


@pytest.fixture
def ngo(store):
    return store.create_user(Ngo(
        username="waterngo",
        name="Clean Water Relief",
        password_hash="unused",
        specialization="water",
        wallet_balance=100.0
    ))


@pytest.fixture
def second_ngo(store):
    return store.create_user(Ngo(
        username="foodngo",
        name="Food Bank",
        password_hash="unused"
    ))


@pytest.fixture
def workflow(store):
    return WorkflowCoordinator(store, notify_station_residents=True)
