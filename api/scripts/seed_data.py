#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Seed a development database with a small relief scenario.

Creates a fire station covering postal codes 100-200, a resident inside
that range, and an NGO, then raises a resource request and records a
monetary donation through the workflow coordinator.
"""

import os
import sys
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domain.authorization import permissions_for_role
from models.entities import UserContext
from services.accounts import AccountService
from services.auth import AuthService
from services.mongodb import MongoDBService
from services.store import EntityStore, ALL_COLLECTIONS
from services.workflow import WorkflowCoordinator

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

DEMO_PASSWORD = "relief-demo-123"


def _context(user) -> UserContext:
    return UserContext(
        user_id=user.id,
        role=user.role,
        name=user.name,
        username=user.username,
        permissions=permissions_for_role(user.role)
    )


def seed(clear: bool = True):
    mongodb_service = MongoDBService()
    store = EntityStore(mongodb_service)
    accounts = AccountService(store, AuthService())
    workflow = WorkflowCoordinator(store)

    if clear:
        logger.info("Clearing existing data...")
        for name in ALL_COLLECTIONS:
            mongodb_service.get_collection(name).delete_many({})

    mongodb_service.create_indexes()

    station = accounts.register({
        "username": "station9",
        "password": DEMO_PASSWORD,
        "name": "Station-9",
        "role": "fire_station",
        "postalCodeStart": "100",
        "postalCodeEnd": "200",
        "registrationId": "FS-009"
    })
    resident = accounts.register({
        "username": "resident150",
        "password": DEMO_PASSWORD,
        "name": "Alex Resident",
        "role": "resident",
        "postalCode": "150"
    })
    ngo = accounts.register({
        "username": "waterngo",
        "password": DEMO_PASSWORD,
        "name": "Clean Water Relief",
        "role": "ngo",
        "registrationId": "NGO-042",
        "specialization": "water"
    })
    logger.info(f"Resident assigned to station {resident.assigned_fire_station_id}")

    store.adjust_wallet_balance(ngo.id, 100)

    request = workflow.create_resource_request(_context(station), {
        "resourceType": "Water",
        "quantity": 50,
        "urgency": "high",
        "description": "Bottled water for evacuees"
    })
    donation = workflow.create_donation(_context(ngo), {
        "recipientId": station.id,
        "amount": 20,
        "currency": "USDC"
    })

    logger.info(f"Seeded resource request {request.id} and donation {donation.id}")
    logger.info(f"Demo accounts use password '{DEMO_PASSWORD}'")
    mongodb_service.close_connection()


if __name__ == "__main__":
    seed(clear="--keep" not in sys.argv)
