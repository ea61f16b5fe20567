# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the pure domain layer: station assignment, permissions,
status lifecycles, donation gifts and notification events.
"""

import pytest

from domain import lifecycle
from domain.assignment import resolve_fire_station, station_covers
from domain.authorization import (
    ROLE_PERMISSIONS, check_ownership, check_permission, check_role, permissions_for_role
)
from domain.donations import build_donation_gift
from domain.notifications import (
    build_notifications, distinct_recipients, donation_event, emergency_event,
    format_amount, resource_request_event, volunteer_event
)
from models.entities import (
    Donation, Emergency, FireStation, MonetaryGift, ResourceGift, ResourceRequest, UserContext, Volunteer
)
from models.enums import UserRole
from models.requests import CreateDonationRequest


def _station(name, start=None, end=None):
    return FireStation(
        username=name.lower().replace("-", ""),
        name=name,
        password_hash="unused",
        postal_code_start=start,
        postal_code_end=end
    )


def _context(role, user_id="u1"):
    return UserContext(user_id=user_id, role=role, permissions=permissions_for_role(role))


class TestFireStationAssignment:
    """Test postal code range resolution."""

    def test_resident_inside_range_is_assigned(self):
        station = _station("Station-9", "100", "200")

        assert resolve_fire_station("150", [station]) is station

    def test_bounds_are_inclusive(self):
        station = _station("Station-9", "100", "200")

        assert station_covers(station, "100")
        assert station_covers(station, "200")

    def test_no_covering_station_returns_none(self):
        roster = [_station("Station-9", "100", "200"), _station("Station-12", "300", "400")]

        assert resolve_fire_station("250", roster) is None

    def test_first_match_in_roster_order_wins(self):
        first = _station("Station-1", "100", "300")
        second = _station("Station-2", "150", "200")

        assert resolve_fire_station("160", [first, second]) is first
        assert resolve_fire_station("160", [second, first]) is second

    def test_comparison_is_lexicographic(self):
        station = _station("Station-9", "100", "200")

        # "1500" sorts between "100" and "200" as a string
        assert resolve_fire_station("1500", [station]) is station
        assert resolve_fire_station("99", [station]) is None

    def test_station_without_complete_range_is_skipped(self):
        partial = _station("Station-P", "100", None)
        bare = _station("Station-B")
        full = _station("Station-F", "100", "200")

        assert resolve_fire_station("150", [partial, bare, full]) is full

    @pytest.mark.parametrize("postal_code", [None, ""])
    def test_missing_postal_code_returns_none(self, postal_code):
        assert resolve_fire_station(postal_code, [_station("Station-9", "100", "200")]) is None

    def test_inverted_range_is_rejected(self):
        with pytest.raises(ValueError):
            _station("Station-X", "200", "100")


class TestAuthorization:
    """Test role permissions and checks."""

    def test_every_role_has_permissions(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)

    def test_unknown_role_raises(self):
        with pytest.raises(ValueError):
            permissions_for_role("admin")

    def test_only_fire_stations_create_requests_and_emergencies(self):
        assert "resource_request:create" in permissions_for_role("fire_station")
        assert "emergency:create" in permissions_for_role("fire_station")
        for role in ("resident", "ngo"):
            assert "resource_request:create" not in permissions_for_role(role)
            assert "emergency:create" not in permissions_for_role(role)

    def test_only_residents_volunteer(self):
        assert "volunteer:create" in permissions_for_role("resident")
        assert "volunteer:create" not in permissions_for_role("fire_station")
        assert "volunteer:create" not in permissions_for_role("ngo")

    def test_check_permission_denied_reports_missing(self):
        result = check_permission(_context("resident"), "emergency:create")

        assert not result.allowed
        assert result.missing_permissions == ["emergency:create"]
        assert "resident" in result.reason

    def test_check_role(self):
        assert check_role(_context("ngo"), [UserRole.NGO, UserRole.FIRE_STATION]).allowed
        assert not check_role(_context("resident"), [UserRole.FIRE_STATION]).allowed

    def test_check_ownership(self):
        assert check_ownership(_context("ngo", "owner"), "owner", "resource owner").allowed

        result = check_ownership(_context("ngo", "someone"), "owner", "resource owner")
        assert not result.allowed
        assert "resource owner" in result.reason


class TestLifecycle:
    """Test status transition tables."""

    @pytest.mark.parametrize("kind,current,new", [
        ("resource_request", "pending", "fulfilled"),
        ("resource_request", "pending", "cancelled"),
        ("donation", "pending", "completed"),
        ("donation", "pending", "failed"),
        ("volunteer", "active", "inactive"),
        ("volunteer", "inactive", "active"),
        ("volunteer", "active", "on-call"),
        ("volunteer", "on-call", "active"),
        ("emergency", "active", "resolved"),
    ])
    def test_allowed_transitions(self, kind, current, new):
        result = lifecycle.validate_status_transition(kind, current, new)

        assert result.allowed
        assert not result.is_noop

    @pytest.mark.parametrize("kind,current,new", [
        ("resource_request", "fulfilled", "pending"),
        ("resource_request", "cancelled", "fulfilled"),
        ("donation", "completed", "failed"),
        ("emergency", "resolved", "active"),
        ("volunteer", "inactive", "on-call"),
    ])
    def test_rejected_transitions(self, kind, current, new):
        result = lifecycle.validate_status_transition(kind, current, new)

        assert not result.allowed
        assert not result.unknown_status

    def test_terminal_status_message(self):
        result = lifecycle.validate_status_transition("resource_request", "fulfilled", "cancelled")

        assert "already fulfilled" in result.reason

    def test_same_status_is_noop(self):
        result = lifecycle.validate_status_transition("emergency", "resolved", "resolved")

        assert result.allowed
        assert result.is_noop

    def test_unknown_status(self):
        result = lifecycle.validate_status_transition("resource_request", "pending", "shipped")

        assert not result.allowed
        assert result.unknown_status

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            lifecycle.known_statuses("invoice")

    def test_terminal_statuses(self):
        assert lifecycle.is_terminal("donation", "completed")
        assert not lifecycle.is_terminal("donation", "pending")
        assert not any(lifecycle.is_terminal("volunteer", s) for s in lifecycle.known_statuses("volunteer"))


class TestDonationGift:
    """Test the exactly-one-of rule for donation payloads."""

    def test_resource_gift(self):
        result = build_donation_gift(CreateDonationRequest(
            recipient_id="r", resource_type="Water", resource_quantity=10
        ))

        assert result.is_valid
        assert isinstance(result.gift, ResourceGift)
        assert result.gift.resource_quantity == 10

    def test_monetary_gift_defaults_currency(self):
        result = build_donation_gift(CreateDonationRequest(recipient_id="r", amount=20))

        assert isinstance(result.gift, MonetaryGift)
        assert result.gift.currency == "USDC"

    def test_monetary_gift_keeps_given_currency(self):
        result = build_donation_gift(CreateDonationRequest(recipient_id="r", amount=20, currency="SOL"))

        assert result.gift.currency == "SOL"

    def test_both_groups_rejected(self):
        result = build_donation_gift(CreateDonationRequest(
            recipient_id="r", resource_type="Water", resource_quantity=10, amount=5
        ))

        assert not result.is_valid
        assert "not both" in result.error

    def test_neither_group_rejected(self):
        result = build_donation_gift(CreateDonationRequest(recipient_id="r"))

        assert not result.is_valid
        assert "either resources or money" in result.error

    def test_incomplete_resource_group_rejected(self):
        result = build_donation_gift(CreateDonationRequest(recipient_id="r", resource_type="Water"))

        assert not result.is_valid

    def test_currency_without_amount_rejected(self):
        result = build_donation_gift(CreateDonationRequest(recipient_id="r", currency="USDC"))

        assert result.error == "A monetary donation requires an amount"


class TestNotificationEvents:
    """Test event messages and audiences."""

    def test_resource_request_event(self):
        request = ResourceRequest(requester_id="s9", resource_type="Water", quantity=50, urgency="high")

        event = resource_request_event(request, "Station-9")

        assert event.title == "Resource Request"
        assert event.content == "Station-9 is requesting 50 Water"
        assert event.audience.roles == ["ngo"]
        assert event.audience.residents_of_station == "s9"

    def test_resource_request_event_without_residents(self):
        request = ResourceRequest(requester_id="s9", resource_type="Water", quantity=50, urgency="high")

        event = resource_request_event(request, "Station-9", notify_station_residents=False)

        assert event.audience.residents_of_station is None

    def test_monetary_donation_event(self):
        donation = Donation(donor_id="d", recipient_id="r", gift=MonetaryGift(amount=20.0))

        event = donation_event(donation, "Clean Water Relief")

        assert event.title == "New Donation"
        assert event.content == "Clean Water Relief donated 20 USDC"
        assert event.audience.user_ids == ["r"]

    def test_resource_donation_event(self):
        donation = Donation(
            donor_id="d", recipient_id="r", gift=ResourceGift(resource_type="Blankets", resource_quantity=3)
        )

        assert donation_event(donation, "Food Bank").content == "Food Bank donated 3 Blankets"

    def test_volunteer_event(self):
        volunteer = Volunteer(user_id="u", fire_station_id="s9")

        event = volunteer_event(volunteer, "Alex")

        assert event.content == "Alex has registered as a volunteer"
        assert event.audience.user_ids == ["s9"]

    def test_emergency_event_excludes_reporter(self):
        emergency = Emergency(title="Forest fire", reporter_id="s9", severity="critical")

        event = emergency_event(emergency, "Station-9")

        assert event.title == "Emergency Alert"
        assert event.content == "Station-9 reported: Forest fire"
        assert event.audience.roles == ["fire_station"]
        assert event.audience.exclude == ["s9"]

    def test_format_amount(self):
        assert format_amount(20.0) == "20"
        assert format_amount(12.5) == "12.5"
        assert format_amount(7) == "7"

    def test_distinct_recipients(self):
        assert distinct_recipients(["a", "b", "a", None, "c"], exclude=["c"]) == ["a", "b"]

    def test_build_notifications_one_per_recipient(self):
        emergency = Emergency(title="Flood", reporter_id="s1", severity="high")
        event = emergency_event(emergency, "Station-1")

        notifications = build_notifications(event, ["s1", "s2", "s3", "s2"])

        assert [n.user_id for n in notifications] == ["s2", "s3"]
        assert all(n.read is False for n in notifications)
        assert all(n.notification_type == "emergency" for n in notifications)
