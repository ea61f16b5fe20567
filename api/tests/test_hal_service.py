# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

import pytest
from services.hal import (
    HalLinkBuilder, PaginationLinkBuilder, AffordanceLinkBuilder,
    HalResponseBuilder, HalFormatter, create_hal_formatter, PROBLEM_BASE_URL
)
from models.entities import UserContext
from models.responses import HalLink

BASE_URL = "https://api.example.com"


def _ctx(user_id="station-1", role="fire_station"):
    return UserContext(user_id=user_id, role=role, permissions=[])


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        """Test building a basic HAL link."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link("/api/donations/123")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.example.com/api/donations/123"
        assert link.method == "GET"
        assert link.type is None

    def test_build_link_with_options(self):
        """Test building a link with all options."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link(
            "/api/users/{id}",
            method="PATCH",
            content_type="application/json",
            title="User",
            templated=True
        )

        assert link.method == "PATCH"
        assert link.type == "application/json"
        assert link.title == "User"
        assert link.templated is True

    def test_build_patch_link(self):
        """Test building a PATCH link."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_patch_link("/api/emergencies/9", title="Set status to resolved")

        assert link.href == "https://api.example.com/api/emergencies/9"
        assert link.method == "PATCH"
        assert link.type == "application/json"

    def test_base_url_normalization(self):
        """Test that base URL is properly normalized."""
        builder = HalLinkBuilder("https://api.example.com/")

        assert builder.build_link("/api/test").href == "https://api.example.com/api/test"


class TestPaginationLinkBuilder:
    """Test pagination link builder functionality."""

    def test_first_page(self):
        """Test pagination links for first page."""
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/donations", current_page=1, total_pages=5, page_size=20)

        assert set(links) == {"self", "next", "last"}
        assert "page=1" in links["self"].href
        assert "page=2" in links["next"].href
        assert "page=5" in links["last"].href

    def test_middle_page(self):
        """Test pagination links for middle page."""
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/donations", current_page=3, total_pages=5, page_size=20)

        assert set(links) == {"self", "first", "prev", "next", "last"}
        assert "page=2" in links["prev"].href
        assert "page=4" in links["next"].href

    def test_last_page(self):
        """Test pagination links for last page."""
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/donations", current_page=5, total_pages=5, page_size=20)

        assert "next" not in links
        assert "last" not in links

    def test_query_params_preserved(self):
        """Filters are carried on every page link; None values are dropped."""
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links(
            "/api/resource-requests",
            current_page=2,
            total_pages=3,
            page_size=10,
            query_params={"status": "pending", "requester_id": None}
        )

        for link in links.values():
            assert "status=pending" in link.href
            assert "page_size=10" in link.href
            assert "requester_id" not in link.href


class TestAffordanceLinkBuilder:
    """Test conditional affordances."""

    def test_pending_request_offers_fulfil_and_cancel(self):
        builder = AffordanceLinkBuilder(BASE_URL)

        links = builder.build_resource_request_affordances(
            {"id": "r1", "requesterId": "station-1", "status": "pending"}, _ctx("ngo-1", "ngo")
        )

        assert links["self"].href == "https://api.example.com/api/resource-requests/r1"
        assert links["requester"].href == "https://api.example.com/api/users/station-1"
        assert links["fulfil"].method == "PATCH"
        assert "cancel" in links

    def test_terminal_request_offers_no_transitions(self):
        builder = AffordanceLinkBuilder(BASE_URL)

        links = builder.build_resource_request_affordances(
            {"id": "r1", "requesterId": "station-1", "status": "fulfilled"}, _ctx()
        )

        assert set(links) == {"self", "collection", "requester"}

    def test_donation_transitions_only_for_recipient(self):
        builder = AffordanceLinkBuilder(BASE_URL)
        data = {"id": "d1", "donorId": "ngo-1", "recipientId": "station-1", "status": "pending"}

        recipient_links = builder.build_donation_affordances(data, _ctx("station-1"))
        donor_links = builder.build_donation_affordances(data, _ctx("ngo-1", "ngo"))

        assert "complete" in recipient_links
        assert "fail" in recipient_links
        assert "complete" not in donor_links

    def test_volunteer_links_for_station(self):
        builder = AffordanceLinkBuilder(BASE_URL)
        data = {"id": "v1", "fireStationId": "station-1", "status": "active"}

        links = builder.build_volunteer_affordances(data, _ctx("station-1"))

        assert "deactivate" in links
        assert "set-on-call" in links
        assert links["fire_station"].href.endswith("/api/users/station-1")

    def test_emergency_resolve_only_for_reporter(self):
        builder = AffordanceLinkBuilder(BASE_URL)
        data = {"id": "e1", "reporterId": "station-1", "status": "active"}

        assert "resolve" in builder.build_emergency_affordances(data, _ctx("station-1"))
        assert "resolve" not in builder.build_emergency_affordances(data, _ctx("station-2"))

    def test_notification_mark_read_only_when_unread(self):
        builder = AffordanceLinkBuilder(BASE_URL)

        assert "mark_read" in builder.build_notification_affordances({"id": "n1", "read": False}, _ctx())
        assert "mark_read" not in builder.build_notification_affordances({"id": "n1", "read": True}, _ctx())

    def test_user_links_for_self(self):
        builder = AffordanceLinkBuilder(BASE_URL)
        data = {"id": "station-1", "role": "fire_station"}

        own = builder.build_user_affordances(data, _ctx("station-1"))
        other = builder.build_user_affordances(data, _ctx("resident-1", "resident"))

        assert "wallet" in own
        assert "volunteers" in own
        assert "wallet" not in other
        assert "volunteers" in other


class TestHalResponseBuilder:
    """Test HAL response builder."""

    def test_resource_response_serializes_links(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_resource_response(
            {"id": "e1", "reporterId": "station-1", "status": "active", "title": "Flood"},
            "emergency",
            _ctx("station-1")
        )

        assert response["title"] == "Flood"
        assert response["_links"]["self"]["href"] == "https://api.example.com/api/emergencies/e1"
        assert response["_links"]["resolve"]["method"] == "PATCH"
        assert "type" not in response["_links"]["self"]

    def test_generic_resource_response(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_resource_response({"status": "healthy"}, "health", self_path="/api/healthz")

        assert response["_links"]["self"]["href"] == "https://api.example.com/api/healthz"

    def test_collection_response(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_collection_response(
            [{"id": "1"}, {"id": "2"}], total=45, page=2, page_size=20, collection_path="/api/donations"
        )

        assert response["total"] == 45
        assert response["total_pages"] == 3
        assert len(response["_embedded"]["items"]) == 2
        assert {"self", "first", "prev", "next", "last"} <= set(response["_links"])

    def test_empty_collection(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_collection_response([], total=0, page=1, page_size=20,
                                                     collection_path="/api/emergencies")

        assert response["total_pages"] == 0
        assert response["_embedded"]["items"] == []
        assert set(response["_links"]) == {"self"}

    def test_error_response(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_error_response(
            "validation-error", "Validation Error", 400, "Invalid donation", "/api/donations",
            [{"field": "amount", "message": "must be positive"}]
        )

        assert response["type"] == f"{PROBLEM_BASE_URL}validation-error"
        assert response["status"] == 400
        assert response["errors"][0]["field"] == "amount"
        assert "schema" in response["_links"]
        assert "help" in response["_links"]

    def test_authentication_error_links_login(self):
        builder = HalResponseBuilder(BASE_URL)

        response = builder.build_error_response(
            "authentication-required", "Authentication Required", 401, "Missing token", "/api/wallet"
        )

        assert response["_links"]["login"]["method"] == "POST"
        assert "errors" not in response


class TestHalFormatter:
    """Test the high-level formatter."""

    def test_format_collection_adds_item_links(self):
        formatter = create_hal_formatter(BASE_URL)

        response = formatter.format_collection(
            "notification",
            [{"id": "n1", "read": False}, {"id": "n2", "read": True}],
            total=2, page=1, page_size=20,
            user_context=_ctx(),
            filters={"unread": None}
        )

        items = response["_embedded"]["items"]
        assert "mark_read" in items[0]["_links"]
        assert "mark_read" not in items[1]["_links"]
        assert response["_links"]["self"]["href"].startswith("https://api.example.com/api/notifications?")

    def test_format_collection_custom_path(self):
        formatter = HalFormatter(BASE_URL)

        response = formatter.format_collection(
            "user", [], total=0, page=1, page_size=20, user_context=_ctx(), collection_path="/api/ngos"
        )

        assert "/api/ngos?" in response["_links"]["self"]["href"]

    @pytest.mark.parametrize("method,status,error_type", [
        ("format_authentication_error", 401, "authentication-required"),
        ("format_authorization_error", 403, "insufficient-permissions"),
        ("format_not_found_error", 404, "resource-not-found"),
        ("format_conflict_error", 409, "resource-conflict"),
        ("format_invariant_violation_error", 422, "invariant-violation"),
        ("format_service_unavailable_error", 503, "service-unavailable"),
        ("format_server_error", 500, "internal-server-error"),
    ])
    def test_error_formatters(self, method, status, error_type):
        formatter = HalFormatter(BASE_URL)

        response = getattr(formatter, method)("detail", "/api/x")

        assert response["status"] == status
        assert response["type"].endswith(error_type)
        assert response["instance"] == "/api/x"
