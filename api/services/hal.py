# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.

Affordances follow entity state: a link to a status change is only offered
when the lifecycle allows it and the actor is the one permitted to make it.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
import math

from domain import lifecycle
from models.entities import UserContext
from models.enums import UserRole
from models.responses import HalLink

PROBLEM_BASE_URL = "https://api.reliefgrid.org/problems/"

COLLECTION_PATHS = {
    "user": "/api/users",
    "resource": "/api/resources",
    "resource_request": "/api/resource-requests",
    "donation": "/api/donations",
    "volunteer": "/api/volunteers",
    "emergency": "/api/emergencies",
    "notification": "/api/notifications",
}

# Link relation used for each reachable status
STATUS_RELATIONS = {
    "fulfilled": "fulfil",
    "cancelled": "cancel",
    "completed": "complete",
    "failed": "fail",
    "resolved": "resolve",
    "active": "activate",
    "inactive": "deactivate",
    "on-call": "set-on-call",
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")

    def build_patch_link(self, resource_path: str, title: str) -> HalLink:
        """Build a JSON PATCH link against a resource."""
        return self.build_link(
            resource_path,
            method="PATCH",
            content_type="application/json",
            title=title
        )


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, base_path: str, params: Dict[str, Any], page: int, page_size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'page_size': page_size})
        return self.link_builder.build_link(f"{base_path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        """Build pagination links for a collection."""
        params = {key: value for key, value in (query_params or {}).items() if value is not None}

        links = {'self': self._page_link(base_path, params, current_page, page_size, "Current page")}

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on actor and entity state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _base_links(self, resource_type: str, resource_id: str) -> Dict[str, HalLink]:
        collection_path = COLLECTION_PATHS[resource_type]
        return {
            'self': self.link_builder.build_self_link(f"{collection_path}/{resource_id}"),
            'collection': self.link_builder.build_collection_link(collection_path)
        }

    def build_status_links(self, resource_type: str, resource_id: str, current_status: str) -> Dict[str, HalLink]:
        """One PATCH link per status reachable from the current one."""
        links = {}
        resource_path = f"{COLLECTION_PATHS[resource_type]}/{resource_id}"
        for target in lifecycle.allowed_targets(resource_type, current_status):
            relation = STATUS_RELATIONS.get(target, target)
            links[relation] = self.link_builder.build_patch_link(
                resource_path, title=f"Set status to {target}"
            )
        return links

    def build_resource_request_affordances(self, data: Dict[str, Any], user_context: UserContext) -> Dict[str, HalLink]:
        """Any authenticated actor may move a pending request forward."""
        links = self._base_links("resource_request", data['id'])
        links['requester'] = self.link_builder.build_link(
            f"/api/users/{data['requesterId']}", title="Requesting fire station"
        )
        links.update(self.build_status_links("resource_request", data['id'], data.get('status', '')))
        return links

    def build_donation_affordances(self, data: Dict[str, Any], user_context: UserContext) -> Dict[str, HalLink]:
        """Only the recipient reconciles a donation."""
        links = self._base_links("donation", data['id'])
        if data.get('recipientId') == user_context.user_id:
            links.update(self.build_status_links("donation", data['id'], data.get('status', '')))
        return links

    def build_volunteer_affordances(self, data: Dict[str, Any], user_context: UserContext) -> Dict[str, HalLink]:
        """Only the station a volunteer registered with manages their status."""
        links = self._base_links("volunteer", data['id'])
        links['fire_station'] = self.link_builder.build_link(
            f"/api/users/{data['fireStationId']}", title="Fire station"
        )
        if data.get('fireStationId') == user_context.user_id:
            links.update(self.build_status_links("volunteer", data['id'], data.get('status', '')))
        return links

    def build_emergency_affordances(self, data: Dict[str, Any], user_context: UserContext) -> Dict[str, HalLink]:
        """Only the reporting station resolves an emergency."""
        links = self._base_links("emergency", data['id'])
        if data.get('reporterId') == user_context.user_id:
            links.update(self.build_status_links("emergency", data['id'], data.get('status', '')))
        return links

    def build_notification_affordances(self, data: Dict[str, Any], user_context: UserContext) -> Dict[str, HalLink]:
        links = self._base_links("notification", data['id'])
        if not data.get('read'):
            links['mark_read'] = self.link_builder.build_patch_link(
                f"/api/notifications/{data['id']}", title="Mark as read"
            )
        return links

    def build_inventory_affordances(self, data: Dict[str, Any], user_context: UserContext) -> Dict[str, HalLink]:
        links = self._base_links("resource", data['id'])
        if data.get('ownerId') == user_context.user_id:
            links['edit'] = self.link_builder.build_patch_link(
                f"/api/resources/{data['id']}", title="Update quantity"
            )
        return links

    def build_user_affordances(self, data: Dict[str, Any], user_context: UserContext) -> Dict[str, HalLink]:
        links = {'self': self.link_builder.build_self_link(f"/api/users/{data['id']}")}
        role = data.get('role')

        if role == UserRole.FIRE_STATION.value:
            links['volunteers'] = self.link_builder.build_link(
                f"/api/volunteers?fire_station_id={data['id']}", title="Registered volunteers"
            )
            links['resource_requests'] = self.link_builder.build_link(
                f"/api/resource-requests?requester_id={data['id']}", title="Resource requests"
            )

        if data.get('assignedFireStationId'):
            links['assigned_fire_station'] = self.link_builder.build_link(
                "/api/assigned-fire-station", title="Assigned fire station"
            )

        if data['id'] == user_context.user_id:
            links['wallet'] = self.link_builder.build_link("/api/wallet", title="Wallet balance")
            links['notifications'] = self.link_builder.build_link("/api/notifications", title="Notifications")

        return links


class HalResponseBuilder:
    """Main HAL response builder with comprehensive formatting capabilities."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)
        self._affordances = {
            "user": self.affordance_builder.build_user_affordances,
            "resource": self.affordance_builder.build_inventory_affordances,
            "resource_request": self.affordance_builder.build_resource_request_affordances,
            "donation": self.affordance_builder.build_donation_affordances,
            "volunteer": self.affordance_builder.build_volunteer_affordances,
            "emergency": self.affordance_builder.build_emergency_affordances,
            "notification": self.affordance_builder.build_notification_affordances,
        }

    def build_resource_response(
        self,
        data: Dict[str, Any],
        resource_type: str,
        user_context: Optional[UserContext] = None,
        self_path: Optional[str] = None
    ) -> Dict[str, Any]:
        """Build a HAL resource response with appropriate affordance links."""
        response = dict(data)

        builder = self._affordances.get(resource_type)
        if builder is not None and user_context is not None:
            links = builder(data, user_context)
        else:
            # Generic resource links
            links = {'self': self.link_builder.build_self_link(self_path or f"/api/{resource_type}")}

        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with pagination links."""
        total_pages = math.ceil(total / page_size) if page_size > 0 else 1

        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path,
            page,
            total_pages,
            page_size,
            query_params
        )

        return {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': total_pages,
            '_links': {rel: link.model_dump(exclude_none=True) for rel, link in pagination_links.items()},
            '_embedded': {
                'items': items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URL}{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )
        elif error_type == "authentication-required":
            links['login'] = self.link_builder.build_link(
                "/api/auth/login",
                method="POST",
                content_type="application/json",
                title="Login"
            )

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_entity(
        self,
        resource_type: str,
        data: Dict[str, Any],
        user_context: UserContext
    ) -> Dict[str, Any]:
        """Format a single entity with HAL links."""
        return self.builder.build_resource_response(data, resource_type, user_context)

    def format_collection(
        self,
        resource_type: str,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        user_context: UserContext,
        filters: Optional[Dict[str, Any]] = None,
        collection_path: Optional[str] = None
    ) -> Dict[str, Any]:
        """Format a collection of entities with HAL links on each item."""
        formatted_items = [
            self.format_entity(resource_type, item, user_context)
            for item in items
        ]

        return self.builder.build_collection_response(
            formatted_items,
            total,
            page,
            page_size,
            collection_path or COLLECTION_PATHS[resource_type],
            filters
        )

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "authentication-required",
            "Authentication Required",
            401,
            detail,
            instance
        )

    def format_authorization_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "insufficient-permissions",
            "Insufficient Permissions",
            403,
            detail,
            instance
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-not-found",
            "Resource Not Found",
            404,
            detail,
            instance
        )

    def format_conflict_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-conflict",
            "Resource Conflict",
            409,
            detail,
            instance
        )

    def format_invariant_violation_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "invariant-violation",
            "Invariant Violation",
            422,
            detail,
            instance
        )

    def format_service_unavailable_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "service-unavailable",
            "Service Unavailable",
            503,
            detail,
            instance
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
