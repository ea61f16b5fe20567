# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting query string parameters.
"""

from flask import request, current_app
from typing import Dict, Any, Optional, List
import logging

logger = logging.getLogger(__name__)

TRUE_VALUES = ('true', '1', 'yes', 'on')


class RequestParser:
    """Utility for parsing and extracting request data."""

    @staticmethod
    def get_pagination_params(
        default_page: int = 1,
        default_page_size: int = 20,
        max_page_size: int = 100
    ) -> Dict[str, int]:
        """
        Extract pagination parameters from request.

        Args:
            default_page: Default page number
            default_page_size: Default page size
            max_page_size: Maximum allowed page size

        Returns:
            Dictionary with page and page_size
        """
        try:
            page = max(1, int(request.args.get('page', default_page)))
        except (ValueError, TypeError):
            page = default_page

        try:
            page_size = int(request.args.get('page_size', default_page_size))
            page_size = max(1, min(page_size, max_page_size))
        except (ValueError, TypeError):
            page_size = default_page_size

        return {
            'page': page,
            'page_size': page_size
        }

    @staticmethod
    def get_filter_params(
        allowed_filters: List[str],
        type_conversions: Optional[Dict[str, type]] = None
    ) -> Dict[str, Any]:
        """
        Extract filter parameters from request.

        Args:
            allowed_filters: Query parameters accepted as filters
            type_conversions: Dictionary mapping filter names to types

        Returns:
            Dictionary with filter parameters (empty values dropped)
        """
        filters = {}
        type_conversions = type_conversions or {}

        for key in allowed_filters:
            value = request.args.get(key)
            if value is None or value == '':
                continue

            target_type = type_conversions.get(key)
            if target_type is bool:
                value = value.lower() in TRUE_VALUES
            elif target_type is not None:
                try:
                    value = target_type(value)
                except (ValueError, TypeError):
                    logger.warning(f"Failed to convert filter {key} to {target_type.__name__}")
                    continue

            filters[key] = value

        return filters


class ResponseBuilder:
    """Utility for building HAL response bodies from service results."""

    @staticmethod
    def entity(resource_type: str, entity, user_context) -> Dict[str, Any]:
        """HAL body for a single entity."""
        return current_app.hal_formatter.format_entity(resource_type, entity.to_api(), user_context)

    @staticmethod
    def paginated(resource_type: str, result, user_context,
                  filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        HAL collection body for a PaginationResult of entities.

        Args:
            resource_type: HAL resource type of the items
            result: PaginationResult whose items are entities
            user_context: Authenticated actor (drives affordance links)
            filters: Query filters to carry into pagination links
        """
        return current_app.hal_formatter.format_collection(
            resource_type,
            [item.to_api() for item in result.items],
            result.total,
            result.page,
            result.page_size,
            user_context,
            filters=filters
        )
