# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and MongoDB document mapping.

Entities are stored as camelCase documents keyed by ``_id`` and exposed to
clients as camelCase JSON keyed by ``id``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def document_to_data(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a raw MongoDB document into model input (``_id`` becomes ``id``)."""
    data = dict(document)
    if "_id" in data:
        data["id"] = str(data.pop("_id"))
    return data


class CamelModel(BaseModel):
    """Value object serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True
    )


class BaseEntity(CamelModel):
    """Base entity with common fields for all domain objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        validate_assignment=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")

    def update_timestamp(self) -> None:
        """Refresh the updated_at timestamp."""
        self.updated_at = utc_now()

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a MongoDB document."""
        document = self.model_dump(by_alias=True, exclude={"id"})
        document["_id"] = ObjectId(self.id)
        return document

    def to_api(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for API responses."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: Mapping[str, Any]):
        """Build an entity from a MongoDB document."""
        return cls.model_validate(document_to_data(document))
