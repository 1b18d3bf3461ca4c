"""
PropDesk Backend — Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the API contract with the dashboard and gallery.
Why:   Strict request validation, automatic serialization, and OpenAPI docs.
How:   Python attributes are snake_case; the wire format is camelCase via an
       alias generator (userId, inspectionNotes, hasMore). FastAPI serializes
       response models by alias, and requests accept either spelling.

Schemas are separate from the SQLAlchemy model because the API shape (for
example the paged list envelope) changes independently of the table.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Embedded Documents: stored inside JSONB columns, returned as-is
# ══════════════════════════════════════════════════════════════════════════


class NoteEntry(CamelModel):
    """One entry of an append-only note sequence. Never edited after creation."""
    text: str
    author_id: Optional[str] = None
    created_at: datetime = Field(description="Server-assigned creation time (UTC)")


class ImageRecord(CamelModel):
    """
    One uploaded image.

    key:  Object-store key, "{userId}/{propertyId}/images/{ms}-{index}{ext}".
          Unique within the property; used to address the caption.
    url:  Public URL derived from the key.
    """
    key: str
    url: str
    content_type: str
    size: int = Field(ge=0)
    caption: Optional[str] = None


class GeoPoint(CamelModel):
    """GeoJSON point; coordinates are [longitude, latitude]."""
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PropertyResponse(CamelModel):
    """Full representation of a property record."""
    id: uuid.UUID
    user_id: str

    title: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    property_type: Optional[str] = None
    status: Optional[str] = None

    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    area_sqft: Optional[float] = None
    rent: Optional[float] = None
    deposit: Optional[float] = None
    available_from: Optional[datetime] = None

    utilities: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    attributes: Optional[Dict[str, Any]] = None
    location: Optional[GeoPoint] = None

    inspection_notes: List[NoteEntry] = Field(default_factory=list)
    maintenance_notes: List[NoteEntry] = Field(default_factory=list)
    marketing_notes: List[NoteEntry] = Field(default_factory=list)
    images: List[ImageRecord] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime


class PropertyListResponse(CamelModel):
    """
    Paged result for GET /api/properties.

    Offset pagination: skip = (page - 1) * limit.
    has_more is true iff skip + len(items) < total.
    """
    items: List[PropertyResponse]
    page: int
    limit: int
    total: int
    has_more: bool


# ══════════════════════════════════════════════════════════════════════════
# Request Bodies
# ══════════════════════════════════════════════════════════════════════════


class NoteCreateRequest(CamelModel):
    """
    Body of PATCH /api/properties/{id}/notes.

    text is optional at the schema level so an empty or missing value is
    reported by the service as a validation error (400), not as a 422.
    """
    type: Optional[str] = Field(default=None, description="inspection | maintenance | marketing")
    text: Optional[str] = None
    author_id: Optional[str] = None


class CaptionUpdateRequest(CamelModel):
    """Body of PATCH /api/properties/{id}/images/{imageKey}/caption."""
    caption: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Error & Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "property with ID '...' was not found",
            "code": "not_found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Human-readable error message")
    code: str = Field(description="Machine-readable error code")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="connected | disconnected")
    object_store: str = Field(description="available | unavailable")
    uptime_seconds: float
