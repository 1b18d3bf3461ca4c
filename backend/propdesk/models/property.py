"""
PropDesk Backend — Property SQLAlchemy Model
==============================================

What:  ORM model representing the `properties` table in PostgreSQL.
Why:   Maps the property aggregate to a row; the document-shaped parts
       (notes, images, free-form lists and maps) live in JSONB columns so a
       property is still read and written as one record.
Who:   Used by PropertyStore for persistence and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: generated by the service BEFORE uploads so every
      object-store key already contains the final id
    - user_id: owner identifier; indexed together with created_at for the
      "list my properties, newest first" query
    - *_notes: JSONB arrays of {text, authorId, createdAt}; append-only
    - images: JSONB array of {key, url, contentType, size, caption}
    - JSON keys inside the JSONB columns use the API's camelCase names, so
      the stored document and the response body have the same shape
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Float, Index, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from propdesk.database import Base

# Note type → column attribute holding that append-only sequence
NOTE_COLUMNS = {
    "inspection": "inspection_notes",
    "maintenance": "maintenance_notes",
    "marketing": "marketing_notes",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Property(Base):
    """
    Represents one property record.

    Lifecycle:
        1. Created in a single insert with all initial fields and images
        2. Mutated only by appending a note or setting an image caption
        3. Never replaced or deleted through the API
    """

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Property identifier, assigned before image upload",
    )
    user_id: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Owner identifier; scopes listing and storage keys",
    )

    # ── Descriptive Fields ────────────────────────────────────────────────
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address1: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    state: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    country: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    property_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Numeric Attributes (absent when the submitted value did not parse) ─
    bedrooms: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bathrooms: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    area_sqft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    deposit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    available_from: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # ── Free-form Parts ───────────────────────────────────────────────────
    utilities: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    amenities: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    attributes: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)

    # GeoJSON point: {"type": "Point", "coordinates": [lng, lat]}
    location: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)

    # ── Append-only Note Sequences ────────────────────────────────────────
    inspection_notes: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    maintenance_notes: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    marketing_notes: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )

    images: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_properties_user_id_created_at", user_id, created_at.desc()),
        Index("idx_properties_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, user_id='{self.user_id}', images={len(self.images or [])})>"
