"""Create properties table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the `properties` table holding one row per property, with the
       document-shaped parts (notes, images, lists, attributes, location)
       stored as JSONB.

Rollback: downgrade() drops the table and every stored property with it.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_EMPTY_ARRAY = sa.text("'[]'::jsonb")


def _jsonb_array(name: str, comment: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(),
        nullable=False,
        server_default=_EMPTY_ARRAY,
        comment=comment,
    )


def upgrade() -> None:
    op.create_table(
        "properties",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
            comment="Property identifier, assigned before image upload",
        ),
        sa.Column(
            "user_id",
            sa.String(255),
            nullable=False,
            comment="Owner identifier; scopes listing and storage keys",
        ),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("address1", sa.String(255), nullable=True),
        sa.Column("address2", sa.String(255), nullable=True),
        sa.Column("city", sa.String(255), nullable=True),
        sa.Column("state", sa.String(255), nullable=True),
        sa.Column("postal_code", sa.String(64), nullable=True),
        sa.Column("country", sa.String(255), nullable=True),
        sa.Column("property_type", sa.String(100), nullable=True),
        sa.Column("status", sa.String(100), nullable=True),
        sa.Column("bedrooms", sa.Float(), nullable=True),
        sa.Column("bathrooms", sa.Float(), nullable=True),
        sa.Column("area_sqft", sa.Float(), nullable=True),
        sa.Column("rent", sa.Float(), nullable=True),
        sa.Column("deposit", sa.Float(), nullable=True),
        sa.Column("available_from", sa.TIMESTAMP(timezone=True), nullable=True),
        _jsonb_array("utilities", "List of utility names"),
        _jsonb_array("amenities", "List of amenity names"),
        sa.Column("attributes", postgresql.JSONB(), nullable=True),
        sa.Column(
            "location",
            postgresql.JSONB(),
            nullable=True,
            comment='GeoJSON point: {"type": "Point", "coordinates": [lng, lat]}',
        ),
        _jsonb_array("inspection_notes", "Append-only inspection notes"),
        _jsonb_array("maintenance_notes", "Append-only maintenance notes"),
        _jsonb_array("marketing_notes", "Append-only marketing notes"),
        _jsonb_array("images", "Image records {key, url, contentType, size, caption}"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # "my properties, newest first"
    op.create_index(
        "idx_properties_user_id_created_at",
        "properties",
        ["user_id", sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_properties_created_at",
        "properties",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_properties_created_at", table_name="properties")
    op.drop_index("idx_properties_user_id_created_at", table_name="properties")
    op.drop_table("properties")
