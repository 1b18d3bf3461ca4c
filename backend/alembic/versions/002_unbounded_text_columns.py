"""Widen owner and descriptive columns to TEXT

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Owner ids and descriptive fields are free-form strings with no length
       limit. VARCHAR(n) made long values fail at INSERT time, after the
       images had already been uploaded.

Rollback: downgrade() restores the VARCHAR limits and fails if any stored
          value is longer than the old limit.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# column → previous VARCHAR length
_PREVIOUS_LENGTHS = {
    "user_id": 255,
    "address1": 255,
    "address2": 255,
    "city": 255,
    "state": 255,
    "postal_code": 64,
    "country": 255,
    "property_type": 100,
    "status": 100,
}


def upgrade() -> None:
    for column, length in _PREVIOUS_LENGTHS.items():
        op.alter_column(
            "properties",
            column,
            type_=sa.Text(),
            existing_type=sa.String(length),
        )


def downgrade() -> None:
    for column, length in _PREVIOUS_LENGTHS.items():
        op.alter_column(
            "properties",
            column,
            type_=sa.String(length),
            existing_type=sa.Text(),
        )
