"""
PropDesk Backend — Record Store Adapter
=========================================

What:  Persists and queries property records.
Why:   Keeps SQL out of the PropertyService; the service speaks in
       "insert / find / append / set caption", never in statements.
How:   Thin wrapper over an AsyncSession. Partial updates are single UPDATE
       statements so PostgreSQL's per-row atomicity is the only concurrency
       control needed; no read-modify-write in Python.
Who:   Constructed per request around the request's session.

Contract:
    insert(prop)                                  → Property
    find_by_id(id)                                → Property | None
    find_many(owner_id, page, limit)              → (items, total)
    append_note(id, note_type, entry)             → Property | None
    set_image_caption(id, image_key, caption)     → Property | None

    "None" always means the target did not exist; nothing is created.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import desc, func, literal, select, text, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.exceptions import DatabaseError
from propdesk.models.property import NOTE_COLUMNS, Property

logger = logging.getLogger(__name__)

# Rewrites the matching element of the images array in place, keeping order.
# The containment predicate makes the statement a no-op (zero rows) when the
# key is not on the property, so a missing key is never appended.
_SET_CAPTION_SQL = text(
    """
    UPDATE properties
    SET images = (
            SELECT jsonb_agg(
                CASE WHEN elem->>'key' = :image_key
                     THEN jsonb_set(elem, '{caption}', to_jsonb(CAST(:caption AS text)), true)
                     ELSE elem
                END
                ORDER BY ord
            )
            FROM jsonb_array_elements(images) WITH ORDINALITY AS t(elem, ord)
        ),
        updated_at = :updated_at
    WHERE id = :property_id
      AND images @> jsonb_build_array(jsonb_build_object('key', CAST(:image_key AS text)))
    RETURNING id
    """
)


@contextmanager
def _translate_errors(operation: str, **context: Any) -> Iterator[None]:
    """Wrap SQLAlchemy failures in DatabaseError (details logged, not returned)."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s | %s", operation, str(e), context, exc_info=True)
        raise DatabaseError(
            context={"operation": operation, "error_type": type(e).__name__, **context},
        ) from e


class PropertyStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, prop: Property) -> Property:
        with _translate_errors("insert", property_id=str(prop.id)):
            self.db.add(prop)
            await self.db.flush()
        return prop

    async def find_by_id(self, property_id: UUID) -> Optional[Property]:
        """
        Query plan:
            SELECT * FROM properties WHERE id = :uuid  → primary key lookup
        """
        with _translate_errors("find_by_id", property_id=str(property_id)):
            result = await self.db.execute(
                select(Property)
                .where(Property.id == property_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def find_many(
        self,
        owner_id: Optional[str],
        page: int,
        limit: int,
    ) -> Tuple[List[Property], int]:
        """
        Offset-paginated listing, newest first.

        Query plan (with owner filter):
            SELECT * FROM properties WHERE user_id = :owner
            ORDER BY created_at DESC, id DESC OFFSET :skip LIMIT :limit
            → idx_properties_user_id_created_at

        Returns:
            Tuple of (items on this page, total matching records).
        """
        skip = (page - 1) * limit
        query = select(Property)
        count_query = select(func.count(Property.id))
        if owner_id is not None:
            query = query.where(Property.user_id == owner_id)
            count_query = count_query.where(Property.user_id == owner_id)

        query = (
            query.order_by(desc(Property.created_at), desc(Property.id))
            .offset(skip)
            .limit(limit)
        )

        with _translate_errors("find_many", owner_id=owner_id, page=page, limit=limit):
            result = await self.db.execute(query)
            items = list(result.scalars().all())
            count_result = await self.db.execute(count_query)
            total = count_result.scalar() or 0

        return items, total

    async def append_note(
        self,
        property_id: UUID,
        note_type: str,
        entry: Dict[str, Any],
    ) -> Optional[Property]:
        """
        Append one entry to a note sequence.

        SQL:
            UPDATE properties SET <type>_notes = <type>_notes || '[entry]'::jsonb
            WHERE id = :id RETURNING *
        """
        column = getattr(Property, NOTE_COLUMNS[note_type])
        stmt = (
            update(Property)
            .where(Property.id == property_id)
            .values(
                {
                    column: column.op("||")(literal([entry], JSONB)),
                    Property.updated_at: datetime.now(timezone.utc),
                }
            )
            .returning(Property)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        with _translate_errors("append_note", property_id=str(property_id), note_type=note_type):
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()

    async def set_image_caption(
        self,
        property_id: UUID,
        image_key: str,
        caption: str,
    ) -> Optional[Property]:
        with _translate_errors("set_image_caption", property_id=str(property_id)):
            result = await self.db.execute(
                _SET_CAPTION_SQL,
                {
                    "property_id": property_id,
                    "image_key": image_key,
                    "caption": caption,
                    "updated_at": datetime.now(timezone.utc),
                },
            )
            if result.scalar_one_or_none() is None:
                return None
        return await self.find_by_id(property_id)
