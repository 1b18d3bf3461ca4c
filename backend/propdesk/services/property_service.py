"""
PropDesk Backend — Property Service (Business Logic Orchestrator)
===================================================================

What:  Validates and coerces request payloads, orchestrates upload-then-persist,
       and applies the two narrow mutations (append note, set caption).
Why:   Keeps business rules independent of HTTP; routes stay thin.
How:   Composes an ObjectStore (blob writes) and a PropertyStore (record writes),
       both injected per request.
Who:   Called by route handlers in routes/properties.py.

Orchestration Flow (POST /api/properties):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌────────────┐
    │ Validate │───▶│ Generate id │───▶│ Upload batch │───▶│  Insert    │
    │ owner &  │    │ (UUID4)     │    │ (sequential) │    │  record    │
    │ files    │    └─────────────┘    └──────────────┘    └────────────┘
    └──────────┘

    All validation happens before the first I/O call. An upload failure fails
    the whole request; blobs already written are left in place.

Lenient Coercion (kept for compatibility with existing clients):
    - numeric fields that do not parse to a finite number are dropped
    - dates that do not parse are dropped
    - an attributes value that is not a JSON object is dropped
    None of these raise.
"""

import json
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from propdesk.config import settings
from propdesk.exceptions import InvalidIdError, NotFoundError, ValidationError
from propdesk.models.property import NOTE_COLUMNS, Property
from propdesk.schemas.property import (
    GeoPoint,
    NoteEntry,
    PropertyListResponse,
    PropertyResponse,
)
from propdesk.services.image_validation import validate_uploads
from propdesk.services.object_store import ObjectStore, UploadedFile
from propdesk.services.property_store import PropertyStore

logger = logging.getLogger(__name__)

DEFAULT_NOTE_TYPE = "inspection"

# Keeps (page - 1) * limit well inside a 64-bit OFFSET
MAX_PAGE_NUMBER = 10_000_000

# (form field, model attribute); snake_case spellings are accepted too
TEXT_FIELDS = (
    ("title", "title"),
    ("address1", "address1"),
    ("address2", "address2"),
    ("city", "city"),
    ("state", "state"),
    ("postalCode", "postal_code"),
    ("country", "country"),
    ("propertyType", "property_type"),
    ("status", "status"),
)
NUMERIC_FIELDS = (
    ("bedrooms", "bedrooms"),
    ("bathrooms", "bathrooms"),
    ("areaSqft", "area_sqft"),
    ("rent", "rent"),
    ("deposit", "deposit"),
)
LIST_FIELDS = (
    ("utilities", "utilities"),
    ("amenities", "amenities"),
)


# ══════════════════════════════════════════════════════════════════════════
# Coercion Helpers
# ══════════════════════════════════════════════════════════════════════════

def _first(value: Any) -> Any:
    # Repeated form fields arrive as lists; scalar fields take the last value
    if isinstance(value, (list, tuple)):
        return value[-1] if value else None
    return value


def _lookup(fields: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in fields:
        return fields[camel]
    return fields.get(snake)


def parse_number(value: Any) -> Optional[float]:
    """Parse to a finite float, or None. Never raises."""
    value = _first(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        raw = str(value).strip()
        if not raw:
            return None
        try:
            number = float(raw)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or datetime, or None. Never raises.

    A trailing "Z" is accepted; naive values are taken as UTC.
    """
    value = _first(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_attributes(value: Any) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from a string (or pass a dict through), else None."""
    value = _first(value)
    if isinstance(value, dict):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        logger.debug("Ignoring unparseable attributes payload")
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_string_list(value: Any) -> List[str]:
    """
    Normalize a free-form list field.

    Accepts repeated form fields, a comma-separated string, or a JSON array.
    Blank entries are dropped; order is preserved.
    """
    if value is None:
        return []
    raw_items = value if isinstance(value, (list, tuple)) else [value]
    items: List[str] = []
    for raw in raw_items:
        if raw is None:
            continue
        if isinstance(raw, str) and raw.strip().startswith("["):
            try:
                decoded = json.loads(raw)
            except ValueError:
                decoded = None
            if isinstance(decoded, list):
                items.extend(
                    str(v).strip() for v in decoded if v is not None and str(v).strip()
                )
                continue
        items.extend(part.strip() for part in str(raw).split(",") if part.strip())
    return items


def parse_text(value: Any) -> Optional[str]:
    value = _first(value)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_page_param(value: Any, default: int) -> int:
    """Integer query parameter: non-numeric or absent falls back to default."""
    number = parse_number(value)
    if number is None:
        return default
    return int(number)


def parse_property_id(raw_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw_id))
    except (ValueError, AttributeError, TypeError):
        raise InvalidIdError(str(raw_id))


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class PropertyService:
    """
    Business logic layer for property operations.

    Responsibilities:
        - create_property(): validate → upload images → insert record
        - list_properties(): paged listing with optional owner filter
        - get_property(): single record with invalid-id / not-found handling
        - add_note(): append to one of three note sequences
        - set_image_caption(): caption one image by its exact key

    The service holds no state of its own beyond the two injected adapters.
    """

    def __init__(self, store: PropertyStore, object_store: ObjectStore):
        self.store = store
        self.object_store = object_store

    # ── Create ────────────────────────────────────────────────────────────

    def _coerce_fields(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for camel, attr in TEXT_FIELDS:
            values[attr] = parse_text(_lookup(fields, camel, attr))
        for camel, attr in NUMERIC_FIELDS:
            values[attr] = parse_number(_lookup(fields, camel, attr))
        for camel, attr in LIST_FIELDS:
            values[attr] = parse_string_list(_lookup(fields, camel, attr))

        values["available_from"] = parse_datetime(
            _lookup(fields, "availableFrom", "available_from")
        )
        values["attributes"] = parse_attributes(fields.get("attributes"))

        lng = parse_number(_lookup(fields, "lng", "longitude"))
        lat = parse_number(_lookup(fields, "lat", "latitude"))
        if lng is not None and lat is not None:
            values["location"] = GeoPoint(coordinates=[lng, lat]).model_dump(by_alias=True)
        else:
            values["location"] = None
        return values

    async def create_property(
        self,
        owner_id: Optional[str],
        fields: Mapping[str, Any],
        files: Sequence[UploadedFile] = (),
    ) -> PropertyResponse:
        """
        Create a property with zero or more images.

        Args:
            owner_id: Resolved owner identity (header or form field)
            fields: Raw form fields (strings or lists of strings)
            files: Uploaded images in submission order

        Returns:
            PropertyResponse with images in the same order as files

        Raises:
            ValidationError: Missing owner; too many, too large or non-image files
            ObjectStorageError: An upload failed (earlier uploads are orphaned)
            DatabaseError: The insert failed (all uploads are orphaned)
        """
        owner_id = (owner_id or "").strip()
        if not owner_id:
            raise ValidationError(
                message="userId is required (x-user-id header or userId field)",
                field="userId",
            )
        files = validate_uploads(files)
        values = self._coerce_fields(fields)

        # Id first: every storage key carries the final property id
        property_id = uuid.uuid4()
        images = await self.object_store.upload_batch(owner_id, str(property_id), files)

        now = datetime.now(timezone.utc)
        prop = Property(
            id=property_id,
            user_id=owner_id,
            images=[
                image.model_dump(by_alias=True, mode="json", exclude_none=True)
                for image in images
            ],
            inspection_notes=[],
            maintenance_notes=[],
            marketing_notes=[],
            created_at=now,
            updated_at=now,
            **values,
        )
        await self.store.insert(prop)
        logger.info(
            "Property %s created for owner %s with %d image(s)",
            property_id,
            owner_id,
            len(images),
        )
        return PropertyResponse.model_validate(prop)

    # ── Read ──────────────────────────────────────────────────────────────

    async def list_properties(
        self,
        owner_id: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
    ) -> PropertyListResponse:
        """
        List properties newest first.

        page:  defaults to 1 when absent or non-numeric; clamped to 1..MAX_PAGE_NUMBER
        limit: defaults to DEFAULT_PAGE_SIZE when absent, non-numeric or < 1;
               capped at MAX_PAGE_SIZE
        """
        page_number = min(max(1, parse_page_param(page, 1)), MAX_PAGE_NUMBER)
        page_size = parse_page_param(limit, settings.default_page_size)
        if page_size < 1:
            page_size = settings.default_page_size
        page_size = min(page_size, settings.max_page_size)

        owner_filter = (owner_id or "").strip() or None
        items, total = await self.store.find_many(owner_filter, page_number, page_size)

        skip = (page_number - 1) * page_size
        return PropertyListResponse(
            items=[PropertyResponse.model_validate(item) for item in items],
            page=page_number,
            limit=page_size,
            total=total,
            has_more=skip + len(items) < total,
        )

    async def get_property(self, raw_id: str) -> PropertyResponse:
        property_id = parse_property_id(raw_id)
        prop = await self.store.find_by_id(property_id)
        if prop is None:
            raise NotFoundError(resource="property", resource_id=str(raw_id))
        return PropertyResponse.model_validate(prop)

    # ── Partial Updates ───────────────────────────────────────────────────

    async def add_note(
        self,
        raw_id: str,
        note_type: Optional[str],
        text: Optional[str],
        author_id: Optional[str] = None,
    ) -> PropertyResponse:
        """
        Append a note to one of the three sequences.

        An unrecognized note_type (including None) is stored as an inspection
        note. Existing entries are never touched.
        """
        property_id = parse_property_id(raw_id)
        body = (text or "").strip()
        if not body:
            raise ValidationError(message="Note text is required", field="text")

        target = note_type if note_type in NOTE_COLUMNS else DEFAULT_NOTE_TYPE
        entry = NoteEntry(
            text=body,
            author_id=(author_id or "").strip() or None,
            created_at=datetime.now(timezone.utc),
        ).model_dump(by_alias=True, mode="json", exclude_none=True)

        updated = await self.store.append_note(property_id, target, entry)
        if updated is None:
            raise NotFoundError(resource="property", resource_id=str(raw_id))

        logger.info("Appended %s note to property %s", target, property_id)
        return PropertyResponse.model_validate(updated)

    async def set_image_caption(
        self,
        raw_id: str,
        image_key: str,
        caption: Optional[str],
    ) -> PropertyResponse:
        """
        Set the caption of the image whose key matches exactly (case-sensitive).

        A missing caption clears it to "". Other images and fields are unchanged.
        """
        property_id = parse_property_id(raw_id)
        updated = await self.store.set_image_caption(property_id, image_key, caption or "")
        if updated is None:
            # Distinguish the two 404s for the error message
            if await self.store.find_by_id(property_id) is None:
                raise NotFoundError(resource="property", resource_id=str(raw_id))
            raise NotFoundError(resource="image", resource_id=image_key)

        logger.info("Caption updated for image %s on property %s", image_key, property_id)
        return PropertyResponse.model_validate(updated)
