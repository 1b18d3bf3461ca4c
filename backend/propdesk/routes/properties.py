"""
PropDesk Backend — Property Route Handlers
============================================

What:  REST endpoints for property records.
How:   Parses the request, resolves the owner identity, delegates to
       PropertyService, returns JSON. Failures are raised as PropDeskError
       subclasses and formatted by the global handlers in main.py.
Who:   Called by the dashboard and the gallery/notes component.

Endpoints:
    POST  /api/properties                                     → 201 Property
    GET   /api/properties?userId=&page=&limit=                → 200 paged result
    GET   /api/properties/{id}                                → 200 Property
    PATCH /api/properties/{id}/notes                          → 200 Property
    PATCH /api/properties/{id}/images/{imageKey}/caption      → 200 Property

imageKey contains slashes; clients send it URL-encoded and it reaches the
handler decoded, so the route uses a :path convertor.
"""

import logging
import mimetypes
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request
from starlette.datastructures import FormData, UploadFile

from propdesk.dependencies import OWNER_HEADER, get_property_service, resolve_owner_id
from propdesk.schemas.property import (
    CaptionUpdateRequest,
    ErrorResponse,
    NoteCreateRequest,
    PropertyListResponse,
    PropertyResponse,
)
from propdesk.services.object_store import UploadedFile
from propdesk.services.property_service import PropertyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Properties"])

IMAGES_FIELD = "images"


async def _read_form(form: FormData) -> Tuple[Dict[str, Any], List[UploadedFile]]:
    """
    Split a multipart form into text fields and image files.

    Repeated text fields become lists. Only parts named "images" are treated
    as uploads, in the order they were sent; an empty file part (a file input
    left blank) is skipped.
    """
    fields: Dict[str, Any] = {}
    files: List[UploadedFile] = []

    for key in form.keys():
        values = form.getlist(key)
        if key == IMAGES_FIELD:
            for item in values:
                if not isinstance(item, UploadFile):
                    continue
                content = await item.read()
                if not item.filename and not content:
                    continue
                filename = item.filename or "upload"
                content_type = (
                    item.content_type
                    or mimetypes.guess_type(filename)[0]
                    or "application/octet-stream"
                )
                files.append(
                    UploadedFile(filename=filename, content=content, content_type=content_type)
                )
            continue

        strings = [value for value in values if isinstance(value, str)]
        if strings:
            fields[key] = strings if len(strings) > 1 else strings[0]

    return fields, files


@router.post(
    "/properties",
    status_code=201,
    response_model=PropertyResponse,
    responses={
        201: {"description": "Property created", "model": PropertyResponse},
        400: {"description": "Missing owner or invalid upload", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Create a property with optional images",
    description=(
        "multipart/form-data with property fields and zero or more `images` files. "
        "The owner comes from the `x-user-id` header or the `userId` field (header wins)."
    ),
)
async def create_property(
    request: Request,
    service: PropertyService = Depends(get_property_service),
) -> PropertyResponse:
    form = await request.form()
    try:
        fields, files = await _read_form(form)
    finally:
        await form.close()

    body_owner = fields.get("userId")
    if isinstance(body_owner, list):
        body_owner = body_owner[-1]
    owner_id = resolve_owner_id(request.headers.get(OWNER_HEADER), body_owner)

    logger.info(
        "Received create request: owner=%s, fields=%d, files=%d",
        owner_id or "-",
        len(fields),
        len(files),
    )
    return await service.create_property(owner_id, fields, files)


@router.get(
    "/properties",
    response_model=PropertyListResponse,
    responses={500: {"description": "Store failure", "model": ErrorResponse}},
    summary="List properties, newest first",
)
async def list_properties(
    user_id: Optional[str] = Query(default=None, alias="userId", description="Exact owner filter"),
    page: Optional[str] = Query(default=None, description="1-based page number (default 1)"),
    limit: Optional[str] = Query(default=None, description="Items per page (default 50)"),
    service: PropertyService = Depends(get_property_service),
) -> PropertyListResponse:
    # page/limit are taken as strings: non-numeric values fall back to defaults
    return await service.list_properties(owner_id=user_id, page=page, limit=limit)


@router.get(
    "/properties/{property_id}",
    response_model=PropertyResponse,
    responses={
        400: {"description": "Malformed id", "model": ErrorResponse},
        404: {"description": "Property not found", "model": ErrorResponse},
    },
    summary="Get a single property",
)
async def get_property(
    property_id: str,
    service: PropertyService = Depends(get_property_service),
) -> PropertyResponse:
    return await service.get_property(property_id)


@router.patch(
    "/properties/{property_id}/notes",
    response_model=PropertyResponse,
    responses={
        400: {"description": "Missing note text or malformed id", "model": ErrorResponse},
        404: {"description": "Property not found", "model": ErrorResponse},
    },
    summary="Append an inspection, maintenance or marketing note",
)
async def add_note(
    property_id: str,
    payload: NoteCreateRequest,
    request: Request,
    service: PropertyService = Depends(get_property_service),
) -> PropertyResponse:
    author_id = payload.author_id or request.headers.get(OWNER_HEADER)
    return await service.add_note(
        property_id,
        note_type=payload.type,
        text=payload.text,
        author_id=author_id,
    )


@router.patch(
    "/properties/{property_id}/images/{image_key:path}/caption",
    response_model=PropertyResponse,
    responses={
        400: {"description": "Malformed id", "model": ErrorResponse},
        404: {"description": "Property or image not found", "model": ErrorResponse},
    },
    summary="Set the caption of one image",
)
async def set_image_caption(
    property_id: str,
    image_key: str,
    payload: CaptionUpdateRequest,
    service: PropertyService = Depends(get_property_service),
) -> PropertyResponse:
    return await service.set_image_caption(property_id, image_key, payload.caption)
