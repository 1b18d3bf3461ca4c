"""
PropDesk Backend — Local File Serving
=======================================

What:  GET /api/files/{key} serves images written by the local storage backend.
Why:   With STORAGE_BACKEND=local, image URLs point back at this API
       ({PUBLIC_BASE_URL}/api/files/{key}). With S3 the bucket or CDN serves
       images directly and this route answers 404.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from propdesk.dependencies import get_object_store
from propdesk.exceptions import NotFoundError
from propdesk.services.object_store import LocalObjectStore, ObjectStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{key:path}",
    summary="Serve an uploaded image (local storage backend only)",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found"},
    },
)
async def serve_file(
    key: str,
    object_store: ObjectStore = Depends(get_object_store),
) -> FileResponse:
    if not isinstance(object_store, LocalObjectStore):
        raise NotFoundError(resource="file", resource_id=key)

    # resolve_path rejects keys that escape the storage root (../)
    path = object_store.resolve_path(key)
    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=key)

    # media type is guessed from the filename
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
