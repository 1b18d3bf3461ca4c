"""
PropDesk Backend — Request Dependencies
=========================================

What:  FastAPI dependencies that hand each request its service and identity.
Why:   Backing-store handles are created once in the lifespan and stored on
       app.state; routes receive them through Depends() instead of importing
       globals, and tests swap them with app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.database import get_db_session
from propdesk.services.object_store import ObjectStore
from propdesk.services.property_service import PropertyService
from propdesk.services.property_store import PropertyStore

OWNER_HEADER = "x-user-id"


def resolve_owner_id(header_value: Optional[str], body_value: Optional[str]) -> Optional[str]:
    """
    Pick the caller's owner identity.

    The x-user-id header wins over the userId body/form field; blank values
    count as absent. Returns None when neither is usable.
    """
    for candidate in (header_value, body_value):
        if candidate is not None and str(candidate).strip():
            return str(candidate).strip()
    return None


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


async def get_property_service(
    db: AsyncSession = Depends(get_db_session),
    object_store: ObjectStore = Depends(get_object_store),
) -> PropertyService:
    return PropertyService(store=PropertyStore(db), object_store=object_store)
