"""
Public endpoints. No credential required; only verified and tokenized
resources, in the restricted projection.
"""

import uuid

from fastapi import APIRouter, Query

from bluecarbon.api.deps import DbSession
from bluecarbon.orchestration.state_machine import LifecycleManager
from bluecarbon.schemas.common import PaginatedResponse
from bluecarbon.schemas.resource import PublicResourceResponse

router = APIRouter()


@router.get("/resources", response_model=PaginatedResponse[PublicResourceResponse])
async def list_public_resources(
    db: DbSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """Publicly listed resources, newest first."""
    items, total = await LifecycleManager(db).list_public(page=page, page_size=page_size)
    return PaginatedResponse.create(
        items=[PublicResourceResponse.model_validate(r) for r in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/resources/{resource_id}", response_model=PublicResourceResponse)
async def get_public_resource(resource_id: uuid.UUID, db: DbSession):
    """A single publicly listed resource."""
    resource = await LifecycleManager(db).get_public(resource_id)
    return PublicResourceResponse.model_validate(resource)
