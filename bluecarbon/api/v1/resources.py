"""
Resource endpoints: registration, drafts, lifecycle transitions and
content references.
"""

import uuid
from typing import List, Union

from fastapi import APIRouter, Query, Request, status

from bluecarbon.api.deps import ContentStoreDep, CurrentCaller, DbSession
from bluecarbon.kernel.errors import InvalidInput, PayloadTooLarge
from bluecarbon.kernel.models.resource import ContentKind, Resource
from bluecarbon.kernel.permissions.access_control import Projection
from bluecarbon.orchestration.state_machine import LifecycleManager
from bluecarbon.provenance.linker import ProvenanceLinker
from bluecarbon.schemas.resource import (
    AttachRequest,
    EventResponse,
    PublicResourceResponse,
    PublishRequest,
    ResourceCreate,
    ResourceResponse,
    ResourceUpdate,
    TransitionRequest,
)

router = APIRouter()

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _full(resource: Resource) -> ResourceResponse:
    return ResourceResponse.model_validate(resource)


async def _read_upload(request: Request) -> bytes:
    """Read the request body, refusing anything over MAX_UPLOAD_BYTES before buffering it."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > MAX_UPLOAD_BYTES:
        raise PayloadTooLarge(f"File body must not exceed {MAX_UPLOAD_BYTES} bytes")

    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > MAX_UPLOAD_BYTES:
            raise PayloadTooLarge(f"File body must not exceed {MAX_UPLOAD_BYTES} bytes")
        chunks.append(chunk)
    if size == 0:
        raise InvalidInput("File body must not be empty")
    return b"".join(chunks)


@router.post("", response_model=ResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_resource(data: ResourceCreate, caller: CurrentCaller, db: DbSession):
    """Register a new resource in draft. Submitters only."""
    resource = await LifecycleManager(db).create(
        caller,
        title=data.title,
        description=data.description,
        attributes=data.attributes,
    )
    return _full(resource)


@router.get("", response_model=List[ResourceResponse])
async def list_my_resources(caller: CurrentCaller, db: DbSession):
    """Resources owned by the caller, most recent first."""
    resources = await LifecycleManager(db).list_owned_by(caller.principal_id)
    return [_full(r) for r in resources]


@router.get("/review-queue", response_model=List[ResourceResponse])
async def review_queue(caller: CurrentCaller, db: DbSession):
    """Submitted and in-review resources, oldest first. Reviewers and administrators."""
    resources = await LifecycleManager(db).list_review_queue(caller)
    return [_full(r) for r in resources]


@router.get("/{resource_id}", response_model=Union[ResourceResponse, PublicResourceResponse])
async def get_resource(resource_id: uuid.UUID, caller: CurrentCaller, db: DbSession):
    """Get a resource in the view the caller is entitled to."""
    resource, projection = await LifecycleManager(db).get(resource_id, caller)
    if projection == Projection.PUBLIC:
        return PublicResourceResponse.model_validate(resource)
    return _full(resource)


@router.patch("/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: uuid.UUID,
    data: ResourceUpdate,
    caller: CurrentCaller,
    db: DbSession,
):
    """Edit a draft. Owner only; locked once submitted."""
    resource = await LifecycleManager(db).update(
        resource_id, caller, data.model_dump(exclude_unset=True)
    )
    return _full(resource)


@router.post("/{resource_id}/transitions", response_model=ResourceResponse)
async def transition_resource(
    resource_id: uuid.UUID,
    data: TransitionRequest,
    caller: CurrentCaller,
    db: DbSession,
):
    """Fire a lifecycle event (submit, begin_review, approve, reject, tokenize)."""
    resource = await LifecycleManager(db).transition(
        resource_id, data.event, caller, comment=data.comment
    )
    return _full(resource)


@router.post("/{resource_id}/content", response_model=ResourceResponse)
async def attach_content(
    resource_id: uuid.UUID,
    data: AttachRequest,
    caller: CurrentCaller,
    db: DbSession,
):
    """Attach an existing content identifier."""
    resource = await ProvenanceLinker(db).attach(resource_id, data.kind, data.content_id, caller)
    return _full(resource)


@router.post("/{resource_id}/content/publish", response_model=ResourceResponse)
async def publish_content(
    resource_id: uuid.UUID,
    data: PublishRequest,
    caller: CurrentCaller,
    db: DbSession,
    store: ContentStoreDep,
):
    """Upload a structured payload to the content store and attach it."""
    resource = await ProvenanceLinker(db, store).publish_and_attach(
        resource_id, data.kind, data.payload, caller
    )
    return _full(resource)


@router.post("/{resource_id}/content/files", response_model=ResourceResponse)
async def publish_file(
    resource_id: uuid.UUID,
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
    store: ContentStoreDep,
    kind: ContentKind = Query(...),
    filename: str = Query(..., min_length=1, max_length=255),
):
    """Upload the raw request body as a file and attach it."""
    data = await _read_upload(request)
    content_type = request.headers.get("content-type", "application/octet-stream")
    resource = await ProvenanceLinker(db, store).publish_file_and_attach(
        resource_id, kind, data, filename, content_type, caller
    )
    return _full(resource)


@router.get("/{resource_id}/history", response_model=List[EventResponse])
async def resource_history(resource_id: uuid.UUID, caller: CurrentCaller, db: DbSession):
    """Audit trail of the resource, oldest first."""
    events = await LifecycleManager(db).history(resource_id, caller)
    return [EventResponse.model_validate(e) for e in events]
