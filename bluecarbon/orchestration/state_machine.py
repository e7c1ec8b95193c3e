"""
Resource lifecycle manager.

Resource status is authoritative for review, tokenization and public
visibility. Every read and mutation is gated by the access control
evaluator; every mutation is applied as a compare-and-set on
(id, status, version) so that concurrent writers to one resource resolve
to exactly one winner.
"""

import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.kernel.errors import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidTransition,
    NotFound,
    ResourceLocked,
)
from bluecarbon.kernel.events.event_store import EventStore
from bluecarbon.kernel.models.base import utcnow
from bluecarbon.kernel.models.event_log import EventLog, EventType
from bluecarbon.kernel.models.principal import Role
from bluecarbon.kernel.models.resource import PUBLIC_STATUSES, Resource, ResourceStatus
from bluecarbon.kernel.permissions.access_control import (
    Caller,
    Operation,
    Projection,
    evaluate,
)
from bluecarbon.kernel.permissions.matrix import TRANSITIONS, LifecycleEvent
from bluecarbon.logging_config import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = ("title", "description", "attributes")

REVIEW_QUEUE_STATUSES = (ResourceStatus.SUBMITTED, ResourceStatus.UNDER_REVIEW)


def _clean_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise InvalidInput("Title must not be blank")
    return title


class LifecycleManager:
    """Service for resource reads and state transitions with audit logging."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def create(
        self,
        caller: Caller,
        title: str,
        description: Optional[str] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Resource:
        """Register a new resource in draft. Submitters only."""
        if caller.role != Role.SUBMITTER or caller.principal_id is None:
            raise Forbidden("Only submitters can register resources")

        resource = Resource(
            owner_id=caller.principal_id,
            title=_clean_title(title),
            description=description,
            attributes=attributes or {},
            status=ResourceStatus.DRAFT,
            version=1,
        )
        self.session.add(resource)
        await self.session.flush()
        await self.session.refresh(resource)

        await self.event_store.log(
            event_type=EventType.RESOURCE_CREATED,
            entity_type="resource",
            entity_id=resource.id,
            principal_id=caller.principal_id,
            payload={"title": resource.title, "status": resource.status},
        )
        logger.info("Resource created", extra={"resource_id": str(resource.id)})
        return resource

    async def get(self, resource_id: uuid.UUID, caller: Caller) -> Tuple[Resource, Projection]:
        """
        Read a resource and the projection the caller is entitled to.

        Raises:
            NotFound: missing, or not visible and not publicly listed
            Forbidden: publicly listed but not readable by this caller here
        """
        resource = await self._load(resource_id)
        decision = evaluate(caller, resource.owner_id, resource.status, Operation.read())
        if not decision:
            raise self._visibility_error(resource)
        return resource, decision.projection

    async def update(
        self,
        resource_id: uuid.UUID,
        caller: Caller,
        changes: Dict[str, Any],
    ) -> Resource:
        """
        Edit descriptive fields. Owner only, draft only.

        Raises:
            ResourceLocked: the resource has left draft
            Forbidden: caller is not the owner
            InvalidInput: blank title
        """
        resource, _ = await self.get(resource_id, caller)
        decision = evaluate(caller, resource.owner_id, resource.status, Operation.edit())
        if not decision:
            if decision.rule == "owner":
                raise ResourceLocked()
            raise Forbidden("Only the owner can edit this resource")

        values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
        if "title" in values:
            values["title"] = _clean_title(values["title"])
        if not values:
            return resource

        await self.compare_and_set(resource, **values)
        await self.event_store.log(
            event_type=EventType.RESOURCE_UPDATED,
            entity_type="resource",
            entity_id=resource.id,
            principal_id=caller.principal_id,
            payload={"fields": sorted(values), "version": resource.version},
        )
        return resource

    async def transition(
        self,
        resource_id: uuid.UUID,
        event: LifecycleEvent,
        caller: Caller,
        comment: Optional[str] = None,
    ) -> Resource:
        """
        Fire a lifecycle event. ``comment`` (e.g. a rejection reason) goes
        into the audit record only.

        Raises:
            InvalidTransition: wrong state for the event, or role not allowed
            Conflict: another writer changed the resource first
        """
        event = LifecycleEvent(event)
        resource, _ = await self.get(resource_id, caller)
        from_status = resource.status

        decision = evaluate(caller, resource.owner_id, from_status, Operation.transition(event))
        if not decision:
            raise InvalidTransition(
                f"Cannot {event.value} a {from_status.value} resource as {caller.role.value}"
            )

        to_status = TRANSITIONS[event].target
        await self.compare_and_set(resource, status=to_status)

        await self.event_store.log(
            event_type=EventType.RESOURCE_STATUS_CHANGED,
            entity_type="resource",
            entity_id=resource.id,
            principal_id=caller.principal_id,
            payload={
                "event": event,
                "from_status": from_status,
                "to_status": to_status,
                "version": resource.version,
                "comment": comment,
            },
        )
        logger.info(
            "Resource %s -> %s",
            from_status.value,
            to_status.value,
            extra={"resource_id": str(resource.id), "event": event.value},
        )
        return resource

    async def list_owned_by(self, principal_id: uuid.UUID) -> List[Resource]:
        """Resources owned by a principal, most recent first."""
        query = (
            select(Resource)
            .where(Resource.owner_id == principal_id)
            .order_by(Resource.created_at.desc(), Resource.id.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_review_queue(self, caller: Caller) -> List[Resource]:
        """Resources awaiting or in review, oldest first."""
        if caller.role not in (Role.REVIEWER, Role.ADMINISTRATOR):
            raise Forbidden("Review queue is limited to reviewers and administrators")

        query = (
            select(Resource)
            .where(Resource.status.in_(REVIEW_QUEUE_STATUSES))
            .order_by(Resource.created_at.asc(), Resource.id.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_public(self, page: int = 1, page_size: int = 20) -> Tuple[List[Resource], int]:
        """
        One page of publicly listed resources and the total count.

        Ordered by creation time descending with the id as tie-breaker, so
        pages neither repeat nor skip items absent concurrent writes.
        """
        page = max(page, 1)
        public = Resource.status.in_(PUBLIC_STATUSES)

        total = await self.session.scalar(select(func.count(Resource.id)).where(public))
        query = (
            select(Resource)
            .where(public)
            .order_by(Resource.created_at.desc(), Resource.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total or 0

    async def get_public(self, resource_id: uuid.UUID) -> Resource:
        """A single publicly listed resource; anything else is NotFound."""
        resource = await self.session.get(Resource, resource_id)
        if resource is None or resource.status not in PUBLIC_STATUSES:
            raise NotFound("Resource not found")
        return resource

    async def history(self, resource_id: uuid.UUID, caller: Caller) -> List[EventLog]:
        """Audit events of a resource, oldest first. Full readers only."""
        resource, projection = await self.get(resource_id, caller)
        if projection != Projection.FULL:
            raise Forbidden("History is not part of the public view")
        return await self.event_store.get_entity_history(
            "resource", resource.id, limit=None, newest_first=False
        )

    async def compare_and_set(self, resource: Resource, **values: Any) -> Resource:
        """
        Apply ``values`` only if the row still has the status and version of
        the ``resource`` snapshot, bumping the version.

        Raises:
            Conflict: the row changed since the snapshot was read
        """
        stmt = (
            update(Resource)
            .where(
                and_(
                    Resource.id == resource.id,
                    Resource.status == resource.status,
                    Resource.version == resource.version,
                )
            )
            .values(version=resource.version + 1, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "Concurrent update lost",
                extra={"resource_id": str(resource.id), "version": resource.version},
            )
            raise Conflict("Resource was modified concurrently")

        await self.session.refresh(resource)
        return resource

    async def _load(self, resource_id: uuid.UUID) -> Resource:
        resource = await self.session.get(Resource, resource_id)
        if resource is None:
            raise NotFound("Resource not found")
        return resource

    @staticmethod
    def _visibility_error(resource: Resource) -> Exception:
        # Existence of publicly listed resources is already known to everyone
        if resource.status in PUBLIC_STATUSES:
            return Forbidden("Access denied")
        return NotFound("Resource not found")
