"""
Provenance linker.

Records opaque content identifiers from the external content store against
a resource at defined lifecycle points. References are append-only: once
attached they are never edited or removed, and ``sequence`` gives their
order per resource.
"""

import uuid
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.kernel.errors import (
    Conflict,
    ContentStoreUnavailable,
    Forbidden,
    InvalidAttachmentPoint,
    InvalidInput,
)
from bluecarbon.kernel.events.event_store import EventStore
from bluecarbon.kernel.models.base import utcnow
from bluecarbon.kernel.models.event_log import EventType
from bluecarbon.kernel.models.resource import ContentKind, ContentReference, Resource
from bluecarbon.kernel.permissions.access_control import Caller, Operation, evaluate
from bluecarbon.kernel.permissions.matrix import ATTACHMENT_WINDOWS
from bluecarbon.logging_config import get_logger
from bluecarbon.orchestration.state_machine import LifecycleManager
from bluecarbon.provenance.content_store import ContentStore, ContentStoreError

logger = get_logger(__name__)

PAYLOAD_VERSION = "1.0"

STANDARD_LABELS: Dict[ContentKind, str] = {
    ContentKind.DOCUMENTATION: "Blue Carbon Registry v1.0",
    ContentKind.MONITORING_EVIDENCE: "Blue Carbon MRV v1.0",
    ContentKind.VERIFICATION_REPORT: "Blue Carbon Verification v1.0",
    ContentKind.CREDIT_METADATA: "ERC-721",
    ContentKind.RETIREMENT_CERTIFICATE: "Blue Carbon Registry Retirement Certificate v1.0",
}


class ProvenanceLinker:
    """
    Attach content references to resources.

    Usage:
        linker = ProvenanceLinker(session, content_store)
        resource = await linker.attach(resource_id, ContentKind.DOCUMENTATION, cid, caller)
    """

    def __init__(
        self,
        session: AsyncSession,
        content_store: Optional[ContentStore] = None,
        lifecycle: Optional[LifecycleManager] = None,
    ):
        self.session = session
        self.content_store = content_store
        self.lifecycle = lifecycle or LifecycleManager(session)
        self.event_store = EventStore(session)

    async def attach(
        self,
        resource_id: uuid.UUID,
        kind: ContentKind,
        content_id: str,
        caller: Caller,
    ) -> Resource:
        """
        Append a content reference of ``kind`` to the resource.

        Attaching the same (kind, content_id) twice is a no-op.

        Raises:
            NotFound / Forbidden: caller cannot see the resource
            InvalidInput: blank content id
            InvalidAttachmentPoint: the window for ``kind`` is closed
            Forbidden: the window is open but not for this caller
            Conflict: another writer changed the resource first
        """
        kind = ContentKind(kind)
        content_id = (content_id or "").strip()
        if not content_id:
            raise InvalidInput("Content id must not be blank")
        resource = await self._check(resource_id, kind, caller)

        if any(
            ref.kind == kind and ref.content_id == content_id
            for ref in resource.content_references
        ):
            return resource

        try:
            await self.lifecycle.compare_and_set(resource)
        except Conflict:
            # Report a closed window rather than a bare conflict when the
            # winning writer moved the resource out of it
            await self.session.refresh(resource)
            if resource.status not in ATTACHMENT_WINDOWS[kind].statuses:
                raise InvalidAttachmentPoint()
            raise

        reference = ContentReference(
            resource_id=resource.id,
            sequence=len(resource.content_references) + 1,
            kind=kind,
            content_id=content_id,
            attached_by=caller.principal_id,
            attached_at=utcnow(),
        )
        self.session.add(reference)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise Conflict("Content reference was attached concurrently") from e

        await self.session.refresh(resource, attribute_names=["content_references"])

        await self.event_store.log(
            event_type=EventType.CONTENT_ATTACHED,
            entity_type="resource",
            entity_id=resource.id,
            principal_id=caller.principal_id,
            payload={
                "kind": kind,
                "content_id": content_id,
                "sequence": reference.sequence,
                "status": resource.status,
            },
        )
        logger.info(
            "Content attached",
            extra={"resource_id": str(resource.id), "kind": kind.value, "content_id": content_id},
        )
        return resource

    async def publish_and_attach(
        self,
        resource_id: uuid.UUID,
        kind: ContentKind,
        payload: Dict[str, Any],
        caller: Caller,
    ) -> Resource:
        """
        Upload a structured payload to the content store and attach the
        returned identifier.

        Nothing is attached unless the upload succeeds.

        Raises:
            ContentStoreUnavailable: the store failed after bounded retries
            plus everything ``attach`` raises
        """
        kind = ContentKind(kind)
        # Fail before uploading if the attach would be refused anyway
        await self._check(resource_id, kind, caller)

        document = wrap_payload(resource_id, kind, payload)
        try:
            content_id = await self._store().pin_json(
                document, name=f"{kind.value}_{resource_id}", kind=kind.value
            )
        except ContentStoreError as e:
            logger.error(
                "Content upload failed",
                extra={"resource_id": str(resource_id), "kind": kind.value, "error": str(e)},
            )
            raise ContentStoreUnavailable() from e

        return await self.attach(resource_id, kind, content_id, caller)

    async def publish_file_and_attach(
        self,
        resource_id: uuid.UUID,
        kind: ContentKind,
        data: bytes,
        filename: str,
        content_type: str,
        caller: Caller,
    ) -> Resource:
        """Upload a binary blob and attach it. Same guarantees as ``publish_and_attach``."""
        kind = ContentKind(kind)
        await self._check(resource_id, kind, caller)

        try:
            content_id = await self._store().pin_file(data, filename, content_type)
        except ContentStoreError as e:
            logger.error(
                "File upload failed",
                extra={"resource_id": str(resource_id), "kind": kind.value, "error": str(e)},
            )
            raise ContentStoreUnavailable() from e

        return await self.attach(resource_id, kind, content_id, caller)

    async def _check(self, resource_id: uuid.UUID, kind: ContentKind, caller: Caller) -> Resource:
        resource, _ = await self.lifecycle.get(resource_id, caller)

        if resource.status not in ATTACHMENT_WINDOWS[kind].statuses:
            raise InvalidAttachmentPoint(
                f"Cannot attach {kind.value} to a {resource.status.value} resource"
            )

        decision = evaluate(caller, resource.owner_id, resource.status, Operation.attach(kind))
        if not decision:
            raise Forbidden(f"Not allowed to attach {kind.value}")
        return resource

    def _store(self) -> ContentStore:
        if self.content_store is None:
            self.content_store = ContentStore()
        return self.content_store


def wrap_payload(resource_id: uuid.UUID, kind: ContentKind, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Envelope a payload with upload metadata and the standard label for its kind."""
    return {
        **payload,
        "resourceId": str(resource_id),
        "kind": kind.value,
        "uploadedAt": utcnow().isoformat(),
        "version": PAYLOAD_VERSION,
        "standard": STANDARD_LABELS[kind],
    }
