"""
Event Store service for append-only audit logging.

All state mutations MUST be logged here BEFORE commit.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_, asc, desc
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.kernel.models.event_log import EventLog, EventType
from bluecarbon.logging_config import get_request_id


class EventStore:
    """
    Service for managing the immutable event log.

    Usage:
        event_store = EventStore(session)
        await event_store.log(
            event_type=EventType.RESOURCE_STATUS_CHANGED,
            entity_type="resource",
            entity_id=resource.id,
            principal_id=caller.principal_id,
            payload={"from_status": "draft", "to_status": "submitted"},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        principal_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> EventLog:
        """
        Log an event to the immutable audit log.

        This MUST be called before committing any state change. The current
        request id, when one is set, is stored alongside the event.
        """
        event = EventLog(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            principal_id=principal_id,
            payload=self._serialize_payload(payload or {}),
            request_id=get_request_id(),
        )

        self.session.add(event)
        # Caller flushes/commits with the rest of the unit of work
        return event

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        event_types: Optional[List[EventType]] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
        newest_first: bool = True,
    ) -> List[EventLog]:
        """Get the event history for a specific entity. ``limit=None`` returns all of it."""
        query = select(EventLog).where(
            and_(
                EventLog.entity_type == entity_type,
                EventLog.entity_id == entity_id,
            )
        )

        if event_types:
            query = query.where(EventLog.event_type.in_(event_types))

        order = desc if newest_first else asc
        query = query.order_by(order(EventLog.created_at), order(EventLog.id)).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Convert payload values to JSON-serializable types."""
        result = {}
        for key, value in payload.items():
            result[key] = self._serialize_value(value)
        return result

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return self._serialize_payload(value)
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        return value
