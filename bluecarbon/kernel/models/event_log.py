"""
Immutable event log for audit trail.

All state mutations are logged here BEFORE commit.
The registry is an audit log of record; rows are never updated or deleted.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Index, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bluecarbon.kernel.models.base import Base, enum_column, generate_uuid, utcnow


class EventType(str, Enum):
    """All event types for the audit log."""

    # Principal events
    PRINCIPAL_REGISTERED = "principal.registered"
    PRINCIPAL_AUTHENTICATED = "principal.authenticated"
    PRINCIPAL_UPDATED = "principal.updated"

    # Resource events
    RESOURCE_CREATED = "resource.created"
    RESOURCE_UPDATED = "resource.updated"
    RESOURCE_STATUS_CHANGED = "resource.status_changed"
    CONTENT_ATTACHED = "resource.content_attached"


class EventLog(Base):
    """One audit record."""

    __tablename__ = "event_log"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    event_type: Mapped[EventType] = mapped_column(
        enum_column(EventType),
        nullable=False,
    )
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
    )
    # Null for automated triggers
    principal_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    payload: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    request_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_event_log_entity", "entity_type", "entity_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EventLog {self.event_type.value} {self.entity_type}:{self.entity_id}>"
