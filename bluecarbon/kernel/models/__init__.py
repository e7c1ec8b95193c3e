"""
Kernel Data Models

Core SQLAlchemy models: principals, resources with their append-only
content references, and the audit event log.
"""

from bluecarbon.kernel.models.base import Base, TimestampMixin, generate_uuid
from bluecarbon.kernel.models.principal import Principal, Role
from bluecarbon.kernel.models.resource import (
    ContentKind,
    ContentReference,
    PUBLIC_STATUSES,
    Resource,
    ResourceStatus,
)
from bluecarbon.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # Principal
    "Principal",
    "Role",
    # Resource
    "Resource",
    "ResourceStatus",
    "PUBLIC_STATUSES",
    "ContentReference",
    "ContentKind",
    # Event Log
    "EventLog",
    "EventType",
]
