"""
Registry Kernel

The foundational components every request passes through:
- Identity Core (principals, secrets, bearer credentials)
- Access Control (pure role/state/ownership decisions)
- Resource Lifecycle (state machine, ownership, visibility)
- Provenance (append-only content references)
- Immutable Event Log (all mutations logged before commit)
"""

from bluecarbon.kernel.models import (
    Principal,
    Role,
    Resource,
    ResourceStatus,
    ContentReference,
    ContentKind,
    EventLog,
    EventType,
)

__all__ = [
    "Principal",
    "Role",
    "Resource",
    "ResourceStatus",
    "ContentReference",
    "ContentKind",
    "EventLog",
    "EventType",
]
