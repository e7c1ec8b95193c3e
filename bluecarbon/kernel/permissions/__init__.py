"""
Access Control - role, ownership and state aware decisions.
"""

from bluecarbon.kernel.permissions.access_control import (
    Action,
    Caller,
    Decision,
    Operation,
    Projection,
    can_read,
    evaluate,
)
from bluecarbon.kernel.permissions.matrix import (
    ATTACHMENT_WINDOWS,
    TRANSITIONS,
    LifecycleEvent,
    is_edge,
    valid_events,
)

__all__ = [
    "Action",
    "Caller",
    "Decision",
    "Operation",
    "Projection",
    "can_read",
    "evaluate",
    "ATTACHMENT_WINDOWS",
    "TRANSITIONS",
    "LifecycleEvent",
    "is_edge",
    "valid_events",
]
