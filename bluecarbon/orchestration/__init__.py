"""Orchestration layer - resource lifecycle state machine."""

from bluecarbon.orchestration.state_machine import LifecycleManager
from bluecarbon.kernel.models.resource import ResourceStatus
from bluecarbon.kernel.permissions.matrix import LifecycleEvent

__all__ = [
    "LifecycleManager",
    "LifecycleEvent",
    "ResourceStatus",
]
