"""
Append-only audit logging.
"""

from bluecarbon.kernel.events.event_store import EventStore

__all__ = [
    "EventStore",
]
