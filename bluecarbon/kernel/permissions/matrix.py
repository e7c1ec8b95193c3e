"""
The fixed access matrix: lifecycle edges and attachment windows.

Valid transitions and who may trigger them are defined here; both the
access control evaluator and the lifecycle manager read from these tables.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List

from bluecarbon.kernel.models.principal import Role
from bluecarbon.kernel.models.resource import ContentKind, ResourceStatus


class LifecycleEvent(str, Enum):
    """Events that move a resource along its lifecycle."""
    SUBMIT = "submit"
    BEGIN_REVIEW = "begin_review"
    APPROVE = "approve"
    REJECT = "reject"
    TOKENIZE = "tokenize"


@dataclass(frozen=True)
class TransitionRule:
    source: ResourceStatus
    target: ResourceStatus
    roles: FrozenSet[Role]
    owner: bool = False


@dataclass(frozen=True)
class AttachmentWindow:
    statuses: FrozenSet[ResourceStatus]
    roles: FrozenSet[Role]
    owner: bool = False


_REVIEW_ROLES = frozenset({Role.REVIEWER, Role.ADMINISTRATOR})

TRANSITIONS: Dict[LifecycleEvent, TransitionRule] = {
    # Owner transitions
    LifecycleEvent.SUBMIT: TransitionRule(
        ResourceStatus.DRAFT, ResourceStatus.SUBMITTED, frozenset(), owner=True
    ),
    # Review transitions
    LifecycleEvent.BEGIN_REVIEW: TransitionRule(
        ResourceStatus.SUBMITTED, ResourceStatus.UNDER_REVIEW, _REVIEW_ROLES
    ),
    LifecycleEvent.APPROVE: TransitionRule(
        ResourceStatus.UNDER_REVIEW, ResourceStatus.VERIFIED, _REVIEW_ROLES
    ),
    LifecycleEvent.REJECT: TransitionRule(
        ResourceStatus.UNDER_REVIEW, ResourceStatus.REJECTED, _REVIEW_ROLES
    ),
    # Administrator (or an automated trigger acting as one)
    LifecycleEvent.TOKENIZE: TransitionRule(
        ResourceStatus.VERIFIED, ResourceStatus.TOKENIZED, frozenset({Role.ADMINISTRATOR})
    ),
}

ATTACHMENT_WINDOWS: Dict[ContentKind, AttachmentWindow] = {
    ContentKind.DOCUMENTATION: AttachmentWindow(
        frozenset({ResourceStatus.DRAFT, ResourceStatus.SUBMITTED}), frozenset(), owner=True
    ),
    ContentKind.MONITORING_EVIDENCE: AttachmentWindow(
        frozenset({ResourceStatus.SUBMITTED, ResourceStatus.UNDER_REVIEW}), frozenset(), owner=True
    ),
    ContentKind.VERIFICATION_REPORT: AttachmentWindow(
        frozenset({ResourceStatus.UNDER_REVIEW}), _REVIEW_ROLES
    ),
    ContentKind.CREDIT_METADATA: AttachmentWindow(
        frozenset({ResourceStatus.TOKENIZED}), frozenset({Role.ADMINISTRATOR})
    ),
    ContentKind.RETIREMENT_CERTIFICATE: AttachmentWindow(
        frozenset({ResourceStatus.TOKENIZED}), frozenset({Role.ADMINISTRATOR})
    ),
}

# Statuses a reviewer may read
REVIEWER_READABLE = frozenset({
    ResourceStatus.SUBMITTED,
    ResourceStatus.UNDER_REVIEW,
    ResourceStatus.VERIFIED,
    ResourceStatus.REJECTED,
})


def valid_events(status: ResourceStatus) -> List[LifecycleEvent]:
    """Return the events that may fire from ``status``, in table order."""
    return [event for event, rule in TRANSITIONS.items() if rule.source == status]


def is_edge(source: ResourceStatus, target: ResourceStatus) -> bool:
    """Check whether ``source -> target`` is an edge of the lifecycle graph."""
    return any(rule.source == source and rule.target == target for rule in TRANSITIONS.values())
